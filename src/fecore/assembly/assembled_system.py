import numpy as np


class AssembledSystem:
    """Global system and its restriction to the free dofs.

    Dirichlet values are lifted by elimination: with ``f`` the free and
    ``d`` the Dirichlet dofs, ``matrix = A[f, f]`` and
    ``rhs = b[f] - A[f, d] @ g``.
    """

    def __init__(self, full_matrix, full_rhs, test_space, trial_space):
        self.full_matrix = full_matrix.tocsr()
        full_rhs = np.asarray(full_rhs, dtype=float)
        full_rhs.setflags(write=False)
        self.full_rhs = full_rhs
        self.test_space = test_space
        self.trial_space = trial_space

        rows = test_space.free_dofs
        free_cols = trial_space.free_dofs
        dirichlet_cols = trial_space.dirichlet_dofs
        free_rows = self.full_matrix[rows, :]
        self.matrix = free_rows[:, free_cols].tocsr()
        lifting = free_rows[:, dirichlet_cols] @ trial_space.dirichlet_values
        rhs = full_rhs[rows] - lifting
        rhs.setflags(write=False)
        self.rhs = rhs

    @property
    def shape(self):
        return self.matrix.shape

    def num_free_dofs(self):
        return self.matrix.shape[0]

    def expand(self, free_values):
        # full dof vector with the prescribed Dirichlet values
        dof_values = np.zeros(self.trial_space.num_dofs())
        dof_values[self.trial_space.free_dofs] = free_values
        dof_values[self.trial_space.dirichlet_dofs] = self.trial_space.dirichlet_values
        return dof_values

    def residual(self, dof_values):
        # full system residual restricted to the free rows
        r = self.full_matrix @ np.asarray(dof_values, dtype=float) - self.full_rhs
        return r[self.test_space.free_dofs]
