import numpy as np

from fecore.spaces.coefficient import evaluate_coefficient
from fecore.spaces.fe_space import ConstrainedFESpace


class FEFunction:
    """Coefficients over all the dofs of an (unconstrained) FESpace."""

    def __init__(self, space, dof_values):
        if isinstance(space, ConstrainedFESpace):
            space = space.space
        dof_values = np.array(dof_values, dtype=float)
        if dof_values.shape != (space.num_dofs(),):
            raise ValueError(
                "FEFunction:: expected %d dof values, got shape %r"
                % (space.num_dofs(), dof_values.shape)
            )
        dof_values.setflags(write=False)
        self.space = space
        self.dof_values = dof_values

    @property
    def free_values(self):
        return self.dof_values[self.space.free_dofs]

    @property
    def dirichlet_values(self):
        return self.dof_values[self.space.dirichlet_dofs]

    def vertex_values(self):
        # nan on mesh vertices that carry no dof
        mesh = self.space.mesh
        values = np.full(mesh.num_vertices(), np.nan)
        dof_entities = self.space.dof_entities
        vertex_dofs = np.flatnonzero(dof_entities[:, 0] == 0)
        values[dof_entities[vertex_dofs, 1]] = self.dof_values[vertex_dofs]
        return values

    def sample(self):
        values = self.vertex_values()
        return {
            int(vertex): float(values[vertex])
            for vertex in np.flatnonzero(~np.isnan(values))
        }

    def evaluate(self, quadrature):
        phi, _ = quadrature.basis_data(self.space.ref_element)
        coefficients = self._cell_coefficients(quadrature)
        return np.einsum("cqi,ci->cq", phi, coefficients)

    def gradient(self, quadrature):
        _, grad_phi = quadrature.basis_data(self.space.ref_element)
        coefficients = self._cell_coefficients(quadrature)
        return np.einsum("cqij,ci->cqj", grad_phi, coefficients)

    def _cell_coefficients(self, quadrature):
        cell_dofs = self.space.cell_dof_table[quadrature.cell_ids]
        return self.dof_values[cell_dofs]

    def __call__(self, quadrature):
        return self.evaluate(quadrature)


def interpolate(space, f):
    """Nodal interpolation of ``f`` (number or callable of points)."""
    if isinstance(space, ConstrainedFESpace):
        space = space.space
    return FEFunction(space, evaluate_coefficient(f, space.dof_coordinates))
