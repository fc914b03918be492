import logging
import time

import numpy as np
import scipy.sparse as sp
from joblib import Parallel, delayed

from fecore.assembly.assembled_system import AssembledSystem
from fecore.assembly.scatter_form_data import reduce_rhs_data, scatter_form_data
from fecore.errors import DimensionMismatchError, IntegrationDomainError
from fecore.globals import assembly_block_size
from fecore.spaces.fe_space import ConstrainedFESpace, TestFESpace, TrialFESpace
from fecore.weak_forms.weak_form import WeakForm

logger = logging.getLogger(__name__)


def _as_test_space(space):
    if isinstance(space, ConstrainedFESpace):
        return space
    return TestFESpace(space)


def _as_trial_space(space):
    if isinstance(space, ConstrainedFESpace):
        return space
    return TrialFESpace(space)


class SparseMatrixAssembler:
    """Assembles FE terms into a scipy sparse system.

    Integration cells of every term are split into blocks of ``block_size``
    cells. Blocks are evaluated in sequence, or on ``n_jobs`` threads with
    joblib, and their contributions are reduced in block order.
    """

    def __init__(self, test_space, trial_space, n_jobs=1, block_size=None):
        self.test_space = _as_test_space(test_space)
        self.trial_space = _as_trial_space(trial_space)
        self.n_jobs = n_jobs
        self.block_size = assembly_block_size if block_size is None else block_size
        if self.block_size < 1:
            raise ValueError(
                "SparseMatrixAssembler:: block size must be positive, got %r"
                % self.block_size
            )
        self._check_spaces()

    def _check_spaces(self):
        test, trial = self.test_space, self.trial_space
        if test.mesh is not trial.mesh:
            raise DimensionMismatchError(
                "test and trial spaces are defined on different meshes"
            )
        if test.num_dofs() != trial.num_dofs():
            raise DimensionMismatchError(
                "test space has %d dofs but trial space has %d"
                % (test.num_dofs(), trial.num_dofs())
            )
        if test.num_free_dofs() != trial.num_free_dofs():
            raise DimensionMismatchError(
                "test space has %d free dofs but trial space has %d"
                % (test.num_free_dofs(), trial.num_free_dofs())
            )

    def _check_term(self, term):
        if not isinstance(term, WeakForm):
            raise TypeError(
                "SparseMatrixAssembler:: expected an FE term, got %r" % (term,)
            )
        mesh = self.test_space.mesh
        trian = term.triangulation
        if trian.mesh is not mesh:
            raise IntegrationDomainError(
                "the triangulation of %s is defined on another mesh"
                % type(term).__name__
            )
        cell_ids = trian.cell_ids
        if len(cell_ids) != 0 and (
            cell_ids.min() < 0 or cell_ids.max() >= mesh.num_cells()
        ):
            raise IntegrationDomainError(
                "the triangulation of %s references cells outside the space"
                % type(term).__name__
            )

    def _tasks(self, terms):
        return [(block, term) for term in terms for block in term.blocks(self.block_size)]

    def assemble(self, *terms):
        if len(terms) == 0:
            raise ValueError("SparseMatrixAssembler:: no FE terms to assemble")
        test, trial = self.test_space, self.trial_space
        st = time.time()
        for term in terms:
            self._check_term(term)
            # shared reference tabulations are cached before blocks run on threads
            term.quadrature.reference_basis(test.ref_element)
            term.quadrature.reference_basis(trial.ref_element)

        tasks = self._tasks(terms)
        if self.n_jobs == 1:
            results = [scatter_form_data(block, term, test, trial) for block, term in tasks]
        else:
            results = Parallel(n_jobs=self.n_jobs, backend="threading")(
                delayed(scatter_form_data)(block, term, test, trial)
                for block, term in tasks
            )

        n_dof = test.num_dofs()
        rows = [np.empty(0, dtype=np.int64)]
        cols = [np.empty(0, dtype=np.int64)]
        data = [np.empty(0)]
        rhs_data = []
        for lhs_block, rhs_block in results:
            if lhs_block is not None:
                rows.append(lhs_block[0])
                cols.append(lhs_block[1])
                data.append(lhs_block[2])
            if rhs_block is not None:
                rhs_data.append(rhs_block)

        # duplicated entries are summed
        rhs = reduce_rhs_data(rhs_data, n_dof)
        full_matrix = sp.coo_matrix(
            (np.concatenate(data), (np.concatenate(rows), np.concatenate(cols))),
            shape=(n_dof, trial.num_dofs()),
        ).tocsr()
        system = AssembledSystem(full_matrix, rhs, test, trial)
        et = time.time()
        logger.info(
            "SparseMatrixAssembler:: Assembled %d blocks, system of %d free dofs",
            len(tasks),
            system.num_free_dofs(),
        )
        logger.debug("SparseMatrixAssembler:: Assembly time: %s seconds", et - st)
        return system
