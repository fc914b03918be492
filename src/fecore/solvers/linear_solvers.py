import logging
import time
from abc import ABC, abstractmethod

import numpy as np
import scipy.sparse as sp
import scipy.sparse.linalg as spla

from fecore.errors import ConvergenceError, SingularSystemError
from fecore.globals import iterative_solver_options, singular_pivot_tol

logger = logging.getLogger(__name__)


class LinearSolver(ABC):
    """Algebraic solver used by LinearFESolver."""

    @abstractmethod
    def factorize_and_solve(self, matrix, rhs):
        pass

    def __call__(self, matrix, rhs):
        return self.factorize_and_solve(matrix, rhs)


class LUSolver(LinearSolver):
    """Sparse direct solver based on SuperLU.

    A pivot of ``U`` whose magnitude falls below ``pivot_tol`` times the
    largest one is reported as a singular system.
    """

    def __init__(self, pivot_tol=None, permc_spec="COLAMD"):
        self.pivot_tol = singular_pivot_tol if pivot_tol is None else pivot_tol
        self.permc_spec = permc_spec

    def factorize_and_solve(self, matrix, rhs):
        rhs = np.asarray(rhs, dtype=float)
        if matrix.shape[0] == 0:
            return np.zeros(0)

        st = time.time()
        try:
            lu = spla.splu(sp.csc_matrix(matrix), permc_spec=self.permc_spec)
        except RuntimeError as err:
            raise SingularSystemError(
                "LUSolver:: factorization failed, matrix is exactly singular"
            ) from err

        # L U = Pr A Pc, pivot k sits on column inverse(perm_c)[k] of A
        pivots = np.abs(lu.U.diagonal())
        max_pivot = np.max(pivots)
        small = np.flatnonzero(pivots <= self.pivot_tol * max_pivot)
        if len(small) != 0:
            k = int(small[0])
            raise SingularSystemError(
                "LUSolver:: matrix is numerically singular, pivot %e relative to %e"
                % (pivots[k], max_pivot),
                pivot_index=int(np.argsort(lu.perm_c)[k]),
            )

        x = lu.solve(rhs)
        et = time.time()
        logger.info("LUSolver:: Linear solver time: %s seconds", et - st)
        return x


class ConjugateGradientSolver(LinearSolver):
    """scipy CG for symmetric positive definite systems.

    ``options`` overrides ``rtol``, ``atol`` and ``maxiter``.
    """

    def __init__(self, options=None, preconditioner=None):
        self.options = dict(iterative_solver_options)
        if options is not None:
            self.options.update(options)
        self.preconditioner = preconditioner

    def factorize_and_solve(self, matrix, rhs):
        rhs = np.asarray(rhs, dtype=float)
        if matrix.shape[0] == 0:
            return np.zeros(0)

        st = time.time()
        matrix = sp.csr_matrix(matrix)
        preconditioner = self.preconditioner
        if preconditioner == "jacobi":
            diagonal = matrix.diagonal()
            if np.any(diagonal == 0.0):
                raise SingularSystemError(
                    "ConjugateGradientSolver:: zero diagonal entry",
                    pivot_index=int(np.flatnonzero(diagonal == 0.0)[0]),
                )
            preconditioner = sp.diags(1.0 / diagonal)

        x, info = spla.cg(
            matrix,
            rhs,
            rtol=self.options["rtol"],
            atol=self.options["atol"],
            maxiter=self.options["maxiter"],
            M=preconditioner,
        )
        if info > 0:
            raise ConvergenceError(
                "ConjugateGradientSolver:: no convergence after %d iterations" % info
            )
        if info < 0:
            raise SingularSystemError("ConjugateGradientSolver:: breakdown")
        et = time.time()
        logger.info("ConjugateGradientSolver:: Linear solver time: %s seconds", et - st)
        return x


class PETScLUSolver(LinearSolver):
    """KSP preonly with an LU (or Cholesky) factorization from petsc4py."""

    def __init__(self, symmetric_solver_q=False, factor_solver_type=None):
        self.symmetric_solver_q = symmetric_solver_q
        self.factor_solver_type = factor_solver_type

    def factorize_and_solve(self, matrix, rhs):
        from petsc4py import PETSc

        rhs = np.asarray(rhs, dtype=float)
        if matrix.shape[0] == 0:
            return np.zeros(0)

        st = time.time()
        csr = sp.csr_matrix(matrix)
        A = PETSc.Mat().createAIJ(
            size=csr.shape,
            csr=(
                csr.indptr.astype(PETSc.IntType),
                csr.indices.astype(PETSc.IntType),
                csr.data,
            ),
        )
        A.assemble()

        ksp = PETSc.KSP().create()
        ksp.setOperators(A)
        b = A.createVecLeft()
        b.array[:] = rhs
        x = A.createVecRight()

        ksp.setType("preonly")
        if self.symmetric_solver_q:
            ksp.getPC().setType("cholesky")
        else:
            ksp.getPC().setType("lu")
        if self.factor_solver_type is not None:
            ksp.getPC().setFactorSolverType(self.factor_solver_type)

        try:
            ksp.solve(b, x)
        except PETSc.Error as err:
            raise SingularSystemError("PETScLUSolver:: factorization failed") from err
        reason = ksp.getConvergedReason()
        if reason < 0:
            raise SingularSystemError(
                "PETScLUSolver:: factorization failed with reason %d" % reason
            )
        alpha = x.array.copy()
        et = time.time()
        logger.info("PETScLUSolver:: Linear solver time: %s seconds", et - st)
        return alpha
