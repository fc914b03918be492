import numpy as np
import pytest
import scipy.sparse as sp

from fecore.errors import ConvergenceError, SingularSystemError
from fecore.integration.cell_quadrature import CellQuadrature
from fecore.integration.triangulation import DomainTriangulation
from fecore.mesh.mesh_generators import unit_interval_mesh, unit_square_mesh
from fecore.mesh.mesh_topology import MeshTopology
from fecore.solvers.linear_fe_operator import LinearFEOperator
from fecore.solvers.linear_fe_solver import LinearFESolver, solve
from fecore.solvers.linear_solvers import (
    ConjugateGradientSolver,
    LUSolver,
    PETScLUSolver,
)
from fecore.spaces.fe_space import FESpace, TestFESpace, TrialFESpace
from fecore.weak_forms.basis_values import grad, inner
from fecore.weak_forms.fe_terms import AffineFETerm


def poisson_operator(mesh_data, k_order=1, dirichlet_tags="boundary"):
    mesh = MeshTopology.load(mesh_data)
    space = FESpace(mesh, k_order, dirichlet_tags)
    trian = DomainTriangulation(mesh)
    quad = CellQuadrature(trian, k_order=k_order)
    term = AffineFETerm(
        lambda v, u: inner(grad(v), grad(u)), lambda v: inner(v, 1.0), trian, quad
    )
    return LinearFEOperator(TestFESpace(space), TrialFESpace(space, 0.0), term)


def test_lu_solver():
    matrix = sp.csr_matrix(np.array([[4.0, 1.0, 0.0], [1.0, 3.0, 1.0], [0.0, 1.0, 2.0]]))
    rhs = np.array([1.0, 2.0, 3.0])
    x = LUSolver().factorize_and_solve(matrix, rhs)
    assert np.allclose(matrix @ x, rhs)
    assert LUSolver()(matrix, rhs) == pytest.approx(x)
    assert LUSolver().factorize_and_solve(sp.csr_matrix((0, 0)), np.zeros(0)).shape == (0,)


def test_exactly_singular_matrix():
    matrix = sp.csr_matrix(np.array([[1.0, 1.0], [1.0, 1.0]]))
    with pytest.raises(SingularSystemError):
        LUSolver().factorize_and_solve(matrix, np.ones(2))


def test_numerically_singular_matrix():
    matrix = sp.csr_matrix(np.diag([1.0, 1.0e-14, 2.0]))
    with pytest.raises(SingularSystemError) as err:
        LUSolver(permc_spec="NATURAL").factorize_and_solve(matrix, np.ones(3))
    assert err.value.pivot_index == 1
    assert "pivot index 1" in str(err.value)
    # a looser tolerance accepts it
    x = LUSolver(pivot_tol=1.0e-16).factorize_and_solve(matrix, np.ones(3))
    assert x[1] == pytest.approx(1.0e14)


def test_pure_neumann_problem_is_singular():
    operator = poisson_operator(unit_interval_mesh(4), dirichlet_tags=[])
    with pytest.raises(SingularSystemError):
        solve(LUSolver(), operator)


def test_operator_is_deferred():
    operator = poisson_operator(unit_square_mesh(4))
    first = operator.assemble()
    second = operator.assemble()
    assert first is not second
    assert abs(first.matrix - second.matrix).max() == 0.0
    with pytest.raises(ValueError):
        LinearFEOperator(operator.test_space, operator.trial_space)


def test_conjugate_gradient_matches_lu():
    operator = poisson_operator(unit_square_mesh(8), k_order=2)
    uh_lu = solve(LUSolver(), operator)
    uh_cg = LinearFESolver(ConjugateGradientSolver()).solve(operator)
    uh_pcg = solve(ConjugateGradientSolver(preconditioner="jacobi"), operator)
    assert np.allclose(uh_cg.dof_values, uh_lu.dof_values, atol=1.0e-8)
    assert np.allclose(uh_pcg.dof_values, uh_lu.dof_values, atol=1.0e-8)


def test_conjugate_gradient_without_convergence():
    operator = poisson_operator(unit_square_mesh(8))
    with pytest.raises(ConvergenceError):
        solve(ConjugateGradientSolver({"maxiter": 1}), operator)


def test_petsc_lu_matches_lu():
    pytest.importorskip("petsc4py")
    operator = poisson_operator(unit_square_mesh(6), k_order=2)
    uh_lu = solve(LUSolver(), operator)
    uh_petsc = solve(PETScLUSolver(), operator)
    assert np.allclose(uh_petsc.dof_values, uh_lu.dof_values, atol=1.0e-10)
