import numpy as np
import pytest

from fecore.assembly.scatter_form_data import (
    reduce_rhs_data,
    scatter_form_data,
    scatter_lhs_data,
    scatter_rhs_data,
)
from fecore.assembly.sparse_matrix_assembler import SparseMatrixAssembler
from fecore.errors import (
    ArgumentOrderError,
    DimensionMismatchError,
    IntegrandError,
    IntegrationDomainError,
)
from fecore.integration.cell_quadrature import CellQuadrature
from fecore.integration.triangulation import BoundaryTriangulation, DomainTriangulation
from fecore.mesh.mesh_generators import unit_cube_mesh, unit_square_mesh
from fecore.mesh.mesh_topology import MeshTopology
from fecore.spaces.fe_space import FESpace, TestFESpace, TrialFESpace
from fecore.weak_forms.basis_values import grad, inner
from fecore.weak_forms.fe_terms import AffineFETerm, FESource, LinearFETerm


def a_stiffness(v, u):
    return inner(grad(v), grad(u))


def a_mass(v, u):
    return inner(v, u)


def b_load(v):
    return inner(v, 1.0)


def b_field(v):
    return inner(v, lambda x: x[:, 0] + x[:, 1] ** 2)


def generate_problem(mesh_data, k_order=1, dirichlet_tags=None):
    mesh = MeshTopology.load(mesh_data)
    space = FESpace(mesh, k_order, dirichlet_tags)
    trian = DomainTriangulation(mesh)
    quad = CellQuadrature(trian, k_order=k_order)
    return mesh, space, trian, quad


def test_scatter_triplets():
    j_els = np.arange(8, dtype=float).reshape(2, 2, 2)
    row_dofs = np.array([[0, 1], [1, 2]])
    col_dofs = np.array([[3, 4], [4, 5]])
    row, col, data = scatter_lhs_data(j_els, row_dofs, col_dofs)
    assert np.array_equal(row, [0, 0, 1, 1, 1, 1, 2, 2])
    assert np.array_equal(col, [3, 4, 3, 4, 4, 5, 4, 5])
    assert np.array_equal(data, np.arange(8))
    r_els = np.array([[1.0, 2.0], [3.0, 4.0]])
    rhs_data = scatter_rhs_data(r_els, row_dofs)
    assert np.array_equal(rhs_data[0], [0, 1, 1, 2])
    assert np.allclose(reduce_rhs_data([rhs_data], 4), [1.0, 5.0, 4.0, 0.0])
    assert np.allclose(reduce_rhs_data([], 3), 0.0)


@pytest.mark.parametrize("k_order", [1, 2])
def test_stiffness_is_symmetric_positive_semidefinite(k_order):
    _, space, trian, quad = generate_problem(unit_square_mesh(3), k_order)
    system = SparseMatrixAssembler(space, space).assemble(
        LinearFETerm(a_stiffness, trian, quad)
    )
    stiffness = system.full_matrix.toarray()
    assert system.matrix.shape == (space.num_dofs(), space.num_dofs())
    assert np.allclose(stiffness, stiffness.T, atol=1.0e-12)
    assert np.min(np.linalg.eigvalsh(stiffness)) > -1.0e-10
    # constants are in the kernel
    assert np.allclose(stiffness @ np.ones(space.num_dofs()), 0.0, atol=1.0e-10)


@pytest.mark.parametrize("k_order", [1, 2, 3])
def test_mass_and_load_sums(k_order):
    _, space, trian, quad = generate_problem(unit_cube_mesh(2), k_order)
    system = SparseMatrixAssembler(space, space).assemble(
        AffineFETerm(a_mass, b_load, trian, quad)
    )
    assert system.full_matrix.sum() == pytest.approx(1.0)
    assert np.sum(system.full_rhs) == pytest.approx(1.0)


def test_boundary_source():
    mesh, space, _, _ = generate_problem(unit_cube_mesh(2))
    btrian = BoundaryTriangulation(mesh, ["top", "right"])
    bquad = CellQuadrature(btrian)
    system = SparseMatrixAssembler(space, space).assemble(FESource(b_load, btrian, bquad))
    assert np.sum(system.full_rhs) == pytest.approx(2.0)
    assert system.full_matrix.nnz == 0


def assemble_with(space, terms, **kwargs):
    test_space = TestFESpace(space)
    trial_space = TrialFESpace(space, lambda x: x[:, 0])
    return SparseMatrixAssembler(test_space, trial_space, **kwargs).assemble(*terms)


def test_assembly_is_order_independent():
    mesh, space, trian, quad = generate_problem(unit_cube_mesh(3), 2, "boundary")
    btrian = BoundaryTriangulation(mesh, ["top"])
    bquad = CellQuadrature(btrian, k_order=2)
    terms = [
        LinearFETerm(a_stiffness, trian, quad),
        FESource(b_field, trian, quad),
        FESource(b_load, btrian, bquad),
    ]
    reference = assemble_with(space, terms)
    combined = assemble_with(
        space,
        [AffineFETerm(a_stiffness, b_field, trian, quad), FESource(b_load, btrian, bquad)],
    )
    variants = [
        assemble_with(space, terms[::-1]),
        assemble_with(space, terms, block_size=7),
        assemble_with(space, terms, n_jobs=2, block_size=13),
        combined,
    ]
    for system in variants:
        assert abs(system.full_matrix - reference.full_matrix).max() < 1.0e-12
        assert np.allclose(system.full_rhs, reference.full_rhs, atol=1.0e-12)
        assert abs(system.matrix - reference.matrix).max() < 1.0e-12
        assert np.allclose(system.rhs, reference.rhs, atol=1.0e-12)


def dof_order(space):
    # dofs sorted by position, independent of the numbering
    coordinates = np.round(space.dof_coordinates, 10)
    return np.lexsort(coordinates.T[::-1])


def assemble_cube(mesh_data, k_order):
    mesh, space, trian, quad = generate_problem(mesh_data, k_order)
    btrian = BoundaryTriangulation(mesh, ["top"])
    bquad = CellQuadrature(btrian, k_order=k_order)
    system = SparseMatrixAssembler(space, space, block_size=5).assemble(
        AffineFETerm(a_stiffness, b_field, trian, quad),
        FESource(b_load, btrian, bquad),
    )
    order = dof_order(space)
    full_matrix = system.full_matrix.toarray()[np.ix_(order, order)]
    return full_matrix, system.full_rhs[order]


@pytest.mark.parametrize("k_order", [1, 2])
def test_assembly_does_not_depend_on_cell_order(k_order):
    mesh_data = unit_cube_mesh(3)
    cells = mesh_data["entities"][3]
    permutation = np.random.default_rng(7).permutation(len(cells))
    permuted_data = unit_cube_mesh(3)
    permuted_data["entities"][3] = [cells[i] for i in permutation]

    matrix, rhs = assemble_cube(mesh_data, k_order)
    permuted_matrix, permuted_rhs = assemble_cube(permuted_data, k_order)
    assert np.max(np.abs(permuted_matrix - matrix)) < 1.0e-12
    assert np.allclose(permuted_rhs, rhs, atol=1.0e-12)


def test_block_results_hold_local_data_only():
    _, space, trian, quad = generate_problem(unit_square_mesh(16))
    term = AffineFETerm(a_stiffness, b_load, trian, quad)
    n_local = space.ref_element.dim
    lhs_data, rhs_data = scatter_form_data(
        slice(0, 3), term, TestFESpace(space), TrialFESpace(space)
    )
    assert all(len(array) == 3 * n_local * n_local for array in lhs_data)
    assert all(len(array) == 3 * n_local for array in rhs_data)

    # single cell blocks reduce to the same vector
    reference = SparseMatrixAssembler(space, space).assemble(term)
    system = SparseMatrixAssembler(space, space, block_size=1).assemble(term)
    assert np.allclose(system.full_rhs, reference.full_rhs, atol=1.0e-14)


def test_dirichlet_elimination():
    _, space, trian, quad = generate_problem(unit_square_mesh(3), 1, "boundary")
    system = assemble_with(space, [AffineFETerm(a_stiffness, b_load, trian, quad)])
    free = space.free_dofs
    dirichlet = space.dirichlet_dofs
    g = space.dof_coordinates[dirichlet, 0]
    full = system.full_matrix.toarray()
    assert system.matrix.shape == (len(free), len(free))
    assert np.allclose(system.matrix.toarray(), full[np.ix_(free, free)])
    assert np.allclose(system.rhs, system.full_rhs[free] - full[np.ix_(free, dirichlet)] @ g)

    dof_values = system.expand(np.zeros(len(free)))
    assert np.allclose(dof_values[dirichlet], g)
    assert np.allclose(dof_values[free], 0.0)


def test_system_is_read_only():
    _, space, trian, quad = generate_problem(unit_square_mesh(2), 1, "boundary")
    system = assemble_with(space, [AffineFETerm(a_stiffness, b_load, trian, quad)])
    with pytest.raises(ValueError):
        system.rhs[0] = 1.0
    with pytest.raises(ValueError):
        system.full_rhs[0] = 1.0


def test_dimension_mismatch():
    mesh = MeshTopology.load(unit_square_mesh(2))
    with pytest.raises(DimensionMismatchError):
        SparseMatrixAssembler(FESpace(mesh, 1), FESpace(mesh, 2))
    with pytest.raises(DimensionMismatchError):
        SparseMatrixAssembler(FESpace(mesh, 1, "boundary"), FESpace(mesh, 1, "left"))
    other = MeshTopology.load(unit_square_mesh(2))
    with pytest.raises(DimensionMismatchError):
        SparseMatrixAssembler(FESpace(mesh, 1), FESpace(other, 1))


def test_integration_domain_errors():
    _, space, trian, quad = generate_problem(unit_square_mesh(2))
    other_mesh, _, other_trian, other_quad = generate_problem(unit_square_mesh(2))
    assembler = SparseMatrixAssembler(space, space)
    with pytest.raises(IntegrationDomainError):
        assembler.assemble(LinearFETerm(a_stiffness, other_trian, other_quad))
    with pytest.raises(IntegrationDomainError):
        LinearFETerm(a_stiffness, trian, other_quad)
    with pytest.raises(ValueError):
        assembler.assemble()


def test_integrand_errors():
    _, space, trian, quad = generate_problem(unit_square_mesh(2))
    assembler = SparseMatrixAssembler(space, space)
    with pytest.raises(ArgumentOrderError):
        assembler.assemble(LinearFETerm(lambda v, u: inner(grad(u), grad(v)), trian, quad))
    with pytest.raises(IntegrandError):
        assembler.assemble(LinearFETerm(lambda v, u: inner(v, 1.0), trian, quad))
    with pytest.raises(IntegrandError):
        assembler.assemble(FESource(lambda v: 1.0, trian, quad))
    with pytest.raises(IntegrandError):
        assembler.assemble(FESource(lambda v: inner(v, np.ones((2, 1))), trian, quad))
