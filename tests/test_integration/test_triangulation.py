import numpy as np
import pytest

from fecore.basis.reference_element import shape_functions
from fecore.errors import EmptyBoundaryError, IntegrationDomainError
from fecore.geometry.mapping import evaluate_mapping
from fecore.integration.cell_quadrature import CellQuadrature
from fecore.integration.triangulation import (
    BoundaryTriangulation,
    DomainTriangulation,
    Triangulation,
)
from fecore.mesh.mesh_generators import (
    box_mesh,
    unit_cube_mesh,
    unit_interval_mesh,
    unit_square_mesh,
)
from fecore.mesh.mesh_topology import MeshTopology


def generate_mesh(dimension, n):
    generators = {1: unit_interval_mesh, 2: unit_square_mesh, 3: unit_cube_mesh}
    return MeshTopology.load(generators[dimension](n))


@pytest.mark.parametrize("dimension", [1, 2, 3])
def test_domain_measure(dimension):
    mesh = generate_mesh(dimension, 3)
    trian = Triangulation.for_domain(mesh)
    assert isinstance(trian, DomainTriangulation)
    assert trian.num_cells() == mesh.num_cells()
    quad = CellQuadrature(trian)
    assert quad.degree == 2
    assert quad.integrate(np.ones_like(quad.dV)) == pytest.approx(1.0)


def test_box_volume_and_moments():
    mesh = MeshTopology.load(box_mesh((0.0, 0.0, 0.0), (2.0, 1.0, 3.0), 2, 1, 2))
    quad = CellQuadrature(DomainTriangulation(mesh), 2)
    x = quad.x
    assert quad.integrate(np.ones_like(quad.dV)) == pytest.approx(6.0)
    # integral of x y over the box
    assert quad.integrate(x[..., 0] * x[..., 1]) == pytest.approx(3.0)
    assert quad.integrate(x[..., 2] ** 2) == pytest.approx(18.0)


@pytest.mark.parametrize("dimension, measure", [(1, 2.0), (2, 4.0), (3, 6.0)])
def test_boundary_measure(dimension, measure):
    mesh = generate_mesh(dimension, 2)
    trian = BoundaryTriangulation(mesh)
    quad = CellQuadrature(trian)
    assert trian.num_cells() == len(mesh.boundary_facets())
    assert quad.integrate(np.ones_like(quad.dV)) == pytest.approx(measure)


@pytest.mark.parametrize("dimension", [1, 2, 3])
def test_divergence_theorem(dimension):
    # the boundary integral of x.n equals dimension times the volume
    mesh = generate_mesh(dimension, 2)
    quad = CellQuadrature(Triangulation.for_boundary(mesh))
    x_dot_n = np.sum(quad.x * quad.normals, axis=2)
    assert quad.integrate(x_dot_n) == pytest.approx(float(dimension))


@pytest.mark.parametrize(
    "tag, normal",
    [
        ("left", [-1.0, 0.0, 0.0]),
        ("right", [1.0, 0.0, 0.0]),
        ("front", [0.0, -1.0, 0.0]),
        ("back", [0.0, 1.0, 0.0]),
        ("bottom", [0.0, 0.0, -1.0]),
        ("top", [0.0, 0.0, 1.0]),
    ],
)
def test_cube_outward_normals(tag, normal):
    mesh = generate_mesh(3, 2)
    trian = BoundaryTriangulation(mesh, [tag])
    points = np.array([[0.2, 0.3], [0.5, 0.1]])
    normals = trian.normal(points)
    assert normals.shape == (trian.num_cells(), 2, 3)
    assert np.allclose(normals, normal)


def test_interval_and_square_normals():
    mesh = generate_mesh(1, 4)
    trian = BoundaryTriangulation(mesh, "left")
    assert np.allclose(trian.normal(np.zeros((1, 0))), [-1.0, 0.0, 0.0])
    trian = BoundaryTriangulation(mesh, "right")
    assert np.allclose(trian.normal(np.zeros((1, 0))), [1.0, 0.0, 0.0])

    mesh = generate_mesh(2, 3)
    trian = BoundaryTriangulation(mesh, ["top"])
    assert np.allclose(trian.normal(np.array([[0.5]])), [0.0, 1.0, 0.0])


@pytest.mark.parametrize("dimension", [1, 2, 3])
def test_facet_points_in_support_cells(dimension):
    mesh = generate_mesh(dimension, 2)
    trian = BoundaryTriangulation(mesh)
    quad = CellQuadrature(trian, 3)
    x_cell, _, _, _ = evaluate_mapping(
        dimension, quad.cell_points, trian.support_cell_points()
    )
    assert np.allclose(x_cell, quad.x)


def test_interior_tagged_facets():
    data = unit_square_mesh(2)
    mesh = MeshTopology.load(data)
    interior = np.setdiff1d(np.arange(mesh.num_entities(1)), mesh.boundary_facets())
    data["tags"]["interior"] = {1: interior.tolist()}
    mesh = MeshTopology.load(data)
    trian = BoundaryTriangulation(mesh, ["interior"])
    facet_cells, _ = mesh.facet_cells()
    assert np.array_equal(trian.cell_ids, facet_cells[interior])
    assert np.allclose(np.linalg.norm(trian.normal(np.array([[0.5]])), axis=2), 1.0)


def test_empty_boundary_selection():
    mesh = generate_mesh(3, 1)
    with pytest.raises(EmptyBoundaryError) as err:
        BoundaryTriangulation(mesh, [])
    assert err.value.tags == []
    with pytest.raises(EmptyBoundaryError) as err:
        BoundaryTriangulation(mesh, ["nonexistent"])
    assert "nonexistent" in str(err.value)
    # cell tags do not select facets
    with pytest.raises(EmptyBoundaryError):
        BoundaryTriangulation(mesh, ["domain"])


def test_tagged_domain():
    mesh = generate_mesh(2, 2)
    trian = DomainTriangulation(mesh, ["domain"])
    assert trian.num_cells() == mesh.num_cells()
    with pytest.raises(IntegrationDomainError):
        DomainTriangulation(mesh, ["nonexistent"])


def test_default_degree_follows_order():
    mesh = generate_mesh(2, 1)
    quad = CellQuadrature(DomainTriangulation(mesh), k_order=3)
    assert quad.degree == 6
    assert quad.dV.shape == (mesh.num_cells(), quad.n_points())


@pytest.mark.parametrize("boundary_q", [False, True])
def test_basis_data_by_block(boundary_q):
    mesh = generate_mesh(3, 2)
    if boundary_q:
        trian = Triangulation.for_boundary(mesh)
    else:
        trian = Triangulation.for_domain(mesh)
    quad = CellQuadrature(trian, k_order=2)
    ref_element = shape_functions(mesh.cell_shape, 2)

    phi, grad_phi = quad.basis_data(ref_element)
    assert phi.shape == (quad.num_cells(), quad.n_points(), ref_element.dim)
    assert grad_phi.shape == phi.shape + (3,)

    block = slice(3, 7)
    phi_block, grad_phi_block = quad.basis_data(ref_element, block)
    assert phi_block.shape[0] == 4
    assert grad_phi_block.shape[0] == 4
    assert np.allclose(phi_block, phi[block])
    assert np.allclose(grad_phi_block, grad_phi[block])

    # only reference tabulations are kept
    reference = quad.reference_basis(ref_element)
    if boundary_q:
        assert reference is None
    else:
        assert reference[0].shape == (quad.n_points(), ref_element.dim)
