"""Structured simplicial meshes of intervals, rectangles and boxes.

The generators return mesh data in the layout accepted by
:meth:`fecore.mesh.mesh_topology.MeshTopology.load`. Boundary facets are
listed explicitly so that they can be tagged by side; ``"sides"`` and
``"boundary"`` tag the whole boundary.
"""
import itertools

import numpy as np

from fecore.globals import geometry_collapse_tol


def _grid_index(shape):
    return np.arange(np.prod(shape)).reshape(shape, order="F")


def _boundary_facets(cells):
    dim = cells.shape[1] - 1
    local = [
        [i for i in range(dim + 1) if i != skip] for skip in range(dim, -1, -1)
    ]
    facets = np.sort(cells[:, local].reshape(-1, dim), axis=1)
    unique_facets, counts = np.unique(facets, axis=0, return_counts=True)
    return unique_facets[counts == 1]


def _side_tags(vertices, facets, lower, upper, side_names):
    tags = {}
    facet_points = vertices[facets]
    for axis, (low_name, high_name) in enumerate(side_names):
        coords = facet_points[:, :, axis]
        low = np.all(np.abs(coords - lower[axis]) < geometry_collapse_tol, axis=1)
        high = np.all(np.abs(coords - upper[axis]) < geometry_collapse_tol, axis=1)
        tags[low_name] = np.flatnonzero(low).tolist()
        tags[high_name] = np.flatnonzero(high).tolist()
    return tags


def _mesh_data(vertices, cells, lower, upper, side_names):
    dim = cells.shape[1] - 1
    facets = _boundary_facets(cells)
    side_tags = _side_tags(vertices, facets, lower, upper, side_names)
    all_facets = list(range(facets.shape[0]))
    tags = {name: {dim - 1: ids} for name, ids in side_tags.items()}
    tags["sides"] = {dim - 1: all_facets}
    tags["boundary"] = {dim - 1: all_facets}
    tags["domain"] = {dim: list(range(cells.shape[0]))}
    return {
        "vertices": vertices.tolist(),
        "entities": {dim: cells.tolist(), dim - 1: facets.tolist()},
        "tags": tags,
    }


def interval_mesh(n, x0=0.0, x1=1.0):
    vertices = np.zeros((n + 1, 3))
    vertices[:, 0] = np.linspace(x0, x1, n + 1)
    cells = np.array([[i, i + 1] for i in range(n)])
    return {
        "vertices": vertices.tolist(),
        "entities": {1: cells.tolist()},
        "tags": {
            "left": {0: [0]},
            "right": {0: [n]},
            "sides": {0: [0, n]},
            "boundary": {0: [0, n]},
            "domain": {1: list(range(n))},
        },
    }


def unit_interval_mesh(n):
    return interval_mesh(n, 0.0, 1.0)


def rectangle_mesh(lower, upper, nx, ny):
    xs = np.linspace(lower[0], upper[0], nx + 1)
    ys = np.linspace(lower[1], upper[1], ny + 1)
    xx, yy = np.meshgrid(xs, ys, indexing="ij")
    vertices = np.column_stack(
        (xx.ravel(order="F"), yy.ravel(order="F"), np.zeros(xx.size))
    )
    v = _grid_index((nx + 1, ny + 1))
    cells = []
    for i, j in itertools.product(range(nx), range(ny)):
        cells.append([v[i, j], v[i + 1, j], v[i + 1, j + 1]])
        cells.append([v[i, j], v[i + 1, j + 1], v[i, j + 1]])
    return _mesh_data(
        vertices,
        np.array(cells),
        lower,
        upper,
        [("left", "right"), ("bottom", "top")],
    )


def unit_square_mesh(nx, ny=None):
    if ny is None:
        ny = nx
    return rectangle_mesh((0.0, 0.0), (1.0, 1.0), nx, ny)


def box_mesh(lower, upper, nx, ny, nz):
    xs = np.linspace(lower[0], upper[0], nx + 1)
    ys = np.linspace(lower[1], upper[1], ny + 1)
    zs = np.linspace(lower[2], upper[2], nz + 1)
    xx, yy, zz = np.meshgrid(xs, ys, zs, indexing="ij")
    vertices = np.column_stack(
        (xx.ravel(order="F"), yy.ravel(order="F"), zz.ravel(order="F"))
    )
    v = _grid_index((nx + 1, ny + 1, nz + 1))

    # Kuhn subdivision: the same six tetrahedra in every hexahedron keep the
    # mesh conforming
    unit = np.eye(3, dtype=int)
    paths = []
    for perm in itertools.permutations(range(3)):
        steps = [np.zeros(3, dtype=int)]
        for axis in perm:
            steps.append(steps[-1] + unit[axis])
        paths.append(steps)

    cells = []
    for i, j, k in itertools.product(range(nx), range(ny), range(nz)):
        for steps in paths:
            cells.append([v[i + s[0], j + s[1], k + s[2]] for s in steps])
    return _mesh_data(
        vertices,
        np.array(cells),
        lower,
        upper,
        [("left", "right"), ("front", "back"), ("bottom", "top")],
    )


def unit_cube_mesh(nx, ny=None, nz=None):
    if ny is None:
        ny = nx
    if nz is None:
        nz = nx
    return box_mesh((0.0, 0.0, 0.0), (1.0, 1.0, 1.0), nx, ny, nz)
