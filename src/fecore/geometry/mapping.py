import numpy as np

from fecore.basis.element_type import shape_by_dimension
from fecore.basis.reference_element import linear_shape_functions


def evaluate_linear_shapes(points, dimension):
    # points (n_points, dim) shared by all cells or (n_cells, n_points, dim)
    points = np.asarray(points, dtype=float)
    linear_element = linear_shape_functions(shape_by_dimension(dimension))
    if dimension == 0:
        n_points = points.shape[-2] if points.ndim > 1 else 1
        return np.ones(points.shape[:-2] + (n_points, 1))
    phi = linear_element.values(points.reshape(-1, dimension))
    return phi.reshape(points.shape[:-1] + (dimension + 1,))


def _compute_det_and_pseudo_inverse(jac):
    # jac (..., 3, dim), the measure is sqrt(det(J^T J)) so that embedded
    # cells and facets are handled like full dimensional ones
    jac_t = np.swapaxes(jac, -1, -2)
    metric = jac_t @ jac
    det_jac = np.sqrt(np.abs(np.linalg.det(metric)))
    inv_jac = np.linalg.solve(metric, jac_t)
    return det_jac, inv_jac


def affine_jacobian(cell_points):
    # reference vertices are the origin and the unit vectors
    return np.swapaxes(cell_points[:, 1:, :] - cell_points[:, 0:1, :], 1, 2)


def evaluate_mapping(dimension, points, cell_points):
    """Affine map of simplices from the reference cell.

    ``cell_points`` has shape (n_cells, dim + 1, 3). Returns physical
    points (n_cells, n_points, 3) together with the constant Jacobian
    (n_cells, 3, dim), its measure (n_cells,) and its pseudo inverse
    (n_cells, dim, 3).
    """
    cell_points = np.asarray(cell_points, dtype=float)
    n_cells = cell_points.shape[0]
    if dimension == 0:
        points = np.asarray(points, dtype=float)
        n_points = points.shape[-2] if points.ndim > 1 else 1
        x = np.repeat(cell_points[:, 0:1, :], n_points, axis=1)
        jac = np.zeros((n_cells, 3, 0))
        det_jac = np.ones(n_cells)
        inv_jac = np.zeros((n_cells, 0, 3))
        return (x, jac, det_jac, inv_jac)

    phi = evaluate_linear_shapes(points, dimension)
    if phi.ndim == 2:
        x = np.einsum("qv,cvk->cqk", phi, cell_points)
    else:
        x = np.einsum("cqv,cvk->cqk", phi, cell_points)
    jac = affine_jacobian(cell_points)
    det_jac, inv_jac = _compute_det_and_pseudo_inverse(jac)
    return (x, jac, det_jac, inv_jac)


def cell_measures(dimension, cell_points):
    if dimension == 0:
        return np.ones(cell_points.shape[0])
    jac = affine_jacobian(np.asarray(cell_points, dtype=float))
    metric = np.swapaxes(jac, 1, 2) @ jac
    return np.sqrt(np.abs(np.linalg.det(metric)))


def cell_jacobians(dimension, cell_points):
    # constant Jacobian data of affine cells (n_cells, dim + 1, 3)
    cell_points = np.asarray(cell_points, dtype=float)
    if dimension == 0:
        n_cells = cell_points.shape[0]
        return np.zeros((n_cells, 3, 0)), np.ones(n_cells), np.zeros((n_cells, 0, 3))
    jac = affine_jacobian(cell_points)
    det_jac, inv_jac = _compute_det_and_pseudo_inverse(jac)
    return jac, det_jac, inv_jac
