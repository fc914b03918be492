import numpy as np

from fecore.basis.quadrature import Quadrature, integration_degree
from fecore.geometry.mapping import cell_jacobians


class CellQuadrature:
    """A quadrature rule mapped onto every cell of a triangulation.

    ``degree`` defaults to the degree of the mass integrand of a Lagrange
    basis of order ``k_order``, that is ``2 * k_order``.

    Besides the physical points ``x`` and the scaled weights ``dV`` of the
    integration cells, it holds the inverse Jacobians of the support cells so
    that cell shape functions can be differentiated on facets too.
    """

    def __init__(self, triangulation, degree=None, k_order=1):
        if degree is None:
            degree = integration_degree(k_order, "mass")
        self.triangulation = triangulation
        self.degree = degree
        self.quadrature = Quadrature(triangulation.cell_shape, degree)
        points, weights = self.quadrature

        x, _, det_jac, _ = triangulation.geometric_map(points)
        self.x = x
        self.det_jac = det_jac
        self.dV = det_jac[:, np.newaxis] * weights[np.newaxis, :]
        self.cell_points = triangulation.cell_reference_points(points)
        self.normals = triangulation.normal(points)

        _, _, self.cell_inv_jac = cell_jacobians(
            triangulation.cell_dimension, triangulation.support_cell_points()
        )
        self._reference_basis = {}

    @property
    def cell_ids(self):
        return self.triangulation.cell_ids

    @property
    def points(self):
        return self.quadrature.points

    @property
    def weights(self):
        return self.quadrature.weights

    def num_cells(self):
        return self.dV.shape[0]

    def n_points(self):
        return self.quadrature.n_points

    def reference_basis(self, ref_element):
        """Shape functions and reference gradients at the shared points.

        Only available when every integration cell uses the same reference
        points (domain triangulations); None otherwise. Cached per element.
        """
        cell_points = np.asarray(self.cell_points, dtype=float)
        if cell_points.ndim != 2:
            return None
        key = (ref_element.cell_shape, ref_element.k_order)
        data = self._reference_basis.get(key, None)
        if data is None:
            data = (ref_element.values(cell_points), ref_element.gradients(cell_points))
            self._reference_basis[key] = data
        return data

    def basis_data(self, ref_element, block=None):
        """Shape functions of the support cells at the quadrature points.

        Returns values (n_cells, n_points, n_dofs) and physical gradients
        (n_cells, n_points, n_dofs, 3) of the cells selected by ``block``
        (a slice, all cells by default).
        """
        if block is None:
            block = slice(0, self.num_cells())
        inv_jac = self.cell_inv_jac[block]
        n_cells = inv_jac.shape[0]
        reference = self.reference_basis(ref_element)
        if reference is not None:
            phi, dphi = reference
            phi = np.broadcast_to(phi, (n_cells,) + phi.shape)
            grad_phi = np.einsum("qik,ckj->cqij", dphi, inv_jac)
            return phi, grad_phi

        # facet points differ from cell to cell
        tdim = ref_element.dimension
        cell_points = np.asarray(self.cell_points, dtype=float)[block]
        n_points = self.n_points()
        flat_points = cell_points.reshape(-1, tdim)
        phi = ref_element.values(flat_points).reshape(n_cells, n_points, -1)
        dphi = ref_element.gradients(flat_points).reshape(n_cells, n_points, -1, tdim)
        grad_phi = np.einsum("cqik,ckj->cqij", dphi, inv_jac)
        return phi, grad_phi

    def integrate(self, values):
        # values (n_cells, n_points) at the physical quadrature points
        return np.sum(self.dV * values)
