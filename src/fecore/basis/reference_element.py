import basix
import numpy as np

from fecore.basis.element_family import basis_variant, family_by_name
from fecore.basis.element_type import dimension_by_name, type_by_name

_reference_elements = {}


class ReferenceElement:
    """Lagrange shape functions on a reference simplex.

    Evaluation follows basix: local shape functions are numbered vertices
    first, then edges, faces and the cell interior, and the sub-entities in
    the order of ``basix.topology``.
    """

    def __init__(self, cell_shape, k_order, family="Lagrange"):
        self.cell_shape = cell_shape
        self.dimension = dimension_by_name(cell_shape)
        self.family = family
        self.k_order = k_order
        self.basis_generator = None
        self._build_structures()

    def _build_structures(self):
        if self.dimension == 0:
            # Can only create order 0 Lagrange on a point
            self.k_order = 0
            self.entity_dofs = [[[0]]]
            self.num_entity_dofs = [[1]]
            self.points = np.zeros((1, 0))
            self.dim = 1
            return

        if self.k_order < 1:
            raise ValueError(
                "ReferenceElement:: conforming Lagrange elements need order >= 1, got %r"
                % self.k_order
            )
        self.basis_generator = basix.create_element(
            family_by_name(self.family),
            type_by_name(self.cell_shape),
            self.k_order,
            lagrange_variant=basis_variant(),
            discontinuous=False,
        )
        self.entity_dofs = self.basis_generator.entity_dofs
        self.num_entity_dofs = self.basis_generator.num_entity_dofs
        self.points = self.basis_generator.points
        self.dim = self.basis_generator.dim

    def _as_points(self, points):
        points = np.asarray(points, dtype=float)
        if self.dimension == 0:
            return np.zeros((points.shape[0] if points.ndim > 1 else 1, 0))
        return points.reshape(-1, self.dimension)

    def tabulate(self, points, n_derivatives=1):
        points = self._as_points(points)
        if self.dimension == 0:
            return np.ones((1, points.shape[0], 1, 1))
        return self.basis_generator.tabulate(n_derivatives, points)

    def values(self, points):
        phi_tab = self.tabulate(points, 0)
        return phi_tab[0, :, :, 0]

    def gradients(self, points):
        if self.dimension == 0:
            n_points = self._as_points(points).shape[0]
            return np.zeros((n_points, 1, 0))
        phi_tab = self.tabulate(points, 1)
        return np.moveaxis(phi_tab[1 : self.dimension + 1, :, :, 0], 0, -1)


def shape_functions(cell_shape, k_order):
    key = (cell_shape, k_order)
    element = _reference_elements.get(key, None)
    if element is None:
        element = ReferenceElement(cell_shape, k_order)
        _reference_elements[key] = element
    return element


def linear_shape_functions(cell_shape):
    return shape_functions(cell_shape, 1)
