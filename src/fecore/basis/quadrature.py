import basix
import numpy as np

from fecore.basis.element_type import dimension_by_name, type_by_name

# polynomial degree of the integrand for a Lagrange basis of order k
_integrand_degrees = {
    "mass": lambda k: 2 * k,
    "stiffness": lambda k: 2 * (k - 1),
    "load": lambda k: k,
}


def integration_degree(k_order, kind="mass"):
    if kind not in _integrand_degrees:
        raise ValueError("Integrand kind not available: %r" % (kind,))
    return max(_integrand_degrees[kind](k_order), 0)


def quadrature_rule(cell_shape, degree):
    dimension = dimension_by_name(cell_shape)
    if degree < 0:
        raise ValueError("Quadrature degree must be non negative, got %r" % degree)
    if dimension == 0:
        return np.zeros((1, 0)), np.array([1.0])
    points, weights = basix.make_quadrature(
        type_by_name(cell_shape), degree, basix.QuadratureType.gauss_jacobi
    )
    return np.asarray(points), np.asarray(weights)


class Quadrature:
    def __init__(self, cell_shape, degree):
        self.cell_shape = cell_shape
        self.degree = degree
        self.points, self.weights = quadrature_rule(cell_shape, degree)

    def __iter__(self):
        return iter((self.points, self.weights))

    @property
    def n_points(self):
        return self.weights.shape[0]
