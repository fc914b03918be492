import numpy as np

from fecore.basis.quadrature import integration_degree
from fecore.integration.cell_quadrature import CellQuadrature
from fecore.integration.triangulation import DomainTriangulation
from fecore.spaces.coefficient import evaluate_coefficient


def _error_quadrature(uh, quadrature):
    if quadrature is not None:
        return quadrature
    # one order above the discrete space
    k_order = uh.space.k_order
    degree = integration_degree(k_order + 1, "mass")
    return CellQuadrature(DomainTriangulation(uh.space.mesh), degree)


def l2_error(uh, exact, quadrature=None):
    quadrature = _error_quadrature(uh, quadrature)
    f_h = uh.evaluate(quadrature)
    f_e = evaluate_coefficient(exact, quadrature.x)
    diff_f = f_e - f_h
    return np.sqrt(quadrature.integrate(diff_f * diff_f))


def h1_seminorm_error(uh, exact_gradient, quadrature=None):
    """L2 norm of grad(u) - grad(uh).

    ``exact_gradient`` maps an (n, 3) point array to (n, 3) gradients.
    """
    quadrature = _error_quadrature(uh, quadrature)
    x = quadrature.x
    grad_h = uh.gradient(quadrature)
    grad_e = np.asarray(exact_gradient(x.reshape(-1, 3)), dtype=float).reshape(x.shape)
    diff_g = grad_e - grad_h
    return np.sqrt(quadrature.integrate(np.sum(diff_g * diff_g, axis=2)))


def l2_norm(uh, quadrature=None):
    return l2_error(uh, 0.0, quadrature)
