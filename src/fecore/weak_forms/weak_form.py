from abc import ABC, abstractmethod

import numpy as np

from fecore.errors import IntegrandError, IntegrationDomainError
from fecore.weak_forms.basis_values import FormValue, TestBasis, TrialBasis


class WeakForm(ABC):
    """Integrands bound to a triangulation and its cell quadrature.

    ``evaluate_form`` integrates a block of integration cells and returns
    the local matrices (n_cells, n_test, n_trial) and local vectors
    (n_cells, n_test); either is None when the form has no such part.
    """

    def __init__(self, triangulation, quadrature):
        if quadrature.triangulation is not triangulation:
            raise IntegrationDomainError(
                "the cell quadrature was built on a different triangulation"
            )
        self.triangulation = triangulation
        self.quadrature = quadrature

    @property
    def bilinear_form(self):
        return None

    @property
    def linear_form(self):
        return None

    @abstractmethod
    def evaluate_form(self, block, test_space, trial_space):
        pass

    def num_cells(self):
        return self.quadrature.num_cells()

    def blocks(self, block_size):
        n_cells = self.num_cells()
        return [
            slice(start, min(start + block_size, n_cells))
            for start in range(0, n_cells, block_size)
        ]

    def _basis(self, basis_type, space, block):
        quad = self.quadrature
        phi, grad_phi = quad.basis_data(space.ref_element, block)
        normal = None if quad.normals is None else quad.normals[block]
        return basis_type(phi, grad_phi, quad.x[block], normal)

    def _integrate(self, integrand, arity, arguments, block):
        value = integrand(*arguments)
        if not isinstance(value, FormValue):
            raise IntegrandError(
                "integrand %r must return a form value built with inner, got %r"
                % (getattr(integrand, "__name__", integrand), type(value).__name__)
            )
        if value.arity != arity:
            raise IntegrandError(
                "integrand %r returned a form of arity %d, expected %d"
                % (getattr(integrand, "__name__", integrand), value.arity, arity)
            )
        expected = tuple(
            [block.stop - block.start, self.quadrature.n_points()]
            + [argument.values.shape[2] for argument in arguments]
        )
        if value.data.shape != expected:
            raise IntegrandError(
                "integrand %r returned data of shape %r, expected %r"
                % (getattr(integrand, "__name__", integrand), value.data.shape, expected)
            )
        dV = self.quadrature.dV[block]
        if arity == 2:
            return np.einsum("cq,cqij->cij", dV, value.data)
        return np.einsum("cq,cqi->ci", dV, value.data)


class BilinearLinearWeakForm(WeakForm):
    # evaluates the bilinear and linear integrands that are set

    def evaluate_form(self, block, test_space, trial_space):
        v = self._basis(TestBasis, test_space, block)
        j_el = None
        r_el = None
        if self.bilinear_form is not None:
            u = self._basis(TrialBasis, trial_space, block)
            j_el = self._integrate(self.bilinear_form, 2, (v, u), block)
        if self.linear_form is not None:
            r_el = self._integrate(self.linear_form, 1, (v,), block)
        return j_el, r_el
