import numbers

import numpy as np

from fecore.errors import ArgumentOrderError, IntegrandError
from fecore.spaces.coefficient import evaluate_coefficient


class BasisArgument:
    """Shape functions of a block of cells at its quadrature points.

    ``values`` has shape (n_cells, n_points, n_dofs) and ``gradients``
    (n_cells, n_points, n_dofs, 3). ``x`` are the physical quadrature points
    and ``normal`` the outward unit normals on boundary cells (else None).
    """

    role = None
    __array_ufunc__ = None

    def __init__(self, values, gradients, x, normal=None):
        self.values = values
        self.gradients = gradients
        self.x = x
        self.normal = normal

    def __mul__(self, other):
        return inner(self, other)

    def __rmul__(self, other):
        return inner(self, other)


class TestBasis(BasisArgument):
    role = "test"


class TrialBasis(BasisArgument):
    role = "trial"


class Gradient:
    __array_ufunc__ = None

    def __init__(self, basis):
        self.basis = basis

    @property
    def role(self):
        return self.basis.role

    @property
    def data(self):
        return self.basis.gradients

    def __mul__(self, other):
        return inner(self, other)

    def __rmul__(self, other):
        return inner(self, other)


def grad(basis):
    if not isinstance(basis, BasisArgument):
        raise IntegrandError("grad expects a test or trial basis, got %r" % (basis,))
    return Gradient(basis)


def _argument_rank(argument):
    return 1 if isinstance(argument, Gradient) else 0


def _argument_data(argument):
    if isinstance(argument, Gradient):
        return argument.data
    return argument.values


def _field_values(field, left):
    # scalar or vector field matched to the rank of the test argument
    x = left.basis.x if isinstance(left, Gradient) else left.x
    rank = _argument_rank(left)
    if callable(field):
        if rank == 0:
            return evaluate_coefficient(field, x)
        values = np.asarray(field(x.reshape(-1, 3)), dtype=float)
        return values.reshape(x.shape)
    values = np.asarray(field, dtype=float)
    expected = x.shape[:-1] if rank == 0 else x.shape
    try:
        return np.broadcast_to(values, expected)
    except ValueError:
        raise IntegrandError(
            "field of shape %r does not match the %s argument"
            % (values.shape, "gradient" if rank else "scalar")
        ) from None


def inner(left, right):
    """Pointwise product of a test argument with a trial argument or a field.

    The test argument (or its gradient) always comes first: it indexes the
    rows of the assembled system.
    """
    if isinstance(left, (BasisArgument, Gradient)) and left.role == "trial":
        raise ArgumentOrderError(
            "inner: the first argument must be the test function, got the trial function"
        )
    if not isinstance(left, (BasisArgument, Gradient)) or left.role != "test":
        raise ArgumentOrderError(
            "inner: the first argument must be the test function, got %r" % (left,)
        )

    if isinstance(right, (BasisArgument, Gradient)):
        if right.role != "trial":
            raise ArgumentOrderError("inner: the second argument is a test function too")
        if _argument_rank(left) != _argument_rank(right):
            raise IntegrandError("inner: scalar and gradient arguments can not be paired")
        v = _argument_data(left)
        u = _argument_data(right)
        if _argument_rank(left) == 0:
            data = np.einsum("cqi,cqj->cqij", v, u)
        else:
            data = np.einsum("cqik,cqjk->cqij", v, u)
        return FormValue(2, data)

    field = _field_values(right, left)
    v = _argument_data(left)
    if _argument_rank(left) == 0:
        data = v * field[..., np.newaxis]
    else:
        data = np.einsum("cqik,cqk->cqi", v, field)
    return FormValue(1, data)


class FormValue:
    """Integrand of a linear (arity 1) or bilinear (arity 2) form.

    ``data`` holds the integrand for every test (and trial) shape function
    at every quadrature point: (n_cells, n_points, n_test[, n_trial]).
    """

    __array_ufunc__ = None

    def __init__(self, arity, data):
        self.arity = arity
        self.data = data

    def _check_compatible(self, other):
        if not isinstance(other, FormValue):
            raise IntegrandError(
                "only form values can be added together, got %r" % (other,)
            )
        if other.arity != self.arity:
            raise IntegrandError(
                "can not add a form of arity %d to a form of arity %d"
                % (other.arity, self.arity)
            )

    def _coefficient(self, factor):
        if isinstance(factor, numbers.Number):
            return factor
        if isinstance(factor, (FormValue, BasisArgument, Gradient)):
            raise IntegrandError("forms can only be scaled by a number or a field")
        if callable(factor):
            raise IntegrandError(
                "forms can not be scaled by the function %r, pass it to inner instead"
                % (getattr(factor, "__name__", factor),)
            )
        try:
            factor = np.asarray(factor, dtype=float)
        except (TypeError, ValueError):
            raise IntegrandError(
                "forms can only be scaled by a number or a field, got %r" % (factor,)
            ) from None
        # field values (n_cells, n_points)
        return factor.reshape(factor.shape + (1,) * self.arity)

    def __add__(self, other):
        self._check_compatible(other)
        return FormValue(self.arity, self.data + other.data)

    def __sub__(self, other):
        self._check_compatible(other)
        return FormValue(self.arity, self.data - other.data)

    def __neg__(self):
        return FormValue(self.arity, -self.data)

    def __mul__(self, factor):
        return FormValue(self.arity, self.data * self._coefficient(factor))

    __rmul__ = __mul__
