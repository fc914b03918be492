import numpy as np

from fecore.errors import IntegrandError


def evaluate_coefficient(f, points):
    """Evaluate a scalar field at physical points.

    ``f`` is a number or a callable taking an ``(n, 3)`` array of points and
    returning a scalar or ``n`` values. ``points`` may have any leading shape
    ``(..., 3)``; the result has that leading shape.
    """
    points = np.asarray(points, dtype=float)
    shape = points.shape[:-1]
    if not callable(f):
        try:
            return np.full(shape, float(f))
        except (TypeError, ValueError):
            raise IntegrandError(
                "coefficient must be a number or a callable, got %r" % (f,)
            ) from None

    flat_points = points.reshape(-1, 3)
    values = np.asarray(f(flat_points), dtype=float)
    if values.ndim == 0:
        return np.full(shape, float(values))
    if values.size != flat_points.shape[0]:
        raise IntegrandError(
            "coefficient returned %d values for %d points"
            % (values.size, flat_points.shape[0])
        )
    return values.reshape(shape)
