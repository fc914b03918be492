"""Exceptions raised by fecore.

Every error derives from :class:`FEMError` and from the builtin exception
that best describes it, so callers may catch either.
"""


class FEMError(Exception):
    pass


class FormatError(FEMError, ValueError):
    """Malformed or inconsistent mesh input."""


class UnsupportedShapeError(FEMError, ValueError):
    def __init__(self, shape, message=None):
        self.shape = shape
        if message is None:
            message = "cell shape %r is not supported" % (shape,)
        super().__init__(message)


class EmptyBoundaryError(FEMError, ValueError):
    def __init__(self, tags):
        self.tags = list(tags)
        super().__init__(
            "no boundary facets carry any of the tags %r" % (self.tags,)
        )


class DimensionMismatchError(FEMError, ValueError):
    pass


class IntegrationDomainError(FEMError, ValueError):
    pass


class IntegrandError(FEMError, TypeError):
    """An integrand returned a value of the wrong arity or kind."""


class ArgumentOrderError(IntegrandError):
    """A trial argument was placed where the test argument belongs."""


class SingularSystemError(FEMError, RuntimeError):
    def __init__(self, message, pivot_index=None):
        self.pivot_index = pivot_index
        if pivot_index is not None:
            message = "%s (pivot index %d)" % (message, pivot_index)
        super().__init__(message)


class ConvergenceError(FEMError, RuntimeError):
    """An iterative solver stopped before reaching its tolerance."""
