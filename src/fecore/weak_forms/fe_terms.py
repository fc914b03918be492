from fecore.weak_forms.weak_form import BilinearLinearWeakForm


class AffineFETerm(BilinearLinearWeakForm):
    """Bilinear integrand ``a(v, u)`` and linear integrand ``b(v)``."""

    def __init__(self, a, b, triangulation, quadrature):
        super().__init__(triangulation, quadrature)
        self._a = a
        self._b = b

    @property
    def bilinear_form(self):
        return self._a

    @property
    def linear_form(self):
        return self._b


class LinearFETerm(BilinearLinearWeakForm):
    def __init__(self, a, triangulation, quadrature):
        super().__init__(triangulation, quadrature)
        self._a = a

    @property
    def bilinear_form(self):
        return self._a


class FESource(BilinearLinearWeakForm):
    """Right hand side contribution ``b(v)``, e.g. a Neumann flux."""

    def __init__(self, b, triangulation, quadrature):
        super().__init__(triangulation, quadrature)
        self._b = b

    @property
    def linear_form(self):
        return self._b
