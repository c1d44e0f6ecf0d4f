"""Exceptions and warnings raised by armanoise."""


class ARMAError(Exception):
    """Base class for errors raised while building or using ARMA models."""


class ModelInstabilityError(ARMAError, ValueError):
    """A pole or MA root lies on or inside the unit circle."""


class NonRealCoefficientsError(ARMAError, ValueError):
    """A set of roots does not describe a polynomial with real coefficients."""


class SpectralFactorizationError(ARMAError, ArithmeticError):
    """No usable moving-average factor could be found for a covariance."""


class IllConditionedWarning(RuntimeWarning):
    """A structured linear solve was ill-conditioned; accuracy may be degraded."""
