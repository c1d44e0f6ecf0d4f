"""Polynomial helpers with constant-term-first coefficient ordering."""

import numpy as np
from numpy.polynomial import polynomial as P
from numpy.typing import NDArray

from armanoise.errors import NonRealCoefficientsError

REALITY_RTOL = 1e-10


def polynomial_roots(coefs: NDArray) -> NDArray[np.complex128]:
    """Return the roots of ``c[0] + c[1] z + c[2] z^2 + ...``.

    Args:
        coefs (NDArray): Coefficients, constant term first. Trailing zeros
            are ignored.

    Returns:
        NDArray[np.complex128]: Roots, possibly complex even for real input.
    """
    c = np.trim_zeros(np.atleast_1d(np.asarray(coefs, dtype=float)), "b")
    if c.size <= 1:
        return np.empty(0, dtype=np.complex128)
    return P.polyroots(c).astype(np.complex128)


def polynomial_from_roots(roots: NDArray) -> NDArray[np.float64]:
    """Form real polynomial coefficients from the given roots.

    The zero-order term is normalized to +1, so a root at zero is not allowed.

    Args:
        roots (NDArray): Roots of the polynomial. Complex roots must come in
            conjugate pairs.

    Returns:
        NDArray[np.float64]: Coefficients, constant term first, ``c[0] == 1``.

    Raises:
        NonRealCoefficientsError: If the product of the roots is not real to
            within a relative tolerance of 1e-10.
        ValueError: If zero is one of the roots.
    """
    r = np.atleast_1d(np.asarray(roots, dtype=np.complex128))
    if r.size == 0:
        return np.ones(1)
    prod = np.prod(r)
    if prod == 0:
        raise ValueError("roots must not contain zero")
    if abs(prod.imag) > REALITY_RTOL * abs(prod.real):
        raise NonRealCoefficientsError(
            f"product of roots {prod} is not real; complex roots need conjugate partners"
        )
    coef = P.polyfromroots(r).real
    return coef / coef[0]
