"""ARMA(p, q) noise models in three equivalent representations.

A model is described at once by

1. its rational transfer function ``theta(z) / phi(z)`` (``thetacoef``,
   ``phicoef``, constant term first, ``phicoef[0] == 1``);
2. the roots of ``theta``, the poles (roots of ``phi``) and the variance;
3. its autocovariance as a sum of exponentials ``sum_i a_i b_i^t``
   (``expampls``, ``expbases``) plus the leading lags ``covar_iv`` that
   violate that pattern.

Each of the named constructors of :class:`ARMAModel` starts from one of these
and derives the other two. All roots and poles lie outside the unit circle,
so every model is stable and invertible.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import hankel, solve_triangular, toeplitz
from scipy.signal import lfilter, lfiltic

from armanoise.arma.spectral_factorization import (
    SpectralFactorizationConfig,
    check_ma_factor,
    ma_autocovariance,
    minimum_phase,
    solve_ma_autocovariance,
)
from armanoise.errors import (
    IllConditionedWarning,
    ModelInstabilityError,
)
from armanoise.math.polynomial.roots import polynomial_from_roots, polynomial_roots
from armanoise.signal.spectrum.arma_psd import model_psd

logger = logging.getLogger(__name__)

VANDERMONDE_COND_LIMIT = 1e12


def model_covariance(covar_iv: NDArray, phicoef: NDArray, n: int) -> NDArray[np.float64]:
    """Return the model autocovariance for lags 0..n-1.

    The values ``covar_iv`` are returned verbatim; later lags follow the AR
    recursion ``covar[i] = -sum_j phicoef[j + 1] * covar[i - 1 - j]``.

    Args:
        covar_iv (NDArray): Initial (exceptional) covariance values.
        phicoef (NDArray): AR polynomial, constant term first. Normalized if
            ``phicoef[0] != 1``.
        n (int): Number of lags.

    Returns:
        NDArray[np.float64]: Covariance of shape (n,).

    Raises:
        ValueError: If ``n > len(covar_iv)`` and there are fewer initial values
            than the AR order.
    """
    covar_iv = np.atleast_1d(np.asarray(covar_iv, dtype=float))
    phi = np.atleast_1d(np.asarray(phicoef, dtype=float))
    if n < 0:
        raise ValueError("n must be >= 0")
    if n <= len(covar_iv):
        return covar_iv[:n].copy()
    p = len(phi) - 1
    if len(covar_iv) < p:
        raise ValueError(
            f"need at least {p} initial covariance values for AR order {p}, got {len(covar_iv)}"
        )
    if phi[0] == 0:
        raise ValueError("phicoef[0] must be non-zero")
    if phi[0] != 1.0:
        phi = phi / phi[0]

    covar = np.zeros(n)
    covar[: len(covar_iv)] = covar_iv
    if p > 0:
        # Homogeneous AR recursion seeded by the last p initial values.
        zi = lfiltic([1.0], phi, covar_iv[::-1])
        covar[len(covar_iv) :], _ = lfilter([1.0], phi, np.zeros(n - len(covar_iv)), zi=zi)
    return covar


def _warn_if_ill_conditioned(matrix: NDArray, what: str) -> bool:
    cond = np.linalg.cond(matrix)
    if np.isfinite(cond) and cond <= VANDERMONDE_COND_LIMIT:
        return False
    message = f"{what} is ill-conditioned (cond={cond:.3g}); near-coincident poles lose accuracy"
    logger.warning(message)
    warnings.warn(message, IllConditionedWarning, stacklevel=3)
    return True


def _covar_repr(
    thetacoef: NDArray, phicoef: NDArray
) -> tuple[NDArray[np.float64], NDArray[np.complex128], NDArray[np.complex128]]:
    """Go from theta, phi polynomials to the sum-of-exponentials representation.

    Returns:
        tuple: ``(covar_iv, expbases, expampls)``, where ``covar_iv`` holds the
            first ``max(p, q) + 1`` lags.
    """
    theta = np.asarray(thetacoef, dtype=float)
    phi = np.asarray(phicoef, dtype=float)
    q = len(theta) - 1
    p = len(phi) - 1
    n = max(p, q)
    poles = polynomial_roots(phi)
    expbases = 1.0 / poles

    phi_pad = np.zeros(n + 1)
    phi_pad[: p + 1] = phi
    theta_pad = np.zeros(n + 1)
    theta_pad[: q + 1] = theta

    # psi: Taylor coefficients of theta(z) / phi(z) (Brockwell & Davis 3.3.3).
    psi = solve_triangular(toeplitz(phi_pad, np.zeros(n + 1)), theta_pad, lower=True)

    # AR recursion reflected at lag 0: row r collects phi[i] at column |r - i|.
    reflected = np.zeros((n + 1, n + 1))
    rows = np.arange(n + 1)
    for i, coef in enumerate(phi):
        reflected[rows, np.abs(rows - i)] += coef
    gamma = np.linalg.solve(reflected, hankel(theta_pad) @ psi)

    if p == 0:
        empty = np.empty(0, dtype=np.complex128)
        return gamma, empty, empty.copy()

    # Fit amplitudes past the exceptional lags, where only the AR recursion holds.
    lowest = 1 if p >= q else 1 + q - p
    powers = np.arange(lowest, lowest + p)
    xi = expbases[None, :] ** powers[:, None]
    target = model_covariance(gamma, phi, p + lowest)[lowest:].astype(np.complex128)
    if _warn_if_ill_conditioned(xi, "Vandermonde system of exponential bases"):
        expampls, *_ = np.linalg.lstsq(xi, target, rcond=None)
    else:
        expampls = np.linalg.solve(xi, target)
    return gamma, expbases, expampls


def _check_outside_unit_circle(values: NDArray, what: str) -> None:
    bad = np.abs(values) <= 1
    if np.any(bad):
        raise ModelInstabilityError(
            f"all {what} must have modulus > 1 for a stable, invertible model; got {values[bad]}"
        )


def _check_conjugate_pairs(bases: NDArray, amplitudes: NDArray, rtol: float = 1e-8) -> None:
    """Raise ValueError unless ``sum(amplitudes * bases**t)`` is real for every t."""
    scale = max(float(np.max(np.abs(amplitudes), initial=0.0)), np.finfo(float).tiny)
    real = np.abs(bases.imag) <= rtol * np.abs(bases)
    lone = np.flatnonzero(real & (np.abs(amplitudes.imag) > rtol * scale))
    if lone.size:
        raise ValueError(
            f"real bases {bases[lone].real} need real amplitudes, got {amplitudes[lone]}"
        )

    unpaired = list(np.flatnonzero(~real))
    while unpaired:
        i = unpaired.pop(0)
        if unpaired:
            others = np.array(unpaired)
            j = others[np.argmin(np.abs(bases[others] - np.conj(bases[i])))]
            if (
                abs(bases[j] - np.conj(bases[i])) <= rtol * abs(bases[i])
                and abs(amplitudes[j] - np.conj(amplitudes[i])) <= rtol * scale
            ):
                unpaired.remove(j)
                continue
        raise ValueError(
            f"base {bases[i]} with amplitude {amplitudes[i]} has no conjugate pair"
        )


_FIELD_DTYPES = {
    "roots": np.complex128,
    "poles": np.complex128,
    "thetacoef": np.float64,
    "phicoef": np.float64,
    "covar_iv": np.float64,
    "expbases": np.complex128,
    "expampls": np.complex128,
}


@dataclass(frozen=True, slots=True, eq=False)
class ARMAModel:
    """An autoregressive moving-average model of order (p, q).

    Build instances with :meth:`from_polynomials`, :meth:`from_roots` or
    :meth:`from_exponentials`; each returns a fully populated model whose
    three representations agree. The direct constructor only checks the
    structural invariants of each field. All arrays are read-only.

    Attributes:
        p (int): AR order.
        q (int): MA order.
        roots (NDArray[np.complex128]): The q MA roots, all ``|r| > 1``.
        poles (NDArray[np.complex128]): The p AR poles, all ``|z| > 1``.
        thetacoef (NDArray[np.float64]): MA polynomial, constant term first,
            ``thetacoef[0] > 0``.
        phicoef (NDArray[np.float64]): AR polynomial, constant term first,
            ``phicoef[0] == 1``.
        covar_iv (NDArray[np.float64]): At least ``max(p, q + 1)`` initial
            covariance values.
        expbases (NDArray[np.complex128]): Exponential bases ``1 / poles``.
        expampls (NDArray[np.complex128]): Exponential amplitudes.

    Example:
        >>> m = ARMAModel.from_polynomials([2.0], [1.0, -0.3, -0.4])
        >>> (m.p, m.q)
        (2, 0)
    """

    p: int
    q: int
    roots: NDArray[np.complex128]
    poles: NDArray[np.complex128]
    thetacoef: NDArray[np.float64]
    phicoef: NDArray[np.float64]
    covar_iv: NDArray[np.float64]
    expbases: NDArray[np.complex128]
    expampls: NDArray[np.complex128]

    def __post_init__(self) -> None:
        """Freeze arrays and validate the structural invariants."""
        for name, dtype in _FIELD_DTYPES.items():
            arr = np.array(np.atleast_1d(getattr(self, name)), dtype=dtype)
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)

        if self.p < 0 or self.q < 0:
            raise ValueError(f"orders must be >= 0, got p={self.p}, q={self.q}")
        if len(self.poles) != self.p or len(self.phicoef) != self.p + 1:
            raise ValueError(f"p={self.p} needs {self.p} poles and {self.p + 1} phi coefficients")
        if len(self.roots) != self.q or len(self.thetacoef) != self.q + 1:
            raise ValueError(f"q={self.q} needs {self.q} roots and {self.q + 1} theta coefficients")
        if len(self.expbases) != self.p or len(self.expampls) != self.p:
            raise ValueError(f"p={self.p} needs {self.p} exponential bases and amplitudes")
        if len(self.covar_iv) < max(self.p, self.q + 1):
            raise ValueError(
                f"need at least {max(self.p, self.q + 1)} initial covariance values, "
                f"got {len(self.covar_iv)}"
            )
        _check_outside_unit_circle(self.poles, "poles")
        _check_outside_unit_circle(self.roots, "MA roots")
        if not self.thetacoef[0] > 0:
            raise ValueError("thetacoef[0] must be positive")
        if self.phicoef[0] != 1.0:
            raise ValueError("phicoef[0] must be 1")

    @classmethod
    def from_polynomials(cls, thetacoef: NDArray, phicoef: NDArray) -> ARMAModel:
        """Build a model from its rational-function coefficients.

        Both polynomials are rescaled so that ``phicoef[0] == 1`` and
        ``thetacoef[0] > 0``.

        Args:
            thetacoef (NDArray): MA (numerator) coefficients, constant first.
            phicoef (NDArray): AR (denominator) coefficients, constant first.

        Returns:
            ARMAModel: The model.

        Raises:
            ModelInstabilityError: If any root of either polynomial has
                modulus <= 1.
        """
        theta = np.trim_zeros(np.atleast_1d(np.asarray(thetacoef, dtype=float)), "b")
        phi = np.trim_zeros(np.atleast_1d(np.asarray(phicoef, dtype=float)), "b")
        if phi.size == 0 or phi[0] == 0:
            raise ValueError("phicoef[0] must be non-zero")
        if theta.size == 0:
            raise ValueError("thetacoef must not be all zero")

        theta = theta / phi[0]
        if theta[0] < 0:
            theta = -theta
        phi = phi / phi[0]
        roots = polynomial_roots(theta)
        poles = polynomial_roots(phi)
        _check_outside_unit_circle(roots, "MA roots")
        _check_outside_unit_circle(poles, "poles")

        covar_iv, expbases, expampls = _covar_repr(theta, phi)
        return cls(len(poles), len(roots), roots, poles, theta, phi, covar_iv, expbases, expampls)

    @classmethod
    def from_roots(cls, roots: NDArray, poles: NDArray, variance: float) -> ARMAModel:
        """Build a model from its MA roots, AR poles and lag-0 covariance.

        Roots and poles do not fix the overall scale, so ``variance`` does.

        Args:
            roots (NDArray): MA roots, complex values in conjugate pairs.
            poles (NDArray): AR poles, complex values in conjugate pairs.
            variance (float): Process variance (covariance at lag 0).

        Returns:
            ARMAModel: The model.

        Raises:
            ModelInstabilityError: If any root or pole has modulus <= 1.
            NonRealCoefficientsError: If the roots or poles do not form real
                polynomials.
        """
        roots = np.atleast_1d(np.asarray(roots, dtype=np.complex128))
        poles = np.atleast_1d(np.asarray(poles, dtype=np.complex128))
        if not variance > 0:
            raise ValueError(f"variance must be positive, got {variance}")
        _check_outside_unit_circle(roots, "MA roots")
        _check_outside_unit_circle(poles, "poles")

        thetacoef = polynomial_from_roots(roots)
        phicoef = polynomial_from_roots(poles)
        covar_iv, expbases, expampls = _covar_repr(thetacoef, phicoef)

        # The normalized polynomials have the wrong scale; fix it from gamma[0].
        ratio = variance / covar_iv[0]
        return cls(
            len(poles),
            len(roots),
            roots,
            poles,
            thetacoef * np.sqrt(ratio),
            phicoef,
            covar_iv * ratio,
            expbases,
            expampls * ratio,
        )

    @classmethod
    def from_exponentials(
        cls,
        bases: NDArray,
        amplitudes: NDArray,
        covar_iv: NDArray,
        config: SpectralFactorizationConfig | None = None,
    ) -> ARMAModel:
        """Build a model from a sum-of-exponentials covariance.

        The covariance at lag ``t`` is ``covar_iv[t]`` for ``t < len(covar_iv)``
        and ``sum(amplitudes * bases**t)`` otherwise. Any complex
        (base, amplitude) pair must come with its conjugate pair. The result
        has ``p = len(bases)`` and ``q = p - 1 + len(covar_iv)``.

        Args:
            bases (NDArray): Exponential bases, all ``|b| < 1``.
            amplitudes (NDArray): Exponential amplitudes.
            covar_iv (NDArray): Zero or more exceptional leading covariance values.
            config (SpectralFactorizationConfig | None): Spectral factorization
                settings.

        Returns:
            ARMAModel: The model.

        Raises:
            ModelInstabilityError: If any base has modulus >= 1.
            ValueError: If a complex base or amplitude lacks its conjugate pair.
            SpectralFactorizationError: If the covariance has no valid MA factor.
        """
        config = config or SpectralFactorizationConfig()
        bases = np.atleast_1d(np.asarray(bases, dtype=np.complex128))
        amplitudes = np.atleast_1d(np.asarray(amplitudes, dtype=np.complex128))
        covar_iv = np.atleast_1d(np.asarray(covar_iv, dtype=float))
        p = len(bases)
        if len(amplitudes) != p:
            raise ValueError(f"got {p} bases but {len(amplitudes)} amplitudes")
        q = p - 1 + len(covar_iv)
        if q < 0:
            raise ValueError("need at least one exponential or one initial covariance value")
        if np.any(np.abs(bases) >= 1):
            raise ModelInstabilityError(f"all bases must have modulus < 1, got {bases}")
        _check_conjugate_pairs(bases, amplitudes)

        lags = np.arange(1 + p + q + config.margin)
        gamma = np.real(amplitudes[None, :] * bases[None, :] ** lags[:, None]).sum(axis=1)
        gamma[: len(covar_iv)] = covar_iv
        if not gamma[0] > 0:
            raise ValueError(f"covariance at lag 0 must be positive, got {gamma[0]}")

        poles = 1.0 / bases
        phicoef = polynomial_from_roots(poles)

        gamma_ma = ma_autocovariance(gamma, phicoef, q)
        theta = solve_ma_autocovariance(gamma_ma, config)
        roots = minimum_phase(check_ma_factor(theta, gamma_ma, config))
        thetacoef = polynomial_from_roots(roots)

        # polynomial_from_roots normalizes theta[0] to 1; rescale to match gamma[0].
        gamma_norm, _, _ = _covar_repr(thetacoef, phicoef)
        thetacoef = thetacoef * np.sqrt(gamma[0] / gamma_norm[0])
        return cls(p, q, roots, poles, thetacoef, phicoef, gamma[: max(p, q + 1)], bases, amplitudes)

    def covariance(self, n: int) -> NDArray[np.float64]:
        """Return the model autocovariance for lags 0..n-1."""
        return model_covariance(self.covar_iv, self.phicoef, n)

    def psd(self, freq: NDArray | int) -> NDArray[np.float64]:
        """Return the power spectral density; see :func:`model_psd`."""
        return model_psd(self, freq)


def white_model() -> ARMAModel:
    """Return the ARMA(0, 0) model of unit-variance white noise."""
    return ARMAModel.from_polynomials([1.0], [1.0])
