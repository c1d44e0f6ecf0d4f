"""Fit sums of exponentials and fixed-order ARMA models to covariances.

A sequence ``c[t] = sum_i a_i b_i^t`` makes a Hankel matrix of rank ``p``
whose column space is shift invariant: dropping the first row or the last
row of any basis ``U`` of it gives matrices related by ``U[1:] = U[:-1] A``,
and the eigenvalues of ``A`` are the bases ``b_i``. The basis is found with a
randomized SVD so that long sequences stay cheap, and the amplitudes follow
from a linear least-squares fit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from armanoise.arma.model import ARMAModel
from armanoise.arma.spectral_factorization import SpectralFactorizationConfig
from armanoise.math.hankel.hankel import array_to_hankel_matrix, shift_invariant_operator
from armanoise.math.linalg.randomized import find_svd_randomly

logger = logging.getLogger(__name__)

_REAL_TOLERANCE = 1e-10


@dataclass(slots=True, frozen=True)
class ExponentialFitConfig:
    """Configuration for :func:`fit_exponentials`.

    Args:
        window_size (int | None): Number of rows of the Hankel matrix. If None,
            half the signal length.
        n_oversamples (int): Extra random test vectors beyond ``p`` for the
            randomized SVD.
        n_power_iter (int): Power iterations of the randomized SVD.
        seed (int | None): Seed for the random test vectors.
    """

    window_size: int | None = None
    n_oversamples: int = 10
    n_power_iter: int = 2
    seed: int | None = None

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.window_size is not None and self.window_size < 2:
            raise ValueError("window_size must be >= 2")
        if self.n_oversamples < 0:
            raise ValueError("n_oversamples must be >= 0")
        if self.n_power_iter < 0:
            raise ValueError("n_power_iter must be >= 0")


def _symmetrize_conjugates(
    bases: NDArray[np.complex128], amplitudes: NDArray[np.complex128]
) -> tuple[NDArray[np.complex128], NDArray[np.complex128]]:
    """Force exact conjugate symmetry so the exponential sum is real."""
    bases = bases.copy()
    amplitudes = amplitudes.copy()
    real = np.abs(bases.imag) <= _REAL_TOLERANCE * np.abs(bases)
    bases[real] = bases[real].real
    amplitudes[real] = amplitudes[real].real

    unpaired = list(np.flatnonzero(~real))
    while unpaired:
        i = unpaired.pop(0)
        if not unpaired:
            # A lone complex base cannot come from a real sequence.
            bases[i] = bases[i].real
            amplitudes[i] = amplitudes[i].real
            break
        candidates = np.array(unpaired)
        j = candidates[np.argmin(np.abs(bases[candidates] - np.conj(bases[i])))]
        unpaired.remove(j)
        b = 0.5 * (bases[i] + np.conj(bases[j]))
        a = 0.5 * (amplitudes[i] + np.conj(amplitudes[j]))
        bases[i], bases[j] = b, np.conj(b)
        amplitudes[i], amplitudes[j] = a, np.conj(a)
    return bases, amplitudes


def fit_exponentials(
    signal: NDArray, p: int, config: ExponentialFitConfig | None = None
) -> tuple[NDArray[np.complex128], NDArray[np.complex128]]:
    """Fit ``signal[t] ~= sum_i amplitudes[i] * bases[i] ** t`` with ``p`` terms.

    Args:
        signal (NDArray): Real 1D sequence, typically a covariance.
        p (int): Number of exponentials.
        config (ExponentialFitConfig | None): Fit settings.

    Returns:
        tuple[NDArray, NDArray]: ``(bases, amplitudes)``, each of shape (p,).
            Complex values come in conjugate pairs.

    Raises:
        ValueError: If ``signal`` is too short for ``p`` terms.
    """
    config = config or ExponentialFitConfig()
    signal = np.asarray(signal, dtype=float)
    if signal.ndim != 1:
        raise ValueError(f"signal must be 1D, got shape={signal.shape}")
    if p < 0:
        raise ValueError("p must be >= 0")
    if p == 0:
        empty = np.empty(0, dtype=np.complex128)
        return empty, empty.copy()
    n = len(signal)
    if n < 2 * p + 1:
        raise ValueError(f"need at least {2 * p + 1} samples to fit {p} exponentials, got {n}")

    window_size = config.window_size or n // 2
    window_size = min(max(window_size, p + 1), n - p + 1)
    hankel = array_to_hankel_matrix(signal, window_size)

    u, s, _ = find_svd_randomly(
        hankel, p + config.n_oversamples, n_power_iter=config.n_power_iter, rng=config.seed
    )
    logger.debug("leading singular values: %s", s[: p + 1])
    bases = np.linalg.eigvals(shift_invariant_operator(u[:, :p])).astype(np.complex128)

    vandermonde = bases[None, :] ** np.arange(n)[:, None]
    amplitudes, *_ = np.linalg.lstsq(vandermonde, signal.astype(np.complex128), rcond=None)
    bases, amplitudes = _symmetrize_conjugates(bases, amplitudes)
    logger.debug("fitted bases: %s", bases)
    return bases, amplitudes


def fit_arma(
    covariance: NDArray,
    p: int,
    q: int | None = None,
    config: ExponentialFitConfig | None = None,
    factorization_config: SpectralFactorizationConfig | None = None,
) -> ARMAModel:
    """Fit an ARMA(p, q) model of the given order to a covariance sequence.

    The first ``q - p + 1`` values (if any) are kept exactly as exceptional
    values; the rest is fitted by ``p`` exponentials.

    Args:
        covariance (NDArray): Covariance for lags 0, 1, ...
        p (int): AR order.
        q (int | None): MA order, at least ``p - 1``. Defaults to ``p``.
        config (ExponentialFitConfig | None): Exponential fit settings.
        factorization_config (SpectralFactorizationConfig | None): Spectral
            factorization settings.

    Returns:
        ARMAModel: The fitted model.

    Example:
        >>> model = ARMAModel.from_polynomials([1.0, 0.4], [1.0, -0.8])
        >>> fitted = fit_arma(model.covariance(200), p=1)
    """
    if q is None:
        q = p
    if p < 0:
        raise ValueError("p must be >= 0")
    if q < p - 1:
        raise ValueError(f"q must be >= p - 1 = {p - 1}, got q={q}")
    covariance = np.asarray(covariance, dtype=float)
    n_exceptional = q - p + 1
    if len(covariance) < n_exceptional:
        raise ValueError(f"need at least {n_exceptional} covariance values, got {len(covariance)}")

    bases, amplitudes = fit_exponentials(covariance[n_exceptional:], p, config)
    # The fit starts at lag n_exceptional; shift it back to lag 0.
    amplitudes = amplitudes / bases**n_exceptional
    return ARMAModel.from_exponentials(
        bases, amplitudes, covariance[:n_exceptional], config=factorization_config
    )
