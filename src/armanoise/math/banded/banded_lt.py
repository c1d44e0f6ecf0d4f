"""Banded lower-triangular matrices and causal (de)convolution.

A banded lower-triangular matrix ``M`` of size ``n`` and bandwidth ``b`` is
stored in the LAPACK lower band layout::

    ab[d, j] = M[j + d, j],    0 <= d <= b

so ``ab`` has shape ``(b + 1, n)``. Products and triangular solves then cost
O(n * b) and never materialize the dense ``n x n`` matrix.

Because the matrix is lower triangular, its leading ``J x J`` block acts on
the first ``J`` samples exactly as the full matrix does. All operations
therefore accept inputs shorter than ``n``.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import solve_banded
from scipy.signal import lfilter


def _diag_column(diag: NDArray, v: NDArray) -> NDArray:
    """Reshape a diagonal so it broadcasts against ``v`` along axis 0."""
    return diag.reshape((-1,) + (1,) * (v.ndim - 1))


class BandedLTMatrix:
    """Banded lower-triangular matrix in compact band storage.

    Args:
        ab (NDArray): Band storage of shape ``(bandwidth + 1, n)`` with
            ``ab[d, j] = M[j + d, j]``. Entries with ``j + d >= n`` are ignored.

    Example:
        >>> m = BandedLTMatrix.toeplitz([1.0, 0.5], n=4)
        >>> m @ np.ones(4)
        array([1. , 1.5, 1.5, 1.5])
    """

    def __init__(self, ab: NDArray) -> None:
        ab = np.asarray(ab, dtype=float)
        if ab.ndim != 2 or ab.shape[0] < 1:
            raise ValueError(f"ab must be 2D with at least one row, got shape={ab.shape}")
        self._ab = ab.copy()
        self._ab.setflags(write=False)

    @classmethod
    def toeplitz(cls, coefs: NDArray, n: int) -> BandedLTMatrix:
        """Build the banded Toeplitz matrix with ``coefs[d]`` on diagonal ``-d``."""
        c = np.atleast_1d(np.asarray(coefs, dtype=float))
        if n < 0:
            raise ValueError("n must be >= 0")
        ab = np.repeat(c[:, None], n, axis=1)
        return cls(ab)

    @property
    def ab(self) -> NDArray[np.float64]:
        """Return the (read-only) band storage."""
        return self._ab

    @property
    def n(self) -> int:
        """Matrix size."""
        return self._ab.shape[1]

    @property
    def bandwidth(self) -> int:
        """Number of non-zero sub-diagonals."""
        return self._ab.shape[0] - 1

    def _check(self, v: NDArray) -> NDArray:
        v = np.asarray(v, dtype=float)
        if v.ndim == 0:
            raise ValueError("v must not be scalar.")
        if v.shape[0] > self.n:
            raise ValueError(f"v has length {v.shape[0]} but the matrix is only {self.n} x {self.n}")
        return v

    def matvec(self, v: NDArray) -> NDArray[np.float64]:
        """Return ``M v`` for the leading ``len(v)`` block."""
        v = self._check(v)
        n = v.shape[0]
        out = np.zeros_like(v)
        for d in range(min(self.bandwidth + 1, n)):
            out[d:] += _diag_column(self._ab[d, : n - d], v) * v[: n - d]
        return out

    def rmatvec(self, v: NDArray) -> NDArray[np.float64]:
        """Return ``M^T v`` for the leading ``len(v)`` block."""
        v = self._check(v)
        n = v.shape[0]
        out = np.zeros_like(v)
        for d in range(min(self.bandwidth + 1, n)):
            out[: n - d] += _diag_column(self._ab[d, : n - d], v) * v[d:]
        return out

    def solve(self, v: NDArray) -> NDArray[np.float64]:
        """Return ``M^-1 v`` by forward substitution."""
        v = self._check(v)
        n = v.shape[0]
        if n == 0:
            return v.copy()
        b = min(self.bandwidth, n - 1)
        if b == 0:
            return v / _diag_column(self._ab[0, :n], v)
        return solve_banded((b, 0), self._ab[: b + 1, :n], v)

    def rsolve(self, v: NDArray) -> NDArray[np.float64]:
        """Return ``M^-T v`` by back substitution."""
        v = self._check(v)
        n = v.shape[0]
        if n == 0:
            return v.copy()
        b = min(self.bandwidth, n - 1)
        if b == 0:
            return v / _diag_column(self._ab[0, :n], v)
        # Upper band layout of M^T: ab_upper[b + i - j, j] = M^T[i, j].
        upper = np.zeros((b + 1, n))
        for d in range(b + 1):
            upper[b - d, d:] = self._ab[d, : n - d]
        return solve_banded((0, b), upper, v)

    def todense(self) -> NDArray[np.float64]:
        """Materialize the dense ``n x n`` matrix (for small ``n`` only)."""
        n = self.n
        dense = np.zeros((n, n))
        for d in range(min(self.bandwidth + 1, n)):
            dense += np.diag(self._ab[d, : n - d], -d)
        return dense

    def __matmul__(self, v: NDArray) -> NDArray[np.float64]:
        return self.matvec(v)

    def __repr__(self) -> str:
        return f"BandedLTMatrix(n={self.n}, bandwidth={self.bandwidth})"


def _check_filter(filter_coefs: NDArray) -> NDArray[np.float64]:
    f = np.atleast_1d(np.asarray(filter_coefs, dtype=float))
    if f.ndim != 1 or f.size == 0:
        raise ValueError("filter_coefs must be a non-empty 1D sequence")
    return f


def convolve_same(signal: NDArray, filter_coefs: NDArray, axis: int = -1) -> NDArray[np.float64]:
    """Causally convolve ``signal`` with ``filter_coefs``, keeping the input length.

    ``out[i] = sum_k filter_coefs[k] * signal[i - k]`` with ``signal[j] = 0``
    for ``j < 0``; ``filter_coefs[0]`` is the non-delayed tap. This is the
    product of the banded lower Toeplitz matrix of ``filter_coefs`` with
    ``signal``.

    Args:
        signal (NDArray): Input samples. N-d arrays are filtered along ``axis``.
        filter_coefs (NDArray): Filter taps, leading tap first.
        axis (int): Time axis. Defaults to the last axis.

    Returns:
        NDArray[np.float64]: Filtered signal with the same shape as ``signal``.
    """
    f = _check_filter(filter_coefs)
    return lfilter(f, [1.0], np.asarray(signal, dtype=float), axis=axis)


def deconvolve_same(signal: NDArray, filter_coefs: NDArray, axis: int = -1) -> NDArray[np.float64]:
    """Invert :func:`convolve_same` exactly by forward substitution.

    Args:
        signal (NDArray): Convolved samples. N-d arrays are processed along ``axis``.
        filter_coefs (NDArray): Filter taps, leading tap first.
        axis (int): Time axis. Defaults to the last axis.

    Returns:
        NDArray[np.float64]: ``x`` such that ``convolve_same(x, filter_coefs) == signal``.

    Raises:
        ValueError: If ``filter_coefs[0]`` is zero.
    """
    f = _check_filter(filter_coefs)
    if f[0] == 0:
        raise ValueError("filter_coefs[0] must be non-zero to deconvolve")
    return lfilter([1.0], f, np.asarray(signal, dtype=float), axis=axis)
