"""Fast exact algebra with the covariance matrix of an ARMA process.

The covariance ``R`` of ``n`` consecutive samples of a stationary ARMA(p, q)
process is a dense ``n x n`` Toeplitz matrix. Filtering with the AR
polynomial turns it into a banded one: with ``Phi`` the lower Toeplitz matrix
of ``phicoef``,

    RR = Phi R Phi^T

vanishes beyond ``m = max(q, p - 1)`` diagonals, since ``Phi x`` is an MA(q)
process apart from its first ``p`` samples. The banded Cholesky factor
``LL LL^T = RR`` then gives the exact Cholesky factor ``L = Phi^-1 LL`` of
``R``, and every product or solve with ``R`` reduces to a few banded
triangular operations costing O(n * max(p, q)).
"""

from __future__ import annotations

import logging

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import cholesky_banded

from armanoise.arma.model import ARMAModel
from armanoise.arma.spectral_factorization import ma_autocovariance
from armanoise.math.banded.banded_lt import BandedLTMatrix

logger = logging.getLogger(__name__)


def _filtered_covariance_band(model: ARMAModel, n: int) -> NDArray[np.float64]:
    """Return ``Phi R Phi^T`` in lower band storage of shape ``(m + 1, n)``."""
    p, q = model.p, model.q
    m = max(q, p - 1)
    phi = model.phicoef
    gamma = model.covariance(p + m + 1)

    ab = np.zeros((m + 1, n))
    # Away from the start, Phi x is a pure MA(q) process.
    gamma_ma = ma_autocovariance(gamma, phi, q)
    ab[: q + 1, p:] = gamma_ma[:, None]

    # The first p samples of Phi x only see a truncated AR filter.
    for t in range(min(p, n)):
        cols = phi[: t + 1]
        j = np.arange(t + 1)
        for d in range(min(m + 1, n - t)):
            s = t + d
            rows = phi[: min(p, s) + 1]
            i = np.arange(len(rows))
            lags = np.abs(d - i[:, None] + j[None, :])
            ab[d, t] = rows @ gamma[lags] @ cols
    return ab


class ARMASolver:
    """Multiply and solve with the covariance matrix of an ARMA model.

    All operations accept a vector of length ``J <= n`` or a stack of shape
    ``(J, k)`` and then act with the covariance of the first ``J`` samples,
    which is the leading ``J x J`` block of the full matrix.

    Args:
        model (ARMAModel): Noise model.
        n (int): Largest number of samples the solver handles.

    Raises:
        ValueError: If ``n < 1``.
        numpy.linalg.LinAlgError: If the filtered covariance is not positive
            definite.

    Example:
        >>> model = ARMAModel.from_polynomials([1.0, 0.5], [1.0, -0.9])
        >>> solver = ARMASolver(model, 1000)
        >>> x = solver.unwhiten(np.random.default_rng(0).standard_normal(1000))
    """

    def __init__(self, model: ARMAModel, n: int) -> None:
        if n < 1:
            raise ValueError("n must be >= 1")
        self._model = model
        self._n = n
        self._phi = BandedLTMatrix.toeplitz(model.phicoef, n)
        self._ll = BandedLTMatrix(cholesky_banded(_filtered_covariance_band(model, n), lower=True))
        logger.debug(
            "ARMASolver built: n=%d, p=%d, q=%d, bandwidth=%d",
            n,
            model.p,
            model.q,
            self._ll.bandwidth,
        )

    @property
    def model(self) -> ARMAModel:
        """The noise model the solver was built for."""
        return self._model

    @property
    def n(self) -> int:
        """Largest number of samples the solver handles."""
        return self._n

    @property
    def ar_factor(self) -> BandedLTMatrix:
        """Banded lower Toeplitz matrix ``Phi`` of the AR polynomial."""
        return self._phi

    @property
    def ma_factor(self) -> BandedLTMatrix:
        """Banded Cholesky factor ``LL`` of ``Phi R Phi^T``."""
        return self._ll

    def whiten(self, v: NDArray) -> NDArray[np.float64]:
        """Return ``L^-1 v``; white with unit variance if ``v`` follows the model."""
        return self._ll.solve(self._phi @ v)

    def unwhiten(self, v: NDArray) -> NDArray[np.float64]:
        """Return ``L v``; turns unit white noise into a model realisation."""
        return self._phi.solve(self._ll @ v)

    def mult_covariance(self, v: NDArray) -> NDArray[np.float64]:
        """Return ``R v``."""
        return self._phi.solve(self._ll @ self._ll.rmatvec(self._phi.rsolve(v)))

    def solve_covariance(self, v: NDArray) -> NDArray[np.float64]:
        """Return ``R^-1 v``."""
        return self._phi.rmatvec(self._ll.rsolve(self.whiten(v)))

    def inverse_covariance(self) -> NDArray[np.float64]:
        """Return the dense ``n x n`` inverse covariance matrix.

        Needs O(n^2) memory; prefer :meth:`solve_covariance` for large ``n``.
        """
        return self.solve_covariance(np.eye(self.n))

    def __repr__(self) -> str:
        return f"ARMASolver(n={self.n}, p={self.model.p}, q={self.model.q})"
