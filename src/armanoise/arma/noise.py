"""Synthesis of ARMA noise realisations."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy.signal import lfilter

from armanoise.arma.model import ARMAModel

# Transients decay below this fraction before samples are returned.
_BURN_IN_DECAY = 1e-8


def default_burn_in(model: ARMAModel) -> int:
    """Return the number of samples after which the AR transient is negligible."""
    if model.p == 0:
        return model.q
    slowest = float(np.max(np.abs(model.expbases)))
    return model.q + int(np.ceil(np.log(_BURN_IN_DECAY) / np.log(slowest)))


def generate_noise(
    model: ARMAModel,
    n: int,
    rng: np.random.Generator | int | None = None,
    burn_in: int | None = None,
) -> NDArray[np.float64]:
    """Generate a noise timestream of length ``n`` from ``model``.

    Unit-variance Gaussian innovations are filtered by ``theta(z) / phi(z)``.
    The first ``burn_in`` filtered samples are discarded so the result is
    stationary to within ``1e-8`` of the model covariance.

    Args:
        model (ARMAModel): Noise model.
        n (int): Number of samples.
        rng (np.random.Generator | int | None): Random generator or seed.
        burn_in (int | None): Samples to discard. If None, chosen from the
            slowest exponential base.

    Returns:
        NDArray[np.float64]: Noise of shape (n,).
    """
    if n < 0:
        raise ValueError("n must be >= 0")
    if burn_in is None:
        burn_in = default_burn_in(model)
    if burn_in < 0:
        raise ValueError("burn_in must be >= 0")
    rng = np.random.default_rng(rng)
    eps = rng.standard_normal(n + burn_in)
    return lfilter(model.thetacoef, model.phicoef, eps)[burn_in:]
