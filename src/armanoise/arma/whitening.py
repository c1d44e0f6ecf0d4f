"""Approximate whitening by banded Toeplitz filtering."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from armanoise.math.banded.banded_lt import convolve_same, deconvolve_same

if TYPE_CHECKING:
    from armanoise.arma.model import ARMAModel


def toeplitz_whiten(model: ARMAModel, timestream: NDArray, axis: int = -1) -> NDArray[np.float64]:
    """Whiten ``timestream`` with ``theta^-1 phi`` applied as causal filters.

    Applying ``phi`` turns the ARMA process into an MA process and dividing
    by ``theta`` removes the MA correlations. This is exact only in the
    stationary limit: the first ``max(p, q)`` or so samples are not fully
    decorrelated, because the filters start from zero state. Use
    :class:`~armanoise.arma.solver.ARMASolver` for exact whitening.

    Args:
        model (ARMAModel): Noise model.
        timestream (NDArray): Samples, N-d arrays are whitened along ``axis``.
        axis (int): Time axis. Defaults to the last axis.

    Returns:
        NDArray[np.float64]: Whitened samples with the same shape.
    """
    return deconvolve_same(convolve_same(timestream, model.phicoef, axis=axis), model.thetacoef, axis=axis)
