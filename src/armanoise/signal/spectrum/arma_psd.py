from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from numpy.polynomial import polynomial as P
from numpy.typing import NDArray

if TYPE_CHECKING:
    from armanoise.arma.model import ARMAModel


def model_psd(model: ARMAModel, freq: NDArray | int) -> NDArray[np.float64]:
    """Evaluate the power spectral density of an ARMA model.

    ``S(f) = |theta(z)|^2 / |phi(z)|^2`` with ``z = exp(-2 pi i f)``, where
    ``f`` is in cycles per sample. With unit-variance innovations, the PSD
    integrates to the model variance over ``f`` in [-0.5, 0.5].

    Args:
        model (ARMAModel): The model.
        freq (NDArray | int): Frequencies in cycles per sample, or an integer
            ``N`` to evaluate on ``N`` evenly spaced points in [0, 0.5].

    Returns:
        NDArray[np.float64]: PSD values with the shape of ``freq``.
    """
    if isinstance(freq, (int, np.integer)):
        if freq < 1:
            raise ValueError("number of frequencies must be >= 1")
        freq = np.linspace(0, 0.5, int(freq))
    freq = np.asarray(freq, dtype=float)

    z = np.exp(-2j * np.pi * freq)
    num = np.abs(P.polyval(z, model.thetacoef)) ** 2
    den = np.abs(P.polyval(z, model.phicoef)) ** 2
    return num / den
