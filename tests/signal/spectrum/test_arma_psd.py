"""Tests for the ARMA power spectral density."""

import numpy as np

from armanoise.arma.model import ARMAModel, white_model
from armanoise.signal.spectrum.arma_psd import model_psd


def _direct_psd(model: ARMAModel, freq: np.ndarray) -> np.ndarray:
    z = np.exp(-2j * np.pi * freq)
    numer = sum(c * z**i for i, c in enumerate(model.thetacoef))
    denom = sum(c * z**i for i, c in enumerate(model.phicoef))
    return np.abs(numer / denom) ** 2


def test_model_psd_matches_rational_function() -> None:
    """Integer and explicit frequency grids match the direct formula."""
    model = ARMAModel.from_polynomials([2.0, 2.6, 0.8], [1.0, -0.3, -0.4])
    freq = np.linspace(0, 0.5, 50)
    expected = _direct_psd(model, freq)
    np.testing.assert_allclose(model_psd(model, 50), expected, rtol=1e-12)
    np.testing.assert_allclose(model_psd(model, freq), expected, rtol=1e-12)
    np.testing.assert_allclose(model.psd(freq), expected, rtol=1e-12)


def test_model_psd_integrates_to_variance() -> None:
    """The mean over a full period equals the lag-0 covariance."""
    model = ARMAModel.from_roots([1.5, -2.0], [1.25, 3.0], 4.0)
    freq = np.arange(4096) / 4096 - 0.5
    np.testing.assert_allclose(np.mean(model_psd(model, freq)), model.covariance(1)[0], rtol=1e-8)


def test_white_noise_is_flat() -> None:
    """Unit white noise has unit PSD."""
    np.testing.assert_allclose(model_psd(white_model(), 9), np.ones(9))
