"""Tests for exponential and fixed-order ARMA fitting."""

import numpy as np
import pytest

from armanoise.arma.fitting import ExponentialFitConfig, fit_arma, fit_exponentials
from armanoise.arma.model import ARMAModel
from armanoise.errors import SpectralFactorizationError

CASES = [
    ([0.999, 0.98, 0.7 + 0.1j, 0.7 - 0.1j], [5.0, 4.0, 3.0 - 1.0j, 3.0 + 1.0j]),
    ([0.99, 0.9, 0.1 + 0.8j, 0.1 - 0.8j], [7.0, 5.0, 3.0 - 1.0j, 3.0 + 1.0j]),
]
# Exponential sums that are the covariance of an ARMA(p, p - 1) process.
ARMA_CASES = [
    CASES[0],
    ([0.999, 0.99, 0.95, 0.9, 0.7], [1.0, 2.0, 3.0, 4.0, 5.0]),
]
N = 1000


def _exponential_sum(bases: np.ndarray, amplitudes: np.ndarray, n: int) -> np.ndarray:
    t = np.arange(n)
    return np.real(amplitudes[None, :] * bases[None, :] ** t[:, None]).sum(axis=1)


@pytest.mark.parametrize(("bases", "amplitudes"), CASES)
def test_fit_exponentials_reproduces_signal(bases: list, amplitudes: list) -> None:
    """The fitted exponentials regenerate an exact exponential sum."""
    signal = _exponential_sum(np.array(bases), np.array(amplitudes), N)
    bfit, afit = fit_exponentials(signal, len(bases), ExponentialFitConfig(seed=0))
    np.testing.assert_allclose(_exponential_sum(bfit, afit, N), signal, rtol=0, atol=1e-6)
    # Complex terms come in exact conjugate pairs.
    np.testing.assert_allclose(np.sort_complex(bfit), np.sort_complex(np.conj(bfit)), atol=0)


@pytest.mark.parametrize(("bases", "amplitudes"), ARMA_CASES)
def test_fit_arma_reproduces_covariance(bases: list, amplitudes: list) -> None:
    """ARMA(p, p-1) and ARMA(p, p) fits reproduce the covariance."""
    p = len(bases)
    config = ExponentialFitConfig(seed=1)
    signal = _exponential_sum(np.array(bases), np.array(amplitudes), N)

    model = fit_arma(signal, p, p - 1, config=config)
    assert (model.p, model.q) == (p, p - 1)
    np.testing.assert_allclose(model.covariance(N), signal, rtol=0, atol=1e-6)

    # One exceptional value at lag 0.
    signal[0] *= 2
    model = fit_arma(signal, p, config=config)
    assert (model.p, model.q) == (p, p)
    np.testing.assert_allclose(model.covariance(N), signal, rtol=0, atol=1e-6)


def test_fit_arma_recovers_known_model() -> None:
    """Fitting a model's own covariance gives back the model."""
    truth = ARMAModel.from_polynomials([1.0, 0.4], [1.0, -0.8])
    fitted = fit_arma(truth.covariance(200), p=1, q=1, config=ExponentialFitConfig(seed=2))
    np.testing.assert_allclose(fitted.phicoef, truth.phicoef, atol=1e-8)
    np.testing.assert_allclose(fitted.thetacoef, truth.thetacoef, atol=1e-5)


def test_fit_arma_unrealizable_covariance_raises() -> None:
    """An exponential sum with no ARMA(p, p - 1) spectral factor is rejected."""
    bases, amplitudes = CASES[1]
    signal = _exponential_sum(np.array(bases), np.array(amplitudes), N)
    with pytest.raises(SpectralFactorizationError):
        fit_arma(signal, len(bases), len(bases) - 1, config=ExponentialFitConfig(seed=1))


def test_fit_arma_validation() -> None:
    """q below p - 1 is rejected."""
    with pytest.raises(ValueError, match="q must be"):
        fit_arma(np.ones(50), p=3, q=1)


def test_fit_exponentials_needs_enough_samples() -> None:
    """Short signals cannot determine p exponentials."""
    with pytest.raises(ValueError, match="samples"):
        fit_exponentials(np.ones(4), 2)


def test_config_validation() -> None:
    """Invalid settings raise ValueError."""
    with pytest.raises(ValueError):
        ExponentialFitConfig(window_size=1)
    with pytest.raises(ValueError):
        ExponentialFitConfig(n_oversamples=-1)
