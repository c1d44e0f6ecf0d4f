"""Tests for noise synthesis."""

import numpy as np
import pytest

from armanoise.arma.model import ARMAModel, white_model
from armanoise.arma.noise import default_burn_in, generate_noise
from armanoise.math.correlation.fft_based import estimate_covariance


def test_generated_noise_follows_model_covariance() -> None:
    """The sample covariance of a long realisation approaches the model."""
    model = ARMAModel.from_polynomials([1.0, 0.5], [1.0, -0.6, 0.2])
    x = generate_noise(model, 200_000, rng=0)
    assert x.shape == (200_000,)
    expected = model.covariance(10)
    np.testing.assert_allclose(estimate_covariance(x, 10), expected, atol=0.05 * expected[0])


def test_generate_noise_is_reproducible() -> None:
    """The same seed gives the same realisation."""
    model = white_model()
    np.testing.assert_array_equal(generate_noise(model, 16, rng=3), generate_noise(model, 16, rng=3))


def test_default_burn_in_follows_slowest_base() -> None:
    """Slow exponentials need longer burn-in."""
    fast = ARMAModel.from_polynomials([1.0], [1.0, -0.5])
    slow = ARMAModel.from_polynomials([1.0], [1.0, -0.99])
    assert default_burn_in(white_model()) == 0
    assert default_burn_in(slow) > default_burn_in(fast) > 0


def test_generate_noise_validation() -> None:
    """Negative lengths raise."""
    with pytest.raises(ValueError):
        generate_noise(white_model(), -1)
    with pytest.raises(ValueError):
        generate_noise(white_model(), 10, burn_in=-1)
