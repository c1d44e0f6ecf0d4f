"""Tests for FFT-based autocovariance estimation."""

import numpy as np
import pytest

from armanoise.math.correlation.fft_based import estimate_covariance, padded_length


@pytest.mark.parametrize(
    ("n", "expected"),
    [(1000, 1024), (16, 16), (12, 16), (11, 12), (10, 12), (9, 10), (8, 8)],
)
def test_padded_length(n: int, expected: int) -> None:
    """Lengths are rounded up to P, 3P/4 or 5P/8."""
    assert padded_length(n) == expected


def test_estimate_covariance_small_example() -> None:
    """[0, 2, 0, -2] has covariance [2, 0, -2, 0]."""
    np.testing.assert_allclose(
        estimate_covariance(np.array([0.0, 2.0, 0.0, -2.0])), [2.0, 0.0, -2.0, 0.0], atol=1e-12
    )


def test_estimate_covariance_matches_direct_sum() -> None:
    """Unbiased lag products agree with numpy.correlate."""
    x = np.random.default_rng(0).normal(size=257)
    n_lags = 20
    direct = np.correlate(x, x, mode="full")[len(x) - 1 : len(x) - 1 + n_lags]
    direct /= len(x) - np.arange(n_lags)
    np.testing.assert_allclose(estimate_covariance(x, n_lags, chunk_length=37), direct, atol=1e-12)


def test_default_chunking_equals_explicit_chunking() -> None:
    """Default chunk length reproduces the explicit equal-chunk split."""
    n = 1000
    n_lags = 10
    x = np.random.default_rng(1).normal(size=n)
    chunk_length = n // ((n - 1 + 150) // 150)
    np.testing.assert_allclose(
        estimate_covariance(x, n_lags),
        estimate_covariance(x, n_lags, chunk_length=chunk_length),
        atol=1e-12,
    )


def test_estimate_covariance_mean_detrend() -> None:
    """A constant offset is removed by mean detrending."""
    x = np.random.default_rng(2).normal(size=100)
    np.testing.assert_allclose(
        estimate_covariance(x + 5.0, 5, detrend="mean"),
        estimate_covariance(x - x.mean(), 5),
        atol=1e-10,
    )


def test_estimate_covariance_validation() -> None:
    """Bad arguments raise ValueError."""
    with pytest.raises(ValueError, match="1D"):
        estimate_covariance(np.zeros((2, 2)))
    with pytest.raises(ValueError, match="n_lags"):
        estimate_covariance(np.zeros(4), n_lags=5)
    with pytest.raises(ValueError, match="detrend"):
        estimate_covariance(np.zeros(4), detrend="linear")  # type: ignore
