"""Tests for banded lower-triangular algebra."""

import numpy as np
import pytest
from scipy.linalg import toeplitz

from armanoise.math.banded.banded_lt import BandedLTMatrix, convolve_same, deconvolve_same


def _random_banded(n: int, bandwidth: int, seed: int = 0) -> BandedLTMatrix:
    rng = np.random.default_rng(seed)
    ab = rng.normal(size=(bandwidth + 1, n))
    ab[0] = 2.0 + np.abs(ab[0])
    return BandedLTMatrix(ab)


@pytest.mark.parametrize("bandwidth", [0, 1, 3])
def test_products_and_solves_match_dense(bandwidth: int) -> None:
    """All four operations agree with the dense matrix."""
    n = 12
    m = _random_banded(n, bandwidth)
    dense = m.todense()
    v = np.random.default_rng(1).normal(size=n)

    np.testing.assert_allclose(m @ v, dense @ v, rtol=1e-12, atol=1e-12)
    np.testing.assert_allclose(m.rmatvec(v), dense.T @ v, rtol=1e-12, atol=1e-12)
    np.testing.assert_allclose(m.solve(v), np.linalg.solve(dense, v), rtol=1e-10, atol=1e-12)
    np.testing.assert_allclose(m.rsolve(v), np.linalg.solve(dense.T, v), rtol=1e-10, atol=1e-12)


@pytest.mark.parametrize("length", [1, 2, 5, 12])
def test_short_vectors_use_leading_block(length: int) -> None:
    """A length-J vector sees the leading J x J block."""
    m = _random_banded(12, 2)
    block = m.todense()[:length, :length]
    v = np.random.default_rng(2).normal(size=(length, 3))

    np.testing.assert_allclose(m @ v, block @ v, rtol=1e-12, atol=1e-12)
    np.testing.assert_allclose(m.rmatvec(v), block.T @ v, rtol=1e-12, atol=1e-12)
    np.testing.assert_allclose(m.solve(v), np.linalg.solve(block, v), rtol=1e-10, atol=1e-12)
    np.testing.assert_allclose(m.rsolve(v), np.linalg.solve(block.T, v), rtol=1e-10, atol=1e-12)


def test_toeplitz_matches_scipy() -> None:
    """Constant diagonals equal scipy's Toeplitz matrix."""
    coefs = np.array([1.0, -0.5, 0.25])
    m = BandedLTMatrix.toeplitz(coefs, 6)
    column = np.zeros(6)
    column[:3] = coefs
    np.testing.assert_array_equal(m.todense(), toeplitz(column, np.zeros(6)))
    assert m.n == 6
    assert m.bandwidth == 2


def test_vector_longer_than_matrix_raises() -> None:
    """Vectors cannot exceed the matrix size."""
    m = BandedLTMatrix.toeplitz([1.0, 0.5], 4)
    with pytest.raises(ValueError, match="only 4 x 4"):
        m.solve(np.ones(5))


def test_storage_is_read_only() -> None:
    """Band storage cannot be modified in place."""
    m = BandedLTMatrix.toeplitz([1.0, 0.5], 4)
    with pytest.raises(ValueError):
        m.ab[0, 0] = 3.0


def test_convolve_same_matches_banded_product() -> None:
    """Causal convolution is the banded Toeplitz product."""
    x = np.random.default_rng(3).normal(size=20)
    f = np.array([1.0, 0.3, -0.2])
    np.testing.assert_allclose(convolve_same(x, f), BandedLTMatrix.toeplitz(f, 20) @ x, atol=1e-12)
    np.testing.assert_allclose(convolve_same(x, f), np.convolve(x, f)[:20], atol=1e-12)


def test_deconvolve_same_inverts_convolve_same() -> None:
    """Deconvolution undoes convolution along the chosen axis."""
    x = np.random.default_rng(4).normal(size=(3, 50))
    f = np.array([2.0, -0.7, 0.1])
    y = convolve_same(x, f, axis=1)
    np.testing.assert_allclose(deconvolve_same(y, f, axis=1), x, atol=1e-12)
    np.testing.assert_allclose(
        deconvolve_same(convolve_same(x.T, f, axis=0), f, axis=0), x.T, atol=1e-12
    )


def test_deconvolve_same_rejects_zero_leading_tap() -> None:
    """The leading tap must be invertible."""
    with pytest.raises(ValueError, match="non-zero"):
        deconvolve_same(np.ones(4), [0.0, 1.0])
