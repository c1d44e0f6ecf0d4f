"""Tests for Hankel lifting helpers."""

import numpy as np
import pytest
from scipy.linalg import hankel

from armanoise.math.hankel.hankel import array_to_hankel_matrix, shift_invariant_operator


def test_array_to_hankel_matrix_matches_scipy() -> None:
    """H[i, j] == data[i + j]."""
    data = np.arange(7.0)
    h = array_to_hankel_matrix(data, 3)
    np.testing.assert_array_equal(h, hankel(data[:3], data[2:]))


def test_array_to_hankel_matrix_validation() -> None:
    """Invalid shapes or windows raise."""
    with pytest.raises(ValueError, match="1D"):
        array_to_hankel_matrix(np.zeros((2, 2)), 1)
    with pytest.raises(ValueError, match="window_size"):
        array_to_hankel_matrix(np.zeros(4), 5)


def test_shift_invariant_operator_recovers_bases() -> None:
    """Eigenvalues of the shift operator are the exponential bases."""
    bases = np.array([0.9, 0.5])
    t = np.arange(30)
    signal = 2.0 * bases[0] ** t - 1.0 * bases[1] ** t
    u, _, _ = np.linalg.svd(array_to_hankel_matrix(signal, 10), full_matrices=False)
    eig = np.sort(np.linalg.eigvals(shift_invariant_operator(u[:, :2])).real)
    np.testing.assert_allclose(eig, np.sort(bases), rtol=1e-10)
