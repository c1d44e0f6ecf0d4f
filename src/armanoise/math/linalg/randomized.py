"""Randomized low-rank matrix decompositions.

Algorithms from N. Halko, P.-G. Martinsson and J. A. Tropp, "Finding
structure with randomness: Probabilistic algorithms for constructing
approximate matrix decompositions" (arXiv:0909.4061).
"""

import numpy as np
from numpy.typing import NDArray


def find_range_randomly(
    a: NDArray,
    n_samples: int,
    n_power_iter: int = 1,
    rng: np.random.Generator | int | None = None,
) -> NDArray[np.float64]:
    """Find an orthonormal basis approximating the range of ``a``.

    Randomized subspace iteration (Halko et al., Algorithm 4.4). Each power
    iteration is re-orthonormalized so that small singular values are not
    lost to rounding.

    Args:
        a (NDArray): Matrix of shape (m, n).
        n_samples (int): Number of random test vectors. Clipped to ``min(m, n)``.
        n_power_iter (int): Number of power iterations ``q``.
        rng (np.random.Generator | int | None): Random generator or seed.

    Returns:
        NDArray[np.float64]: Matrix ``Q`` of shape (m, n_samples) with
            orthonormal columns.
    """
    a = np.asarray(a, dtype=float)
    if a.ndim != 2:
        raise ValueError(f"a must be 2D, got shape={a.shape}")
    if n_samples <= 0:
        raise ValueError("n_samples must be > 0")
    if n_power_iter < 0:
        raise ValueError("n_power_iter must be >= 0")
    n_samples = min(n_samples, *a.shape)
    rng = np.random.default_rng(rng)

    omega = rng.standard_normal((a.shape[1], n_samples))
    q, _ = np.linalg.qr(a @ omega)
    for _ in range(n_power_iter):
        w, _ = np.linalg.qr(a.T @ q)
        q, _ = np.linalg.qr(a @ w)
    return q


def find_svd_randomly(
    a: NDArray,
    n_samples: int,
    n_power_iter: int = 2,
    rng: np.random.Generator | int | None = None,
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """Compute an approximate truncated SVD (Halko et al., Algorithm 5.1).

    Args:
        a (NDArray): Matrix of shape (m, n).
        n_samples (int): Number of random test vectors (target rank plus
            oversampling).
        n_power_iter (int): Number of power iterations.
        rng (np.random.Generator | int | None): Random generator or seed.

    Returns:
        tuple[NDArray, NDArray, NDArray]: ``(u, s, vt)`` with
            ``a ~= u @ np.diag(s) @ vt``, singular values in descending order.
    """
    q = find_range_randomly(a, n_samples, n_power_iter=n_power_iter, rng=rng)
    b = q.T @ np.asarray(a, dtype=float)
    u_b, s, vt = np.linalg.svd(b, full_matrices=False)
    return q @ u_b, s, vt
