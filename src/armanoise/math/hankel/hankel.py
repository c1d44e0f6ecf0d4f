import numpy as np
from numpy.lib.stride_tricks import sliding_window_view
from numpy.typing import NDArray


def array_to_hankel_matrix(data: NDArray, window_size: int) -> NDArray:
    """Convert a 1D array into a Hankel matrix using sliding windows.

    ``H[i, j] = data[i + j]``. The result is a read-only view on ``data``.

    Args:
        data (NDArray): The 1D array to convert.
        window_size (int): The number of rows in the Hankel matrix.

    Raises:
        ValueError: If the data is not 1D or ``window_size`` does not leave at
            least one column.

    Returns:
        NDArray: Hankel matrix of shape ``(window_size, len(data) - window_size + 1)``.
    """
    data = np.asarray(data)
    if data.ndim != 1:
        raise ValueError(f"data must be 1D, got shape={data.shape}")
    if not 0 < window_size <= len(data):
        raise ValueError(f"window_size must be in [1, {len(data)}], got {window_size}")
    return sliding_window_view(data, len(data) - window_size + 1)


def shift_invariant_operator(basis: NDArray) -> NDArray:
    """Return ``A`` minimizing ``||basis[:-1] @ A - basis[1:]||``.

    When the columns of ``basis`` span the column space of a Hankel matrix
    built from a sum of exponentials, the eigenvalues of ``A`` are the bases
    of those exponentials.

    Args:
        basis (NDArray): Matrix of shape ``(window_size, rank)``.

    Returns:
        NDArray: Square matrix of shape ``(rank, rank)``.
    """
    if basis.ndim != 2 or basis.shape[0] < 2:
        raise ValueError("basis must be 2D with at least two rows.")
    operator, *_ = np.linalg.lstsq(basis[:-1], basis[1:], rcond=None)
    return operator
