"""Save and load ARMA models as ``.npz`` archives.

A model is stored under a group prefix as its sum-of-exponentials
representation::

    <group>/basesR, <group>/basesI            real, imaginary parts of expbases
    <group>/amplitudesR, <group>/amplitudesI  real, imaginary parts of expampls
    <group>/covarIV                           the exceptional leading lags

Only the ``max(p, q + 1) - p`` lags that do not follow the exponential sum
are kept, so a model with ``q < p - 1`` is loaded back with ``q = p - 1`` and
the same covariance.
"""

from __future__ import annotations

import os
from typing import IO

import numpy as np

from armanoise.arma.model import ARMAModel
from armanoise.arma.spectral_factorization import SpectralFactorizationConfig

_FIELDS = ("basesR", "basesI", "amplitudesR", "amplitudesI", "covarIV")


def save_model(file: str | os.PathLike | IO[bytes], model: ARMAModel, group: str = "ARMAModel") -> None:
    """Write ``model`` to ``file``.

    ``numpy.savez`` appends ``.npz`` to a path without that suffix.
    """
    n_exceptional = max(model.p, model.q + 1) - model.p
    np.savez(
        file,
        **{
            f"{group}/basesR": model.expbases.real,
            f"{group}/basesI": model.expbases.imag,
            f"{group}/amplitudesR": model.expampls.real,
            f"{group}/amplitudesI": model.expampls.imag,
            f"{group}/covarIV": model.covar_iv[:n_exceptional],
        },
    )


def load_model(
    file: str | os.PathLike | IO[bytes],
    group: str = "ARMAModel",
    config: SpectralFactorizationConfig | None = None,
) -> ARMAModel:
    """Read a model written by :func:`save_model`.

    Raises:
        KeyError: If ``file`` has no model under ``group``.
    """
    with np.load(file) as archive:
        missing = [name for name in _FIELDS if f"{group}/{name}" not in archive.files]
        if missing:
            raise KeyError(f"no ARMA model under group {group!r} (missing {missing})")
        data = {name: archive[f"{group}/{name}"] for name in _FIELDS}
    bases = data["basesR"] + 1j * data["basesI"]
    amplitudes = data["amplitudesR"] + 1j * data["amplitudesI"]
    return ARMAModel.from_exponentials(bases, amplitudes, data["covarIV"], config=config)
