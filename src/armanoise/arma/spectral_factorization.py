r"""Spectral factorization of moving-average autocovariances.

Given the autocovariance ``gamma_ma[t]`` (t = 0..q) of an MA(q) process, find
``theta`` (length q+1) such that

    gamma_ma[t] = \sum_j theta[j] theta[j + t]

This quadratic system has no closed form in general. Two candidates are
computed and the one with the lower residual cost (mean absolute residual) is
returned:

1. an iterative estimate from a backward Durbin-Levinson-style recursion,
   which always yields a usable answer even when it does not converge;
2. a refinement of that estimate with :func:`scipy.optimize.root`, which is
   simply absent when the nonlinear solver does not converge.
"""

import logging
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy.optimize import root

from armanoise.errors import SpectralFactorizationError
from armanoise.math.polynomial.roots import polynomial_roots

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SpectralFactorizationConfig:
    """Configuration for :func:`solve_ma_autocovariance`.

    Args:
        max_iter (int): Iteration cap for the recursion, also used to bound the
            function evaluations of the nonlinear refinement.
        rel_tolerance (float): The recursion stops once the mean absolute
            residual is below ``rel_tolerance * gamma_ma[0]``.
        patience (int): The recursion stops after this many consecutive
            iterations without improvement.
        refine (bool): If False, skip the nonlinear refinement.
        margin (int): Extra covariance lags computed beyond ``p + q`` when
            building a model from exponentials.
        max_rel_cost (float): A factor whose mean absolute residual exceeds
            ``max_rel_cost * gamma_ma[0]`` is rejected by :func:`check_ma_factor`.
    """

    max_iter: int = 1000
    rel_tolerance: float = 1e-6
    patience: int = 10
    refine: bool = True
    margin: int = 50
    max_rel_cost: float = 1e-3

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.max_iter < 1:
            raise ValueError("max_iter must be >= 1")
        if self.rel_tolerance <= 0:
            raise ValueError("rel_tolerance must be positive")
        if self.patience < 1:
            raise ValueError("patience must be >= 1")
        if self.margin < 0:
            raise ValueError("margin must be >= 0")
        if self.max_rel_cost <= 0:
            raise ValueError("max_rel_cost must be positive")


@dataclass(slots=True, frozen=True)
class FactorCandidate:
    """A candidate MA factor and its residual cost."""

    theta: NDArray[np.float64]
    cost: float
    source: str


def ma_autocovariance(gamma: NDArray, phicoef: NDArray, q: int) -> NDArray[np.float64]:
    """Return the autocovariance of ``phi(B) x`` for lags 0..q.

    ``gamma_ma[t] = sum_{i,j} phi[i] phi[j] gamma[|t + i - j|]`` isolates the
    part of the ARMA covariance ``gamma`` attributable to the MA polynomial.

    Args:
        gamma (NDArray): ARMA autocovariance, at least ``q + p + 1`` lags.
        phicoef (NDArray): AR polynomial, constant term first.
        q (int): MA order.

    Returns:
        NDArray[np.float64]: MA autocovariance of shape (q + 1,).
    """
    gamma = np.asarray(gamma, dtype=float)
    phi = np.asarray(phicoef, dtype=float)
    p = len(phi) - 1
    if q < 0:
        raise ValueError("q must be >= 0")
    if len(gamma) < q + p + 1:
        raise ValueError(f"gamma needs at least {q + p + 1} lags, got {len(gamma)}")
    idx = np.arange(p + 1)
    offsets = idx[:, None] - idx[None, :]
    return np.array([phi @ gamma[np.abs(t + offsets)] @ phi for t in range(q + 1)])


def _residual(theta: NDArray, gamma_ma: NDArray) -> NDArray:
    q = len(theta) - 1
    return gamma_ma - np.correlate(theta, theta, mode="full")[q:]


def _residual_jacobian(theta: NDArray, gamma_ma: NDArray) -> NDArray:
    n = len(theta)
    jac = np.zeros((n, n))
    for t in range(n):
        jac[t, : n - t] -= theta[t:]
        jac[t, t:] -= theta[: n - t]
    return jac


def factorization_cost(theta: NDArray, gamma_ma: NDArray) -> float:
    """Mean absolute residual of ``gamma_ma[t] - sum_j theta[j] theta[j + t]``."""
    return float(np.mean(np.abs(_residual(np.asarray(theta, dtype=float), gamma_ma))))


def _iterative_candidate(
    gamma_ma: NDArray, config: SpectralFactorizationConfig
) -> FactorCandidate | None:
    n = len(gamma_ma)
    g0 = gamma_ma[0]
    theta = np.zeros(n)
    theta[0] = 1.0
    var = g0
    best_theta = None
    best_cost = np.inf
    stale = 0

    for iteration in range(1, config.max_iter + 1):
        # theta[0] stays 1; var carries the scale.
        if n > 1:
            theta[n - 1] = gamma_ma[n - 1] / var
        for i in range(n - 2, 0, -1):
            theta[i] = gamma_ma[i] / var - np.dot(theta[1 : n - i], theta[i + 1 : n])
        var = g0 / np.sum(theta**2)
        scaled = theta * np.sqrt(var)
        cost = factorization_cost(scaled, gamma_ma)

        if cost < config.rel_tolerance * g0:
            logger.debug("MA recursion converged after %d iterations (cost=%.3g)", iteration, cost)
            return FactorCandidate(scaled, cost, "iterative")
        if np.isfinite(cost) and cost <= best_cost:
            best_theta, best_cost = scaled, cost
            stale = 0
        else:
            stale += 1
            if stale >= config.patience:
                logger.debug(
                    "MA recursion stalled after %d iterations (best cost=%.3g)", iteration, best_cost
                )
                break
    else:
        logger.debug("MA recursion hit max_iter=%d (best cost=%.3g)", config.max_iter, best_cost)

    if best_theta is None:
        return None
    return FactorCandidate(best_theta, best_cost, "iterative")


def _is_finite(candidate: FactorCandidate) -> bool:
    return bool(np.isfinite(candidate.cost) and np.all(np.isfinite(candidate.theta)))


def _refined_candidate(
    gamma_ma: NDArray, start: NDArray, config: SpectralFactorizationConfig
) -> FactorCandidate | None:
    with np.errstate(all="ignore"):
        sol = root(
            _residual,
            start,
            args=(gamma_ma,),
            jac=_residual_jacobian,
            method="hybr",
            options={"maxfev": config.max_iter * (len(start) + 1)},
        )
    if not sol.success or not np.all(np.isfinite(sol.x)):
        logger.debug("nonlinear MA refinement did not converge: %s", sol.message)
        return None
    return FactorCandidate(sol.x, factorization_cost(sol.x, gamma_ma), "refined")


def solve_ma_autocovariance(
    gamma_ma: NDArray, config: SpectralFactorizationConfig | None = None
) -> NDArray[np.float64]:
    """Find ``theta`` whose autocovariance matches ``gamma_ma``.

    The refined candidate replaces the iterative one only if its cost is
    strictly lower.

    Args:
        gamma_ma (NDArray): MA autocovariance for lags 0..q. ``gamma_ma[0]``
            must be positive.
        config (SpectralFactorizationConfig | None): Iteration settings.

    Returns:
        NDArray[np.float64]: MA coefficients of shape (q + 1,). Not necessarily
            minimum-phase; see :func:`minimum_phase`.

    Raises:
        SpectralFactorizationError: If neither candidate is finite.
    """
    config = config or SpectralFactorizationConfig()
    gamma_ma = np.atleast_1d(np.asarray(gamma_ma, dtype=float))
    if gamma_ma.ndim != 1 or gamma_ma.size == 0:
        raise ValueError("gamma_ma must be a non-empty 1D sequence")
    if not gamma_ma[0] > 0:
        raise ValueError(f"gamma_ma[0] must be positive, got {gamma_ma[0]}")

    candidates: list[FactorCandidate] = []
    iterative = _iterative_candidate(gamma_ma, config)
    if iterative is not None:
        candidates.append(iterative)

    if config.refine:
        if iterative is not None:
            start = iterative.theta
        else:
            start = np.zeros_like(gamma_ma)
            start[0] = np.sqrt(gamma_ma[0])
        refined = _refined_candidate(gamma_ma, start, config)
        if refined is not None:
            candidates.append(refined)

    candidates = [c for c in candidates if _is_finite(c)]
    if not candidates:
        raise SpectralFactorizationError(
            f"no finite MA factor found for autocovariance {gamma_ma}"
        )
    # min() keeps the first of equal costs, so the refinement must be strictly better.
    best = min(candidates, key=lambda c: c.cost)
    logger.debug("MA factor taken from %s candidate (cost=%.3g)", best.source, best.cost)
    return best.theta


def minimum_phase(roots: NDArray) -> NDArray[np.complex128]:
    """Reflect roots inside the unit circle to ``1 / r``.

    Reflecting an MA root leaves the autocovariance unchanged up to scale and
    restores invertibility.
    """
    r = np.array(roots, dtype=np.complex128)
    inside = np.abs(r) < 1
    r[inside] = 1.0 / r[inside]
    return r


def check_ma_factor(
    theta: NDArray, gamma_ma: NDArray, config: SpectralFactorizationConfig | None = None
) -> NDArray[np.complex128]:
    """Validate an MA factor and return its roots.

    Args:
        theta (NDArray): MA coefficients from :func:`solve_ma_autocovariance`.
        gamma_ma (NDArray): The target MA autocovariance.
        config (SpectralFactorizationConfig | None): Supplies ``max_rel_cost``.

    Returns:
        NDArray[np.complex128]: The ``len(theta) - 1`` roots of ``theta``.

    Raises:
        SpectralFactorizationError: If ``theta`` has a vanishing constant
            term, does not reproduce ``gamma_ma`` (the target is not a valid
            MA autocovariance), or has too few, zero or non-finite roots.
    """
    config = config or SpectralFactorizationConfig()
    theta = np.asarray(theta, dtype=float)
    gamma_ma = np.asarray(gamma_ma, dtype=float)
    q = len(theta) - 1
    if not np.all(np.isfinite(theta)):
        raise SpectralFactorizationError(f"MA factor is not finite: {theta}")
    if abs(theta[0]) <= 1e-8 * np.max(np.abs(theta)):
        raise SpectralFactorizationError(f"MA factor has a vanishing constant term: {theta}")
    cost = factorization_cost(theta, gamma_ma)
    if cost > config.max_rel_cost * gamma_ma[0]:
        raise SpectralFactorizationError(
            f"autocovariance {gamma_ma} is not realizable as an MA({q}) process "
            f"(best residual {cost:.3g})"
        )
    roots = polynomial_roots(theta)
    if len(roots) != q:
        raise SpectralFactorizationError(f"MA factor has degree {len(roots)}, expected {q}")
    if not np.all(np.isfinite(roots)) or np.any(roots == 0):
        raise SpectralFactorizationError(f"MA factor has zero or non-finite roots: {roots}")
    return roots
