"""
Critical values by bisection over a CDF.

``critical_value`` inverts any monotone CDF for a tail probability. The
distribution-specific wrappers are memoized because the analytical power
engine and the inverse solvers request the same thresholds repeatedly.
"""

from functools import lru_cache
from typing import Callable, Optional, Tuple

from .distributions import f_cdf, norm_ppf, t_cdf
from .noncentral import ncx2_cdf

MAX_ITERATIONS = 100
TOLERANCE = 1e-8
MAX_BRACKET_EXPANSIONS = 64

T_BRACKET = (-10.0, 10.0)
POSITIVE_BRACKET = (0.001, 100.0)

__all__ = [
    "quantile",
    "critical_value",
    "t_critical",
    "f_critical",
    "chi2_critical",
    "z_critical",
]


def _expand_bracket(
    cdf: Callable[[float], float],
    target: float,
    lower: float,
    upper: float,
    floor: Optional[float],
) -> Tuple[float, float]:
    """Widen ``[lower, upper]`` until ``cdf(lower) <= target <= cdf(upper)``."""
    for _ in range(MAX_BRACKET_EXPANSIONS):
        if cdf(upper) >= target:
            break
        lower, upper = upper, upper + 2.0 * (upper - lower)

    for _ in range(MAX_BRACKET_EXPANSIONS):
        if cdf(lower) <= target:
            break
        if floor is not None:
            lower, upper = floor + 0.5 * (lower - floor), lower
        else:
            lower, upper = lower - 2.0 * (upper - lower), lower

    return lower, upper


def quantile(
    cdf: Callable[[float], float],
    p: float,
    lower: float,
    upper: float,
    floor: Optional[float] = None,
) -> float:
    """Return ``x`` with ``cdf(x) = p`` by bisection.

    Args:
        cdf: Non-decreasing cumulative distribution function.
        p: Target probability.
        lower: Initial lower end of the bracket.
        upper: Initial upper end of the bracket.
        floor: Lower end of the support (e.g. ``0`` for F and chi-squared).
            The bracket never crosses it when widened.

    Returns:
        Midpoint of the final bracket.
    """
    lower, upper = _expand_bracket(cdf, p, lower, upper, floor)

    for _ in range(MAX_ITERATIONS):
        mid = 0.5 * (lower + upper)
        if upper - lower < TOLERANCE:
            break
        value = cdf(mid)
        if abs(value - p) < TOLERANCE:
            return mid
        if value < p:
            lower = mid
        else:
            upper = mid

    return 0.5 * (lower + upper)


def critical_value(
    cdf: Callable[[float], float],
    alpha: float,
    tails: int = 1,
    lower: float = POSITIVE_BRACKET[0],
    upper: float = POSITIVE_BRACKET[1],
    lower_tail: bool = False,
    floor: Optional[float] = None,
) -> float:
    """Critical value of a test statistic with distribution *cdf*.

    Args:
        cdf: CDF of the statistic under the null hypothesis.
        alpha: Significance level.
        tails: 1 or 2. Two-tailed tests split *alpha* across both tails.
        lower: Initial lower end of the search bracket.
        upper: Initial upper end of the search bracket.
        lower_tail: Solve ``cdf(x) = alpha/tails`` instead of
            ``cdf(x) = 1 - alpha/tails``.
        floor: Support lower bound, see :func:`quantile`.

    Returns:
        The critical value ``x``.

    Raises:
        ValueError: If *tails* is not 1 or 2.
    """
    if tails not in (1, 2):
        raise ValueError(f"tails must be 1 or 2, got {tails}")

    target = alpha / tails if lower_tail else 1.0 - alpha / tails
    return quantile(cdf, target, lower, upper, floor)


@lru_cache(maxsize=4096)
def t_critical(alpha: float, df: float, tails: int = 2) -> float:
    """Upper critical value of Student's t."""
    return critical_value(lambda x: t_cdf(x, df), alpha, tails, *T_BRACKET)


@lru_cache(maxsize=4096)
def f_critical(alpha: float, dfn: float, dfd: float) -> float:
    """Upper critical value of Fisher's F (always right-tailed)."""
    return critical_value(lambda x: f_cdf(x, dfn, dfd), alpha, 1, *POSITIVE_BRACKET, floor=0.0)


@lru_cache(maxsize=4096)
def chi2_critical(alpha: float, df: float, ncp: float = 0.0, lower_tail: bool = False) -> float:
    """Critical value of a (possibly non-central) chi-squared statistic.

    A non-zero *ncp* gives the threshold for tests whose null hypothesis is
    itself non-central, e.g. the RMSEA close-fit test.
    """
    return critical_value(
        lambda x: ncx2_cdf(x, df, ncp),
        alpha,
        1,
        *POSITIVE_BRACKET,
        lower_tail=lower_tail,
        floor=0.0,
    )


@lru_cache(maxsize=1024)
def z_critical(alpha: float, tails: int = 2) -> float:
    """Upper critical value of the standard normal."""
    if tails not in (1, 2):
        raise ValueError(f"tails must be 1 or 2, got {tails}")
    return norm_ppf(1.0 - alpha / tails)
