"""
Non-central t, F and chi-squared CDFs.

All three use the same Poisson-mixture expansion: the non-central CDF is a
Poisson-weighted sum of central incomplete-beta/gamma terms at shifted
shape parameters. Summation starts at the Poisson mode and walks outward in
both directions, so large non-centralities do not underflow the leading
weights.

Truncation per direction: stop once the weight drops below
``WEIGHT_TOLERANCE`` after at least ``MIN_TERMS`` terms, or at the term cap
``TERM_CAP + 10 * sqrt(lambda)``.
"""

import math
from typing import Callable

from .distributions import chi2_cdf, f_cdf, norm_cdf, t_cdf
from .special import incomplete_beta, incomplete_gamma, log_factorial, log_gamma

NCP_EPSILON = 1e-10
WEIGHT_TOLERANCE = 1e-12
MIN_TERMS = 10
TERM_CAP = 200

__all__ = ["poisson_log_weight", "nct_cdf", "ncf_cdf", "ncx2_cdf"]


def poisson_log_weight(j: int, lam: float) -> float:
    """``log P(J = j)`` for ``J ~ Poisson(lam)``, via log-factorial."""
    return -lam + j * math.log(lam) - log_factorial(j)


def _poisson_mixture(lam: float, term: Callable[[int], float]) -> float:
    """Return ``sum_j Poisson(j; lam) * term(j)``, truncated."""
    mode = int(math.floor(lam))
    cap = TERM_CAP + int(10 * math.sqrt(lam))
    total = 0.0

    for k in range(cap):
        j = mode + k
        weight = math.exp(poisson_log_weight(j, lam))
        total += weight * term(j)
        if k >= MIN_TERMS and weight < WEIGHT_TOLERANCE:
            break

    for k in range(1, min(mode, cap) + 1):
        j = mode - k
        weight = math.exp(poisson_log_weight(j, lam))
        total += weight * term(j)
        if k >= MIN_TERMS and weight < WEIGHT_TOLERANCE:
            break

    return total


def _check_ncp(ncp: float):
    if ncp < -NCP_EPSILON:
        raise ValueError(f"non-centrality must be non-negative, got {ncp}")


def ncx2_cdf(x: float, df: float, ncp: float) -> float:
    """Non-central chi-squared CDF.

    ``P(X <= x) = sum_j Pois(j; ncp/2) * P(df/2 + j, x/2)``.
    """
    _check_ncp(ncp)
    if abs(ncp) < NCP_EPSILON:
        return chi2_cdf(x, df)
    if x <= 0.0:
        return 0.0
    if math.isinf(x):
        return 1.0

    half_x = 0.5 * x
    half_df = 0.5 * df
    value = _poisson_mixture(0.5 * ncp, lambda j: incomplete_gamma(half_df + j, half_x))
    return min(1.0, max(0.0, value))


def ncf_cdf(f: float, dfn: float, dfd: float, ncp: float) -> float:
    """Non-central F CDF.

    ``P(F <= f) = sum_j Pois(j; ncp/2) * I_y(dfn/2 + j, dfd/2)`` with
    ``y = dfn*f / (dfn*f + dfd)`` held fixed across terms.
    """
    _check_ncp(ncp)
    if abs(ncp) < NCP_EPSILON:
        return f_cdf(f, dfn, dfd)
    if f <= 0.0:
        return 0.0
    if math.isinf(f):
        return 1.0

    y = dfn * f / (dfn * f + dfd)
    half_dfn = 0.5 * dfn
    half_dfd = 0.5 * dfd
    value = _poisson_mixture(0.5 * ncp, lambda j: incomplete_beta(y, half_dfn + j, half_dfd))
    return min(1.0, max(0.0, value))


def _nct_upper_half(t: float, df: float, delta: float) -> float:
    """Non-central t CDF for ``t >= 0``.

    ``F(t) = Phi(-delta) + 1/2 * sum_j [P_j I_y(j+1/2, df/2) + Q_j I_y(j+1, df/2)]``
    where ``P_j`` is the Poisson(delta^2/2) weight and ``Q_j`` its
    half-integer companion ``P_j * delta/sqrt(2) * Gamma(j+1)/Gamma(j+3/2)``.
    """
    base = norm_cdf(-delta)
    if t == 0.0:
        return base

    y = t * t / (t * t + df)
    half_df = 0.5 * df
    scale = delta / math.sqrt(2.0)

    def term(j: int) -> float:
        companion = scale * math.exp(log_gamma(j + 1.0) - log_gamma(j + 1.5))
        return incomplete_beta(y, j + 0.5, half_df) + companion * incomplete_beta(y, j + 1.0, half_df)

    return base + 0.5 * _poisson_mixture(0.5 * delta * delta, term)


def nct_cdf(t: float, df: float, ncp: float) -> float:
    """Non-central Student t CDF with non-centrality *ncp* (delta).

    Negative *t* uses the reflection ``F(t; df, d) = 1 - F(-t; df, -d)``.
    """
    if abs(ncp) < NCP_EPSILON:
        return t_cdf(t, df)
    if math.isinf(df):
        return norm_cdf(t - ncp)
    if math.isinf(t):
        return 1.0 if t > 0 else 0.0

    if t >= 0.0:
        value = _nct_upper_half(t, df, ncp)
    else:
        value = 1.0 - _nct_upper_half(-t, df, -ncp)
    return min(1.0, max(0.0, value))
