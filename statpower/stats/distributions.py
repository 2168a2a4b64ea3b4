"""Central distribution functions for StatPower.

Normal CDF and quantile, plus Student t, Fisher F and chi-squared CDFs
built on the incomplete beta/gamma functions in :mod:`statpower.stats.special`.

Usage:
    from statpower.stats.distributions import norm_ppf, t_cdf
"""

import math

from .special import incomplete_beta, incomplete_gamma

SQRT2 = math.sqrt(2.0)
SQRT_2PI = math.sqrt(2.0 * math.pi)
NORM_PPF_LIMIT = 8.0

# Acklam's rational approximation for the normal quantile
_ACKLAM_A = (
    -3.969683028665376e01,
    2.209460984245205e02,
    -2.759285104469687e02,
    1.383577518672690e02,
    -3.066479806614716e01,
    2.506628277459239e00,
)
_ACKLAM_B = (
    -5.447609879822406e01,
    1.615858368580409e02,
    -1.556989798598866e02,
    6.680131188771972e01,
    -1.328068155288572e01,
)
_ACKLAM_C = (
    -7.784894002430293e-03,
    -3.223964580411365e-01,
    -2.400758277161838e00,
    -2.549732539343734e00,
    4.374664141464968e00,
    2.938163982698783e00,
)
_ACKLAM_D = (
    7.784695709041462e-03,
    3.224671290700398e-01,
    2.445134137142996e00,
    3.754408661907416e00,
)
_ACKLAM_P_LOW = 0.02425
_ACKLAM_P_HIGH = 1.0 - _ACKLAM_P_LOW


def _clamp_probability(value: float) -> float:
    return min(1.0, max(0.0, value))


def _check_df(df: float, name: str = "df"):
    if not df > 0:
        raise ValueError(f"{name} must be positive, got {df}")


def norm_cdf(z: float) -> float:
    """Standard normal CDF."""
    return _clamp_probability(0.5 * math.erfc(-z / SQRT2))


def _acklam_tail(q: float) -> float:
    c, d = _ACKLAM_C, _ACKLAM_D
    return (((((c[0] * q + c[1]) * q + c[2]) * q + c[3]) * q + c[4]) * q + c[5]) / (
        (((d[0] * q + d[1]) * q + d[2]) * q + d[3]) * q + 1.0
    )


def norm_ppf(p: float) -> float:
    """Standard normal quantile function (inverse CDF).

    Acklam's rational approximation refined with one Halley step against
    :func:`norm_cdf`. Results are clamped to ``[-8, 8]``; ``p <= 0`` and
    ``p >= 1`` map to the clamp limits.
    """
    if p <= 0.0:
        return -NORM_PPF_LIMIT
    if p >= 1.0:
        return NORM_PPF_LIMIT

    if p < _ACKLAM_P_LOW:
        x = _acklam_tail(math.sqrt(-2.0 * math.log(p)))
    elif p <= _ACKLAM_P_HIGH:
        a, b = _ACKLAM_A, _ACKLAM_B
        q = p - 0.5
        r = q * q
        x = (
            (((((a[0] * r + a[1]) * r + a[2]) * r + a[3]) * r + a[4]) * r + a[5])
            * q
            / (((((b[0] * r + b[1]) * r + b[2]) * r + b[3]) * r + b[4]) * r + 1.0)
        )
    else:
        x = -_acklam_tail(math.sqrt(-2.0 * math.log1p(-p)))

    # Halley refinement
    if abs(x) < NORM_PPF_LIMIT:
        e = 0.5 * math.erfc(-x / SQRT2) - p
        u = e * SQRT_2PI * math.exp(0.5 * x * x)
        x = x - u / (1.0 + 0.5 * x * u)

    return max(-NORM_PPF_LIMIT, min(NORM_PPF_LIMIT, x))


def t_cdf(t: float, df: float) -> float:
    """Student's t CDF.

    Uses ``P(|T| > |t|) = I_{df/(df+t^2)}(df/2, 1/2)``. An infinite *df*
    reduces to the standard normal.
    """
    _check_df(df)
    if math.isinf(df):
        return norm_cdf(t)
    if math.isinf(t):
        return 1.0 if t > 0 else 0.0

    x = df / (df + t * t)
    tail = 0.5 * incomplete_beta(x, 0.5 * df, 0.5)
    return _clamp_probability(1.0 - tail if t > 0 else tail)


def f_cdf(f: float, dfn: float, dfd: float) -> float:
    """Fisher F CDF with numerator *dfn* and denominator *dfd* degrees of freedom."""
    _check_df(dfn, "dfn")
    _check_df(dfd, "dfd")
    if f <= 0.0:
        return 0.0
    if math.isinf(f):
        return 1.0

    x = dfn * f / (dfn * f + dfd)
    return _clamp_probability(incomplete_beta(x, 0.5 * dfn, 0.5 * dfd))


def chi2_cdf(x: float, df: float) -> float:
    """Chi-squared CDF."""
    _check_df(df)
    if x <= 0.0:
        return 0.0
    return _clamp_probability(incomplete_gamma(0.5 * df, 0.5 * x))
