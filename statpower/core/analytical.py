"""
Analytical power engine.

One ``PowerStrategy`` per ``TestType``. Each strategy derives the
non-centrality parameter and degrees of freedom of its test statistic and
returns the rejection probability under the alternative. ``compute_power``
is the public entry point: it validates the common inputs, dispatches to
the strategy, and bounds and rounds the result.

Conventions (one per family):
    - ANOVA:       lambda = N * f^2, df = (k - 1, N - k)
    - Regression:  lambda = (N - p - 1) * f^2, df = (p, N - p - 1)
    - t-tests:     delta = d * sqrt(effective n)
    - z-tests:     normal approximation with shifted mean
"""

import math
import warnings
from functools import lru_cache
from typing import Dict, Optional, Tuple

import numpy as np
from scipy.special import expit, logit

from ..stats.critical import chi2_critical, f_critical, t_critical, z_critical
from ..stats.distributions import norm_cdf
from ..stats.noncentral import nct_cdf, ncf_cdf, ncx2_cdf
from .parameters import DesignWarning, TestParameters, TestType

MIN_POWER = 0.001
MAX_POWER = 0.999
ROUND_DECIMALS = 3
EFFECT_SIZE_BRACKET = (0.01, 3.0)
CORRELATION_BRACKET = (0.01, 0.999)

__all__ = ["compute_power", "evaluate_power", "get_strategy", "PowerStrategy", "STRATEGIES"]


class _InvalidDesign(Exception):
    """Design parameters outside the family's domain (reported as zero power)."""


def _require(condition: bool, message: str):
    if not condition:
        raise _InvalidDesign(message)


def _require_df(df: float, name: str = "degrees of freedom"):
    _require(math.isfinite(df) and df > 0, f"{name} must be positive, got {df:g}")


# ============================================================================
# Tail probabilities
# ============================================================================


def t_test_power(ncp: float, df: float, alpha: float, tails: int) -> float:
    """Power of a t-test with non-centrality *ncp*."""
    _require_df(df)
    crit = t_critical(alpha, df, tails)
    power = 1.0 - nct_cdf(crit, df, ncp)
    if tails == 2:
        power += nct_cdf(-crit, df, ncp)
    return power


def f_test_power(ncp: float, dfn: float, dfd: float, alpha: float) -> float:
    """Power of a right-tailed F-test."""
    _require_df(dfn, "numerator degrees of freedom")
    _require_df(dfd, "denominator degrees of freedom")
    crit = f_critical(alpha, dfn, dfd)
    return 1.0 - ncf_cdf(crit, dfn, dfd, ncp)


def chi2_test_power(ncp: float, df: float, alpha: float) -> float:
    """Power of a right-tailed chi-squared test."""
    _require_df(df)
    crit = chi2_critical(alpha, df)
    return 1.0 - ncx2_cdf(crit, df, ncp)


def z_test_power(mean: float, alpha: float, tails: int) -> float:
    """Power of a z-test whose statistic is ``N(mean, 1)`` under H1."""
    _require(math.isfinite(mean), "test statistic mean is not finite")
    crit = z_critical(alpha, tails)
    power = norm_cdf(mean - crit)
    if tails == 2:
        power += norm_cdf(-mean - crit)
    return power


def _rao_degrees_of_freedom(p: int, q: int, m: float) -> Tuple[float, float]:
    """Rao's F approximation degrees of freedom for a p x q multivariate test."""
    u = p * q
    denominator = p * p + q * q - 5
    s = math.sqrt((p * p * q * q - 4) / denominator) if denominator > 0 else 1.0
    v = m * s + 1.0 - u / 2.0
    return u, v


# ============================================================================
# Strategies
# ============================================================================


class PowerStrategy:
    """Maps sample size, effect size and alpha to power for one test family."""

    def power(self, params: TestParameters, n: float, es: float, alpha: float) -> float:
        raise NotImplementedError

    def effect_bracket(self, params: TestParameters) -> Tuple[float, float]:
        """Search interval used when solving for the effect size."""
        return EFFECT_SIZE_BRACKET


class OneSampleTTest(PowerStrategy):
    def power(self, params, n, es, alpha):
        return t_test_power(es * math.sqrt(n), n - 1, alpha, params.tails)


class TwoSampleTTest(PowerStrategy):
    """Two independent groups of N/2."""

    def power(self, params, n, es, alpha):
        return t_test_power(es * math.sqrt(n / 4.0), n - 2, alpha, params.tails)


class PairedTTest(PowerStrategy):
    """Paired differences; d is converted to d_z with the pre/post correlation."""

    def power(self, params, n, es, alpha):
        rho = params.correlation
        _require(-1.0 < rho < 1.0, f"correlation must be in (-1, 1), got {rho}")
        dz = es / math.sqrt(2.0 * (1.0 - rho))
        return t_test_power(dz * math.sqrt(n), n - 1, alpha, params.tails)


class OneWayAnova(PowerStrategy):
    def power(self, params, n, es, alpha):
        k = params.design_value("groups")
        _require(k >= 2, f"groups must be at least 2, got {k}")
        return f_test_power(n * es * es, k - 1, n - k, alpha)


class TwoWayAnova(PowerStrategy):
    """Main effect of factor A in a groups x observations design."""

    def power(self, params, n, es, alpha):
        k = params.design_value("groups")
        m = params.design_value("observations")
        _require(k >= 2 and m >= 1, f"invalid factor levels ({k} x {m})")
        return f_test_power(n * es * es, k - 1, n - k * m, alpha)


class CorrelationTest(PowerStrategy):
    """H0: rho = 0, via the t statistic r * sqrt(N-2) / sqrt(1-r^2)."""

    def power(self, params, n, es, alpha):
        _require(es < 1.0, f"correlation must be below 1 in magnitude, got {es}")
        df = n - 2
        _require_df(df)
        ncp = es * math.sqrt(df) / math.sqrt(1.0 - es * es)
        return t_test_power(ncp, df, alpha, params.tails)

    def effect_bracket(self, params):
        return CORRELATION_BRACKET


class CorrelationDifference(PowerStrategy):
    """Two independent correlations (r vs 0), groups of N/2, Fisher z."""

    def power(self, params, n, es, alpha):
        _require(es < 1.0, f"correlation must be below 1 in magnitude, got {es}")
        per_group = n / 2.0
        _require(per_group > 3, f"need more than 3 observations per group, got {per_group:g}")
        se = math.sqrt(2.0 / (per_group - 3.0))
        return z_test_power(math.atanh(es) / se, alpha, params.tails)

    def effect_bracket(self, params):
        return CORRELATION_BRACKET


class ChiSquareGoodnessOfFit(PowerStrategy):
    def power(self, params, n, es, alpha):
        k = params.design_value("groups")
        return chi2_test_power(n * es * es, k - 1, alpha)


class ChiSquareContingency(PowerStrategy):
    def power(self, params, n, es, alpha):
        rows = params.design_value("groups")
        cols = params.design_value("observations")
        return chi2_test_power(n * es * es, (rows - 1) * (cols - 1), alpha)


class ProportionTest(PowerStrategy):
    """One-sample proportion, Cohen's h."""

    def power(self, params, n, es, alpha):
        return z_test_power(es * math.sqrt(n), alpha, params.tails)


class ProportionDifference(PowerStrategy):
    """Two independent proportions, Cohen's h, groups of N/2."""

    def power(self, params, n, es, alpha):
        return z_test_power(es * math.sqrt(n / 4.0), alpha, params.tails)


class SignTest(PowerStrategy):
    """Sign test for a normal shift d: P(+) = Phi(d), tested against 1/2."""

    def power(self, params, n, es, alpha):
        p_plus = norm_cdf(es)
        h = 2.0 * math.asin(math.sqrt(p_plus)) - math.pi / 2.0
        return z_test_power(h * math.sqrt(n), alpha, params.tails)


class RegressionFTest(PowerStrategy):
    """Overall F-test of p predictors, f^2 effect size."""

    def power(self, params, n, es, alpha):
        p = params.design_value("predictors")
        _require(p >= 1, f"predictors must be at least 1, got {p}")
        df_error = n - p - 1
        _require_df(df_error, "denominator degrees of freedom")
        return f_test_power(df_error * es, p, df_error, alpha)


class SetCorrelation(PowerStrategy):
    """Cohen's set correlation between p predictors and q responses."""

    def power(self, params, n, es, alpha):
        p = params.design_value("predictors")
        q = params.design_value("response_variables")
        _require(p >= 1 and q >= 1, f"invalid set sizes ({p}, {q})")
        u, v = _rao_degrees_of_freedom(p, q, n - (p + q + 3) / 2.0)
        _require_df(v, "denominator degrees of freedom")
        return f_test_power(es * (u + v + 1.0), u, v, alpha)


class Manova(PowerStrategy):
    """One-way MANOVA, Wilks' lambda via Rao's F approximation."""

    def power(self, params, n, es, alpha):
        g = params.design_value("groups")
        q = params.design_value("response_variables")
        _require(g >= 2 and q >= 1, f"invalid design ({g} groups, {q} responses)")
        u, v = _rao_degrees_of_freedom(q, g - 1, n - 1 - (q + g) / 2.0)
        _require_df(v, "denominator degrees of freedom")
        return f_test_power(n * es * es, u, v, alpha)


class StructuralEquationModel(PowerStrategy):
    """RMSEA test of fit (MacCallum, Browne & Sugawara 1996).

    The null RMSEA defaults to 0 (test of exact fit). With an alternative
    below the null, the test is the not-close-fit (left-tailed) version.
    """

    def power(self, params, n, es, alpha):
        df = params.design_value("degrees_of_freedom")
        eps0 = params.null_rmsea
        _require_df(df)
        _require(eps0 >= 0, f"null_rmsea must be non-negative, got {eps0}")
        _require(n > 1, f"sample size must exceed 1, got {n:g}")

        ncp0 = (n - 1) * df * eps0 * eps0
        ncp1 = (n - 1) * df * es * es
        if es >= eps0:
            crit = chi2_critical(alpha, df, ncp0)
            return 1.0 - ncx2_cdf(crit, df, ncp1)
        crit = chi2_critical(alpha, df, ncp0, lower_tail=True)
        return ncx2_cdf(crit, df, ncp1)

    def effect_bracket(self, params):
        return (max(EFFECT_SIZE_BRACKET[0], params.null_rmsea + 0.001), 1.0)


@lru_cache(maxsize=256)
def mmrm_variance_factor(time_points: int, within_correlation: float, dropout_rate: float) -> float:
    """Variance inflation of the final-visit mean under monotone dropout.

    Lu, Luo & Chen (2008): with compound-symmetry covariance and retention
    ``(1 - dropout)^(t-1)`` at visit t, the expected per-subject information
    is a mixture of inverse leading sub-covariances over dropout patterns;
    the factor is the last diagonal element of its inverse (1 without dropout).
    """
    t = time_points
    sigma = (1.0 - within_correlation) * np.eye(t) + within_correlation * np.ones((t, t))
    retention = (1.0 - dropout_rate) ** np.arange(t)
    pattern_share = np.append(retention[:-1] - retention[1:], retention[-1])

    information = np.zeros((t, t))
    for k in range(1, t + 1):
        share = pattern_share[k - 1]
        if share > 0:
            information[:k, :k] += share * np.linalg.inv(sigma[:k, :k])

    return float(np.linalg.inv(information)[t - 1, t - 1])


class RepeatedMeasures(PowerStrategy):
    """MMRM treatment difference at the final visit, two arms of N/2."""

    def power(self, params, n, es, alpha):
        t = int(params.time_points)
        rho = params.within_correlation
        dropout = params.dropout_rate
        _require(t >= 1, f"time_points must be at least 1, got {t}")
        _require(0.0 <= dropout < 1.0, f"dropout_rate must be in [0, 1), got {dropout}")
        lower = -1.0 / (t - 1) if t > 1 else -1.0
        _require(lower < rho < 1.0, f"within_correlation must be in ({lower:g}, 1), got {rho}")

        phi = mmrm_variance_factor(t, rho, dropout)
        return t_test_power(es * math.sqrt(n / (4.0 * phi)), n - 2, alpha, params.tails)


class LogisticRegression(PowerStrategy):
    """Wald test of one predictor's log odds ratio (Hsieh 1989, 1998)."""

    def power(self, params, n, es, alpha):
        p0 = params.baseline_prob
        _require(0.0 < p0 < 1.0, f"baseline_prob must be in (0, 1), got {p0}")

        if params.predictor_type == "continuous":
            variance = params.predictor_variance
            _require(variance > 0, f"predictor_variance must be positive, got {variance}")
            mean = es * math.sqrt(variance) * math.sqrt(n * p0 * (1.0 - p0))
        elif params.predictor_type == "binary":
            b = params.predictor_proportion
            _require(0.0 < b < 1.0, f"predictor_proportion must be in (0, 1), got {b}")
            p1 = float(expit(logit(p0) + es))
            pooled = (1.0 - b) * p0 + b * p1
            se = math.sqrt(pooled * (1.0 - pooled) * (1.0 / ((1.0 - b) * n) + 1.0 / (b * n)))
            mean = abs(p1 - p0) / se
        else:
            raise _InvalidDesign(f"predictor_type must be 'continuous' or 'binary', got {params.predictor_type!r}")

        return z_test_power(mean, alpha, params.tails)


STRATEGIES: Dict[TestType, PowerStrategy] = {
    TestType.ONE_SAMPLE_T: OneSampleTTest(),
    TestType.TWO_SAMPLE_T: TwoSampleTTest(),
    TestType.PAIRED_T: PairedTTest(),
    TestType.ANOVA: OneWayAnova(),
    TestType.ANOVA_TWO_WAY: TwoWayAnova(),
    TestType.CORRELATION: CorrelationTest(),
    TestType.CORRELATION_DIFFERENCE: CorrelationDifference(),
    TestType.CHI_SQUARE_GOF: ChiSquareGoodnessOfFit(),
    TestType.CHI_SQUARE_CONTINGENCY: ChiSquareContingency(),
    TestType.PROPORTION_TEST: ProportionTest(),
    TestType.PROPORTION_DIFFERENCE: ProportionDifference(),
    TestType.SIGN_TEST: SignTest(),
    TestType.LINEAR_REGRESSION: RegressionFTest(),
    TestType.MULTIPLE_REGRESSION: RegressionFTest(),
    TestType.SET_CORRELATION: SetCorrelation(),
    TestType.MULTIVARIATE: Manova(),
    TestType.SEM: StructuralEquationModel(),
    TestType.MMRM: RepeatedMeasures(),
    TestType.LOGISTIC_REGRESSION: LogisticRegression(),
}

_missing = set(TestType) - set(STRATEGIES)
if _missing:
    raise ImportError(f"No power strategy registered for: {sorted(t.value for t in _missing)}")


def get_strategy(test) -> PowerStrategy:
    """Strategy for *test* (``TestType`` or its string value)."""
    return STRATEGIES[TestType.parse(test)]


# ============================================================================
# Public entry points
# ============================================================================


def _finite(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def _bound(raw: float) -> float:
    if math.isnan(raw):
        return MIN_POWER
    return min(MAX_POWER, max(MIN_POWER, raw))


def evaluate_power(params: TestParameters) -> Optional[float]:
    """Power bounded to ``[0.001, 0.999]`` but not rounded.

    Used as the objective of the inverse solvers. See :func:`compute_power`.
    """
    n = _finite(params.sample_size)
    es = _finite(params.effect_size)
    alpha = _finite(params.significance_level)
    if n is None or es is None or alpha is None:
        return None
    if not 0.0 < alpha < 1.0 or n <= 0:
        return None

    strategy = STRATEGIES[params.test]
    try:
        raw = strategy.power(params, n, abs(es), alpha)
    except _InvalidDesign as exc:
        warnings.warn(f"{params.test.value}: {exc}. Power set to 0.", DesignWarning, stacklevel=3)
        raw = 0.0
    except (ArithmeticError, ValueError, np.linalg.LinAlgError) as exc:
        warnings.warn(f"{params.test.value}: numerical failure ({exc}). Power set to 0.", DesignWarning, stacklevel=3)
        raw = 0.0
    return _bound(raw)


def compute_power(params: TestParameters) -> Optional[float]:
    """Statistical power for a fully specified design.

    Args:
        params: Record with ``sample_size``, ``effect_size`` and
            ``significance_level`` set. ``power`` is ignored.

    Returns:
        Power in ``[0.001, 0.999]`` rounded to 3 decimals, or ``None`` when
        a required input is missing, non-finite, or out of domain
        (alpha outside (0, 1), non-positive sample size).

    Example:
        >>> compute_power(TestParameters("two-sample-t", sample_size=128, effect_size=0.5))  # about 0.80
    """
    power = evaluate_power(params)
    if power is None:
        return None
    return round(power, ROUND_DECIMALS)
