"""
Tests for critical-value search.
"""

import pytest
from scipy import stats

from statpower.stats.critical import (
    chi2_critical,
    critical_value,
    f_critical,
    quantile,
    t_critical,
    z_critical,
)
from statpower.stats.distributions import norm_cdf
from tests.config import CRITICAL_TOLERANCE


class TestQuantile:
    """Generic bisection quantile."""

    def test_normal_median(self):
        assert quantile(norm_cdf, 0.5, -1.0, 1.0) == pytest.approx(0.0, abs=1e-7)

    def test_bracket_expanded_upwards(self):
        # 1.96 lies outside the initial [0, 1] bracket
        assert quantile(norm_cdf, 0.975, 0.0, 1.0) == pytest.approx(1.959964, abs=1e-5)

    def test_bracket_expanded_downwards(self):
        assert quantile(norm_cdf, 0.025, 0.0, 1.0) == pytest.approx(-1.959964, abs=1e-5)


class TestCriticalValue:
    """Tail handling of critical_value."""

    def test_two_tails_split_alpha(self):
        one = critical_value(norm_cdf, 0.05, tails=1, lower=-10, upper=10)
        two = critical_value(norm_cdf, 0.05, tails=2, lower=-10, upper=10)
        assert one == pytest.approx(1.644854, abs=1e-5)
        assert two == pytest.approx(1.959964, abs=1e-5)

    def test_lower_tail(self):
        value = critical_value(norm_cdf, 0.05, tails=1, lower=-10, upper=10, lower_tail=True)
        assert value == pytest.approx(-1.644854, abs=1e-5)

    def test_invalid_tails(self):
        with pytest.raises(ValueError, match="tails must be 1 or 2"):
            critical_value(norm_cdf, 0.05, tails=3)


class TestDistributionCriticalValues:
    """Memoized wrappers against scipy quantiles."""

    @pytest.mark.parametrize("alpha, df, tails", [(0.05, 10, 2), (0.05, 126, 2), (0.01, 5, 1), (0.1, 2, 2)])
    def test_t(self, alpha, df, tails):
        expected = stats.t.ppf(1 - alpha / tails, df)
        assert t_critical(alpha, df, tails) == pytest.approx(expected, abs=CRITICAL_TOLERANCE)

    @pytest.mark.parametrize("alpha, dfn, dfd", [(0.05, 3, 176), (0.05, 1, 10), (0.01, 5, 40), (0.05, 20, 1000)])
    def test_f(self, alpha, dfn, dfd):
        expected = stats.f.ppf(1 - alpha, dfn, dfd)
        assert f_critical(alpha, dfn, dfd) == pytest.approx(expected, abs=CRITICAL_TOLERANCE)

    @pytest.mark.parametrize("alpha, df", [(0.05, 1), (0.05, 4), (0.01, 30), (0.05, 150)])
    def test_chi2(self, alpha, df):
        expected = stats.chi2.ppf(1 - alpha, df)
        assert chi2_critical(alpha, df) == pytest.approx(expected, abs=CRITICAL_TOLERANCE)

    def test_noncentral_chi2_null(self):
        expected = stats.ncx2.ppf(0.95, 20, 8.0)
        assert chi2_critical(0.05, 20, 8.0) == pytest.approx(expected, abs=1e-3)

    def test_chi2_lower_tail(self):
        expected = stats.chi2.ppf(0.05, 10)
        assert chi2_critical(0.05, 10, lower_tail=True) == pytest.approx(expected, abs=CRITICAL_TOLERANCE)

    def test_z(self):
        assert z_critical(0.05) == pytest.approx(1.959964, abs=1e-6)
        assert z_critical(0.05, 1) == pytest.approx(1.644854, abs=1e-6)

    def test_z_invalid_tails(self):
        with pytest.raises(ValueError):
            z_critical(0.05, 0)
