"""
Tests for the inverse solvers and power curves.
"""

import warnings

import pytest

from statpower.core.analytical import compute_power
from statpower.core.parameters import TestParameters
from statpower.core.solvers import (
    POWER_TOLERANCE,
    _bisect,
    compute_effect_size,
    compute_sample_size,
    compute_significance_level,
    power_curve,
    solve,
)
from statpower.stats.special import ConvergenceWarning


class TestComputeSampleSize:
    """Integer bisection over [4, 10000]."""

    def test_two_sample_textbook(self):
        n = compute_sample_size(TestParameters("two-sample-t", effect_size=0.5, power=0.8))
        assert 120 <= n <= 136
        assert isinstance(n, int)

    def test_result_reaches_target(self):
        params = TestParameters("anova", effect_size=0.25, groups=4, power=0.8)
        n = compute_sample_size(params)
        assert compute_power(params.with_values(sample_size=n)) >= 0.795

    def test_easy_target_returns_lower_bound(self):
        assert compute_sample_size(TestParameters("one-sample-t", effect_size=3.0, power=0.2)) == 4

    def test_unreachable_target_warns(self):
        with pytest.warns(ConvergenceWarning, match="not reached"):
            n = compute_sample_size(TestParameters("two-sample-t", effect_size=0.01, power=0.99))
        assert n == 10000

    @pytest.mark.parametrize("target", [None, 0.0, 1.0, 1.5, float("nan")])
    def test_invalid_target(self, target):
        assert compute_sample_size(TestParameters("two-sample-t", effect_size=0.5, power=target)) is None

    def test_missing_effect_size(self):
        assert compute_sample_size(TestParameters("two-sample-t", power=0.8)) is None

    def test_larger_effect_needs_fewer(self):
        small = compute_sample_size(TestParameters("correlation", effect_size=0.2, power=0.8))
        large = compute_sample_size(TestParameters("correlation", effect_size=0.5, power=0.8))
        assert large < small


class TestBisect:
    """Bracketed search on a linear power function."""

    def test_early_exit_may_sit_below_target(self):
        # 50, 75, 87.5, 81.25, 78.125, then 79.6875 lands within tolerance
        value = _bisect(lambda x: x / 100.0, 0.8, (0.0, 100.0), tolerance=1e-6)
        assert value == pytest.approx(79.6875)
        assert 0.8 - POWER_TOLERANCE < value / 100.0 < 0.8

    def test_lower_bound_already_reaches_target(self):
        assert _bisect(lambda x: 0.9, 0.8, (4, 100), tolerance=1, integer=True) == 4

    def test_missing_power_returns_none(self):
        assert _bisect(lambda x: None, 0.8, (4, 100), tolerance=1) is None


class TestComputeEffectSize:
    """Continuous bisection over the family's effect bracket."""

    def test_two_sample(self):
        d = compute_effect_size(TestParameters("two-sample-t", sample_size=128, power=0.8))
        assert d == pytest.approx(0.5, abs=0.02)

    def test_rounded(self):
        d = compute_effect_size(TestParameters("anova", sample_size=100, power=0.8))
        assert d == round(d, 3)

    def test_correlation_stays_below_one(self):
        r = compute_effect_size(TestParameters("correlation", sample_size=20, power=0.8))
        assert 0 < r < 1

    def test_sem_above_null_rmsea(self):
        rmsea = compute_effect_size(TestParameters("sem", sample_size=300, power=0.8, degrees_of_freedom=30, null_rmsea=0.05))
        assert rmsea > 0.05

    def test_missing_sample_size(self):
        assert compute_effect_size(TestParameters("two-sample-t", power=0.8)) is None


class TestComputeSignificanceLevel:
    """Alpha search over [0.001, 0.5]."""

    def test_two_sample(self):
        alpha = compute_significance_level(
            TestParameters("two-sample-t", sample_size=128, effect_size=0.5, power=0.8, significance_level=None)
        )
        assert alpha == pytest.approx(0.05, abs=0.01)

    def test_rounded_to_four_decimals(self):
        alpha = compute_significance_level(
            TestParameters("anova", sample_size=150, effect_size=0.25, power=0.8, significance_level=None)
        )
        assert alpha == round(alpha, 4)
        assert 0.001 <= alpha <= 0.5

    def test_unreachable(self):
        with pytest.warns(ConvergenceWarning):
            alpha = compute_significance_level(
                TestParameters("two-sample-t", sample_size=10, effect_size=0.1, power=0.95, significance_level=None)
            )
        assert alpha == 0.5


class TestSolve:
    """Dispatch on the single unresolved field."""

    def test_solves_power(self, two_sample):
        solved = solve(two_sample)
        assert solved.power == compute_power(two_sample)
        assert solved.sample_size == 128

    def test_solves_sample_size(self):
        solved = solve(TestParameters("two-sample-t", effect_size=0.5, power=0.8))
        assert 120 <= solved.sample_size <= 136

    def test_input_not_modified(self):
        params = TestParameters("two-sample-t", effect_size=0.5, power=0.8)
        solve(params)
        assert params.sample_size is None

    def test_several_unresolved_warns(self):
        params = TestParameters("two-sample-t", effect_size=0.5)
        with pytest.warns(UserWarning, match="one quantity"):
            assert solve(params) is params

    def test_nothing_unresolved(self):
        params = TestParameters("two-sample-t", sample_size=100, effect_size=0.5, power=0.7)
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert solve(params) is params

    def test_unsolvable_stays_none(self):
        solved = solve(TestParameters("two-sample-t", effect_size=0.5, power=0.8, significance_level=0.0))
        assert solved.sample_size is None


class TestPowerCurve:
    """Power over a list of sample sizes."""

    def test_columns_and_order(self, two_sample):
        frame = power_curve(two_sample, [20, 60, 128, 200])
        assert list(frame.columns) == ["sample_size", "power"]
        assert list(frame["sample_size"]) == [20, 60, 128, 200]

    def test_non_decreasing(self, two_sample):
        powers = list(power_curve(two_sample, range(10, 300, 20))["power"])
        assert powers == sorted(powers)

    def test_design_warnings_silenced(self):
        params = TestParameters("multiple-regression", effect_size=0.15, predictors=3)
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            frame = power_curve(params, [4, 50])
        assert frame["power"].iloc[0] == 0.001
