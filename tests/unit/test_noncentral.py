"""
Tests for non-central t, F and chi-squared CDFs.
"""

import math

import pytest
from scipy import stats

from statpower.stats.distributions import chi2_cdf, f_cdf, t_cdf
from statpower.stats.noncentral import nct_cdf, ncf_cdf, ncx2_cdf, poisson_log_weight
from tests.config import NONCENTRAL_TOLERANCE


class TestPoissonWeights:
    """Poisson log-weights used by the mixtures."""

    @pytest.mark.parametrize("j, lam", [(0, 0.5), (3, 2.0), (40, 35.5)])
    def test_matches_scipy(self, j, lam):
        assert poisson_log_weight(j, lam) == pytest.approx(stats.poisson.logpmf(j, lam), abs=1e-9)


class TestZeroNoncentrality:
    """ncp ≈ 0 reduces to the central distribution."""

    def test_t(self):
        assert nct_cdf(1.7, 12, 0.0) == t_cdf(1.7, 12)

    def test_f(self):
        assert ncf_cdf(2.1, 3, 40, 0.0) == f_cdf(2.1, 3, 40)

    def test_chi2(self):
        assert ncx2_cdf(4.2, 3, 1e-12) == chi2_cdf(4.2, 3)


class TestNoncentralChiSquare:
    """ncx2 against scipy."""

    @pytest.mark.parametrize(
        "x, df, ncp",
        [(1.0, 1, 0.5), (3.84, 1, 7.85), (9.49, 4, 12.0), (20.0, 10, 5.0), (150.0, 120, 60.0)],
    )
    def test_matches_scipy(self, x, df, ncp):
        assert ncx2_cdf(x, df, ncp) == pytest.approx(stats.ncx2.cdf(x, df, ncp), abs=NONCENTRAL_TOLERANCE)

    def test_negative_ncp_rejected(self):
        with pytest.raises(ValueError, match="non-centrality"):
            ncx2_cdf(1.0, 2, -1.0)

    def test_non_positive_x(self):
        assert ncx2_cdf(0.0, 2, 3.0) == 0.0


class TestNoncentralF:
    """ncf against scipy."""

    @pytest.mark.parametrize(
        "f, dfn, dfd, ncp",
        [(2.66, 3, 176, 11.25), (3.12, 2, 74, 11.1), (1.5, 5, 30, 4.0), (4.0, 1, 126, 8.0), (0.8, 6, 400, 20.0)],
    )
    def test_matches_scipy(self, f, dfn, dfd, ncp):
        assert ncf_cdf(f, dfn, dfd, ncp) == pytest.approx(stats.ncf.cdf(f, dfn, dfd, ncp), abs=NONCENTRAL_TOLERANCE)

    def test_bounds(self):
        assert ncf_cdf(0.0, 3, 20, 5.0) == 0.0
        assert ncf_cdf(math.inf, 3, 20, 5.0) == 1.0


class TestNoncentralT:
    """nct against scipy, including the negative-t reflection."""

    @pytest.mark.parametrize(
        "t, df, ncp",
        [
            (1.98, 126, 2.83),
            (-1.98, 126, 2.83),
            (2.0, 10, 1.0),
            (0.5, 5, -0.8),
            (-2.5, 20, -1.5),
            (3.0, 60, 4.5),
            (1.0, 3, 0.3),
        ],
    )
    def test_matches_scipy(self, t, df, ncp):
        assert nct_cdf(t, df, ncp) == pytest.approx(stats.nct.cdf(t, df, ncp), abs=NONCENTRAL_TOLERANCE)

    def test_at_zero(self):
        assert nct_cdf(0.0, 15, 1.2) == pytest.approx(stats.norm.cdf(-1.2), abs=1e-12)

    def test_increases_in_t(self):
        values = [nct_cdf(t, 20, 1.5) for t in (-1.0, 0.0, 1.0, 2.0, 3.0)]
        assert values == sorted(values)

    def test_infinite_df_is_shifted_normal(self):
        assert nct_cdf(2.0, math.inf, 0.5) == pytest.approx(stats.norm.cdf(1.5))
