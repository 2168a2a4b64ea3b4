"""Numerical building blocks: special functions, distributions, data generation, model fitting."""

from . import data_generation, model_fitting
from .critical import chi2_critical, critical_value, f_critical, t_critical, z_critical
from .distributions import chi2_cdf, f_cdf, norm_cdf, norm_ppf, t_cdf
from .noncentral import nct_cdf, ncf_cdf, ncx2_cdf
from .special import ConvergenceWarning, gamma, incomplete_beta, incomplete_gamma, log_factorial, log_gamma

__all__ = [
    "ConvergenceWarning",
    "gamma",
    "log_gamma",
    "log_factorial",
    "incomplete_beta",
    "incomplete_gamma",
    "norm_cdf",
    "norm_ppf",
    "t_cdf",
    "f_cdf",
    "chi2_cdf",
    "nct_cdf",
    "ncf_cdf",
    "ncx2_cdf",
    "critical_value",
    "t_critical",
    "f_critical",
    "chi2_critical",
    "z_critical",
    "data_generation",
    "model_fitting",
]
