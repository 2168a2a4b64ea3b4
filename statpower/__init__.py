"""StatPower - statistical power analysis.

Closed-form power, sample size, effect size and significance level for a
catalog of hypothesis tests, plus Monte Carlo power estimation for
transfer-learning studies where no closed form exists.

Example:
    >>> from statpower import TestParameters, compute_power, solve
    >>>
    >>> params = TestParameters("two-sample-t", sample_size=128, effect_size=0.5)
    >>> compute_power(params)
    >>>
    >>> solve(params.with_values(sample_size=None, power=0.8)).sample_size
    >>>
    >>> from statpower import PowerSimulation
    >>> sim = PowerSimulation().set_simulations(200)
    >>> results = sim.run(print_results=True)
"""

from importlib.metadata import version as _get_version

from .core import (
    DataGenerationConfig,
    DesignWarning,
    SimulationConfig,
    SimulationProgress,
    SimulationResult,
    SuccessCriterion,
    TestParameters,
    TestType,
    UnknownTestError,
    compute_effect_size,
    compute_power,
    compute_sample_size,
    compute_significance_level,
    effect_size_conventions,
    power_curve,
    results_to_frame,
    run_simulation,
    solve,
    stabilize_parameters,
)
from .model import PowerSimulation, SimulationStatus
from .progress import PrintReporter, ProgressReporter, SimulationCancelled, TqdmReporter
from .stats.special import ConvergenceWarning
from .utils.formatters import format_simulation_results

__version__ = _get_version("StatPower")

__all__ = [
    # Analytical
    "TestParameters",
    "TestType",
    "compute_power",
    "compute_sample_size",
    "compute_effect_size",
    "compute_significance_level",
    "solve",
    "power_curve",
    "effect_size_conventions",
    "stabilize_parameters",
    # Simulation
    "PowerSimulation",
    "SimulationStatus",
    "SimulationConfig",
    "DataGenerationConfig",
    "SuccessCriterion",
    "SimulationResult",
    "SimulationProgress",
    "run_simulation",
    "results_to_frame",
    "format_simulation_results",
    # Progress
    "ProgressReporter",
    "PrintReporter",
    "TqdmReporter",
    "SimulationCancelled",
    # Diagnostics
    "UnknownTestError",
    "DesignWarning",
    "ConvergenceWarning",
]
