"""Core components for StatPower.

Re-exports the building blocks:

- ``TestParameters``, ``TestType`` and the effect-size helpers: the
  analytical parameter model.
- ``compute_power`` and the inverse solvers: closed-form power analysis.
- ``SimulationConfig`` and its sections: Monte Carlo configuration.
- ``SimulationRunner``, ``run_simulation``: grid sweep execution.
- ``ResultsProcessor``, ``SimulationResult``, ``results_to_frame``: cell
  aggregation and tables.
"""

from .analytical import STRATEGIES, compute_power, evaluate_power, get_strategy
from .config import (
    DEFAULT_SIMULATION_CONFIG,
    DataGenerationConfig,
    DomainShiftRange,
    SampleSizeRange,
    SimulationConfig,
    SuccessCriterion,
)
from .parameters import (
    DesignWarning,
    TestParameters,
    TestType,
    UnknownTestError,
    effect_size_conventions,
    stabilize_parameters,
)
from .results import (
    ResultsProcessor,
    SimulationResult,
    SingleSimulationResult,
    results_to_frame,
    wilson_score_interval,
)
from .simulation import SimulationProgress, SimulationRunner, run_simulation
from .solvers import (
    compute_effect_size,
    compute_sample_size,
    compute_significance_level,
    power_curve,
    solve,
)

__all__ = [
    # Parameters
    "TestParameters",
    "TestType",
    "UnknownTestError",
    "DesignWarning",
    "effect_size_conventions",
    "stabilize_parameters",
    # Analytical
    "STRATEGIES",
    "get_strategy",
    "compute_power",
    "evaluate_power",
    "compute_sample_size",
    "compute_effect_size",
    "compute_significance_level",
    "solve",
    "power_curve",
    # Simulation
    "DEFAULT_SIMULATION_CONFIG",
    "SimulationConfig",
    "SampleSizeRange",
    "DomainShiftRange",
    "SuccessCriterion",
    "DataGenerationConfig",
    "SimulationRunner",
    "SimulationProgress",
    "run_simulation",
    # Results
    "ResultsProcessor",
    "SimulationResult",
    "SingleSimulationResult",
    "results_to_frame",
    "wilson_score_interval",
]
