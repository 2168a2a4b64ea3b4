"""
Configuration for Monte Carlo transfer-learning power simulations.

``DEFAULT_SIMULATION_CONFIG`` holds the defaults as a plain dict; the frozen
dataclasses below are what the simulation engine consumes.
"""

import copy
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Dict, List, Optional, Tuple

from .parameters import _to_snake

__all__ = [
    "DEFAULT_SIMULATION_CONFIG",
    "METRICS",
    "DIRECTIONS",
    "SampleSizeRange",
    "DomainShiftRange",
    "SuccessCriterion",
    "DataGenerationConfig",
    "SimulationConfig",
]

METRICS = ("auc", "accuracy", "f1")
DIRECTIONS = ("greater", "less")

DEFAULT_SIMULATION_CONFIG: Dict[str, Any] = {
    "sample_size_range": {"min": 50, "max": 500, "step": 50},
    "domain_shift_range": {"min": 0.1, "max": 1.5, "steps": 5},
    "success_criterion": {"metric": "auc", "threshold": 0.60, "direction": "greater"},
    "num_simulations": 500,
    "seed": 42,
    "confidence_level": 0.95,
    "compute_mmd": False,
    "data_generation": {
        "num_features": 10,
        "feature_correlation": 0.3,
        "source_prevalence": 0.3,
        "target_prevalence": 0.3,
        "shared_variance": 0.6,
        "species_specific_noise": 0.2,
    },
}

_KEY_ALIASES = {"random_seed": "seed", "n_simulations": "num_simulations"}


def _default(section: str, key: Optional[str] = None):
    value = DEFAULT_SIMULATION_CONFIG[section]
    return value if key is None else value[key]


@dataclass(frozen=True)
class SampleSizeRange:
    """Sample sizes ``min, min + step, ...`` up to and including ``max``."""

    min: int = _default("sample_size_range", "min")
    max: int = _default("sample_size_range", "max")
    step: int = _default("sample_size_range", "step")

    def values(self) -> List[int]:
        if self.step <= 0:
            return [int(self.min)]
        return list(range(int(self.min), int(self.max) + 1, int(self.step)))


@dataclass(frozen=True)
class DomainShiftRange:
    """``steps + 1`` evenly spaced shifts from ``min`` to ``max``."""

    min: float = _default("domain_shift_range", "min")
    max: float = _default("domain_shift_range", "max")
    steps: int = _default("domain_shift_range", "steps")

    def values(self) -> List[float]:
        if self.steps <= 0:
            return [float(self.min)]
        step = (self.max - self.min) / self.steps
        return [self.min + i * step for i in range(int(self.steps) + 1)]


@dataclass(frozen=True)
class SuccessCriterion:
    """An iteration succeeds when its metric is strictly beyond ``threshold``."""

    metric: str = _default("success_criterion", "metric")
    threshold: float = _default("success_criterion", "threshold")
    direction: str = _default("success_criterion", "direction")

    def is_success(self, value: float) -> bool:
        if self.direction == "greater":
            return value > self.threshold
        return value < self.threshold


@dataclass(frozen=True)
class DataGenerationConfig:
    """Settings for ``generate_transfer_data``.

    Attributes:
        num_features: Number of features per domain.
        feature_correlation: Pairwise correlation between features.
        source_prevalence: Positive-class rate in the source domain.
        target_prevalence: Positive-class rate in the target domain.
        shared_variance: Share of the linear predictor's variance carried
            by the common signal.
        species_specific_noise: SD of per-row noise on the linear predictor.
    """

    num_features: int = _default("data_generation", "num_features")
    feature_correlation: float = _default("data_generation", "feature_correlation")
    source_prevalence: float = _default("data_generation", "source_prevalence")
    target_prevalence: float = _default("data_generation", "target_prevalence")
    shared_variance: float = _default("data_generation", "shared_variance")
    species_specific_noise: float = _default("data_generation", "species_specific_noise")


_SECTIONS = {
    "sample_size_range": SampleSizeRange,
    "domain_shift_range": DomainShiftRange,
    "success_criterion": SuccessCriterion,
    "data_generation": DataGenerationConfig,
}


@dataclass(frozen=True)
class SimulationConfig:
    """Complete description of one simulation sweep.

    Attributes:
        sample_size_range: Grid of per-domain sample sizes.
        domain_shift_range: Grid of domain shifts.
        success_criterion: Metric, threshold and direction for success.
        num_simulations: Iterations per grid cell.
        seed: Root seed; ``None`` draws fresh OS entropy.
        data_generation: Dataset generation settings.
        compute_mmd: Also record the feature MMD for each iteration.
        confidence_level: Coverage of the Wilson interval.
    """

    sample_size_range: SampleSizeRange = field(default_factory=SampleSizeRange)
    domain_shift_range: DomainShiftRange = field(default_factory=DomainShiftRange)
    success_criterion: SuccessCriterion = field(default_factory=SuccessCriterion)
    num_simulations: int = _default("num_simulations")
    seed: Optional[int] = _default("seed")
    data_generation: DataGenerationConfig = field(default_factory=DataGenerationConfig)
    compute_mmd: bool = _default("compute_mmd")
    confidence_level: float = _default("confidence_level")

    @property
    def sample_sizes(self) -> List[int]:
        return self.sample_size_range.values()

    @property
    def domain_shifts(self) -> List[float]:
        return self.domain_shift_range.values()

    def grid(self) -> List[Tuple[int, float]]:
        """Grid cells in row-major order (sample size outer, shift inner)."""
        return [(n, shift) for n in self.sample_sizes for shift in self.domain_shifts]

    @property
    def total_iterations(self) -> int:
        return len(self.sample_sizes) * len(self.domain_shifts) * self.num_simulations

    def with_values(self, **changes) -> "SimulationConfig":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]] = None) -> "SimulationConfig":
        """Build a config by merging *data* over the defaults.

        Keys may be camelCase or snake_case, and nested sections may be
        partial. Unknown keys are ignored.

        Example:
            >>> SimulationConfig.from_dict({"numSimulations": 100, "sampleSizeRange": {"max": 200}})
        """
        merged = copy.deepcopy(DEFAULT_SIMULATION_CONFIG)
        for key, value in (data or {}).items():
            name = _to_snake(key)
            name = _KEY_ALIASES.get(name, name)
            if name not in merged:
                continue
            if name in _SECTIONS and isinstance(value, dict):
                merged[name].update({_to_snake(k): v for k, v in value.items()})
            else:
                merged[name] = value

        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            value = merged[f.name]
            if f.name in _SECTIONS:
                section_cls = _SECTIONS[f.name]
                if not isinstance(value, section_cls):
                    known = {sf.name for sf in fields(section_cls)}
                    value = section_cls(**{k: v for k, v in value.items() if k in known})
            kwargs[f.name] = value
        return cls(**kwargs)
