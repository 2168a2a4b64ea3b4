"""
Validation utilities for simulation configuration.

Each validator returns a ``_ValidationResult``; callers raise on errors with
``raise_if_invalid()`` and re-emit the warnings.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union

__all__ = []


@dataclass
class _ValidationResult:
    """Outcome of a validation check, carrying errors and warnings.

    Attributes:
        is_valid: ``True`` if no errors were found.
        errors: List of error messages (empty when valid).
        warnings: List of non-fatal warning messages.
    """

    is_valid: bool
    errors: List[str]
    warnings: List[str]

    def raise_if_invalid(self):
        """Raise ``ValueError`` if the validation failed."""
        if not self.is_valid:
            error_msg = "Validation failed:\n" + "\n".join(f"• {err}" for err in self.errors)
            raise ValueError(error_msg)

    def merge(self, other: "_ValidationResult") -> "_ValidationResult":
        errors = self.errors + other.errors
        return _ValidationResult(len(errors) == 0, errors, self.warnings + other.warnings)


class _Validator:
    """Static helpers for type and range checks used by all validators."""

    @staticmethod
    def _check_type(value: Any, expected_types: tuple, name: str) -> Optional[str]:
        """Check if value has expected type (``bool`` never counts as a number)."""
        if isinstance(value, bool) and bool not in expected_types:
            return f"{name} must be {expected_types[0].__name__}, got bool"
        if not isinstance(value, expected_types):
            actual_type = type(value).__name__
            expected = expected_types[0].__name__ if len(expected_types) == 1 else f"one of {[t.__name__ for t in expected_types]}"
            return f"{name} must be {expected}, got {actual_type}"
        return None

    @staticmethod
    def _check_range(
        value: Union[int, float],
        min_val: Optional[float],
        max_val: Optional[float],
        name: str,
    ) -> Optional[str]:
        """Check if value is within range."""
        if min_val is not None and value < min_val:
            return f"{name} must be >= {min_val}, got {value}"
        if max_val is not None and value > max_val:
            return f"{name} must be <= {max_val}, got {value}"
        return None


_validator = _Validator()


def _validate_numeric_parameter(
    value: Any,
    name: str,
    expected_types: tuple = (int, float),
    min_val: Optional[float] = None,
    max_val: Optional[float] = None,
) -> _ValidationResult:
    """Generic validation for numeric parameters."""
    errors: List[str] = []

    type_error = _validator._check_type(value, expected_types, name)
    if type_error:
        return _ValidationResult(False, [type_error], [])

    range_error = _validator._check_range(value, min_val, max_val, name)
    if range_error:
        errors.append(range_error)

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_simulations(n_simulations: Any) -> Tuple[int, _ValidationResult]:
    """Validate and process number of simulations per grid cell."""
    result = _validate_numeric_parameter(n_simulations, "Number of simulations", min_val=1)

    if result.is_valid:
        rounded = int(round(n_simulations))
        if rounded != n_simulations:
            result.warnings.append(f"Number of simulations rounded from {n_simulations} to {rounded}")
        if rounded < 100:
            result.warnings.append(f"Low simulation count ({rounded}). Consider using at least 100 for stable power estimates.")
        return rounded, result

    return 0, result


def _validate_seed(seed: Any) -> _ValidationResult:
    """Seed must be ``None`` or a non-negative integer."""
    if seed is None:
        return _ValidationResult(True, [], [])
    return _validate_numeric_parameter(seed, "seed", expected_types=(int,), min_val=0)


def _validate_sample_size_range(min_size: Any, max_size: Any, step: Any) -> _ValidationResult:
    """Validate sample size range parameters."""
    errors: List[str] = []
    warnings: List[str] = []

    for param, name in [(min_size, "min"), (max_size, "max"), (step, "step")]:
        if isinstance(param, bool) or not isinstance(param, int) or param <= 0:
            errors.append(f"sample size {name} must be a positive integer, got {param}")

    if errors:
        return _ValidationResult(False, errors, warnings)

    if min_size > max_size:
        errors.append(f"sample size min ({min_size}) must not exceed max ({max_size})")
    elif min_size < 10:
        warnings.append(f"Very small sample size ({min_size}). Fitted models may be unstable.")

    if step > (max_size - min_size) and min_size != max_size:
        warnings.append(f"Step size ({step}) is larger than range ({max_size - min_size}). This will only test one sample size.")

    n_tests = len(range(min_size, max_size + 1, step))
    if n_tests > 100:
        warnings.append(f"Large number of sample sizes to test ({n_tests}). This may take significant time.")

    return _ValidationResult(len(errors) == 0, errors, warnings)


def _validate_domain_shift_range(min_shift: Any, max_shift: Any, steps: Any) -> _ValidationResult:
    """Validate domain shift grid parameters."""
    errors: List[str] = []

    for param, name in [(min_shift, "min"), (max_shift, "max")]:
        error = _validator._check_type(param, (int, float), f"domain shift {name}")
        if error:
            errors.append(error)
        elif param < 0:
            errors.append(f"domain shift {name} must be >= 0, got {param}")

    if isinstance(steps, bool) or not isinstance(steps, int) or steps < 0:
        errors.append(f"domain shift steps must be a non-negative integer, got {steps}")

    if not errors and min_shift > max_shift:
        errors.append(f"domain shift min ({min_shift}) must not exceed max ({max_shift})")

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_success_criterion(metric: Any, threshold: Any, direction: Any) -> _ValidationResult:
    """Validate metric name, threshold and comparison direction."""
    from ..core.config import DIRECTIONS, METRICS

    errors: List[str] = []
    warnings: List[str] = []

    if metric not in METRICS:
        errors.append(f"metric must be one of {list(METRICS)}, got {metric!r}")
    if direction not in DIRECTIONS:
        errors.append(f"direction must be one of {list(DIRECTIONS)}, got {direction!r}")

    threshold_result = _validate_numeric_parameter(threshold, "threshold", min_val=0, max_val=1)
    errors.extend(threshold_result.errors)

    if not errors and metric == "auc" and direction == "greater" and threshold < 0.5:
        warnings.append(f"AUC threshold {threshold} is below chance level (0.5); almost every iteration will succeed.")

    return _ValidationResult(len(errors) == 0, errors, warnings)


def _validate_data_generation(config) -> _ValidationResult:
    """Validate a ``DataGenerationConfig``."""
    result = _validate_numeric_parameter(config.num_features, "num_features", expected_types=(int,), min_val=1)

    if result.is_valid and config.num_features > 1:
        lower = -1.0 / (config.num_features - 1)
        rho = config.feature_correlation
        if isinstance(rho, (int, float)) and not isinstance(rho, bool) and not lower < rho < 1:
            result = result.merge(
                _ValidationResult(
                    False,
                    [f"feature_correlation must be in ({lower:.3f}, 1) for {config.num_features} features, got {rho}"],
                    [],
                )
            )

    checks = [
        (config.feature_correlation, "feature_correlation", -1, 1),
        (config.source_prevalence, "source_prevalence", 0, 1),
        (config.target_prevalence, "target_prevalence", 0, 1),
        (config.shared_variance, "shared_variance", 0, 1),
        (config.species_specific_noise, "species_specific_noise", 0, None),
    ]
    for value, name, min_val, max_val in checks:
        result = result.merge(_validate_numeric_parameter(value, name, min_val=min_val, max_val=max_val))

    return result


def _validate_confidence_level(level: Any) -> _ValidationResult:
    result = _validate_numeric_parameter(level, "confidence_level", min_val=0, max_val=1)
    if result.is_valid and level not in (0.95, 0.99, 0.90):
        result.warnings.append(f"confidence_level {level} has no tabulated z; the 90% value (1.645) is used.")
    return result


def _validate_simulation_config(config) -> _ValidationResult:
    """Validate every section of a ``SimulationConfig``."""
    sizes = config.sample_size_range
    shifts = config.domain_shift_range
    criterion = config.success_criterion

    _, result = _validate_simulations(config.num_simulations)
    for section in (
        _validate_seed(config.seed),
        _validate_sample_size_range(sizes.min, sizes.max, sizes.step),
        _validate_domain_shift_range(shifts.min, shifts.max, shifts.steps),
        _validate_success_criterion(criterion.metric, criterion.threshold, criterion.direction),
        _validate_data_generation(config.data_generation),
        _validate_confidence_level(config.confidence_level),
    ):
        result = result.merge(section)
    return result


def _validate_parallel_settings(enable: Any, n_jobs: Optional[int]) -> Tuple[Tuple[bool, int], _ValidationResult]:
    """Validate parallel processing settings.

    Args:
        enable: True or False
        n_jobs: Number of worker processes (positive int, -1 for all cores,
            or None for half of the available cores)

    Returns:
        ((enable, n_jobs), ValidationResult)
    """
    import multiprocessing as mp

    errors = []

    if enable not in (True, False):
        errors.append(f"enable must be True or False, got {enable!r}")
        return (False, 1), _ValidationResult(False, errors, [])

    max_cores = mp.cpu_count()
    validated_n_jobs = max(1, max_cores // 2)

    if n_jobs is not None:
        if n_jobs == -1:
            validated_n_jobs = max_cores
        elif isinstance(n_jobs, bool) or not isinstance(n_jobs, int) or n_jobs <= 0:
            errors.append(f"n_jobs must be a positive integer or -1, got {n_jobs}")
        else:
            validated_n_jobs = min(n_jobs, max_cores)

    return (bool(enable), validated_n_jobs), _ValidationResult(len(errors) == 0, errors, [])
