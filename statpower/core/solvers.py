"""
Inverse solvers over the analytical power engine.

Each solver takes an immutable ``TestParameters`` with the unknown field
left as ``None`` and bisects over the (monotone) relationship between that
field and power. Nothing is mutated: candidates are evaluated on fresh
copies produced by ``TestParameters.with_values``.
"""

import math
import warnings
from typing import Callable, Iterable, Optional, Tuple

import pandas as pd

from ..stats.special import ConvergenceWarning
from .analytical import compute_power, evaluate_power, get_strategy
from .parameters import DesignWarning, TestParameters

SAMPLE_SIZE_BOUNDS = (4, 10000)
ALPHA_BOUNDS = (0.001, 0.5)
POWER_TOLERANCE = 0.005
EFFECT_SIZE_TOLERANCE = 0.001
ALPHA_TOLERANCE = 1e-4
MAX_ITERATIONS = 100

__all__ = [
    "compute_sample_size",
    "compute_effect_size",
    "compute_significance_level",
    "solve",
    "power_curve",
]


def _target_power(params: TestParameters) -> Optional[float]:
    power = params.power
    if power is None or isinstance(power, bool):
        return None
    try:
        power = float(power)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(power) or not 0.0 < power < 1.0:
        return None
    return power


def _objective(params: TestParameters, field: str) -> Callable[[float], Optional[float]]:
    """Power as a function of a single field, with design warnings silenced."""

    def power_at(value: float) -> Optional[float]:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", DesignWarning)
            return evaluate_power(params.with_values(**{field: value}))

    return power_at


def _bisect(
    power_at: Callable[[float], Optional[float]],
    target: float,
    bounds: Tuple[float, float],
    tolerance: float,
    integer: bool = False,
) -> Optional[float]:
    """Bracketed value whose power reaches *target*, or comes close to it.

    Bisection keeps the upper end at power >= *target*, but returns early
    with the first candidate whose power lies within ``POWER_TOLERANCE`` of
    the target, which may sit just below it. If the upper bound cannot
    reach the target, the upper bound is returned with a
    ``ConvergenceWarning``.
    """
    lo, hi = bounds
    p_lo = power_at(lo)
    if p_lo is None:
        return None
    if p_lo >= target:
        return lo
    p_hi = power_at(hi)
    if p_hi is None:
        return None
    if p_hi < target:
        warnings.warn(
            f"Target power {target} not reached within [{lo}, {hi}] (power at upper bound: {p_hi:.3f})",
            ConvergenceWarning,
            stacklevel=3,
        )
        return hi

    for _ in range(MAX_ITERATIONS):
        if hi - lo <= tolerance:
            break
        mid = int(round((lo + hi) / 2)) if integer else 0.5 * (lo + hi)
        power = power_at(mid)
        if power is None:
            return None
        if abs(power - target) < POWER_TOLERANCE:
            return mid
        if power < target:
            lo = mid
        else:
            hi = mid

    return hi


def compute_sample_size(params: TestParameters) -> Optional[int]:
    """Smallest total sample size reaching the target power.

    Args:
        params: Record with ``effect_size``, ``significance_level`` and
            ``power`` (the target) set. ``sample_size`` is ignored.

    Returns:
        Integer in ``[4, 10000]``, or ``None`` if an input is missing or
        out of domain.
    """
    target = _target_power(params)
    if target is None:
        return None
    result = _bisect(
        _objective(params, "sample_size"),
        target,
        SAMPLE_SIZE_BOUNDS,
        tolerance=1,
        integer=True,
    )
    return None if result is None else int(result)


def compute_effect_size(params: TestParameters) -> Optional[float]:
    """Smallest effect size reaching the target power.

    The search interval is ``[0.01, 3.0]``, narrowed to ``[0.01, 0.999]``
    for correlation-like tests and starting above ``null_rmsea`` for SEM.

    Returns:
        Effect size rounded to 3 decimals, or ``None``.
    """
    target = _target_power(params)
    if target is None:
        return None
    result = _bisect(
        _objective(params, "effect_size"),
        target,
        get_strategy(params.test).effect_bracket(params),
        tolerance=EFFECT_SIZE_TOLERANCE,
    )
    return None if result is None else round(result, 3)


def compute_significance_level(params: TestParameters) -> Optional[float]:
    """Smallest alpha in ``[0.001, 0.5]`` reaching the target power.

    Returns:
        Alpha rounded to 4 decimals, or ``None``.
    """
    target = _target_power(params)
    if target is None:
        return None
    result = _bisect(
        _objective(params, "significance_level"),
        target,
        ALPHA_BOUNDS,
        tolerance=ALPHA_TOLERANCE,
    )
    return None if result is None else round(result, 4)


_SOLVERS = {
    "power": compute_power,
    "sample_size": compute_sample_size,
    "effect_size": compute_effect_size,
    "significance_level": compute_significance_level,
}


def solve(params: TestParameters) -> TestParameters:
    """Fill in the single unresolved common field.

    Args:
        params: Record with exactly one of ``sample_size``, ``effect_size``,
            ``significance_level`` or ``power`` set to ``None``.

    Returns:
        A new record with that field computed (it stays ``None`` when the
        inputs are insufficient). If zero or several fields are unresolved,
        *params* is returned unchanged.
    """
    unresolved = params.unresolved
    if len(unresolved) != 1:
        if len(unresolved) > 1:
            warnings.warn(
                f"Only one quantity can be solved for at a time; unresolved: {', '.join(unresolved)}",
                UserWarning,
                stacklevel=2,
            )
        return params
    field = unresolved[0]
    return params.with_values(**{field: _SOLVERS[field](params)})


def power_curve(params: TestParameters, sample_sizes: Iterable[int]) -> pd.DataFrame:
    """Power across a set of sample sizes.

    Returns:
        DataFrame with columns ``sample_size`` and ``power``.
    """
    sizes = [int(n) for n in sample_sizes]
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", DesignWarning)
        powers = [compute_power(params.with_values(sample_size=n)) for n in sizes]
    return pd.DataFrame({"sample_size": sizes, "power": powers})
