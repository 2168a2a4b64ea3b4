"""
Results processing for simulation sweeps.

Aggregates per-iteration outcomes into one ``SimulationResult`` per grid
cell and converts finished sweeps into tables.
"""

import math
import warnings
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

FAILED_METRIC = 0.5

_Z_SCORES = {0.95: 1.96, 0.99: 2.576}
_DEFAULT_Z = 1.645

__all__ = [
    "SingleSimulationResult",
    "SimulationResult",
    "ResultsProcessor",
    "wilson_score_interval",
    "results_to_frame",
]


@dataclass(frozen=True)
class SingleSimulationResult:
    """Outcome of one Monte Carlo iteration.

    Attributes:
        iteration: Index within the cell.
        metric: Metric value on the target domain (0.5 for failed iterations).
        success: Whether the metric passed the success criterion.
        train_size: Source-domain rows.
        test_size: Target-domain rows.
        failed: ``True`` if data generation or fitting raised.
        mmd: Feature MMD between domains, when requested.
    """

    iteration: int
    metric: float
    success: bool
    train_size: int
    test_size: int
    failed: bool = False
    mmd: Optional[float] = None


@dataclass(frozen=True)
class SimulationResult:
    """Aggregated outcome of one (sample size, domain shift) cell.

    Attributes:
        sample_size: Per-domain sample size.
        domain_shift: Target mean shift.
        success_rate: Share of successful iterations (estimated power).
        confidence_interval: Wilson interval ``(lower, upper)`` for the rate.
        mean_metric: Mean metric over iterations.
        std_metric: Population SD of the metric.
        simulations: The individual iterations.
        n_failed: Number of iterations that raised.
        mean_mmd: Mean MMD over iterations where it was computed.
    """

    sample_size: int
    domain_shift: float
    success_rate: float
    confidence_interval: Tuple[float, float]
    mean_metric: float
    std_metric: float
    simulations: Tuple[SingleSimulationResult, ...]
    n_failed: int = 0
    mean_mmd: Optional[float] = None

    @property
    def n_simulations(self) -> int:
        return len(self.simulations)


def wilson_score_interval(success_rate: float, n: int, confidence: float = 0.95) -> Tuple[float, float]:
    """
    Wilson score interval for a binomial proportion.

    Args:
        success_rate: Observed proportion.
        n: Number of trials.
        confidence: 0.95 or 0.99 use z = 1.96 / 2.576; any other level uses
            z = 1.645.

    Returns:
        ``(lower, upper)`` clamped to ``[0, 1]``. ``(0, 1)`` when *n* is 0.
    """
    if n <= 0:
        return 0.0, 1.0
    z = _Z_SCORES.get(confidence, _DEFAULT_Z)
    z2 = z * z

    denominator = 1 + z2 / n
    centre = success_rate + z2 / (2 * n)
    margin = z * math.sqrt((success_rate * (1 - success_rate) + z2 / (4 * n)) / n)

    return max(0.0, (centre - margin) / denominator), min(1.0, (centre + margin) / denominator)


class ResultsProcessor:
    """Converts per-iteration outcomes into cell summaries.

    Also locates, for each domain shift, the first sample size whose
    estimated power reaches the target.
    """

    def __init__(self, target_power: float = 0.80, confidence_level: float = 0.95):
        """Initialise the results processor.

        Args:
            target_power: Target power as a proportion (0-1).
            confidence_level: Coverage of the Wilson interval.
        """
        self.target_power = target_power
        self.confidence_level = confidence_level

    def aggregate_cell(
        self,
        sample_size: int,
        domain_shift: float,
        simulations: Sequence[SingleSimulationResult],
    ) -> SimulationResult:
        """
        Summarise the iterations of one grid cell.

        Args:
            sample_size: Cell sample size.
            domain_shift: Cell domain shift.
            simulations: Iterations belonging to the cell.

        Returns:
            SimulationResult
        """
        n = len(simulations)
        metrics = np.array([s.metric for s in simulations], dtype=float)
        successes = sum(1 for s in simulations if s.success)
        n_failed = sum(1 for s in simulations if s.failed)
        mmds = [s.mmd for s in simulations if s.mmd is not None]

        success_rate = successes / n if n else 0.0
        mean_metric = float(metrics.mean()) if n else FAILED_METRIC
        std_metric = float(metrics.std()) if n else 0.0

        if n_failed:
            warnings.warn(
                f"{n_failed}/{n} simulations failed at sample size {sample_size}, domain shift {domain_shift:.3f} "
                f"and were recorded as unsuccessful (metric {FAILED_METRIC}).",
                UserWarning,
                stacklevel=2,
            )

        return SimulationResult(
            sample_size=int(sample_size),
            domain_shift=float(domain_shift),
            success_rate=success_rate,
            confidence_interval=wilson_score_interval(success_rate, n, self.confidence_level),
            mean_metric=mean_metric,
            std_metric=std_metric,
            simulations=tuple(simulations),
            n_failed=n_failed,
            mean_mmd=float(np.mean(mmds)) if mmds else None,
        )

    def first_achieved(self, results: Iterable[SimulationResult]) -> Dict[float, Optional[int]]:
        """Smallest sample size reaching ``target_power`` for each domain shift.

        Returns:
            Mapping from domain shift to sample size, ``None`` where no
            tested size reaches the target.
        """
        achieved: Dict[float, Optional[int]] = {}
        for result in sort_results(results):
            shift = round(result.domain_shift, 10)
            achieved.setdefault(shift, None)
            if achieved[shift] is None and result.success_rate >= self.target_power:
                achieved[shift] = result.sample_size
        return achieved


def failed_iteration(iteration: int, sample_size: int, target_size: Optional[int] = None) -> SingleSimulationResult:
    """Placeholder outcome for an iteration that raised."""
    return SingleSimulationResult(
        iteration=iteration,
        metric=FAILED_METRIC,
        success=False,
        train_size=sample_size,
        test_size=sample_size if target_size is None else target_size,
        failed=True,
    )


def sort_results(results: Iterable[SimulationResult]) -> List[SimulationResult]:
    """Order cells by (sample_size, domain_shift)."""
    return sorted(results, key=lambda r: (r.sample_size, r.domain_shift))


def results_to_frame(results: Iterable[SimulationResult]) -> pd.DataFrame:
    """
    One row per grid cell.

    Columns: ``sample_size``, ``domain_shift``, ``power``, ``ci_lower``,
    ``ci_upper``, ``mean_metric``, ``std_metric``, ``n_simulations``,
    ``n_failed``, ``mean_mmd``.
    """
    columns = [
        "sample_size",
        "domain_shift",
        "power",
        "ci_lower",
        "ci_upper",
        "mean_metric",
        "std_metric",
        "n_simulations",
        "n_failed",
        "mean_mmd",
    ]
    rows = [
        {
            "sample_size": r.sample_size,
            "domain_shift": r.domain_shift,
            "power": r.success_rate,
            "ci_lower": r.confidence_interval[0],
            "ci_upper": r.confidence_interval[1],
            "mean_metric": r.mean_metric,
            "std_metric": r.std_metric,
            "n_simulations": r.n_simulations,
            "n_failed": r.n_failed,
            "mean_mmd": r.mean_mmd,
        }
        for r in sort_results(results)
    ]
    return pd.DataFrame(rows, columns=columns)
