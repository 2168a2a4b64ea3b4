"""
StatPower - stateful simulation facade.

This module provides the ``PowerSimulation`` class, which holds a
configuration, runs the transfer-learning sweep synchronously or on an
event loop, and keeps the results of the latest run.
"""

import asyncio
import warnings
from dataclasses import fields, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from .core.config import (
    DomainShiftRange,
    SampleSizeRange,
    SimulationConfig,
    SuccessCriterion,
)
from .core.results import SimulationResult, results_to_frame, sort_results
from .core.simulation import PROGRESS_EVERY, SimulationProgress, SimulationRunner
from .progress import PrintReporter, ProgressReporter, SimulationCancelled
from .utils.formatters import format_simulation_results
from .utils.validators import (
    _validate_data_generation,
    _validate_domain_shift_range,
    _validate_parallel_settings,
    _validate_sample_size_range,
    _validate_simulation_config,
    _validate_simulations,
    _validate_success_criterion,
)

__all__ = ["PowerSimulation", "SimulationStatus"]


class SimulationStatus(str, Enum):
    """Lifecycle of a ``PowerSimulation`` run."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERROR = "error"


def _emit_warnings(messages: List[str]):
    for message in messages:
        warnings.warn(message, UserWarning, stacklevel=3)


class PowerSimulation:
    """Simulation-based power analysis for transfer learning.

    Sweeps a grid of sample sizes and domain shifts; in each cell a
    logistic classifier trained on a simulated source domain is scored on a
    shifted target domain, and the share of iterations passing the success
    criterion estimates power.

    Configuration methods (``set_*``) validate their input and return
    ``self`` for method chaining.

    Attributes:
        config: Current ``SimulationConfig``.
        status: ``SimulationStatus`` of the latest run.
        results: Cells of the latest run (partial after a cancellation).
        error: Error message if the latest run failed.
        progress: Latest ``SimulationProgress`` snapshot.
        parallel: Whether cells run on joblib workers.
        n_jobs: Worker count for parallel runs.

    Example:
        >>> sim = PowerSimulation()
        >>> sim.set_simulations(200).set_sample_sizes(50, 300, 50)
        >>> results = sim.run()
        >>> sim.to_frame()
    """

    def __init__(self, config: Optional[SimulationConfig] = None):
        """Initialise with *config* or the default configuration.

        Raises:
            ValueError: If *config* is invalid.
        """
        config = config if config is not None else SimulationConfig()
        result = _validate_simulation_config(config)
        result.raise_if_invalid()

        self.config = config
        self.status = SimulationStatus.IDLE
        self.results: List[SimulationResult] = []
        self.error: Optional[str] = None
        self.progress: Optional[SimulationProgress] = None
        self.parallel = False
        self.n_jobs = 1
        self._cancel_requested = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PowerSimulation":
        """Build from a (partial) configuration dict, see ``SimulationConfig.from_dict``."""
        return cls(SimulationConfig.from_dict(data))

    # =========================================================================
    # Configuration
    # =========================================================================

    def set_seed(self, seed: Optional[int] = None):
        """Set the root random seed.

        Args:
            seed: Non-negative integer, or ``None`` for fresh entropy on
                every run.

        Returns:
            self: For method chaining.

        Raises:
            TypeError: If *seed* is not an integer or ``None``.
            ValueError: If *seed* is negative.
        """
        if seed is not None:
            if isinstance(seed, bool) or not isinstance(seed, int):
                raise TypeError("seed must be an integer or None")
            if seed < 0:
                raise ValueError("seed must be non-negative")
        self.config = self.config.with_values(seed=seed)
        return self

    def set_simulations(self, num_simulations: int):
        """Set the number of iterations per grid cell.

        Returns:
            self: For method chaining.

        Raises:
            ValueError: If *num_simulations* is not a positive number.
        """
        n_sims, result = _validate_simulations(num_simulations)
        result.raise_if_invalid()
        _emit_warnings(result.warnings)
        self.config = self.config.with_values(num_simulations=n_sims)
        return self

    def set_sample_sizes(self, min_size: int, max_size: int, step: int = 50):
        """Set the sample-size grid ``min_size, min_size + step, ..., <= max_size``.

        Returns:
            self: For method chaining.
        """
        result = _validate_sample_size_range(min_size, max_size, step)
        result.raise_if_invalid()
        _emit_warnings(result.warnings)
        self.config = self.config.with_values(sample_size_range=SampleSizeRange(min_size, max_size, step))
        return self

    def set_domain_shifts(self, min_shift: float, max_shift: float, steps: int = 5):
        """Set ``steps + 1`` evenly spaced domain shifts from *min_shift* to *max_shift*.

        Returns:
            self: For method chaining.
        """
        result = _validate_domain_shift_range(min_shift, max_shift, steps)
        result.raise_if_invalid()
        self.config = self.config.with_values(domain_shift_range=DomainShiftRange(min_shift, max_shift, steps))
        return self

    def set_success_criterion(self, metric: str = "auc", threshold: float = 0.60, direction: str = "greater"):
        """Set what counts as a successful transfer.

        Args:
            metric: ``"auc"``, ``"accuracy"`` or ``"f1"``.
            threshold: Value the metric is compared against.
            direction: ``"greater"`` (metric > threshold) or ``"less"``.

        Returns:
            self: For method chaining.
        """
        result = _validate_success_criterion(metric, threshold, direction)
        result.raise_if_invalid()
        _emit_warnings(result.warnings)
        self.config = self.config.with_values(success_criterion=SuccessCriterion(metric, threshold, direction))
        return self

    def set_data_generation(self, **settings):
        """Update data-generation settings, e.g. ``num_features=5``.

        Returns:
            self: For method chaining.

        Raises:
            ValueError: On unknown setting names or invalid values.
        """
        current = self.config.data_generation
        unknown = set(settings) - {f.name for f in fields(current)}
        if unknown:
            raise ValueError(f"Unknown data generation settings: {', '.join(sorted(unknown))}")
        updated = replace(current, **settings)
        result = _validate_data_generation(updated)
        result.raise_if_invalid()
        self.config = self.config.with_values(data_generation=updated)
        return self

    def set_compute_mmd(self, enable: bool = True):
        """Record the source/target feature MMD for every iteration.

        Returns:
            self: For method chaining.
        """
        self.config = self.config.with_values(compute_mmd=bool(enable))
        return self

    def set_parallel(self, enable: bool = True, n_jobs: Optional[int] = None):
        """Enable or disable cell-level parallelism via joblib.

        Args:
            enable: ``True`` for parallel cells, ``False`` for sequential.
            n_jobs: Worker processes (``-1`` for all cores). Defaults to
                half of the available cores.

        Returns:
            self: For method chaining.
        """
        settings, result = _validate_parallel_settings(enable, n_jobs)
        result.raise_if_invalid()
        self.parallel, self.n_jobs = settings
        return self

    # =========================================================================
    # Running
    # =========================================================================

    def _make_runner(self, progress_callback, on_progress, cancel_check) -> SimulationRunner:
        if progress_callback is None or progress_callback is False:
            reporter = None
        elif isinstance(progress_callback, ProgressReporter):
            reporter = progress_callback
        else:
            reporter = ProgressReporter(self.config.total_iterations, progress_callback)

        def track(snapshot: SimulationProgress):
            self.progress = snapshot
            if on_progress is not None:
                on_progress(snapshot)

        def should_cancel() -> bool:
            return self._cancel_requested or (cancel_check is not None and bool(cancel_check()))

        return SimulationRunner(self.config, progress=reporter, on_progress=track, cancel_check=should_cancel)

    def _begin(self):
        if self.status == SimulationStatus.RUNNING:
            raise RuntimeError("A simulation is already running")
        self.status = SimulationStatus.RUNNING
        self.results = []
        self.error = None
        self.progress = None
        self._cancel_requested = False

    def _cancelled(self, exc: SimulationCancelled) -> List[SimulationResult]:
        if self.status == SimulationStatus.IDLE:
            # reset() during the run
            return self.results
        self.results = sort_results(exc.partial_results)
        self.status = SimulationStatus.CANCELLED
        return self.results

    def _failed(self, exc: Exception):
        self.error = str(exc) or type(exc).__name__
        self.status = SimulationStatus.ERROR

    def _completed(self, results: List[SimulationResult], print_results: bool) -> List[SimulationResult]:
        self.results = sort_results(results)
        self.status = SimulationStatus.COMPLETED
        if print_results:
            print(f"\n{'=' * 80}")
            print("TRANSFER LEARNING POWER SIMULATION")
            print(f"{'=' * 80}")
            print(self.summary())
        return self.results

    def run(
        self,
        print_results: bool = False,
        progress_callback=None,
        on_progress: Optional[Callable[[SimulationProgress], None]] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> List[SimulationResult]:
        """
        Run the sweep to completion, cancellation or error.

        Args:
            print_results: Print a summary table when the sweep completes.
            progress_callback: Progress reporting control:
                - ``None`` (default): ``PrintReporter`` when *print_results*
                  is ``True``, otherwise nothing.
                - ``False``: explicitly disable progress.
                - callable ``(current, total)``: custom callback.
            on_progress: Callback receiving ``SimulationProgress`` snapshots.
            cancel_check: Optional callable returning ``True`` to abort.

        Returns:
            Cells sorted by (sample_size, domain_shift). After a
            cancellation, only the cells completed before it.

        Raises:
            RuntimeError: If a run is already in progress.
            Exception: Any unexpected error, after setting status to
                ``error``.
        """
        if progress_callback is None and print_results:
            progress_callback = PrintReporter()

        self._begin()
        runner = self._make_runner(progress_callback, on_progress, cancel_check)
        try:
            if self.parallel:
                results = runner.run_parallel(self.n_jobs)
            else:
                results = runner.run()
        except SimulationCancelled as exc:
            return self._cancelled(exc)
        except Exception as exc:
            self._failed(exc)
            raise
        return self._completed(results, print_results)

    async def run_async(
        self,
        progress_callback=None,
        on_progress: Optional[Callable[[SimulationProgress], None]] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> List[SimulationResult]:
        """
        Run the sweep cooperatively on the running event loop.

        Control returns to the loop every 10 iterations, so other tasks
        (including one calling :meth:`cancel`) keep running. Parallel runs
        execute in the loop's default executor instead.

        Returns:
            Same as :meth:`run`.
        """
        self._begin()
        runner = self._make_runner(progress_callback, on_progress, cancel_check)
        try:
            if self.parallel:
                loop = asyncio.get_running_loop()
                results = await loop.run_in_executor(None, runner.run_parallel, self.n_jobs)
            else:
                for completed in runner.sweep():
                    if completed % PROGRESS_EVERY == 0:
                        await asyncio.sleep(0)
                results = runner.finish()
        except SimulationCancelled as exc:
            return self._cancelled(exc)
        except Exception as exc:
            self._failed(exc)
            raise
        return self._completed(results, print_results=False)

    def cancel(self):
        """Request cancellation; completed cells are kept.

        Takes effect at the next iteration boundary of a running sweep.
        """
        self._cancel_requested = True
        if self.status == SimulationStatus.RUNNING:
            self.status = SimulationStatus.CANCELLED

    def reset(self):
        """Stop any running sweep and discard results, progress and errors."""
        self._cancel_requested = True
        self.results = []
        self.progress = None
        self.error = None
        self.status = SimulationStatus.IDLE

    # =========================================================================
    # Results
    # =========================================================================

    def to_frame(self) -> pd.DataFrame:
        """Results of the latest run as a DataFrame (see ``results_to_frame``)."""
        return results_to_frame(self.results)

    def summary(self, target_power: float = 0.80, summary: str = "short") -> str:
        """Text table of the latest results."""
        return format_simulation_results(
            self.results,
            target_power=target_power,
            summary=summary,
            criterion=self.config.success_criterion,
        )

    def __repr__(self):
        sizes = self.config.sample_size_range
        shifts = self.config.domain_shift_range
        return (
            f"PowerSimulation(sample_sizes={sizes.min}-{sizes.max} by {sizes.step}, "
            f"domain_shifts={shifts.min}-{shifts.max} in {shifts.steps} steps, "
            f"num_simulations={self.config.num_simulations}, status='{self.status.value}')"
        )
