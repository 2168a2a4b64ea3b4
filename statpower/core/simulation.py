"""
Monte Carlo sweep over the (sample size, domain shift) grid.

Each grid cell owns an MT19937 stream spawned from the root
``SeedSequence`` in row-major grid order, so a cell's results do not depend
on whether the sweep runs sequentially or on joblib workers.
"""

import math
import time
import warnings
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional

import numpy as np

from ..progress import ProgressReporter, SimulationCancelled
from ..stats.data_generation import generate_transfer_data, maximum_mean_discrepancy
from ..stats.model_fitting import evaluate_transfer
from .config import SimulationConfig
from .results import (
    ResultsProcessor,
    SimulationResult,
    SingleSimulationResult,
    failed_iteration,
    sort_results,
)

PROGRESS_EVERY = 10

__all__ = [
    "SimulationProgress",
    "SimulationRunner",
    "cell_generators",
    "run_iteration",
    "simulate_cell",
    "run_simulation",
]


@dataclass(frozen=True)
class SimulationProgress:
    """Snapshot of a running sweep.

    Attributes:
        current_iteration: Iterations completed so far.
        total_iterations: Iterations in the whole sweep.
        current_sample_size: Sample size of the cell being simulated.
        current_domain_shift: Domain shift of the cell being simulated.
        cell_index: Zero-based index of that cell in grid order.
        n_cells: Number of grid cells.
        elapsed: Seconds since the sweep started.
        estimated_time_remaining: Seconds left at the current rate.
    """

    current_iteration: int
    total_iterations: int
    current_sample_size: int
    current_domain_shift: float
    cell_index: int
    n_cells: int
    elapsed: float
    estimated_time_remaining: float

    @property
    def fraction(self) -> float:
        return self.current_iteration / self.total_iterations if self.total_iterations else 1.0


def cell_generators(seed: Optional[int], n_cells: int) -> List[np.random.Generator]:
    """One independent MT19937 generator per grid cell."""
    children = np.random.SeedSequence(seed).spawn(n_cells)
    return [np.random.Generator(np.random.MT19937(child)) for child in children]


def run_iteration(
    config: SimulationConfig,
    rng: np.random.Generator,
    sample_size: int,
    domain_shift: float,
    iteration: int,
) -> SingleSimulationResult:
    """
    Simulate, fit and score one dataset.

    An iteration whose generation or fitting raises, or whose metric is not
    finite, is returned as a failed result (metric 0.5, unsuccessful).
    """
    criterion = config.success_criterion
    try:
        data = generate_transfer_data(rng, sample_size, domain_shift, config.data_generation)
        metric = float(evaluate_transfer(data)[criterion.metric])
        mmd = maximum_mean_discrepancy(data.source_X, data.target_X) if config.compute_mmd else None
    except ImportError:
        raise
    except Exception:
        return failed_iteration(iteration, sample_size)

    if not math.isfinite(metric):
        return failed_iteration(iteration, sample_size)

    return SingleSimulationResult(
        iteration=iteration,
        metric=metric,
        success=criterion.is_success(metric),
        train_size=sample_size,
        test_size=sample_size,
        mmd=mmd,
    )


def simulate_cell(
    config: SimulationConfig,
    sample_size: int,
    domain_shift: float,
    rng: np.random.Generator,
) -> List[SingleSimulationResult]:
    """All iterations of one cell, without progress or cancellation hooks.

    Used as the unit of work for parallel sweeps.
    """
    return [run_iteration(config, rng, sample_size, domain_shift, i) for i in range(config.num_simulations)]


class SimulationRunner:
    """Executes the grid sweep for one ``SimulationConfig``.

    Completed cells accumulate in ``results`` as the sweep advances, so the
    cells finished before a cancellation remain available.
    """

    def __init__(
        self,
        config: SimulationConfig,
        progress: Optional[ProgressReporter] = None,
        on_progress: Optional[Callable[[SimulationProgress], None]] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
    ):
        """Initialise the simulation runner.

        Args:
            config: Sweep configuration.
            progress: Optional ``ProgressReporter`` advanced by 1 per
                iteration.
            on_progress: Optional callback receiving a
                ``SimulationProgress`` every 10 iterations and at each
                cell boundary.
            cancel_check: Optional callable returning ``True`` to abort.
        """
        self.config = config
        self.progress = progress
        self.on_progress = on_progress
        self.cancel_check = cancel_check
        self.processor = ResultsProcessor(confidence_level=config.confidence_level)
        self.grid = config.grid()
        self.total_iterations = config.total_iterations
        self.results: List[SimulationResult] = []
        self.completed_iterations = 0
        self._start_time = 0.0

    # =========================================================================
    # Hooks
    # =========================================================================

    def _check_cancelled(self):
        if self.cancel_check is not None and self.cancel_check():
            raise SimulationCancelled("Simulation cancelled by user", sort_results(self.results))

    def _emit(self, cell_index: int):
        if self.on_progress is None:
            return
        sample_size, shift = self.grid[min(cell_index, len(self.grid) - 1)]
        elapsed = time.monotonic() - self._start_time
        done = self.completed_iterations
        remaining = (self.total_iterations - done) * elapsed / done if done else 0.0
        self.on_progress(
            SimulationProgress(
                current_iteration=done,
                total_iterations=self.total_iterations,
                current_sample_size=sample_size,
                current_domain_shift=shift,
                cell_index=cell_index,
                n_cells=len(self.grid),
                elapsed=elapsed,
                estimated_time_remaining=remaining,
            )
        )

    def _begin(self) -> List[np.random.Generator]:
        self.results = []
        self.completed_iterations = 0
        self._start_time = time.monotonic()
        if self.progress is not None:
            self.progress.start()
        return cell_generators(self.config.seed, len(self.grid))

    def finish(self) -> List[SimulationResult]:
        """Close progress reporting after a sweep and return the sorted cells."""
        if self.progress is not None:
            self.progress.finish()
        self._emit(len(self.grid) - 1)
        return sort_results(self.results)

    # =========================================================================
    # Sequential sweep
    # =========================================================================

    def sweep(self) -> Iterator[int]:
        """Run the sweep one iteration at a time.

        Yields:
            Number of completed iterations after each iteration.

        Raises:
            SimulationCancelled: If ``cancel_check`` fires; carries the
                completed cells.
        """
        generators = self._begin()
        n_sims = self.config.num_simulations

        for cell_index, ((sample_size, shift), rng) in enumerate(zip(self.grid, generators)):
            self._check_cancelled()
            self._emit(cell_index)

            simulations: List[SingleSimulationResult] = []
            for iteration in range(n_sims):
                self._check_cancelled()
                simulations.append(run_iteration(self.config, rng, sample_size, shift, iteration))
                self.completed_iterations += 1
                if self.progress is not None:
                    self.progress.advance(1)
                if self.completed_iterations % PROGRESS_EVERY == 0:
                    self._emit(cell_index)
                yield self.completed_iterations

            self.results.append(self.processor.aggregate_cell(sample_size, shift, simulations))

    def run(self) -> List[SimulationResult]:
        """Run the whole sweep sequentially.

        Returns:
            Cells sorted by (sample_size, domain_shift).
        """
        for _ in self.sweep():
            pass
        return self.finish()

    # =========================================================================
    # Parallel sweep
    # =========================================================================

    def run_parallel(self, n_jobs: int = -1) -> List[SimulationResult]:
        """Run cells on joblib workers, falling back to sequential on failure.

        Cancellation is checked as each cell's results arrive.
        """
        from joblib import Parallel, delayed

        generators = self._begin()
        n_sims = self.config.num_simulations

        try:
            cell_outputs = Parallel(
                n_jobs=n_jobs,
                backend="loky",
                verbose=0,
                return_as="generator",
            )(delayed(simulate_cell)(self.config, n, shift, rng) for (n, shift), rng in zip(self.grid, generators))

            for cell_index, ((sample_size, shift), simulations) in enumerate(zip(self.grid, cell_outputs)):
                self._check_cancelled()
                self.results.append(self.processor.aggregate_cell(sample_size, shift, simulations))
                self.completed_iterations += n_sims
                if self.progress is not None:
                    self.progress.advance(n_sims)
                self._emit(cell_index)
        except SimulationCancelled:
            raise
        except Exception as e:
            warnings.warn(f"Parallel execution failed ({e}). Falling back to sequential.", stacklevel=2)
            return self.run()

        return self.finish()


def _resolve_reporter(progress_callback, total: int) -> Optional[ProgressReporter]:
    if progress_callback is None or progress_callback is False:
        return None
    if isinstance(progress_callback, ProgressReporter):
        return progress_callback
    return ProgressReporter(total, progress_callback)


def run_simulation(
    config: Optional[SimulationConfig] = None,
    progress_callback=None,
    cancel_check: Optional[Callable[[], bool]] = None,
    parallel: bool = False,
    n_jobs: Optional[int] = None,
    on_progress: Optional[Callable[[SimulationProgress], None]] = None,
) -> List[SimulationResult]:
    """
    Run a transfer-learning power simulation.

    Args:
        config: Sweep configuration (defaults to ``SimulationConfig()``).
        progress_callback: ``(current, total)`` callable or a
            ``ProgressReporter``; ``None``/``False`` disables progress.
        cancel_check: Callable returning ``True`` to stop the sweep.
        parallel: Distribute cells over joblib workers.
        n_jobs: Worker count for parallel runs (joblib semantics, default
            all cores).
        on_progress: Callback receiving ``SimulationProgress`` snapshots.

    Returns:
        One ``SimulationResult`` per cell, sorted by (sample_size,
        domain_shift).

    Raises:
        ValueError: If the configuration is invalid.
        SimulationCancelled: If *cancel_check* fires; the exception's
            ``partial_results`` holds the completed cells.

    Example:
        >>> from statpower import SimulationConfig, run_simulation
        >>> config = SimulationConfig.from_dict({"num_simulations": 50})
        >>> results = run_simulation(config)
    """
    from ..utils.validators import _validate_simulation_config

    config = config if config is not None else SimulationConfig()
    validation = _validate_simulation_config(config)
    validation.raise_if_invalid()
    for message in validation.warnings:
        warnings.warn(message, stacklevel=2)

    runner = SimulationRunner(
        config,
        progress=_resolve_reporter(progress_callback, config.total_iterations),
        on_progress=on_progress,
        cancel_check=cancel_check,
    )
    if parallel:
        return runner.run_parallel(n_jobs if n_jobs is not None else -1)
    return runner.run()
