"""
Progress reporting and cancellation for simulation sweeps.

Progress flows through a plain ``(current, total)`` callback so the same
sweep can drive a console line, a tqdm bar or a GUI widget.
"""

import sys
from typing import Callable, List, Optional


class SimulationCancelled(Exception):
    """Raised when a simulation sweep is cancelled.

    Attributes:
        partial_results: Grid cells completed before cancellation, sorted
            by (sample_size, domain_shift).
    """

    def __init__(self, message: str = "Simulation cancelled by user", partial_results: Optional[List] = None):
        super().__init__(message)
        self.partial_results = list(partial_results or [])


class ProgressReporter:
    """Wraps a ``(current, total)`` callback with counting and throttling.

    Args:
        total: Total number of iterations in the sweep.
        callback: Function called as ``callback(current, total)``.
        update_every: Fire the callback at most once per this many advances.
            Defaults to ``max(1, total // 200)``.
    """

    def __init__(
        self,
        total: int,
        callback: Callable[[int, int], None],
        update_every: Optional[int] = None,
    ):
        self.total = total
        self._callback = callback
        self._current = 0
        self.update_every = update_every if update_every is not None else max(1, total // 200)

    @property
    def current(self) -> int:
        return self._current

    def start(self):
        """Reset the counter and fire an initial ``0/total`` update."""
        self._current = 0
        self._callback(0, self.total)

    def advance(self, n: int = 1):
        """Advance the counter by *n* iterations, firing the callback when due."""
        previous = self._current
        self._current += n
        crossed = self._current // self.update_every > previous // self.update_every
        if self._current >= self.total or crossed:
            self._callback(self._current, self.total)

    def finish(self):
        """Fire a final ``total/total`` update if the counter is not there yet."""
        if self._current < self.total:
            self._current = self.total
            self._callback(self.total, self.total)


class PrintReporter:
    """Console reporter: ``\\rProgress:  45.2% (723/1600 iterations)`` on stderr."""

    def __call__(self, current: int, total: int):
        if total <= 0:
            return
        pct = 100.0 * current / total
        sys.stderr.write(f"\rProgress: {pct:5.1f}% ({current}/{total} iterations)")
        sys.stderr.flush()
        if current >= total:
            sys.stderr.write("\n")
            sys.stderr.flush()


class TqdmReporter:
    """tqdm progress bar (requires the ``progress`` extra).

    Usage::

        from statpower import run_simulation, TqdmReporter
        run_simulation(config, progress_callback=TqdmReporter(desc="sweep"))
    """

    def __init__(self, **tqdm_kwargs):
        self._tqdm_kwargs = tqdm_kwargs
        self._bar = None

    def __call__(self, current: int, total: int):
        from tqdm import tqdm

        if self._bar is None:
            self._bar = tqdm(total=total, unit="iter", **self._tqdm_kwargs)

        delta = current - self._bar.n
        if delta > 0:
            self._bar.update(delta)

        if current >= total:
            self._bar.close()
            self._bar = None
