"""
Integration tests for the PowerSimulation facade.
"""

import asyncio
import io
import sys
from unittest.mock import MagicMock, patch

import pandas as pd
import pytest

from statpower import PowerSimulation, SimulationConfig, SimulationStatus
from statpower.progress import PrintReporter
from tests.config import SEED, SMALL_GRID


class TestConfiguration:
    """Chainable setters and validation."""

    def test_defaults(self):
        sim = PowerSimulation()
        assert sim.config == SimulationConfig()
        assert sim.status is SimulationStatus.IDLE
        assert sim.results == []
        assert sim.parallel is False

    def test_chaining(self, quiet_warnings):
        sim = (
            PowerSimulation()
            .set_seed(7)
            .set_simulations(20)
            .set_sample_sizes(30, 90, 30)
            .set_domain_shifts(0.0, 1.0, 2)
            .set_success_criterion("f1", 0.5)
            .set_data_generation(num_features=3)
            .set_compute_mmd()
        )
        config = sim.config
        assert config.seed == 7
        assert config.num_simulations == 20
        assert config.sample_sizes == [30, 60, 90]
        assert config.domain_shifts == pytest.approx([0.0, 0.5, 1.0])
        assert config.success_criterion.metric == "f1"
        assert config.data_generation.num_features == 3
        assert config.compute_mmd is True

    def test_from_dict(self):
        sim = PowerSimulation.from_dict(SMALL_GRID)
        assert sim.config.sample_sizes == [40, 80]
        assert sim.config.seed == SEED

    def test_invalid_config_rejected(self):
        with pytest.raises(ValueError, match="Validation failed"):
            PowerSimulation(SimulationConfig(num_simulations=0))

    @pytest.mark.parametrize("seed, error", [(-1, ValueError), (1.5, TypeError), ("1", TypeError), (True, TypeError)])
    def test_bad_seed(self, seed, error):
        with pytest.raises(error):
            PowerSimulation().set_seed(seed)

    def test_seed_none(self):
        assert PowerSimulation().set_seed(None).config.seed is None

    def test_low_simulation_warning(self):
        with pytest.warns(UserWarning, match="Low simulation count"):
            PowerSimulation().set_simulations(10)

    def test_bad_sample_sizes(self):
        with pytest.raises(ValueError):
            PowerSimulation().set_sample_sizes(100, 50)

    def test_bad_domain_shifts(self):
        with pytest.raises(ValueError):
            PowerSimulation().set_domain_shifts(-1.0, 1.0)

    def test_bad_criterion(self):
        with pytest.raises(ValueError, match="metric"):
            PowerSimulation().set_success_criterion("custom")

    def test_unknown_data_setting(self):
        with pytest.raises(ValueError, match="Unknown data generation settings"):
            PowerSimulation().set_data_generation(colour="blue")

    def test_invalid_data_setting(self):
        with pytest.raises(ValueError):
            PowerSimulation().set_data_generation(source_prevalence=1.5)

    def test_set_parallel(self):
        sim = PowerSimulation().set_parallel(True, n_jobs=2)
        assert sim.parallel is True
        assert sim.n_jobs >= 1

    def test_repr(self):
        text = repr(PowerSimulation())
        assert "sample_sizes=50-500 by 50" in text
        assert "status='idle'" in text


class TestRun:
    """Synchronous runs."""

    def test_completed(self, small_simulation, quiet_warnings):
        results = small_simulation.run()
        assert small_simulation.status is SimulationStatus.COMPLETED
        assert len(results) == 4
        assert small_simulation.results == results
        assert small_simulation.error is None

    def test_progress_snapshot_kept(self, small_simulation):
        small_simulation.run()
        assert small_simulation.progress is not None
        assert small_simulation.progress.current_iteration == small_simulation.config.total_iterations

    def test_progress_callback(self, small_simulation):
        callback = MagicMock()
        small_simulation.run(progress_callback=callback)
        total = small_simulation.config.total_iterations
        callback.assert_called_with(total, total)

    def test_on_progress_forwarded(self, small_simulation):
        snapshots = []
        small_simulation.run(on_progress=snapshots.append)
        assert snapshots
        assert snapshots[-1].fraction == 1.0

    def test_print_results(self, small_simulation):
        out, err = io.StringIO(), io.StringIO()
        with patch.object(sys, "stdout", out), patch.object(sys, "stderr", err):
            small_simulation.run(print_results=True)
        assert "TRANSFER LEARNING POWER SIMULATION" in out.getvalue()
        assert "Simulation Power Results" in out.getvalue()
        assert "iterations)" in err.getvalue()

    def test_print_without_progress(self, small_simulation):
        err = io.StringIO()
        with patch.object(sys, "stdout", io.StringIO()), patch.object(sys, "stderr", err):
            small_simulation.run(print_results=True, progress_callback=False)
        assert err.getvalue() == ""

    def test_deterministic(self, small_config):
        first = PowerSimulation(small_config).run()
        second = PowerSimulation(small_config).run()
        assert [r.success_rate for r in first] == [r.success_rate for r in second]
        assert [r.mean_metric for r in first] == [r.mean_metric for r in second]

    def test_cancel_check(self, small_simulation):
        calls = {"n": 0}

        def cancel_after_first_cell():
            calls["n"] += 1
            return small_simulation.progress is not None and small_simulation.progress.current_iteration >= 10

        results = small_simulation.run(cancel_check=cancel_after_first_cell)
        assert small_simulation.status is SimulationStatus.CANCELLED
        assert len(results) == 1
        assert calls["n"] > 0

    def test_error_status(self, small_simulation):
        with patch("statpower.model.SimulationRunner.run", side_effect=RuntimeError("engine exploded")):
            with pytest.raises(RuntimeError, match="engine exploded"):
                small_simulation.run()
        assert small_simulation.status is SimulationStatus.ERROR
        assert small_simulation.error == "engine exploded"

    def test_rerun_clears_error(self, small_simulation):
        with patch("statpower.model.SimulationRunner.run", side_effect=RuntimeError("x")):
            with pytest.raises(RuntimeError):
                small_simulation.run()
        small_simulation.run()
        assert small_simulation.status is SimulationStatus.COMPLETED
        assert small_simulation.error is None


class TestCancelAndReset:
    """cancel() and reset() from inside a running sweep."""

    def test_cancel_from_callback(self, small_simulation):
        def on_progress(snapshot):
            if snapshot.current_iteration >= 10:
                small_simulation.cancel()

        results = small_simulation.run(on_progress=on_progress)
        assert small_simulation.status is SimulationStatus.CANCELLED
        assert len(results) == 1

    def test_reset_from_callback(self, small_simulation):
        def on_progress(snapshot):
            if snapshot.current_iteration >= 10:
                small_simulation.reset()

        results = small_simulation.run(on_progress=on_progress)
        assert small_simulation.status is SimulationStatus.IDLE
        assert results == []
        assert small_simulation.results == []

    def test_reset_after_completion(self, small_simulation):
        small_simulation.run()
        small_simulation.reset()
        assert small_simulation.status is SimulationStatus.IDLE
        assert small_simulation.results == []
        assert small_simulation.progress is None

    def test_cancel_when_idle(self, small_simulation):
        small_simulation.cancel()
        assert small_simulation.status is SimulationStatus.IDLE
        # a new run clears the request
        small_simulation.run()
        assert small_simulation.status is SimulationStatus.COMPLETED


class TestRunAsync:
    """Cooperative runs on an event loop."""

    def test_completes(self, small_simulation):
        results = asyncio.run(small_simulation.run_async())
        assert small_simulation.status is SimulationStatus.COMPLETED
        assert len(results) == 4

    def test_matches_sync(self, small_config):
        sync = PowerSimulation(small_config).run()
        async_results = asyncio.run(PowerSimulation(small_config).run_async())
        assert [r.success_rate for r in sync] == [r.success_rate for r in async_results]

    def test_cancel_from_other_task(self, small_simulation):
        async def scenario():
            task = asyncio.create_task(small_simulation.run_async())
            while small_simulation.progress is None or small_simulation.progress.current_iteration < 10:
                await asyncio.sleep(0)
            small_simulation.cancel()
            return await task

        results = asyncio.run(scenario())
        assert small_simulation.status is SimulationStatus.CANCELLED
        assert len(results) <= 2

    def test_rejects_concurrent_run(self, small_simulation):
        async def scenario():
            task = asyncio.create_task(small_simulation.run_async())
            await asyncio.sleep(0)
            with pytest.raises(RuntimeError, match="already running"):
                small_simulation.run()
            await task

        asyncio.run(scenario())


class TestResults:
    """Tables and summaries."""

    def test_to_frame(self, small_simulation):
        small_simulation.run()
        frame = small_simulation.to_frame()
        assert isinstance(frame, pd.DataFrame)
        assert len(frame) == 4
        assert frame["power"].between(0, 1).all()
        assert (frame["ci_lower"] <= frame["power"] + 1e-9).all()
        assert (frame["power"] <= frame["ci_upper"] + 1e-9).all()

    def test_summary(self, small_simulation):
        small_simulation.run()
        text = small_simulation.summary()
        assert "Success: auc > 0.6" in text
        assert "Minimum N for 80% power" in text

    def test_long_summary(self, small_simulation):
        small_simulation.run()
        assert "Cell Details" in small_simulation.summary(summary="long")

    def test_mmd_in_frame(self, small_config):
        sim = PowerSimulation(small_config.with_values(compute_mmd=True))
        sim.run()
        assert sim.to_frame()["mean_mmd"].notna().all()
