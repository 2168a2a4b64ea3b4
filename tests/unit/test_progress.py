"""
Tests for progress reporting module.
"""

import io
import sys
from unittest.mock import MagicMock, patch

import pytest

from statpower.progress import (
    PrintReporter,
    ProgressReporter,
    SimulationCancelled,
    TqdmReporter,
)


class TestSimulationCancelled:
    """Test SimulationCancelled exception."""

    def test_is_exception(self):
        assert issubclass(SimulationCancelled, Exception)

    def test_default_message(self):
        exc = SimulationCancelled()
        assert str(exc) == "Simulation cancelled by user"
        assert exc.partial_results == []

    def test_partial_results(self):
        exc = SimulationCancelled("stopped", partial_results=("a", "b"))
        assert str(exc) == "stopped"
        assert exc.partial_results == ["a", "b"]


class TestProgressReporter:
    """Test ProgressReporter throttled callback wrapper."""

    def test_start_fires_zero(self):
        cb = MagicMock()
        pr = ProgressReporter(100, cb)
        pr.start()
        cb.assert_called_with(0, 100)

    def test_advance_throttled(self):
        cb = MagicMock()
        pr = ProgressReporter(100, cb, update_every=10)
        pr.start()
        cb.reset_mock()

        # 5 is not a multiple of 10
        pr.advance(5)
        assert cb.call_count == 0

        pr.advance(5)
        cb.assert_called_with(10, 100)

    def test_advance_crossing_boundary(self):
        cb = MagicMock()
        pr = ProgressReporter(100, cb, update_every=10)
        pr.advance(7)
        pr.advance(7)
        cb.assert_called_once_with(14, 100)

    def test_advance_fires_at_completion(self):
        cb = MagicMock()
        pr = ProgressReporter(10, cb, update_every=100)
        pr.start()
        cb.reset_mock()

        for _ in range(10):
            pr.advance(1)

        cb.assert_called_once_with(10, 10)

    def test_current(self):
        pr = ProgressReporter(100, MagicMock())
        pr.advance(3)
        assert pr.current == 3

    def test_finish_fires_final_update(self):
        cb = MagicMock()
        pr = ProgressReporter(100, cb)
        pr.start()
        pr.advance(50)
        cb.reset_mock()

        pr.finish()
        cb.assert_called_with(100, 100)

    def test_finish_no_double_fire(self):
        cb = MagicMock()
        pr = ProgressReporter(10, cb, update_every=1)
        pr.start()
        for _ in range(10):
            pr.advance(1)
        cb.reset_mock()

        pr.finish()
        assert cb.call_count == 0

    def test_default_update_every(self):
        pr = ProgressReporter(1000, MagicMock())
        # max(1, 1000 // 200)
        assert pr.update_every == 5

    def test_default_update_every_small_total(self):
        assert ProgressReporter(40, MagicMock()).update_every == 1


class TestPrintReporter:
    """Test PrintReporter console output."""

    def test_output_format(self):
        reporter = PrintReporter()
        buf = io.StringIO()
        with patch.object(sys, "stderr", buf):
            reporter(50, 100)

        output = buf.getvalue()
        assert output.startswith("\r")
        assert "50.0%" in output
        assert "(50/100 iterations)" in output

    def test_total_zero_early_return(self):
        reporter = PrintReporter()
        buf = io.StringIO()
        with patch.object(sys, "stderr", buf):
            reporter(0, 0)

        assert buf.getvalue() == ""

    def test_completion_newline(self):
        reporter = PrintReporter()
        buf = io.StringIO()
        with patch.object(sys, "stderr", buf):
            reporter(100, 100)

        assert buf.getvalue().endswith("\n")


class TestTqdmReporter:
    """Test TqdmReporter with mock tqdm."""

    def test_tqdm_missing_raises(self):
        reporter = TqdmReporter()
        with patch.dict("sys.modules", {"tqdm": None}):
            with pytest.raises(ImportError, match="tqdm"):
                reporter(0, 100)

    def test_tqdm_basic_flow(self):
        mock_bar = MagicMock()
        mock_bar.n = 0
        mock_tqdm_cls = MagicMock(return_value=mock_bar)
        mock_tqdm_module = MagicMock()
        mock_tqdm_module.tqdm = mock_tqdm_cls

        reporter = TqdmReporter(desc="sweep")

        with patch.dict("sys.modules", {"tqdm": mock_tqdm_module}):
            reporter(0, 100)
            mock_tqdm_cls.assert_called_once_with(total=100, unit="iter", desc="sweep")

            reporter(50, 100)
            mock_bar.update.assert_called_with(50)

            mock_bar.n = 50
            reporter(100, 100)
            mock_bar.update.assert_called_with(50)
            mock_bar.close.assert_called_once()

