"""
Tests for result formatting utilities.
"""

import pandas as pd
import pytest

from statpower.core.config import SuccessCriterion
from statpower.core.results import SimulationResult
from statpower.utils.formatters import (
    _format_results,
    _ResultFormatter,
    _TableFormatter,
    format_power_table,
    format_simulation_results,
)


def _cell(n, shift, rate, n_failed=0, mmd=None):
    return SimulationResult(
        sample_size=n,
        domain_shift=shift,
        success_rate=rate,
        confidence_interval=(max(0.0, rate - 0.1), min(1.0, rate + 0.1)),
        mean_metric=0.65,
        std_metric=0.04,
        simulations=(),
        n_failed=n_failed,
        mean_mmd=mmd,
    )


@pytest.fixture
def grid_results():
    return [
        _cell(50, 0.0, 0.55),
        _cell(50, 1.0, 0.30),
        _cell(100, 0.0, 0.85),
        _cell(100, 1.0, 0.60),
    ]


# ---------------------------------------------------------------------------
# TableFormatter
# ---------------------------------------------------------------------------
class TestTableFormatter:
    """Test _TableFormatter utility methods."""

    def setup_method(self):
        self.tf = _TableFormatter()

    def test_create_table_basic(self):
        table = self.tf._create_table(["Name", "Value"], [["alpha", "0.05"], ["beta", "0.20"]])
        lines = table.split("\n")
        assert len(lines) == 4  # header + separator + 2 rows
        assert "Name" in lines[0]
        assert set(lines[1].replace(" ", "")) == {"-"}
        assert lines[2].startswith("alpha")

    def test_create_table_custom_col_widths(self):
        table = self.tf._create_table(["A", "B"], [["x", "y"]], col_widths=[10, 10])
        # Each column padded to 10 chars + 1 space separator
        assert len(table.split("\n")[0]) == 21

    def test_create_table_no_rows(self):
        table = self.tf._create_table(["N", "Power"], [])
        assert len(table.split("\n")) == 2

    def test_format_value(self):
        assert self.tf._format_value(None) == "-"
        assert self.tf._format_value(0.5) == "0.5000"
        assert self.tf._format_value(0.0001) == "0.000100"
        assert self.tf._format_value(0.0) == "0.0000"
        assert self.tf._format_value(0.123, ".1f") == "0.1"
        assert self.tf._format_value(7) == "7"


# ---------------------------------------------------------------------------
# Simulation summaries
# ---------------------------------------------------------------------------
class TestSimulationSummary:
    """Test format_simulation_results."""

    def test_short_summary_grid(self, grid_results):
        text = format_simulation_results(grid_results)
        assert text.startswith("Simulation Power Results")
        assert "shift=0.00" in text
        assert "shift=1.00" in text
        assert "85.0" in text
        assert "Cell Details" not in text

    def test_minimum_sample_size_table(self, grid_results):
        text = format_simulation_results(grid_results, target_power=0.80)
        assert "Minimum N for 80% power" in text
        lines = text.split("\n")
        assert any(line.startswith("0.00") and "100" in line for line in lines)
        assert any(line.startswith("1.00") and ">100" in line for line in lines)

    def test_criterion_line(self, grid_results):
        text = format_simulation_results(grid_results, criterion=SuccessCriterion("auc", 0.6, "greater"))
        assert "Success: auc > 0.6" in text

    def test_less_criterion(self, grid_results):
        text = format_simulation_results(grid_results, criterion=SuccessCriterion("accuracy", 0.4, "less"))
        assert "Success: accuracy < 0.4" in text

    def test_no_criterion_line_by_default(self, grid_results):
        assert "Success:" not in format_simulation_results(grid_results)

    def test_long_summary_details(self, grid_results):
        results = grid_results + [_cell(150, 0.0, 0.9, n_failed=2, mmd=0.25)]
        text = format_simulation_results(results, summary="long")
        assert "Cell Details" in text
        assert "CI lower" in text
        assert "0.2500" in text

    def test_unsorted_input(self, grid_results):
        text = format_simulation_results(list(reversed(grid_results)))
        grid_lines = [line for line in text.split("\n") if line[:3].strip() in ("50", "100")]
        assert grid_lines[0].startswith("50")

    def test_missing_cell_shows_dash(self):
        text = format_simulation_results([_cell(50, 0.0, 0.5), _cell(100, 1.0, 0.7)])
        row_50 = next(line for line in text.split("\n") if line.startswith("50 "))
        assert "-" in row_50


class TestPowerTable:
    """Test format_power_table."""

    def test_power_curve_frame(self):
        frame = pd.DataFrame({"sample_size": [20, 40], "power": [0.3, 0.6]})
        text = format_power_table(frame, test="two-sample-t")
        lines = text.split("\n")
        assert lines[0] == "Power Curve: two-sample-t"
        assert "0.300" in lines[3]
        assert "0.600" in lines[4]

    def test_none_power(self):
        frame = pd.DataFrame({"sample_size": [20], "power": [None]})
        assert "-" in format_power_table(frame).split("\n")[-1]


class TestFormatResults:
    """Test _format_results dispatch."""

    def test_unknown_kind(self):
        with pytest.raises(ValueError, match="Unknown result kind"):
            _format_results("bogus", {})

    def test_formatter_class(self, grid_results):
        text = _ResultFormatter()._format_short_simulation({"results": grid_results})
        assert "Estimated power (%) over 4 cells" in text
