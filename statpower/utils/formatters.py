"""
Console formatting for power results.

Plain-text tables for simulation sweeps and analytical calculations.
"""

from typing import Any, Dict, List, Optional, Sequence

__all__ = ["format_simulation_results", "format_power_table"]


class _TableFormatter:
    """Fixed-width text tables."""

    def _format_value(self, value: Any, spec: Optional[str] = None) -> str:
        if value is None:
            return "-"
        if isinstance(value, float):
            if spec is not None:
                return format(value, spec)
            if value != 0 and abs(value) < 0.001:
                return f"{value:.6f}"
            return f"{value:.4f}"
        return str(value)

    def _create_table(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[str]],
        col_widths: Optional[List[int]] = None,
    ) -> str:
        """Header, dashed separator and one line per row, columns space-separated."""
        if col_widths is None:
            col_widths = [max(len(str(h)), *(len(str(r[i])) for r in rows)) if rows else len(str(h)) for i, h in enumerate(headers)]

        def line(cells):
            return " ".join(str(c).ljust(w) for c, w in zip(cells, col_widths))

        lines = [line(headers), " ".join("-" * w for w in col_widths)]
        lines.extend(line(row) for row in rows)
        return "\n".join(lines)


class _ResultFormatter(_TableFormatter):
    """Builds the printed summaries for simulation sweeps."""

    def _format_short_simulation(self, data: Dict[str, Any]) -> str:
        results = data["results"]
        target = data.get("target_power", 0.80)
        sizes = sorted({r.sample_size for r in results})
        shifts = sorted({r.domain_shift for r in results})
        power = {(r.sample_size, r.domain_shift): r.success_rate for r in results}

        headers = ["N"] + [f"shift={s:.2f}" for s in shifts]
        rows = [[str(n)] + [self._format_value(100 * power[(n, s)], ".1f") if (n, s) in power else "-" for s in shifts] for n in sizes]

        out = ["Simulation Power Results"]
        if "criterion" in data:
            out.append(f"Success: {data['metric']} {data['criterion']}")
        out.append(f"Estimated power (%) over {len(results)} cells")
        out.append(self._create_table(headers, rows))

        achieved = data.get("achieved", {})
        if achieved:
            max_n = max(sizes) if sizes else 0
            out.append("")
            out.append(f"Minimum N for {100 * target:.0f}% power")
            size_rows = [[f"{s:.2f}", str(n) if n is not None else f">{max_n}"] for s, n in sorted(achieved.items())]
            out.append(self._create_table(["Domain shift", "N"], size_rows))

        return "\n".join(out)

    def _format_long_simulation(self, data: Dict[str, Any]) -> str:
        results = data["results"]
        headers = ["N", "Shift", "Power", "CI lower", "CI upper", "Mean", "SD", "Failed", "MMD"]
        rows = [
            [
                str(r.sample_size),
                self._format_value(r.domain_shift, ".3f"),
                self._format_value(r.success_rate, ".3f"),
                self._format_value(r.confidence_interval[0], ".3f"),
                self._format_value(r.confidence_interval[1], ".3f"),
                self._format_value(r.mean_metric, ".4f"),
                self._format_value(r.std_metric, ".4f"),
                f"{r.n_failed}/{r.n_simulations}",
                self._format_value(r.mean_mmd, ".4f"),
            ]
            for r in results
        ]
        return "\n".join(
            [
                self._format_short_simulation(data),
                "",
                "Cell Details",
                self._create_table(headers, rows),
            ]
        )

    def _format_power_table(self, data: Dict[str, Any]) -> str:
        rows = [[str(int(n)), self._format_value(p, ".3f")] for n, p in zip(data["sample_size"], data["power"])]
        return "\n".join([f"Power Curve: {data.get('test', '')}".rstrip(), self._create_table(["N", "Power"], rows)])


def _format_results(kind: str, data: Dict[str, Any], summary: str = "short") -> str:
    formatter = _ResultFormatter()
    if kind == "simulation":
        if summary == "long":
            return formatter._format_long_simulation(data)
        return formatter._format_short_simulation(data)
    if kind == "power_curve":
        return formatter._format_power_table(data)
    raise ValueError(f"Unknown result kind: {kind!r}")


def format_simulation_results(
    results,
    target_power: float = 0.80,
    summary: str = "short",
    criterion=None,
) -> str:
    """
    Text summary of a simulation sweep.

    Args:
        results: ``SimulationResult`` cells.
        target_power: Power used for the minimum-N table.
        summary: ``"short"`` (power grid) or ``"long"`` (adds per-cell
            details).
        criterion: Optional ``SuccessCriterion`` shown in the title.

    Returns:
        Multi-line string.
    """
    from ..core.results import ResultsProcessor, sort_results

    results = sort_results(results)
    data: Dict[str, Any] = {
        "results": results,
        "target_power": target_power,
        "achieved": ResultsProcessor(target_power).first_achieved(results),
    }
    if criterion is not None:
        symbol = ">" if criterion.direction == "greater" else "<"
        data["metric"] = criterion.metric
        data["criterion"] = f"{symbol} {criterion.threshold}"
    return _format_results("simulation", data, summary)


def format_power_table(frame, test: str = "") -> str:
    """Text table of a ``power_curve`` DataFrame."""
    return _format_results(
        "power_curve",
        {"sample_size": list(frame["sample_size"]), "power": list(frame["power"]), "test": test},
    )
