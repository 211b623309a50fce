"""
CLI utility helpers — settings, output formatting.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from shardsim.core.settings import ShardSimSettings
from shardsim.ops.responses import ShardSummary
from shardsim.ops.result import OperationResult
from shardsim.ops.simulation import SimulationReport

console = Console()
err_console = Console(stderr=True)


# ── Settings helper ──────────────────────────────────────────────────────


def load_settings(**overrides: Any) -> ShardSimSettings:
    """Build settings from env/.env, with CLI options (``None`` = unset) on top."""
    values = {k: v for k, v in overrides.items() if v is not None}
    try:
        return ShardSimSettings(**values)
    except ValidationError as exc:
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"])
            err_console.print(f"[bold red]Invalid setting[/bold red] {field}: {error['msg']}")
        raise typer.Exit(code=1) from exc


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> Any:
    """Convert dataclass / pydantic model / dict to plain data."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    return obj


def output_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def print_error(result: OperationResult, *, title: str = "") -> None:
    """Print a failed result's code and message without exiting."""
    err = result.error
    msg = err.message if err else "Unknown error"
    code = err.code if err else "ERROR"
    prefix = f"{title}: " if title else ""
    err_console.print(f"[bold red]Error[/bold red] {prefix}({code}) {msg}")


def print_report(report: SimulationReport) -> None:
    """Render the per-stage summary of a run."""
    table = Table(title="Simulation", show_lines=False, pad_edge=False)
    table.add_column("stage")
    table.add_column("success")
    table.add_column("failures", justify="right")
    table.add_column("elapsed_ms", justify="right")
    table.add_column("error", overflow="fold")
    for outcome in report.stages:
        error = outcome.result.error
        table.add_row(
            outcome.stage,
            "[green]yes[/green]" if outcome.success else "[red]no[/red]",
            str(outcome.failures),
            f"{outcome.elapsed_ms:.1f}",
            f"{error.code}: {error.message}" if error else "",
        )
    console.print(table)


def print_shard_summaries(results: list[OperationResult[ShardSummary]]) -> None:
    """Render one row per (shard, table) with columns and row counts."""
    table = Table(title="Shards", show_lines=False, pad_edge=False)
    table.add_column("shard")
    table.add_column("table")
    table.add_column("columns", overflow="fold")
    table.add_column("rows", justify="right")
    for result in results:
        if not result.success:
            print_error(result, title="inspect")
            continue
        summary = result.data
        if not summary.tables:
            table.add_row(summary.shard, "[dim]-[/dim]", "", "0")
        for entry in summary.tables:
            table.add_row(summary.shard, entry.table, ", ".join(entry.columns), str(entry.rows))
    console.print(table)


def summaries_to_json(results: list[OperationResult[ShardSummary]]) -> list[Any]:
    return [
        _to_dict(r.data) if r.success else r.to_dict()
        for r in results
    ]
