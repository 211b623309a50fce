"""
Root Typer application for the shard-sim CLI.

``shardsim`` with no sub-command runs the full simulation with the
configured defaults, the same as ``shardsim run``.
"""

from __future__ import annotations

import sys
from pathlib import Path

import typer
from typer import Typer

from shardsim.cli.utils import (
    err_console,
    load_settings,
    output_json,
    print_report,
    print_shard_summaries,
    summaries_to_json,
)
from shardsim.core.errors import ConfigError, ShardSimError
from shardsim.core.logging import configure_logging
from shardsim.core.registry import ShardRegistry
from shardsim.core.settings import ShardSimSettings

app = Typer(
    name="shardsim",
    help="shard-sim — horizontal sharding simulation over SQLite shards.",
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from shardsim import __version__

        typer.echo(f"shard-sim {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """shard-sim CLI — provision, evolve, load and migrate a set of shards."""
    if ctx.invoked_subcommand is None:
        run(entities=None, artifact=None, shards=None, log_level=None, json_out=False)


# ── Helpers ──────────────────────────────────────────────────────────────


def _setup(settings: ShardSimSettings) -> None:
    # Logs go to stderr so --json output on stdout stays parseable.
    configure_logging(level=settings.log_level, json_format=settings.json_logs, stream=sys.stderr)


def _open_registry(settings: ShardSimSettings) -> ShardRegistry:
    try:
        return ShardRegistry.from_settings(settings)
    except ConfigError as exc:
        err_console.print(f"[bold red]Invalid shard configuration[/bold red]: {exc.message}")
        raise typer.Exit(code=1) from exc
    except ShardSimError as exc:
        err_console.print(f"[bold red]Cannot open shards[/bold red]: {exc.message}")
        raise typer.Exit(code=1) from exc


# ── Commands ─────────────────────────────────────────────────────────────


@app.command()
def run(
    entities: int | None = typer.Option(None, "--entities", "-n", help="Entities to load (ids 1..N)"),
    artifact: Path | None = typer.Option(None, "--artifact", "-a", help="Snapshot artifact path"),
    shards: list[str] | None = typer.Option(None, "--shard", "-s", help="Shard endpoint (repeatable)"),
    log_level: str | None = typer.Option(None, "--log-level", help="Log level"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Run the full simulation: provision, evolve, load, migrate.

    Unit failures are reported in the summary; the exit code is 0 either way.
    """
    from shardsim.ops.inspect import describe_shards
    from shardsim.ops.simulation import run_simulation

    settings = load_settings(
        entity_count=entities,
        artifact_path=artifact,
        shard_urls=shards or None,
        log_level=log_level,
    )
    _setup(settings)

    with _open_registry(settings) as registry:
        try:
            report = run_simulation(registry, settings)
        except ConfigError as exc:
            err_console.print(f"[bold red]Invalid simulation settings[/bold red]: {exc.message}")
            raise typer.Exit(code=1) from exc
        summaries = describe_shards(registry)

    if json_out:
        output_json({"simulation": report.to_dict(), "shards": summaries_to_json(summaries)})
        return

    print_report(report)
    print_shard_summaries(summaries)


@app.command()
def inspect(
    shards: list[str] | None = typer.Option(None, "--shard", "-s", help="Shard endpoint (repeatable)"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Show each configured shard's tables, columns and row counts."""
    from shardsim.ops.inspect import describe_shards

    settings = load_settings(shard_urls=shards or None)
    _setup(settings)

    with _open_registry(settings) as registry:
        summaries = describe_shards(registry)

    if json_out:
        output_json(summaries_to_json(summaries))
        return
    print_shard_summaries(summaries)
