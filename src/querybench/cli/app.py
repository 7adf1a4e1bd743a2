"""
Root Typer application for the querybench CLI.

    querybench run      run the benchmark and print the overall comparison
    querybench config   show the effective settings (credentials masked)
"""

from __future__ import annotations

import random
import sys
from typing import Any

import pydantic
import typer
from rich.markup import escape
from typer import Typer

from querybench import __version__
from querybench.cli.utils import (
    console,
    err_console,
    fail,
    load_settings,
    masked_settings,
    print_comparison,
    print_dict,
    print_json,
)
from querybench.core.errors import BenchError, BenchmarkAborted
from querybench.core.logging import configure_logging
from querybench.core.settings import BenchSettings, ScheduleMode
from querybench.execution.driver import run_benchmark
from querybench.execution.report import build_comparison

app = Typer(
    name="querybench",
    help="querybench — compare a reused raw connection with a pooled SQLAlchemy engine.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"querybench {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """querybench CLI — run the benchmark and inspect its settings."""


def _settings_or_exit(**overrides: Any) -> BenchSettings:
    try:
        return load_settings(**overrides)
    except pydantic.ValidationError as e:
        err_console.print(f"[bold red]Configuration Error[/bold red]: {escape(str(e))}")
        raise typer.Exit(code=1) from e


# ── Commands ─────────────────────────────────────────────────────────────


@app.command("run")
def run_command(
    database_url: str | None = typer.Option(None, "--database-url", "-u", help="SQLAlchemy database URL"),
    schema: str | None = typer.Option(None, "--schema", help="Schema holding the benchmark tables"),
    loops: int | None = typer.Option(None, "--loops", "-l", min=1, help="Number of main loops"),
    times: int | None = typer.Option(None, "--times", "-t", min=1, help="Probe runs per strategy per loop"),
    delay_ms: int | None = typer.Option(None, "--delay-ms", "-d", min=0, help="Sleep between runs (ms)"),
    mode: ScheduleMode | None = typer.Option(None, "--mode", "-m", case_sensitive=False, help="Scheduling mode"),
    seed: int | None = typer.Option(None, "--seed", help="Seed for the interleaving choice"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
) -> None:
    """Run the benchmark and print the comparison across all loops."""
    settings = _settings_or_exit(
        database_url=database_url,
        schema_name=schema,
        loops=loops,
        times=times,
        delay_ms=delay_ms,
        mode=mode,
    )
    configure_logging(level=settings.log_level, json_format=settings.json_logs, stream=sys.stderr)

    rng = random.Random(seed) if seed is not None else None
    try:
        result = run_benchmark(settings, rng=rng)
    except BenchmarkAborted as e:
        if as_json:
            print_json({"aborted": e.to_dict(), "completed_loops": len(e.completed.loops) if e.completed else 0})
        fail(e)
    except BenchError as e:
        fail(e)

    comparison = build_comparison(result.overall())

    if as_json:
        print_json(
            {
                "loops": settings.loops,
                "times": settings.times,
                "delay_ms": settings.delay_ms,
                "overall": comparison.to_dict(),
                "per_loop": [build_comparison(loop.aggregates).to_dict() for loop in result.loops],
                "failures": [failure.to_dict() for failure in result.failures],
            }
        )
        return

    print_comparison(comparison, title=f"{settings.loops} loop(s) × {settings.times} run(s)")
    if result.failures:
        console.print(f"[yellow]{len(result.failures)} failed run(s) were retried[/yellow]")


@app.command("config")
def show_config(
    as_json: bool = typer.Option(False, "--json", help="Print the settings as JSON"),
) -> None:
    """Show the effective settings."""
    data = masked_settings(_settings_or_exit())

    if as_json:
        print_json(data)
        return

    print_dict(data, title="Settings")
