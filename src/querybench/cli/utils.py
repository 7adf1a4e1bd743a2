"""
CLI utility helpers — settings overrides and output formatting.
"""

from __future__ import annotations

import json
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from querybench.core.errors import BenchError
from querybench.core.settings import BenchSettings
from querybench.execution.report import STATISTICS, Comparison

console = Console()
err_console = Console(stderr=True)

MASK = "********"


# ── Settings helpers ─────────────────────────────────────────────────────


def load_settings(**overrides: Any) -> BenchSettings:
    """Build settings from the environment, letting non-``None`` options win."""
    return BenchSettings(**{key: value for key, value in overrides.items() if value is not None})


def masked_settings(settings: BenchSettings) -> dict[str, Any]:
    """Settings as plain values, with every credential masked."""
    data = settings.model_dump(mode="json")
    if settings.password is not None:
        data["password"] = MASK
    if settings.database_url:
        try:
            data["database_url"] = settings.sqlalchemy_url().render_as_string(hide_password=True)
        except BenchError:
            # unparseable, may still carry a password
            data["database_url"] = MASK
    return data


# ── Output helpers ───────────────────────────────────────────────────────


def fail(error: BenchError) -> NoReturn:
    """Report a ``BenchError`` and exit non-zero."""
    err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {escape(error.message)}")
    raise typer.Exit(code=1)


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")


def print_comparison(comparison: Comparison, *, title: str = "") -> None:
    """Render a comparison as one row per strategy and statistic."""
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    table.add_column("Strategy")
    table.add_column("Statistic")
    for unit in ("ns", "ms", "s"):
        table.add_column(unit, justify="right")

    for times in (comparison.reuse, comparison.template):
        for name in STATISTICS:
            table.add_row(times.strategy.label, name, *(str(v) if v is not None else "-" for v in times.statistic(name)))
    console.print(table)

    percentages = ", ".join(
        f"{name}: {value if value is not None else '-'}" for name, value in comparison.percentages().items()
    )
    console.print(f"Connection re-use as percentage of template, {percentages}")
