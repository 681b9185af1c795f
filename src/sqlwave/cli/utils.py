"""
CLI utility helpers: settings, connections, output formatting and errors.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from sqlwave.core.errors import ConfigError, DependencyResolutionError, SqlwaveError
from sqlwave.core.logging import configure_logging
from sqlwave.core.settings import SqlwaveSettings, get_settings
from sqlwave.core.sqlite_conn import SqliteConnection
from sqlwave.migrations.events import EventKind, MigrationEvent, log_event
from sqlwave.migrations.runner import MigrateOptions

console = Console()
err_console = Console(stderr=True)


# ── Settings / connection helpers ────────────────────────────────────────


def load_settings() -> SqlwaveSettings:
    """Read settings and configure logging from them."""
    with handle_errors():
        try:
            settings = get_settings()
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
            )
            raise ConfigError(f"Invalid SQLWAVE_* settings: {problems}", cause=exc) from exc
    configure_logging(level=settings.log_level, json_format=settings.json_logs)
    return settings


def make_options(
    settings: SqlwaveSettings,
    *,
    root: str | None = None,
    table: str | None = None,
    **overrides: Any,
) -> MigrateOptions:
    """Build ``MigrateOptions`` from settings, CLI flags winning."""
    return MigrateOptions.from_settings(settings, root=root, table_name=table, **overrides)


@contextmanager
def open_connection(settings: SqlwaveSettings, database: str | None = None) -> Iterator[SqliteConnection]:
    """Open the SQLite database named by ``--database`` or the settings."""
    with SqliteConnection(database or settings.database) as conn:
        yield conn


@contextmanager
def handle_errors() -> Iterator[None]:
    """Turn ``SqlwaveError`` into a red message and exit code 1."""
    try:
        yield
    except SqlwaveError as exc:
        print_error(exc)
        raise typer.Exit(code=1) from exc


def print_error(exc: SqlwaveError) -> None:
    err_console.print(f"[bold red]Error[/bold red] ({exc.category.value}): {exc.message}")
    if isinstance(exc, DependencyResolutionError):
        for pair in exc.unresolved:
            err_console.print(f"  [red]•[/red] {pair.record_id} → {pair.dependency}")


# ── Progress ─────────────────────────────────────────────────────────────


def console_callback(event: MigrationEvent) -> None:
    """Print one line per finished or failed migration, and log every event."""
    log_event(event)
    m = event.migration
    if event.kind is EventKind.DONE:
        ms = (event.data or {}).get("ms")
        console.print(
            f"  [green]✓[/green] [dim]wave {m.wave}[/dim] {m.filename} [dim]({ms} ms)[/dim]"
        )
    elif event.kind is EventKind.ERROR:
        err_console.print(f"  [red]✗[/red] [dim]wave {m.wave}[/dim] {m.filename}: {event.data}")


# ── Output helpers ───────────────────────────────────────────────────────


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def print_table(rows: list[dict[str, Any]], *, title: str = "") -> None:
    """Render a list of dicts as a Rich table."""
    if not rows:
        console.print("[dim]No items.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*("" if v is None else str(v) for v in row.values()))
    console.print(table)
