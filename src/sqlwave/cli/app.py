"""
Root Typer application for the sqlwave CLI.

Every command reads ``SqlwaveSettings`` first; flags given on the command
line override the matching setting for that invocation.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version

import typer

from sqlwave import __version__
from sqlwave.cli.utils import (
    console,
    console_callback,
    err_console,
    handle_errors,
    load_settings,
    make_options,
    open_connection,
    print_error,
    print_json,
    print_table,
)
from sqlwave.migrations import runner
from sqlwave.migrations.visualizer import visualize_dot, visualize_mermaid

app = typer.Typer(
    name="sqlwave",
    help="sqlwave: dependency-aware SQL migrations applied in waves.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

DatabaseOption = typer.Option(None, "--database", "-d", help="SQLite database file.")
RootOption = typer.Option(None, "--root", "-r", help="Artifact directory or package:<pkg>/<dir>.")
TableOption = typer.Option(None, "--table", "-t", help="Ledger table name.")
JsonOption = typer.Option(False, "--json", help="Print JSON instead of tables.")


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        try:
            v = pkg_version("sqlwave")
        except PackageNotFoundError:
            v = __version__
        typer.echo(f"sqlwave {v}")
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
    """sqlwave CLI: initialise the ledger, plan and apply migrations."""


# ── Commands ─────────────────────────────────────────────────────────────


@app.command()
def init(
    database: str | None = DatabaseOption,
    table: str | None = TableOption,
) -> None:
    """Create the ledger table (safe to run repeatedly)."""
    settings = load_settings()
    with handle_errors(), open_connection(settings, database) as conn:
        options = make_options(settings, table=table)
        runner.init(conn, options)
        console.print(f"[green]Ledger table[/green] {options.table_name} ready in {conn.path}")


@app.command()
def migrate(
    database: str | None = DatabaseOption,
    root: str | None = RootOption,
    table: str | None = TableOption,
    json_out: bool = JsonOption,
) -> None:
    """Apply every pending migration, wave by wave."""
    settings = load_settings()
    with handle_errors(), open_connection(settings, database) as conn:
        callback = None if json_out else console_callback
        result = runner.apply(conn, make_options(settings, root=root, table=table, log_callback=callback))

    if json_out:
        print_json(result.to_dict())
    elif result.success:
        if result.applied:
            console.print(
                f"[green]Applied {len(result.applied)} migration(s)[/green] "
                f"in {len(result.waves)} wave(s)"
            )
        else:
            console.print("[dim]Nothing to migrate.[/dim]")

    if result.error is not None:
        if not json_out:
            print_error(result.error)
            err_console.print(f"[dim]{len(result.applied)} migration(s) applied before the failure.[/dim]")
        raise typer.Exit(code=1)


@app.command()
def plan(
    database: str | None = DatabaseOption,
    root: str | None = RootOption,
    table: str | None = TableOption,
    json_out: bool = JsonOption,
) -> None:
    """Show the waves the next migrate would run, without executing them."""
    settings = load_settings()
    with handle_errors(), open_connection(settings, database) as conn:
        migration_plan = runner.plan(conn, make_options(settings, root=root, table=table))

    if json_out:
        print_json(migration_plan.to_dict())
        return

    rows = [
        {"wave": m.wave, "type": m.type.value, "version": m.version, "filename": m.filename}
        for m in migration_plan.migrations
    ]
    if not rows:
        console.print("[dim]Nothing to migrate.[/dim]")
        return
    print_table(rows, title="Migration plan")


@app.command()
def status(
    database: str | None = DatabaseOption,
    root: str | None = RootOption,
    table: str | None = TableOption,
    json_out: bool = JsonOption,
) -> None:
    """Show every artifact and whether it is applied, pending or due to re-run."""
    settings = load_settings()
    with handle_errors(), open_connection(settings, database) as conn:
        statuses = runner.status(conn, make_options(settings, root=root, table=table))

    if json_out:
        print_json([s.to_dict() for s in statuses])
        return

    print_table(
        [
            {
                "state": s.state.value,
                "wave": s.migration.wave,
                "type": s.migration.type.value,
                "filename": s.migration.filename,
            }
            for s in statuses
        ],
        title="Migration status",
    )


@app.command()
def graph(
    database: str | None = DatabaseOption,
    root: str | None = RootOption,
    table: str | None = TableOption,
    fmt: str = typer.Option("mermaid", "--format", "-f", help="mermaid or dot."),
) -> None:
    """Print the dependency graph as Mermaid or Graphviz DOT."""
    if fmt not in ("mermaid", "dot"):
        err_console.print(f"[bold red]Error[/bold red]: unknown format {fmt!r} (mermaid, dot)")
        raise typer.Exit(code=2)

    settings = load_settings()
    with handle_errors(), open_connection(settings, database) as conn:
        migration_plan = runner.plan(conn, make_options(settings, root=root, table=table))

    render = visualize_mermaid if fmt == "mermaid" else visualize_dot
    typer.echo(render(migration_plan.graph), nl=False)
