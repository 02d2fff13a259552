"""
CLI: ``bizframe db`` — configured database checks.
"""

from __future__ import annotations

import typer
from rich.table import Table

from bizframe.cli.utils import console, err_console, load_settings
from bizframe.core.configuration import Configuration
from bizframe.core.connections import DatabaseConnectionManager
from bizframe.core.errors import BizFrameError

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_databases() -> None:
    """List logical databases from the configuration file."""
    settings = load_settings()
    configuration = Configuration.from_file(settings.config_file)

    table = Table()
    table.add_column("Name")
    table.add_column("Driver")
    table.add_column("Server")
    table.add_column("Database")
    for name in configuration.database_names():
        info = configuration.database_info(name)
        table.add_row(name, info.driver, info.server, info.dbname)
    console.print(table)


@app.command("check")
def check(
    name: str | None = typer.Argument(None, help="Logical database name (default: all)"),  # noqa: UP007
) -> None:
    """Open a connection to each database and report the result."""
    settings = load_settings()
    configuration = Configuration.from_file(settings.config_file)
    names = [name] if name else configuration.database_names()
    if not names:
        err_console.print(f"[yellow]No databases configured in {settings.config_file}[/yellow]")
        raise typer.Exit(1)

    manager = DatabaseConnectionManager(configuration)
    failed = 0
    try:
        for db_name in names:
            try:
                manager.connection(db_name)
            except BizFrameError as e:
                failed += 1
                console.print(f"[red]✗[/red] {db_name}: {e.message}")
            else:
                console.print(f"[green]✓[/green] {db_name}")
    finally:
        manager.close_all()

    if failed:
        raise typer.Exit(1)
