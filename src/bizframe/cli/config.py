"""
CLI: ``bizframe config`` — effective settings inspection.
"""

from __future__ import annotations

import typer
from rich.table import Table

from bizframe.cli.utils import console, load_settings

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def show_config(
    format: str = typer.Option("table", "--format", "-f", help="Output format: table, json, env"),
) -> None:
    """Show effective settings."""
    settings = load_settings()

    if format == "json":
        console.print_json(settings.model_dump_json())
        return

    if format == "env":
        for key, value in sorted(settings.model_dump().items()):
            console.print(f"BIZFRAME_{key.upper()}={value}")
        return

    table = Table()
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in sorted(settings.model_dump().items()):
        table.add_row(key, str(value))
    console.print(table)
