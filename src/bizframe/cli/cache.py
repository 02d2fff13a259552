"""
CLI: ``bizframe cache`` — compiled cache management.
"""

from __future__ import annotations

import typer

from bizframe.cli.utils import console, load_settings
from bizframe.core.resources import ResourceResolver

app = typer.Typer(no_args_is_help=True)


@app.command("clear")
def clear_cache() -> None:
    """Delete every compiled artifact."""
    settings = load_settings()
    removed = ResourceResolver(settings).clear_cache()
    console.print(f"[green]✓[/green] Removed {removed} compiled artifact(s) from {settings.cache_dir}")


@app.command("path")
def artifact_path(
    source: str = typer.Argument(..., help="Source file path"),
) -> None:
    """Show where the compiled artifact for a source file lives."""
    typer.echo(str(ResourceResolver(load_settings()).compiled_path(source)))
