"""
Root Typer application for the bizframe CLI.

Inspection tools for an application tree: where a logical name resolves,
what a structured resource parses to, the compiled cache, configured
databases and effective settings.
"""

from __future__ import annotations

import typer
from typer import Typer

from bizframe.cli.utils import console, err_console, load_settings
from bizframe.core.errors import BizFrameError
from bizframe.core.resources import ResourceKind, ResourceResolver

app = Typer(
    name="bizframe",
    help="bizframe — request registry, resources and database configuration.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from bizframe import __version__

        typer.echo(f"bizframe {__version__}")
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
    """bizframe CLI — inspect resources, caches and databases."""


# ── Resources ────────────────────────────────────────────────────────────


@app.command("resolve")
def resolve(
    name: str = typer.Argument(..., help="Dotted logical name, e.g. demo.BOEvent"),
    kind: str = typer.Option("metadata", "--kind", "-k", help="metadata, template, library, message"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="List every searched path"),
) -> None:
    """Show which file a logical name resolves to."""
    try:
        resource_kind = ResourceKind[kind.upper()]
    except KeyError:
        err_console.print(f"[red]Unknown kind:[/red] {kind}")
        raise typer.Exit(2) from None

    resolver = ResourceResolver(load_settings())
    try:
        if verbose:
            for candidate in resolver.candidates(name, resource_kind):
                marker = "+" if candidate.is_file() else "-"
                typer.echo(f"  {marker} {candidate}")
        path = resolver.path_for(name, resource_kind)
    except BizFrameError as e:
        err_console.print(f"[red]Not found:[/red] {e.message}")
        raise typer.Exit(1) from e
    typer.echo(str(path))


@app.command("show")
def show(
    name: str = typer.Argument(..., help="Dotted logical name of a metadata resource"),
) -> None:
    """Print the parsed form of a metadata resource (through the compiled cache)."""
    resolver = ResourceResolver(load_settings())
    try:
        data = resolver.load_structured(resolver.path_for(name, ResourceKind.METADATA))
    except BizFrameError as e:
        err_console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1) from e
    console.print_json(data=data, default=str)


# ── Sub-command registration ─────────────────────────────────────────────

from bizframe.cli.cache import app as cache_app  # noqa: E402
from bizframe.cli.config import app as config_app  # noqa: E402
from bizframe.cli.db import app as db_app  # noqa: E402

app.add_typer(cache_app, name="cache", help="Compiled cache management.")
app.add_typer(db_app, name="db", help="Database operations.")
app.add_typer(config_app, name="config", help="Configuration inspection.")


if __name__ == "__main__":
    app()
