"""Docsync CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from docsync.cli.clear import clear_cmd
from docsync.cli.search import search_cmd
from docsync.cli.status import status_cmd
from docsync.cli.sync import sync_cmd
from docsync.logging_config import setup_logging


def _installed_version() -> str:
    try:
        return importlib.metadata.version("docsync")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"docsync {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="docsync",
    help=(
        "Docsync — searchable local knowledge base of a documentation site.\n\n"
        "  docsync sync     Crawl the site and rebuild the index.\n"
        "  docsync search   Semantic search over the indexed chunks."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    log_file: Annotated[
        str | None,
        typer.Option("--log-file", help="Also write logs to this file."),
    ] = None,
) -> None:
    """Docsync — searchable local knowledge base of a documentation site."""
    setup_logging(log_file=log_file)


app.command("sync")(sync_cmd)
app.command("search")(search_cmd)
app.command("status")(status_cmd)
app.command("clear")(clear_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed docsync version."""
    typer.echo(f"docsync {_installed_version()}")


if __name__ == "__main__":
    app()
