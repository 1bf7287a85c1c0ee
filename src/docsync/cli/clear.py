"""docsync clear — remove every document from the knowledge base."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from docsync.cli.common import open_syncer

console = Console()


def clear_cmd(
    storage_dir: Annotated[
        Path | None,
        typer.Option("--storage-dir", help="Storage root (default: ~/.docsync)."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip the confirmation prompt."),
    ] = False,
) -> None:
    """Delete every indexed document. Crawl artifacts under raw/ are kept."""
    syncer = open_syncer(storage_dir)
    count = syncer.count()
    if count == 0:
        console.print("[dim]The knowledge base is already empty.[/]")
        return

    if not yes:
        typer.confirm(f"Remove {count:,} documents from {syncer.get_storage_path()}?", abort=True)

    syncer.store.clear()
    console.print(f"[green]✓[/] Removed {count:,} documents.")
