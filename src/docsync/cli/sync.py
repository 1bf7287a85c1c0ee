"""docsync sync — crawl the documentation site and rebuild the knowledge base."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from docsync.cli.common import load_cli_config
from docsync.cli.errors import err_no_pages
from docsync.logging_config import set_level
from docsync.sync import KnowledgeSyncer, SyncOptions, SyncResult

console = Console()


def sync_cmd(
    storage_dir: Annotated[
        Path | None,
        typer.Option("--storage-dir", help="Storage root (default: ~/.docsync)."),
    ] = None,
    base_url: Annotated[
        str | None,
        typer.Option("--base-url", help="Seed URL; its host becomes the domain filter."),
    ] = None,
    max_pages: Annotated[
        int | None,
        typer.Option("--max-pages", min=1, help="Stop after this many crawled pages."),
    ] = None,
    delay_ms: Annotated[
        int | None,
        typer.Option("--delay-ms", min=0, help="Pause between page fetches."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging."),
    ] = False,
) -> None:
    """Crawl the documentation site and rebuild the local knowledge base."""
    if verbose:
        set_level("DEBUG")

    cfg = load_cli_config(storage_dir, base_url)
    syncer = KnowledgeSyncer(cfg)
    options = SyncOptions(max_pages=max_pages, delay_ms=delay_ms)

    console.print(f"Syncing [bold]{cfg.crawler.base_url}[/] into [dim]{syncer.get_storage_path()}[/]")
    with console.status("Starting...") as status:
        options.on_progress = lambda message: status.update(message)
        result = asyncio.run(syncer.sync(options))

    _print_summary(result)
    if result.pages_processed == 0:
        console.print(err_no_pages(cfg.crawler.base_url))
        raise typer.Exit(1)


def _print_summary(result: SyncResult) -> None:
    table = Table(title="Sync summary", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Pages", str(result.pages_processed))
    table.add_row("Images", str(result.images_processed))
    table.add_row("Code examples", str(result.code_examples_processed))
    table.add_row("OpenAPI specs", str(result.openapi_specs))
    table.add_row("Chunks indexed", str(result.chunks_indexed))
    table.add_row("Errors", str(len(result.errors)))
    console.print(table)

    if result.errors:
        console.print(f"[yellow]{len(result.errors)} error(s):[/]")
        for error in result.errors[:20]:
            console.print(f"  [dim]-[/] {error}", markup=False, highlight=False)
        if len(result.errors) > 20:
            console.print(f"  ... and {len(result.errors) - 20} more")
