"""docsync status — knowledge base overview."""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from docsync.cli.common import open_syncer
from docsync.sync import KnowledgeSyncer

console = Console()


def status_cmd(
    storage_dir: Annotated[
        Path | None,
        typer.Option("--storage-dir", help="Storage root (default: ~/.docsync)."),
    ] = None,
) -> None:
    """Show the document count, storage path and last update of the knowledge base."""
    syncer = open_syncer(storage_dir)
    _show_store_panel(syncer)
    if syncer.count():
        _show_breakdown_panel(syncer)
    specs = syncer.cached_openapi_specs()
    if specs:
        _show_openapi_panel(specs)


# ---------------------------------------------------------------------------
# Panel renderers
# ---------------------------------------------------------------------------


def _show_store_panel(syncer: KnowledgeSyncer) -> None:
    store = syncer.store
    db_info = f"{store.db_path}"
    if store.db_path.exists():
        size_mb = store.db_path.stat().st_size / (1024 * 1024)
        db_info = f"{store.db_path} ({size_mb:.1f} MB)"

    lines = [
        f"Storage:    {syncer.get_storage_path()}",
        f"Database:   {db_info}",
        f"Documents:  [bold]{syncer.count():,}[/]",
        f"Model:      {syncer.config.embedding.model}",
    ]
    if store.embedding_model and store.embedding_model != syncer.config.embedding.model:
        lines.append(f"[yellow]Indexed with {store.embedding_model}; run docsync sync to rebuild.[/]")
    if store.db_path.exists():
        lines.append(f"Updated:    [dim]{store.last_updated[:16]}[/]")
    else:
        lines.append("[dim]Nothing synced yet.[/]  Run:  docsync sync")

    console.print(Panel("\n".join(lines), title="[bold]Knowledge Base[/]", expand=False))


def _show_breakdown_panel(syncer: KnowledgeSyncer) -> None:
    docs = syncer.store.documents
    by_type = Counter(d.metadata.type for d in docs)
    pages = len({d.metadata.url for d in docs})

    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Kind", style="bold")
    table.add_column("Count", justify="right")
    table.add_row("Pages", f"{pages:,}")
    for chunk_type in sorted(by_type):
        table.add_row(chunk_type, f"{by_type[chunk_type]:,}")

    console.print(Panel(table, title="[bold]Contents[/]", expand=False))


def _show_openapi_panel(specs: list[dict]) -> None:
    table = Table(show_header=True, box=None, padding=(0, 1))
    table.add_column("API", style="bold")
    table.add_column("Version")
    table.add_column("Source", style="dim")
    for record in specs:
        spec = record.get("spec") or {}
        info = spec.get("info") or {}
        table.add_row(
            str(info.get("title", "Untitled")),
            str(info.get("version", "")),
            str(record.get("url", "")),
        )

    console.print(Panel(table, title="[bold]OpenAPI specs[/]", expand=False))
