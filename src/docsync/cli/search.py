"""docsync search — semantic search over the local knowledge base."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from docsync.cli.common import open_syncer
from docsync.cli.errors import (
    err_embedding,
    err_embedding_model_mismatch,
    err_empty_index,
    err_invalid_type,
    err_no_api_key,
)
from docsync.store.embedder import EmbeddingError
from docsync.store.models import CHUNK_TYPES, MetadataFilter, SearchResult
from docsync.store.vector_store import EmbeddingMismatchError

console = Console()

_SNIPPET_CHARS = 300


def search_cmd(
    query: Annotated[str, typer.Argument(help="Natural-language query.")],
    chunk_type: Annotated[
        str | None,
        typer.Option("--type", "-t", help="Only doc, example or api chunks."),
    ] = None,
    language: Annotated[
        str | None,
        typer.Option("--language", "-l", help="Only code examples in this language."),
    ] = None,
    url: Annotated[
        str | None,
        typer.Option("--url", help="Only chunks from this page URL."),
    ] = None,
    section: Annotated[
        str | None,
        typer.Option("--section", help="Only chunks from this section (or code category)."),
    ] = None,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", min=1, help="Maximum number of results."),
    ] = 5,
    storage_dir: Annotated[
        Path | None,
        typer.Option("--storage-dir", help="Storage root (default: ~/.docsync)."),
    ] = None,
) -> None:
    """Search the knowledge base for chunks similar to QUERY."""
    if chunk_type is not None and chunk_type not in CHUNK_TYPES:
        console.print(err_invalid_type(chunk_type, sorted(CHUNK_TYPES)))
        raise typer.Exit(1)

    syncer = open_syncer(storage_dir)
    if syncer.count() == 0:
        console.print(err_empty_index(syncer.get_storage_path()))
        raise typer.Exit(1)

    flt = MetadataFilter(url=url, type=chunk_type, section=section, language=language)
    try:
        results = syncer.search(query, filter=None if flt.is_empty() else flt, limit=limit)
    except EmbeddingError as exc:
        if "No API key" in str(exc):
            provider = syncer.config.embedding.model.split("/")[0]
            console.print(err_no_api_key(provider))
        else:
            console.print(err_embedding(str(exc)))
        raise typer.Exit(1) from exc
    except EmbeddingMismatchError as exc:
        console.print(err_embedding_model_mismatch(exc.stored_model, exc.current_model))
        raise typer.Exit(1) from exc

    if not results:
        console.print("[yellow]No matching chunks.[/]")
        return

    for rank, result in enumerate(results, start=1):
        _print_result(rank, result)


def _print_result(rank: int, result: SearchResult) -> None:
    meta = result.metadata
    label = meta.title or meta.url
    tags = [meta.type, meta.section]
    if meta.language:
        tags.append(meta.language)
    console.print(
        f"[bold]{rank}.[/] {label} [dim]({' / '.join(tags)})[/] "
        f"[green]{result.similarity:.3f}[/]"
    )
    console.print(f"   [dim]{meta.url}[/]")
    snippet = " ".join(result.content.split())
    if len(snippet) > _SNIPPET_CHARS:
        snippet = snippet[:_SNIPPET_CHARS] + "..."
    console.print(f"   {snippet}", markup=False, highlight=False)
