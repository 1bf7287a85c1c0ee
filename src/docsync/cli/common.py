"""Shared helpers for docsync commands: config loading and syncer construction."""

from __future__ import annotations

from pathlib import Path
from urllib.parse import urlsplit

import typer
from rich.console import Console

from docsync.cli.errors import err_config
from docsync.config import ConfigError, DocsyncConfig, load_config
from docsync.sync import KnowledgeSyncer

console = Console()


def load_cli_config(storage_dir: Path | None = None, base_url: str | None = None) -> DocsyncConfig:
    """Load config layers, then apply CLI flag overrides (layer 1)."""
    try:
        cfg = load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc
    if storage_dir is not None:
        cfg.storage.dir = storage_dir.expanduser()
    if base_url is not None:
        # A new seed site implies its own domain filter.
        cfg.crawler.base_url = base_url
        cfg.crawler.domain_filter = urlsplit(base_url).hostname or cfg.crawler.domain_filter
    return cfg


def open_syncer(storage_dir: Path | None = None) -> KnowledgeSyncer:
    cfg = load_cli_config(storage_dir)
    return KnowledgeSyncer(cfg)
