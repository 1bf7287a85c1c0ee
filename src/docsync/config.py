"""Docsync configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (DOCSYNC_STORAGE_DIR, DOCSYNC_BASE_URL,
                             DOCSYNC_EMBEDDING_MODEL, DOCSYNC_VISION_MODEL)
  3. Per-project docsync.yaml  (in the working directory)
  4. Global ~/.docsync/config.yaml  (defaults only — no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
crawler.base_url must be an http(s) URL.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from docsync.crawl.models import CrawlerConfig
from docsync.ingest.markdown import DEFAULT_MIN_SECTION_CHARS
from docsync.paths import DEFAULT_STORAGE_DIR
from docsync.store.embedder import DEFAULT_EMBEDDING_MODEL

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_PATH: Path = DEFAULT_STORAGE_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "docsync.yaml"

# Key names that look like credentials — forbidden in global config.
# Does NOT match legitimate keys like max_tokens.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["crawler", "embedding", "chunking", "images", "storage"]
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class EmbeddingCfg:
    """Embedding backend (docsync.yaml: embedding:).

    ``local/<name>`` selects a sentence-transformers model; anything else is
    passed to LiteLLM as ``provider/model``.
    """

    model: str = DEFAULT_EMBEDDING_MODEL
    batch_size: int = 32


@dataclass
class ChunkingCfg:
    """Section chunking (docsync.yaml: chunking:)."""

    max_tokens: int = 500
    min_section_chars: int = DEFAULT_MIN_SECTION_CHARS


@dataclass
class ImagesCfg:
    """Image descriptions (docsync.yaml: images:). No vision model means alt text only."""

    vision_model: str | None = None


@dataclass
class StorageCfg:
    dir: Path = DEFAULT_STORAGE_DIR


@dataclass
class DocsyncConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    crawler: CrawlerConfig = field(default_factory=CrawlerConfig)
    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    chunking: ChunkingCfg = field(default_factory=ChunkingCfg)
    images: ImagesCfg = field(default_factory=ImagesCfg)
    storage: StorageCfg = field(default_factory=StorageCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _validate_base_url(url: str) -> None:
    if not url.startswith(("http://", "https://")):
        raise ConfigError(f"crawler.base_url must be an http(s) URL, got '{url}'")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _number(section: dict[str, Any], key: str, default: Any, kind: type, minimum: float) -> Any:
    raw = section.get(key, default)
    try:
        value = kind(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{key}' must be a number, got {raw!r}") from exc
    if value < minimum:
        raise ConfigError(f"'{key}' must be >= {minimum}, got {value}")
    return value


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse '{path}': {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"'{path}' must contain a mapping at the top level")
    return data


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> DocsyncConfig:
    """Build a *DocsyncConfig* from a merged raw YAML dict."""
    cfg = DocsyncConfig()

    if "crawler" in data:
        c = data["crawler"] or {}
        d = cfg.crawler
        cfg.crawler = CrawlerConfig(
            base_url=str(c.get("base_url", d.base_url)),
            max_pages=_number(c, "max_pages", d.max_pages, int, 1),
            domain_filter=str(c.get("domain_filter", d.domain_filter)),
            concurrency=_number(c, "concurrency", d.concurrency, int, 1),
            delay_ms=_number(c, "delay_ms", d.delay_ms, int, 0),
            timeout=_number(c, "timeout", d.timeout, float, 0.1),
        )

    if "embedding" in data:
        e = data["embedding"] or {}
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            batch_size=_number(e, "batch_size", cfg.embedding.batch_size, int, 1),
        )

    if "chunking" in data:
        ch = data["chunking"] or {}
        cfg.chunking = ChunkingCfg(
            max_tokens=_number(ch, "max_tokens", cfg.chunking.max_tokens, int, 1),
            min_section_chars=_number(
                ch, "min_section_chars", cfg.chunking.min_section_chars, int, 0
            ),
        )

    if "images" in data:
        im = data["images"] or {}
        cfg.images = ImagesCfg(vision_model=im.get("vision_model") or None)

    if "storage" in data:
        st = data["storage"] or {}
        if st.get("dir"):
            cfg.storage = StorageCfg(dir=Path(str(st["dir"])).expanduser())

    return cfg


def _apply_env_overrides(cfg: DocsyncConfig) -> DocsyncConfig:
    """Apply DOCSYNC_* environment variable overrides (layer 2)."""
    if storage := os.environ.get("DOCSYNC_STORAGE_DIR"):
        cfg.storage.dir = Path(storage).expanduser()
    if base_url := os.environ.get("DOCSYNC_BASE_URL"):
        cfg.crawler.base_url = base_url
    if model := os.environ.get("DOCSYNC_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if model := os.environ.get("DOCSYNC_VISION_MODEL"):
        cfg.images.vision_model = model
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> DocsyncConfig:
    """Load and return a merged *DocsyncConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *docsync.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If global config contains API-key-like fields, a numeric
            field is invalid, or ``crawler.base_url`` is not an http(s) URL.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = _read_yaml(global_path)
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = _read_yaml(project_cfg_path)
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    _validate_base_url(cfg.crawler.base_url)
    return cfg
