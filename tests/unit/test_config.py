"""Tests for the docsync config loader."""

from __future__ import annotations

import warnings
from pathlib import Path

import pytest
import yaml

from docsync.config import ConfigError, DocsyncConfig, load_config
from docsync.paths import DEFAULT_STORAGE_DIR


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_yaml(path: Path, data: dict) -> None:
    path.write_text(yaml.dump(data), encoding="utf-8")


def _load(tmp_path: Path, global_cfg: Path | None = None) -> DocsyncConfig:
    return load_config(
        project_dir=tmp_path,
        global_config_path=global_cfg or tmp_path / "nonexistent" / "config.yaml",
    )


# ---------------------------------------------------------------------------
# Defaults — no config files present
# ---------------------------------------------------------------------------


def test_load_config_defaults_no_files(tmp_path: Path) -> None:
    cfg = _load(tmp_path)

    assert cfg.crawler.base_url == "https://developers.eduzz.com/"
    assert cfg.crawler.domain_filter == "developers.eduzz.com"
    assert cfg.crawler.max_pages == 10_000
    assert cfg.crawler.concurrency == 5
    assert cfg.crawler.delay_ms == 500
    assert cfg.crawler.timeout == 30.0
    assert cfg.embedding.model == "local/sentence-transformers/all-MiniLM-L6-v2"
    assert cfg.chunking.max_tokens == 500
    assert cfg.chunking.min_section_chars == 50
    assert cfg.images.vision_model is None
    assert cfg.storage.dir == DEFAULT_STORAGE_DIR


def test_load_config_global_empty_file(tmp_path: Path) -> None:
    """Empty or comment-only global config → defaults (no crash)."""
    global_cfg = tmp_path / "config.yaml"
    global_cfg.write_text("# nothing here\n", encoding="utf-8")

    assert _load(tmp_path, global_cfg).crawler.delay_ms == 500


# ---------------------------------------------------------------------------
# Layering
# ---------------------------------------------------------------------------


def test_load_config_global_overrides_defaults(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    _write_yaml(global_cfg, {"embedding": {"model": "openai/text-embedding-3-small"}})

    cfg = _load(tmp_path, global_cfg)
    assert cfg.embedding.model == "openai/text-embedding-3-small"
    assert cfg.embedding.batch_size == 32


def test_load_config_project_partial_override(tmp_path: Path) -> None:
    """Per-project overrides a single field; global values for other fields survive."""
    global_cfg = tmp_path / "global.yaml"
    _write_yaml(global_cfg, {"crawler": {"delay_ms": 100, "max_pages": 50}})
    _write_yaml(tmp_path / "docsync.yaml", {"crawler": {"max_pages": 5}})

    cfg = _load(tmp_path, global_cfg)
    assert cfg.crawler.max_pages == 5
    assert cfg.crawler.delay_ms == 100


def test_load_config_sections(tmp_path: Path) -> None:
    _write_yaml(
        tmp_path / "docsync.yaml",
        {
            "crawler": {"base_url": "https://docs.example.com/", "domain_filter": "docs.example.com"},
            "chunking": {"max_tokens": 256, "min_section_chars": 20},
            "images": {"vision_model": "openai/gpt-4o-mini"},
            "storage": {"dir": str(tmp_path / "kb")},
        },
    )

    cfg = _load(tmp_path)
    assert cfg.crawler.base_url == "https://docs.example.com/"
    assert cfg.crawler.domain_filter == "docs.example.com"
    assert cfg.chunking.max_tokens == 256
    assert cfg.chunking.min_section_chars == 20
    assert cfg.images.vision_model == "openai/gpt-4o-mini"
    assert cfg.storage.dir == tmp_path / "kb"


# ---------------------------------------------------------------------------
# Env var overrides
# ---------------------------------------------------------------------------


def test_env_overrides_project_config(tmp_path: Path, monkeypatch) -> None:
    _write_yaml(tmp_path / "docsync.yaml", {"embedding": {"model": "openai/text-embedding-3-large"}})
    monkeypatch.setenv("DOCSYNC_EMBEDDING_MODEL", "local/BAAI/bge-small-en-v1.5")
    monkeypatch.setenv("DOCSYNC_BASE_URL", "https://docs.example.com/")
    monkeypatch.setenv("DOCSYNC_STORAGE_DIR", str(tmp_path / "env-kb"))
    monkeypatch.setenv("DOCSYNC_VISION_MODEL", "openai/gpt-4o")

    cfg = _load(tmp_path)
    assert cfg.embedding.model == "local/BAAI/bge-small-en-v1.5"
    assert cfg.crawler.base_url == "https://docs.example.com/"
    assert cfg.storage.dir == tmp_path / "env-kb"
    assert cfg.images.vision_model == "openai/gpt-4o"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("key", ["api_key", "openai_api_key", "token", "client_secret", "password"])
def test_global_config_rejects_credentials(tmp_path: Path, key: str) -> None:
    global_cfg = tmp_path / "config.yaml"
    _write_yaml(global_cfg, {"embedding": {key: "sk-123"}})

    with pytest.raises(ConfigError, match="forbidden key"):
        _load(tmp_path, global_cfg)


def test_max_tokens_key_is_not_a_credential(tmp_path: Path) -> None:
    global_cfg = tmp_path / "config.yaml"
    _write_yaml(global_cfg, {"chunking": {"max_tokens": 300}})
    assert _load(tmp_path, global_cfg).chunking.max_tokens == 300


@pytest.mark.parametrize(
    "section, values",
    [
        ("crawler", {"max_pages": "many"}),
        ("crawler", {"delay_ms": -1}),
        ("chunking", {"max_tokens": 0}),
        ("embedding", {"batch_size": "x"}),
    ],
)
def test_invalid_numbers_raise(tmp_path: Path, section: str, values: dict) -> None:
    _write_yaml(tmp_path / "docsync.yaml", {section: values})
    with pytest.raises(ConfigError):
        _load(tmp_path)


def test_non_http_base_url_rejected(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "docsync.yaml", {"crawler": {"base_url": "file:///etc/passwd"}})
    with pytest.raises(ConfigError, match="http"):
        _load(tmp_path)


def test_malformed_yaml_raises_config_error(tmp_path: Path) -> None:
    (tmp_path / "docsync.yaml").write_text("crawler: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError, match="parse"):
        _load(tmp_path)


def test_unknown_top_level_key_warns(tmp_path: Path) -> None:
    _write_yaml(tmp_path / "docsync.yaml", {"retrieval": {"top_k": 3}})
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        _load(tmp_path)
    assert any("retrieval" in str(w.message) for w in caught)
