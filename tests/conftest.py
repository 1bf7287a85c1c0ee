"""Shared pytest fixtures."""

from __future__ import annotations

import hashlib
import re

import pytest

from docsync.crawl.fetcher import FetchError
from docsync.store.embedder import Embedder

BASE_URL = "https://docs.example.com/"
DOMAIN = "docs.example.com"


class FakeEmbedder(Embedder):
    """Deterministic hashed bag-of-words embedder (16 dims)."""

    dims = 16

    def __init__(self, fail_on_call: int | None = None) -> None:
        super().__init__()
        self.calls: list[list[str]] = []
        self.load_count = 0
        self.fail_on_call = fail_on_call

    def _load(self) -> None:
        self.load_count += 1

    def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise RuntimeError("backend unavailable")
        return [self.vector(text) for text in texts]

    @classmethod
    def vector(cls, text: str) -> list[float]:
        vec = [0.0] * cls.dims
        for word in re.findall(r"[a-z0-9]+", text.lower()):
            vec[int(hashlib.md5(word.encode()).hexdigest(), 16) % cls.dims] += 1.0
        return vec

    @property
    def embedded_texts(self) -> list[str]:
        return [text for call in self.calls for text in call]


class FakeFetcher:
    """In-memory site: url -> html for pages, url -> bytes for binaries."""

    def __init__(
        self,
        pages: dict[str, str] | None = None,
        binaries: dict[str, bytes] | None = None,
        documents: dict[str, str] | None = None,
    ) -> None:
        self.pages = pages or {}
        self.binaries = binaries or {}
        self.documents = documents or {}
        self.requested: list[str] = []
        self.close_count = 0

    async def fetch_text(self, url: str) -> str:
        self.requested.append(url)
        if url not in self.pages:
            raise FetchError(f"HTTP 404 for URL '{url}'")
        return self.pages[url]

    async def fetch_document(self, url: str) -> str:
        self.requested.append(url)
        if url in self.documents:
            return self.documents[url]
        if url in self.pages:
            return self.pages[url]
        raise FetchError(f"HTTP 404 for URL '{url}'")

    async def fetch_bytes(self, url: str) -> bytes:
        self.requested.append(url)
        if url not in self.binaries:
            raise FetchError(f"HTTP 404 for URL '{url}'")
        return self.binaries[url]

    async def close(self) -> None:
        self.close_count += 1


def html_page(title: str, body: str, links: list[str] = ()) -> str:
    anchors = "".join(f'<a href="{href}">{href}</a>' for href in links)
    return (
        f"<html><head><title>{title}</title></head><body>"
        f"<nav>{anchors}</nav><main>{body}</main></body></html>"
    )


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep tests away from the real ~/.docsync and DOCSYNC_* env vars."""
    monkeypatch.setattr("docsync.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global" / "config.yaml")
    for var in (
        "DOCSYNC_STORAGE_DIR",
        "DOCSYNC_BASE_URL",
        "DOCSYNC_EMBEDDING_MODEL",
        "DOCSYNC_VISION_MODEL",
        "DOCSYNC_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def embedder_cls():
    return FakeEmbedder


@pytest.fixture
def fetcher_cls():
    return FakeFetcher


@pytest.fixture
def make_page():
    return html_page
