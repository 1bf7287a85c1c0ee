"""Fixtures for CLI tests: a temp storage dir and a fake embedding backend."""

from __future__ import annotations

from pathlib import Path

import pytest

from docsync.store.models import ChunkMetadata, IndexableChunk
from docsync.store.vector_store import KnowledgeStore


@pytest.fixture
def storage_dir(tmp_path: Path, monkeypatch, fake_embedder) -> Path:
    """Run commands from *tmp_path* with ``create_embedder`` returning the fake."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("docsync.sync.create_embedder", lambda *a, **kw: fake_embedder)
    return tmp_path / "kb"


@pytest.fixture
def populated(storage_dir: Path, fake_embedder) -> Path:
    store = KnowledgeStore(storage_dir, fake_embedder)
    store.add_chunks(
        [
            IndexableChunk.create(
                "Authenticate with a bearer token in the Authorization header.",
                ChunkMetadata(url="https://docs.example.com/auth", type="doc", section="Tokens", title="Auth"),
            ),
            IndexableChunk.create(
                "Webhook deliveries are retried with exponential backoff.",
                ChunkMetadata(url="https://docs.example.com/webhooks", type="doc", section="Retries", title="Webhooks"),
            ),
            IndexableChunk.create(
                "```python\nrequests.post(url, headers={'Authorization': token})\n```",
                ChunkMetadata(
                    url="https://docs.example.com/auth",
                    type="example",
                    section="authentication",
                    language="python",
                    title="Auth",
                ),
            ),
        ]
    )
    return storage_dir
