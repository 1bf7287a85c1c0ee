"""KnowledgeStore — content-addressed vector store persisted as one JSON file.

The whole ``KnowledgeDatabase`` lives in memory and is rewritten to
``<storage_dir>/knowledge.db.json`` after every mutation (temp file +
``os.replace``). Search is a brute-force cosine scan with numpy, which is
fine for thousands of chunks; a larger corpus would need another backend
behind the same add/search/delete/clear calls.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable
from pathlib import Path

import numpy as np

from docsync.paths import DB_FILENAME
from docsync.store.embedder import Embedder, EmbeddingError
from docsync.store.models import (
    IndexableChunk,
    IndexReport,
    KnowledgeDatabase,
    MetadataFilter,
    SearchResult,
    StoredDocument,
    matches_filter,
)

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Raised when the database file cannot be written or its vectors cannot be used."""


class EmbeddingMismatchError(StoreError):
    """Stored vectors come from a different embedding model than the current one."""

    def __init__(self, stored_model: str, current_model: str) -> None:
        super().__init__(
            f"The knowledge base was built with '{stored_model}' but the embedder is '{current_model}'"
        )
        self.stored_model = stored_model
        self.current_model = current_model


def cosine_similarities(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of *query* against every row of *matrix*.

    A zero-norm vector on either side scores 0.0 instead of NaN.
    """
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.where(norms > 0, dots / norms, 0.0)


def cosine_similarity(a: list[float], b: list[float]) -> float:
    sims = cosine_similarities(np.asarray(a, dtype=float), np.asarray([b], dtype=float))
    return float(sims[0])


class KnowledgeStore:
    """Persisted collection of embedded chunks, keyed by content address.

    Args:
        storage_dir: Directory holding the database file (created on first write).
        embedder:    Embedding backend; initialized lazily by ``initialize()``.
        filename:    Database file name inside *storage_dir*.
        batch_size:  Chunks embedded per backend call in ``add_chunks``.
    """

    def __init__(
        self,
        storage_dir: Path | str,
        embedder: Embedder,
        filename: str = DB_FILENAME,
        batch_size: int = 32,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.storage_dir = Path(storage_dir)
        self.db_path = self.storage_dir / filename
        self.embedder = embedder
        self.batch_size = batch_size
        self._db = self._load()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Load the embedding model. Idempotent."""
        self.embedder.initialize()

    def count(self) -> int:
        return len(self._db.documents)

    @property
    def last_updated(self) -> str:
        return self._db.last_updated

    @property
    def documents(self) -> list[StoredDocument]:
        return list(self._db.documents)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_chunks(self, chunks: Iterable[IndexableChunk]) -> IndexReport:
        """Embed and store every chunk whose id is not already present.

        Raises:
            EmbeddingError: the first batch failed, so nothing was added.
            StoreError:     the database file could not be written.
        """
        known = {doc.id for doc in self._db.documents}
        report = IndexReport()
        fresh: list[IndexableChunk] = []
        for chunk in chunks:
            if chunk.id in known:
                report.skipped += 1
                continue
            known.add(chunk.id)
            fresh.append(chunk)

        if not fresh:
            return report

        self._check_model()
        if self.embedder.model_id:
            self._db.embedding_model = self.embedder.model_id
        self.initialize()
        for start in range(0, len(fresh), self.batch_size):
            batch = fresh[start : start + self.batch_size]
            try:
                vectors = self.embedder.embed([c.content for c in batch])
                if len(vectors) != len(batch):
                    raise EmbeddingError(f"expected {len(batch)} embeddings, got {len(vectors)}")
            except Exception as exc:
                if report.added == 0:
                    raise EmbeddingError(f"Embedding failed: {exc}") from exc
                message = f"Embedding failed for chunks {start}-{start + len(batch) - 1}: {exc}"
                logger.warning(message)
                report.errors.append(message)
                continue

            for chunk, vector in zip(batch, vectors):
                self._db.documents.append(
                    StoredDocument(
                        id=chunk.id,
                        content=chunk.content,
                        metadata=chunk.metadata,
                        embedding=[float(x) for x in vector],
                    )
                )
            report.added += len(batch)

        if report.added:
            self._save()
        logger.info("Indexed %d chunks (%d already present)", report.added, report.skipped)
        return report

    def delete_by_url(self, url: str) -> int:
        """Remove every document whose metadata.url is *url*. Returns the count removed."""
        kept = [doc for doc in self._db.documents if doc.metadata.url != url]
        removed = len(self._db.documents) - len(kept)
        self._db.documents = kept
        self._save()
        return removed

    def clear(self) -> None:
        self._db = KnowledgeDatabase()
        self._save()

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(
        self,
        query: str,
        limit: int = 10,
        filter: MetadataFilter | None = None,
    ) -> list[SearchResult]:
        """Top *limit* documents by cosine similarity to *query*.

        Ties keep insertion order. ``distance`` is ``1 - similarity``.
        """
        if limit < 1:
            return []
        candidates = [doc for doc in self._db.documents if matches_filter(doc.metadata, filter)]
        if not candidates:
            return []

        self._check_model()
        self.initialize()
        query_vec = np.asarray(self.embedder.embed_one(query), dtype=float)

        usable = [doc for doc in candidates if len(doc.embedding) == len(query_vec)]
        if len(usable) < len(candidates):
            logger.warning(
                "Skipping %d documents whose vectors do not have %d dimensions",
                len(candidates) - len(usable),
                len(query_vec),
            )
        if not usable:
            raise EmbeddingMismatchError(
                self._db.embedding_model or f"{len(candidates[0].embedding)}-dimension vectors",
                self.embedder.model_id or f"{len(query_vec)}-dimension vectors",
            )
        candidates = usable
        matrix = np.asarray([doc.embedding for doc in candidates], dtype=float)
        sims = cosine_similarities(query_vec, matrix)
        order = np.argsort(-sims, kind="stable")[:limit]
        return [
            SearchResult(
                id=candidates[i].id,
                content=candidates[i].content,
                metadata=candidates[i].metadata,
                distance=float(1.0 - sims[i]),
            )
            for i in order
        ]

    @property
    def embedding_model(self) -> str | None:
        """Model that produced the stored vectors, when recorded."""
        return self._db.embedding_model

    def _check_model(self) -> None:
        stored = self._db.embedding_model
        current = self.embedder.model_id
        if self._db.documents and stored and current and stored != current:
            raise EmbeddingMismatchError(stored, current)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> KnowledgeDatabase:
        if not self.db_path.exists():
            return KnowledgeDatabase()
        try:
            data = json.loads(self.db_path.read_text(encoding="utf-8"))
            return KnowledgeDatabase.from_dict(data)
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Could not read %s (%s); starting with an empty database", self.db_path, exc)
            return KnowledgeDatabase()

    def _save(self) -> None:
        self._db.touch()
        tmp_path = self.db_path.with_name(self.db_path.name + ".tmp")
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(self._db.to_dict(), ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, self.db_path)
        except OSError as exc:
            raise StoreError(f"Could not write {self.db_path}: {exc}") from exc
