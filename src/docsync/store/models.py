"""Domain models for indexable chunks and the persisted knowledge database."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone

DB_VERSION = "1.0.0"

CHUNK_TYPES = frozenset({"doc", "example", "api"})


@dataclass(frozen=True)
class ChunkMetadata:
    url: str
    type: str  # doc | example | api
    section: str
    language: str | None = None
    title: str | None = None

    def __post_init__(self) -> None:
        if self.type not in CHUNK_TYPES:
            raise ValueError(
                f"Invalid chunk type '{self.type}'. Expected one of: {', '.join(sorted(CHUNK_TYPES))}"
            )

    def to_dict(self) -> dict:
        """Plain dict with unset optional fields omitted."""
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    @classmethod
    def from_dict(cls, data: dict) -> ChunkMetadata:
        return cls(
            url=data["url"],
            type=data["type"],
            section=data.get("section", ""),
            language=data.get("language"),
            title=data.get("title"),
        )


@dataclass(frozen=True)
class MetadataFilter:
    """Partial ``ChunkMetadata``: every field set here must match exactly."""

    url: str | None = None
    type: str | None = None
    section: str | None = None
    language: str | None = None
    title: str | None = None

    def matches(self, metadata: ChunkMetadata) -> bool:
        return matches_filter(metadata, self)

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))


def matches_filter(metadata: ChunkMetadata, flt: MetadataFilter | None) -> bool:
    """AND of exact matches over the filter's non-None fields."""
    if flt is None:
        return True
    for f in fields(flt):
        wanted = getattr(flt, f.name)
        if wanted is not None and getattr(metadata, f.name) != wanted:
            return False
    return True


def make_chunk_id(content: str, metadata: ChunkMetadata) -> str:
    """Content address of a chunk: MD5 over content + canonical metadata JSON."""
    canonical = json.dumps(metadata.to_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.md5((content + canonical).encode("utf-8")).hexdigest()[:16]


@dataclass(frozen=True)
class IndexableChunk:
    id: str
    content: str
    metadata: ChunkMetadata

    @classmethod
    def create(cls, content: str, metadata: ChunkMetadata) -> IndexableChunk:
        return cls(id=make_chunk_id(content, metadata), content=content, metadata=metadata)


@dataclass
class StoredDocument:
    id: str
    content: str
    metadata: ChunkMetadata
    embedding: list[float]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "metadata": self.metadata.to_dict(),
            "embedding": self.embedding,
        }

    @classmethod
    def from_dict(cls, data: dict) -> StoredDocument:
        return cls(
            id=data["id"],
            content=data["content"],
            metadata=ChunkMetadata.from_dict(data["metadata"]),
            embedding=[float(x) for x in data["embedding"]],
        )


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class KnowledgeDatabase:
    documents: list[StoredDocument] = field(default_factory=list)
    version: str = DB_VERSION
    last_updated: str = field(default_factory=_now_iso)
    embedding_model: str | None = None

    def touch(self) -> None:
        self.last_updated = _now_iso()

    def to_dict(self) -> dict:
        data = {
            "documents": [d.to_dict() for d in self.documents],
            "version": self.version,
            "lastUpdated": self.last_updated,
        }
        if self.embedding_model:
            data["embeddingModel"] = self.embedding_model
        return data

    @classmethod
    def from_dict(cls, data: dict) -> KnowledgeDatabase:
        return cls(
            documents=[StoredDocument.from_dict(d) for d in data.get("documents", [])],
            version=str(data.get("version", DB_VERSION)),
            last_updated=str(data.get("lastUpdated", _now_iso())),
            embedding_model=data.get("embeddingModel"),
        )


@dataclass
class SearchResult:
    id: str
    content: str
    metadata: ChunkMetadata
    distance: float

    @property
    def similarity(self) -> float:
        return 1.0 - self.distance


@dataclass
class IndexReport:
    """Outcome of one ``add_chunks`` call."""

    added: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
