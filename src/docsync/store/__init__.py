"""Docsync vector store — embedders, chunk models and the JSON-backed KnowledgeStore."""

from docsync.store.embedder import (
    Embedder,
    EmbeddingError,
    LiteLLMEmbedder,
    SentenceTransformerEmbedder,
    create_embedder,
)
from docsync.store.models import (
    ChunkMetadata,
    IndexableChunk,
    IndexReport,
    KnowledgeDatabase,
    MetadataFilter,
    SearchResult,
    StoredDocument,
)
from docsync.store.vector_store import EmbeddingMismatchError, KnowledgeStore, StoreError

__all__ = [
    "ChunkMetadata",
    "Embedder",
    "EmbeddingError",
    "EmbeddingMismatchError",
    "IndexReport",
    "IndexableChunk",
    "KnowledgeDatabase",
    "KnowledgeStore",
    "LiteLLMEmbedder",
    "MetadataFilter",
    "SearchResult",
    "SentenceTransformerEmbedder",
    "StoreError",
    "StoredDocument",
    "create_embedder",
]
