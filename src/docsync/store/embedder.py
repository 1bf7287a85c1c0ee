"""Embedding backends — a local sentence-transformers model or a LiteLLM provider.

The embedder is an explicit component handed to ``KnowledgeStore``; it owns
its own ``initialized`` state instead of living in a module-level global.
Model strings:

    local/<hf-model-name>      -> SentenceTransformerEmbedder (no API key)
    <provider>/<model>         -> LiteLLMEmbedder (e.g. openai/text-embedding-3-small)
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod

import litellm

logger = logging.getLogger(__name__)

LOCAL_PREFIX = "local/"
DEFAULT_LOCAL_MODEL = "sentence-transformers/all-MiniLM-L6-v2"
DEFAULT_EMBEDDING_MODEL = f"{LOCAL_PREFIX}{DEFAULT_LOCAL_MODEL}"

_PROVIDER_KEYS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "voyage": "VOYAGE_API_KEY",
}


class EmbeddingError(RuntimeError):
    """Raised when the embedding backend is unusable or fails."""


class Embedder(ABC):
    """Turns texts into fixed-length float vectors."""

    def __init__(self) -> None:
        self.initialized = False

    def initialize(self) -> None:
        """Prepare the backend. Idempotent."""
        if self.initialized:
            return
        self._load()
        self.initialized = True

    @abstractmethod
    def _load(self) -> None: ...

    @abstractmethod
    def _embed_batch(self, texts: list[str]) -> list[list[float]]: ...

    def embed(self, texts: list[str]) -> list[list[float]]:
        if not self.initialized:
            raise EmbeddingError(f"{type(self).__name__} used before initialize()")
        if not texts:
            return []
        return self._embed_batch(texts)

    def embed_one(self, text: str) -> list[float]:
        return self.embed([text])[0]

    @property
    def model_id(self) -> str | None:
        """Config-style model string recorded with stored vectors; None when unknown."""
        return None


# ------------------------------------------------------------------
# Local model
# ------------------------------------------------------------------


class SentenceTransformerEmbedder(Embedder):
    """Local transformer model; weights are downloaded on first ``initialize()``."""

    def __init__(self, model_name: str = DEFAULT_LOCAL_MODEL) -> None:
        super().__init__()
        self.model_name = model_name
        self._model = None

    @property
    def model_id(self) -> str:
        return f"{LOCAL_PREFIX}{self.model_name}"

    def _load(self) -> None:
        # Heavy import (torch); only paid when a local model is actually used.
        from sentence_transformers import SentenceTransformer

        logger.info("Loading embedding model %s (downloads on first run)", self.model_name)
        try:
            self._model = SentenceTransformer(self.model_name)
        except Exception as exc:
            raise EmbeddingError(f"Could not load model '{self.model_name}': {exc}") from exc

    def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        vectors = self._model.encode(texts, normalize_embeddings=True, show_progress_bar=False)
        return [[float(x) for x in row] for row in vectors]


# ------------------------------------------------------------------
# LiteLLM provider
# ------------------------------------------------------------------


class LiteLLMEmbedder(Embedder):
    """Provider embeddings via ``litellm.embedding()``.

    Args:
        model:      LiteLLM model string, e.g. ``openai/text-embedding-3-small``.
        batch_size: Texts sent per API request.
    """

    def __init__(self, model: str = "openai/text-embedding-3-small", batch_size: int = 100) -> None:
        super().__init__()
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.model = model
        self.batch_size = batch_size

    @property
    def model_id(self) -> str:
        return self.model

    def _load(self) -> None:
        self._check_api_key()

    def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        vectors: list[list[float]] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start : start + self.batch_size]
            try:
                response = litellm.embedding(model=self.model, input=batch)
            except Exception as exc:
                raise EmbeddingError(f"Embedding request failed ({self.model}): {exc}") from exc
            vectors.extend(item["embedding"] for item in response.data)
        return vectors

    def _check_api_key(self) -> None:
        """Raise EmbeddingError if no API key is available for the model's provider."""
        provider = self.model.split("/")[0].lower() if "/" in self.model else ""
        required_env = _PROVIDER_KEYS.get(provider)
        if required_env and not os.environ.get(required_env):
            raise EmbeddingError(
                f"No API key found for provider '{provider}'. "
                f"Set the {required_env} environment variable."
            )


def create_embedder(model: str = DEFAULT_EMBEDDING_MODEL, batch_size: int = 100) -> Embedder:
    """Pick the backend for *model* (see module docstring for the string format)."""
    if model.startswith(LOCAL_PREFIX):
        return SentenceTransformerEmbedder(model[len(LOCAL_PREFIX) :])
    return LiteLLMEmbedder(model, batch_size=batch_size)
