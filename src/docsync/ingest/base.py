"""Base chunker interface and the shared token estimate."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod


class BaseChunker(ABC):
    """Abstract base for text chunkers.

    Token counting uses a 4-chars-per-token approximation; no external
    tokenizer dependency is required. The estimate only has to be
    deterministic so content-addressed chunk ids stay stable across runs.
    """

    def __init__(self, max_tokens: int = 500) -> None:
        if max_tokens < 1:
            raise ValueError("max_tokens must be >= 1")
        self.max_tokens = max_tokens

    @abstractmethod
    def chunk(self, text: str) -> list:
        """Split *text* into ordered pieces."""

    @staticmethod
    def count_tokens(text: str) -> int:
        """Approximate token count: ``ceil(len(text) / 4)``."""
        return math.ceil(len(text) / 4)
