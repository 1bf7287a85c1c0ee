"""Sentence-aligned, token-bounded text chunker."""

from __future__ import annotations

import re

from docsync.ingest.base import BaseChunker

# A sentence ends at '.', '!' or '?' followed by whitespace.
_SENTENCE_RE = re.compile(r"(?<=[.!?])\s+")


class SentenceChunker(BaseChunker):
    """Greedily pack whole sentences into chunks of at most ``max_tokens``.

    The cost of a running chunk is estimated on its joined text, so every
    chunk respects the bound unless a single sentence is larger than the
    bound on its own; such a sentence becomes its own chunk instead of being
    dropped.
    """

    def chunk(self, text: str) -> list[str]:
        chunks: list[str] = []
        current = ""
        for sentence in split_sentences(text):
            candidate = f"{current} {sentence}" if current else sentence
            if current and self.count_tokens(candidate) > self.max_tokens:
                chunks.append(current)
                current = sentence
            else:
                current = candidate
        if current:
            chunks.append(current)
        return chunks


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_RE.split(text) if s.strip()]


def chunk_text(text: str, max_tokens: int = 500) -> list[str]:
    """Convenience wrapper around ``SentenceChunker(max_tokens).chunk(text)``."""
    return SentenceChunker(max_tokens=max_tokens).chunk(text)
