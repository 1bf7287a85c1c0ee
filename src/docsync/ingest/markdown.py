"""Markdown section chunker — heading-aware splits, then sentence chunking.

Strategy:
- Split the page before every H1/H2/H3 heading; content before the first
  heading is a section of its own.
- Sections shorter than ``min_section_chars`` (after stripping) are noise
  (breadcrumbs, lone headings) and are discarded.
- Each surviving section is passed through ``SentenceChunker`` so no piece
  exceeds ``max_tokens`` unless a single sentence does.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from docsync.ingest.base import BaseChunker
from docsync.ingest.sentence import SentenceChunker

# Matches H1, H2, H3 headings at the start of a line.
_HEADING_RE = re.compile(r"^#{1,3}\s+(.+)$", re.MULTILINE)

DEFAULT_MIN_SECTION_CHARS = 50


@dataclass(frozen=True)
class Section:
    title: str
    text: str


class MarkdownSectionChunker(BaseChunker):
    def __init__(
        self,
        max_tokens: int = 500,
        min_section_chars: int = DEFAULT_MIN_SECTION_CHARS,
    ) -> None:
        super().__init__(max_tokens=max_tokens)
        if min_section_chars < 0:
            raise ValueError("min_section_chars must be >= 0")
        self.min_section_chars = min_section_chars
        self._sentences = SentenceChunker(max_tokens=max_tokens)

    def chunk(self, text: str) -> list[Section]:
        """Return token-bounded pieces, each tagged with its section title."""
        pieces: list[Section] = []
        for section in self.split_sections(text):
            for piece in self._sentences.chunk(section.text):
                pieces.append(Section(title=section.title, text=piece))
        return pieces

    def split_sections(self, markdown: str) -> list[Section]:
        """Split *markdown* on H1/H2/H3 boundaries and drop short sections."""
        if not markdown.strip():
            return []

        starts = [m.start() for m in _HEADING_RE.finditer(markdown)]
        if not starts or starts[0] != 0:
            starts.insert(0, 0)
        bounds = starts + [len(markdown)]

        sections: list[Section] = []
        for i in range(len(starts)):
            body = markdown[bounds[i] : bounds[i + 1]].strip()
            if not body or len(body) < self.min_section_chars:
                continue
            heading = _HEADING_RE.match(body)
            title = heading.group(1).strip() if heading else f"section_{i}"
            sections.append(Section(title=title, text=body))
        return sections
