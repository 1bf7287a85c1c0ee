"""Derive content-addressed IndexableChunks from crawled pages.

Three chunk families share one store:
- doc:     heading sections of the page markdown, token-bounded
- image:   image descriptions, indexed as ``type: doc`` under section ``image``
- example: one chunk per classified code block, section = category
"""

from __future__ import annotations

from docsync.crawl.models import CrawledPage
from docsync.ingest.code import CodeClassifier
from docsync.ingest.images import ImageDescription
from docsync.ingest.markdown import MarkdownSectionChunker
from docsync.store.models import ChunkMetadata, IndexableChunk


def build_doc_chunks(
    pages: list[CrawledPage], chunker: MarkdownSectionChunker | None = None
) -> list[IndexableChunk]:
    chunker = chunker or MarkdownSectionChunker()
    chunks: list[IndexableChunk] = []
    for page in pages:
        for section in chunker.chunk(page.markdown):
            metadata = ChunkMetadata(
                url=page.url, type="doc", section=section.title, title=page.title
            )
            chunks.append(IndexableChunk.create(section.text, metadata))
    return chunks


def build_image_chunks(descriptions: list[ImageDescription]) -> list[IndexableChunk]:
    chunks: list[IndexableChunk] = []
    for image in descriptions:
        text = image.description.strip()
        if not text:
            continue
        content = f"Image: {image.alt}\n\n{text}" if image.alt and image.alt != text else text
        metadata = ChunkMetadata(
            url=image.page_url, type="doc", section="image", title=image.page_title
        )
        chunks.append(IndexableChunk.create(content, metadata))
    return chunks


def build_code_chunks(
    pages: list[CrawledPage], classifier: CodeClassifier | None = None
) -> list[IndexableChunk]:
    classifier = classifier or CodeClassifier()
    chunks: list[IndexableChunk] = []
    for page in pages:
        for code in classifier.process(page.code_blocks):
            if not code.code:
                continue
            fenced = f"```{code.language}\n{code.code}\n```"
            content = f"{code.context}\n\n{fenced}" if code.context else fenced
            metadata = ChunkMetadata(
                url=page.url,
                type="example",
                section=code.category,
                language=code.language,
                title=page.title,
            )
            chunks.append(IndexableChunk.create(content, metadata))
    return chunks
