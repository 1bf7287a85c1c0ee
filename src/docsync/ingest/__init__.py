"""Docsync ingest pipeline — chunkers, code classifier, image and OpenAPI processing."""

from docsync.ingest.base import BaseChunker
from docsync.ingest.code import ClassifiedCode, CodeClassifier
from docsync.ingest.images import ImageDescription, ImageProcessor, VisionDescriber
from docsync.ingest.markdown import MarkdownSectionChunker, Section
from docsync.ingest.openapi import OpenApiCache, find_openapi_links
from docsync.ingest.sentence import SentenceChunker, chunk_text

__all__ = [
    "BaseChunker",
    "ClassifiedCode",
    "CodeClassifier",
    "ImageDescription",
    "ImageProcessor",
    "MarkdownSectionChunker",
    "OpenApiCache",
    "Section",
    "SentenceChunker",
    "VisionDescriber",
    "chunk_text",
    "find_openapi_links",
]
