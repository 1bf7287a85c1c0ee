"""KnowledgeSyncer — full rebuild of the local knowledge base.

Stages run linearly; an exception in one stage is recorded in
``SyncResult.errors`` and the run continues with whatever it has:

    Cleaning → Crawling → ImageProcessing → OpenAPIDiscovery
             → Clearing-Index → Embedding → Done

Every run is a rebuild: ``raw/`` is deleted and the index is cleared before
re-populating, so chunks for pages that disappeared from the site do not
survive. The index is only cleared once the crawl returned at least one page.
Concurrent runs against one storage directory are not supported.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from pathlib import Path

from docsync.config import DocsyncConfig
from docsync.crawl.crawler import Crawler
from docsync.crawl.fetcher import FetchError, HttpFetcher
from docsync.crawl.models import CrawledPage, CrawlerConfig
from docsync.ingest.chunks import build_code_chunks, build_doc_chunks, build_image_chunks
from docsync.ingest.code import CodeClassifier
from docsync.ingest.images import ImageDescription, ImageProcessor, VisionDescriber
from docsync.ingest.markdown import MarkdownSectionChunker
from docsync.ingest.openapi import OpenApiCache, find_openapi_links
from docsync.paths import RawLayout
from docsync.store.embedder import Embedder, create_embedder
from docsync.store.models import MetadataFilter, SearchResult
from docsync.store.vector_store import KnowledgeStore

logger = logging.getLogger(__name__)


@dataclass
class SyncOptions:
    """Per-run overrides.

    Attributes:
        on_progress: Receives one human-readable message per step.
        max_pages: Overrides ``crawler.max_pages``.
        base_url: Overrides ``crawler.base_url``.
        delay_ms: Overrides ``crawler.delay_ms``.
    """

    on_progress: Callable[[str], None] | None = None
    max_pages: int | None = None
    base_url: str | None = None
    delay_ms: int | None = None


@dataclass
class SyncResult:
    pages_processed: int = 0
    images_processed: int = 0
    code_examples_processed: int = 0
    chunks_indexed: int = 0
    openapi_specs: int = 0
    errors: list[str] = field(default_factory=list)


class KnowledgeSyncer:
    """Crawl, process and index a documentation site into a ``KnowledgeStore``.

    Args:
        config: Loaded configuration; defaults when omitted.
        storage_dir: Storage root; defaults to ``config.storage.dir``.
        embedder: Embedding backend; built from ``config.embedding.model`` when omitted.
        fetcher: Shared HTTP fetcher; created (and closed) per run when omitted.
        image_describer: Vision describer; built from ``config.images.vision_model``
            when omitted and a model is configured.
    """

    def __init__(
        self,
        config: DocsyncConfig | None = None,
        storage_dir: Path | str | None = None,
        embedder: Embedder | None = None,
        fetcher: HttpFetcher | None = None,
        image_describer: VisionDescriber | None = None,
    ) -> None:
        self.config = config or DocsyncConfig()
        self.storage_dir = Path(storage_dir) if storage_dir is not None else Path(self.config.storage.dir)
        self.layout = RawLayout(self.storage_dir)

        embedding = self.config.embedding
        embedder = embedder or create_embedder(embedding.model, batch_size=embedding.batch_size)
        self.store = KnowledgeStore(self.storage_dir, embedder, batch_size=embedding.batch_size)

        if image_describer is None and self.config.images.vision_model:
            image_describer = VisionDescriber(self.config.images.vision_model)
        self._images = ImageProcessor(image_describer)
        self._chunker = MarkdownSectionChunker(
            max_tokens=self.config.chunking.max_tokens,
            min_section_chars=self.config.chunking.min_section_chars,
        )
        self._classifier = CodeClassifier()
        self._fetcher = fetcher
        self._crawler: Crawler | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def sync(self, options: SyncOptions | None = None) -> SyncResult:
        """Run a full rebuild. Never raises for stage failures; see ``SyncResult.errors``."""
        options = options or SyncOptions()
        result = SyncResult()

        def progress(message: str) -> None:
            logger.info(message)
            if options.on_progress is not None:
                options.on_progress(message)

        crawler_config = self.config.crawler
        overrides = {
            "max_pages": options.max_pages,
            "base_url": options.base_url,
            "delay_ms": options.delay_ms,
        }
        crawler_config = replace(crawler_config, **{k: v for k, v in overrides.items() if v is not None})

        owns_fetcher = self._fetcher is None
        fetcher = self._fetcher or HttpFetcher(timeout=crawler_config.timeout)
        try:
            progress("Cleaning previous crawl artifacts...")
            try:
                self._clean_raw()
            except OSError as exc:
                self._stage_failed(result, "Cleaning", exc)

            progress(f"Crawling {crawler_config.base_url}...")
            pages = await self._crawl(crawler_config, fetcher, result, progress)

            progress(f"Processing {sum(len(p.images) for p in pages)} images...")
            descriptions: list[ImageDescription] = []
            try:
                descriptions = await asyncio.to_thread(self._images.process, pages)
                result.images_processed = len(descriptions)
            except Exception as exc:
                self._stage_failed(result, "Image processing", exc)

            progress("Looking for OpenAPI specs...")
            try:
                await self._discover_openapi(pages, fetcher, result)
            except Exception as exc:
                self._stage_failed(result, "OpenAPI discovery", exc)

            if not pages:
                result.errors.append("No pages were crawled; the existing index was kept")
                progress("Sync finished without pages")
                return result

            progress("Clearing the index...")
            try:
                self.store.clear()
            except Exception as exc:
                self._stage_failed(result, "Clearing the index", exc)
                return result

            progress("Embedding chunks (the model downloads on first run)...")
            try:
                await self._index(pages, descriptions, result)
            except Exception as exc:
                self._stage_failed(result, "Embedding", exc)

            progress(f"Sync complete: {result.chunks_indexed} chunks indexed")
        finally:
            if owns_fetcher:
                await fetcher.close()
        return result

    async def stop(self) -> None:
        """Ask a running crawl to stop after its current page."""
        if self._crawler is not None:
            await self._crawler.stop()

    def search(
        self, query: str, filter: MetadataFilter | None = None, limit: int = 10
    ) -> list[SearchResult]:
        return self.store.search(query, limit=limit, filter=filter)

    def count(self) -> int:
        return self.store.count()

    def get_storage_path(self) -> str:
        return str(self.storage_dir)

    def cached_openapi_specs(self) -> list[dict]:
        """OpenAPI documents cached by the last sync, as ``{url, spec}`` records."""
        return OpenApiCache(self.layout.openapi).load_cached()

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _clean_raw(self) -> None:
        if self.layout.raw.exists():
            shutil.rmtree(self.layout.raw)
        self.layout.ensure()

    async def _crawl(
        self,
        crawler_config: CrawlerConfig,
        fetcher: HttpFetcher,
        result: SyncResult,
        progress: Callable[[str], None],
    ) -> list[CrawledPage]:
        crawler = Crawler(crawler_config, self.storage_dir, fetcher=fetcher)
        self._crawler = crawler
        pages: list[CrawledPage] = []
        try:
            pages = await crawler.crawl(on_progress=lambda url, n: progress(f"[{n}] {url}"))
        except Exception as exc:
            self._stage_failed(result, "Crawling", exc)
        finally:
            self._crawler = None
        result.pages_processed = len(pages)
        result.errors.extend(crawler.errors)
        return pages

    async def _discover_openapi(
        self, pages: list[CrawledPage], fetcher: HttpFetcher, result: SyncResult
    ) -> None:
        cache = OpenApiCache(self.layout.openapi)
        for url in find_openapi_links(pages):
            try:
                if await cache.fetch_and_cache(url, fetcher) is not None:
                    result.openapi_specs += 1
            except (FetchError, ValueError) as exc:
                message = f"Failed to fetch OpenAPI candidate {url}: {exc}"
                logger.warning(message)
                result.errors.append(message)

    async def _index(
        self,
        pages: list[CrawledPage],
        descriptions: list[ImageDescription],
        result: SyncResult,
    ) -> None:
        await asyncio.to_thread(self.store.initialize)

        doc_chunks = build_doc_chunks(pages, self._chunker) + build_image_chunks(descriptions)
        doc_report = await asyncio.to_thread(self.store.add_chunks, doc_chunks)
        result.chunks_indexed += doc_report.added
        result.errors.extend(doc_report.errors)

        code_chunks = build_code_chunks(pages, self._classifier)
        code_report = await asyncio.to_thread(self.store.add_chunks, code_chunks)
        result.code_examples_processed = code_report.added
        result.chunks_indexed += code_report.added
        result.errors.extend(code_report.errors)

    @staticmethod
    def _stage_failed(result: SyncResult, stage: str, exc: Exception) -> None:
        message = f"{stage} failed: {exc}"
        logger.error(message)
        result.errors.append(message)
