"""Breadth-first documentation crawler.

Traversal:
- FIFO queue seeded with ``config.base_url``; a ``visited`` set of normalized
  URLs guarantees each page is processed at most once (cycles terminate).
- Stops when the queue is empty, ``config.max_pages`` pages have been crawled
  successfully, or ``stop()`` was called.
- Pages run one at a time with ``config.delay_ms`` between fetches.

Per-URL failures (fetch, extraction, image download) are logged, recorded in
``Crawler.errors`` and skipped; ``crawl()`` returns whatever it accumulated.

Artifacts under ``<storage>/raw``:
  pages/<hash>.md           front matter + markdown body
  code-examples/<hash>.json {"url": ..., "examples": [...]}
  images/<hash>.<ext>       downloaded image bytes (existing files are kept)
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from collections.abc import Callable
from pathlib import Path

from docsync.crawl.extractor import ContentExtractor
from docsync.crawl.fetcher import FetchError, HttpFetcher
from docsync.crawl.models import CrawledImage, CrawledPage, CrawlerConfig
from docsync.crawl.urls import url_hash
from docsync.paths import RawLayout

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int], None]


class Crawler:
    """Crawl a single documentation site into ``CrawledPage`` objects.

    Args:
        config: Crawl bounds and politeness settings.
        storage_dir: Storage root; artifacts go to ``<storage_dir>/raw``.
        fetcher: Optional shared ``HttpFetcher``. When omitted the crawler
            creates its own and closes it when the crawl ends.
    """

    def __init__(
        self,
        config: CrawlerConfig | None = None,
        storage_dir: Path | str = ".",
        fetcher: HttpFetcher | None = None,
    ) -> None:
        self.config = config or CrawlerConfig()
        self.layout = RawLayout(Path(storage_dir))
        self.layout.ensure()
        self._owns_fetcher = fetcher is None
        self._fetcher = fetcher or HttpFetcher(timeout=self.config.timeout)
        self._extractor = ContentExtractor(
            self.layout.images,
            domain_filter=self.config.domain_filter,
            base_url=self.config.base_url,
        )
        self._stopped = False
        self.visited: set[str] = set()
        self.errors: list[str] = []

    async def crawl(self, on_progress: ProgressCallback | None = None) -> list[CrawledPage]:
        """Run the traversal and return the successfully crawled pages in BFS order."""
        results: list[CrawledPage] = []
        queue: deque[str] = deque([self.config.base_url])
        queued: set[str] = {self.config.base_url}
        processed = 0
        self._stopped = False

        try:
            while queue and processed < self.config.max_pages and not self._stopped:
                url = queue.popleft()
                queued.discard(url)
                if url in self.visited:
                    continue
                self.visited.add(url)

                if on_progress is not None:
                    on_progress(url, processed + 1)

                page = await self._crawl_page(url)
                if page is not None:
                    results.append(page)
                    try:
                        self._save_page(page)
                    except OSError as exc:
                        self._record_error(f"Failed to save artifacts for {url}: {exc}")
                    await self._download_images(page.images)
                    for link in page.links:
                        if link not in self.visited and link not in queued:
                            queue.append(link)
                            queued.add(link)
                    processed += 1

                if queue and self.config.delay_ms > 0 and not self._stopped:
                    await asyncio.sleep(self.config.delay_ms / 1000)
        finally:
            if self._owns_fetcher:
                await self._fetcher.close()

        logger.info(
            "Crawl finished: %d pages, %d visited, %d errors",
            len(results),
            len(self.visited),
            len(self.errors),
        )
        return results

    async def stop(self) -> None:
        """Stop after the in-flight page and close the network session."""
        self._stopped = True
        await self._fetcher.close()

    # ------------------------------------------------------------------
    # Per-page pipeline
    # ------------------------------------------------------------------

    async def _crawl_page(self, url: str) -> CrawledPage | None:
        try:
            html = await self._fetcher.fetch_text(url)
            extracted = self._extractor.extract(html, url)
        except (FetchError, ValueError) as exc:
            self._record_error(f"Failed to crawl {url}: {exc}")
            return None
        except Exception as exc:  # any extraction failure drops the URL
            self._record_error(f"Failed to extract {url}: {exc!r}")
            return None

        return CrawledPage(
            url=url,
            title=extracted.title,
            raw_html=html,
            markdown=extracted.markdown,
            images=extracted.images,
            code_blocks=extracted.code_blocks,
            links=extracted.links,
        )

    async def _download_images(self, images: list[CrawledImage]) -> None:
        for image in images:
            target = Path(image.local_path)
            if target.exists():
                continue
            try:
                data = await self._fetcher.fetch_bytes(image.url)
                target.write_bytes(data)
            except (FetchError, ValueError, OSError) as exc:
                self._record_error(f"Failed to download image {image.url}: {exc}")

    def _save_page(self, page: CrawledPage) -> None:
        key = url_hash(page.url)
        md_path = self.layout.pages / f"{key}.md"
        md_path.write_text(
            "---\n"
            f"url: {page.url}\n"
            f"title: {page.title}\n"
            f"crawledAt: {page.crawled_at.isoformat()}\n"
            "---\n\n"
            f"# {page.title}\n\n"
            f"{page.markdown}\n",
            encoding="utf-8",
        )

        if page.code_blocks:
            examples_path = self.layout.code_examples / f"{key}.json"
            examples_path.write_text(
                json.dumps(
                    {"url": page.url, "examples": [b.to_dict() for b in page.code_blocks]},
                    indent=2,
                    ensure_ascii=False,
                ),
                encoding="utf-8",
            )

    def _record_error(self, message: str) -> None:
        logger.warning(message)
        self.errors.append(message)
