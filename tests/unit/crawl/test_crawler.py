"""Tests for the BFS Crawler — traversal order, dedup, failures, artifacts, stop."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from docsync.crawl.crawler import Crawler
from docsync.crawl.models import CrawlerConfig
from docsync.crawl.urls import url_hash

BASE = "https://docs.example.com/"
DOMAIN = "docs.example.com"
A = "https://docs.example.com/a"
B = "https://docs.example.com/b"
MISSING = "https://docs.example.com/missing"
IMG = "https://docs.example.com/img/a.png"


@pytest.fixture
def site(fetcher_cls, make_page):
    pages = {
        BASE: make_page("Home", "<h1>Home</h1><p>Welcome.</p>", ["/a", "/b", "https://other.com/x"]),
        A: make_page(
            "Page A",
            '<h1>A</h1><p>Intro:</p><pre><code class="language-py">print("a")</code></pre>'
            '<img src="/img/a.png" alt="diagram">',
            ["/b", "/"],
        ),
        B: make_page("Page B", "<h1>B</h1><p>Bee.</p>", ["/a", "/missing"]),
    }
    return fetcher_cls(pages=pages, binaries={IMG: b"\x89PNG"})


def _config(**overrides) -> CrawlerConfig:
    values = {"base_url": BASE, "domain_filter": DOMAIN, "delay_ms": 0}
    values.update(overrides)
    return CrawlerConfig(**values)


def _crawl(crawler: Crawler, on_progress=None):
    return asyncio.run(crawler.crawl(on_progress=on_progress))


# ------------------------------------------------------------------
# Traversal
# ------------------------------------------------------------------


def test_bfs_order_and_cycle_terminates(tmp_path, site):
    crawler = Crawler(_config(), tmp_path, fetcher=site)
    pages = _crawl(crawler)

    assert [p.url for p in pages] == [BASE, A, B]
    assert [p.title for p in pages] == ["Home", "Page A", "Page B"]


def test_each_url_fetched_at_most_once(tmp_path, site):
    crawler = Crawler(_config(), tmp_path, fetcher=site)
    _crawl(crawler)

    page_requests = [u for u in site.requested if u != IMG]
    assert len(page_requests) == len(set(page_requests))
    assert crawler.visited == {BASE, A, B, MISSING}


def test_external_links_never_fetched(tmp_path, site):
    _crawl(Crawler(_config(), tmp_path, fetcher=site))
    assert not any("other.com" in u for u in site.requested)


def test_failed_page_recorded_and_skipped(tmp_path, site):
    crawler = Crawler(_config(), tmp_path, fetcher=site)
    pages = _crawl(crawler)

    assert MISSING not in [p.url for p in pages]
    assert len(crawler.errors) == 1
    assert MISSING in crawler.errors[0]


def test_progress_reports_url_and_sequence(tmp_path, site):
    seen: list[tuple[str, int]] = []
    _crawl(Crawler(_config(), tmp_path, fetcher=site), on_progress=lambda u, n: seen.append((u, n)))
    assert seen == [(BASE, 1), (A, 2), (B, 3), (MISSING, 4)]


def test_max_pages_bounds_successful_pages(tmp_path, site):
    pages = _crawl(Crawler(_config(max_pages=2), tmp_path, fetcher=site))
    assert [p.url for p in pages] == [BASE, A]
    assert B not in site.requested


def test_unreachable_seed_returns_empty(tmp_path, fetcher_cls):
    crawler = Crawler(_config(), tmp_path, fetcher=fetcher_cls())
    assert _crawl(crawler) == []
    assert len(crawler.errors) == 1


# ------------------------------------------------------------------
# Artifacts
# ------------------------------------------------------------------


def test_page_markdown_written_with_front_matter(tmp_path, site):
    _crawl(Crawler(_config(), tmp_path, fetcher=site))

    text = (tmp_path / "raw" / "pages" / f"{url_hash(A)}.md").read_text(encoding="utf-8")
    assert text.startswith("---\nurl: https://docs.example.com/a\ntitle: Page A\ncrawledAt: ")
    assert "# Page A" in text


def test_code_examples_written_only_for_pages_with_code(tmp_path, site):
    _crawl(Crawler(_config(), tmp_path, fetcher=site))

    examples_dir = tmp_path / "raw" / "code-examples"
    data = json.loads((examples_dir / f"{url_hash(A)}.json").read_text(encoding="utf-8"))
    assert data["url"] == A
    assert data["examples"] == [{"language": "py", "code": 'print("a")', "context": "Intro:"}]
    assert not (examples_dir / f"{url_hash(B)}.json").exists()


def test_images_downloaded(tmp_path, site):
    pages = _crawl(Crawler(_config(), tmp_path, fetcher=site))
    image = pages[1].images[0]
    assert Path(image.local_path).read_bytes() == b"\x89PNG"


def test_existing_image_not_downloaded_again(tmp_path, site):
    crawler = Crawler(_config(), tmp_path, fetcher=site)
    existing = tmp_path / "raw" / "images" / f"{url_hash(IMG)}.png"
    existing.write_bytes(b"cached")

    _crawl(crawler)

    assert IMG not in site.requested
    assert existing.read_bytes() == b"cached"


def test_image_failure_is_recorded_not_fatal(tmp_path, site):
    site.binaries.clear()
    crawler = Crawler(_config(), tmp_path, fetcher=site)
    pages = _crawl(crawler)

    assert [p.url for p in pages] == [BASE, A, B]
    assert any("Failed to download image" in e and IMG in e for e in crawler.errors)


# ------------------------------------------------------------------
# Fetcher lifecycle + stop
# ------------------------------------------------------------------


def test_injected_fetcher_is_not_closed(tmp_path, site):
    _crawl(Crawler(_config(), tmp_path, fetcher=site))
    assert site.close_count == 0


def test_stop_finishes_current_page_and_closes_fetcher(tmp_path, site, fetcher_cls):
    class StoppingFetcher(fetcher_cls):
        crawler: Crawler | None = None

        async def fetch_text(self, url: str) -> str:
            html = await super().fetch_text(url)
            if url == A:
                await self.crawler.stop()
            return html

    fetcher = StoppingFetcher(pages=site.pages, binaries=site.binaries)
    crawler = Crawler(_config(), tmp_path, fetcher=fetcher)
    fetcher.crawler = crawler

    pages = _crawl(crawler)

    assert [p.url for p in pages] == [BASE, A]
    assert fetcher.close_count >= 1
