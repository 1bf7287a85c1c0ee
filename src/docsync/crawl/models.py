"""Domain models produced by the crawler."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

DEFAULT_BASE_URL = "https://developers.eduzz.com/"
DEFAULT_DOMAIN_FILTER = "developers.eduzz.com"


@dataclass
class CrawlerConfig:
    """Crawl bounds and politeness settings.

    Attributes:
        base_url: Seed URL; also the one URL whose trailing slash is kept.
        max_pages: Cap on successfully crawled pages (not link depth).
        domain_filter: Hostname substring every followed link must contain.
        concurrency: Reserved for parallel fetching; pages are crawled one at a time.
        delay_ms: Pause between two page fetches.
        timeout: Per-request timeout in seconds.
    """

    base_url: str = DEFAULT_BASE_URL
    max_pages: int = 10_000
    domain_filter: str = DEFAULT_DOMAIN_FILTER
    concurrency: int = 5
    delay_ms: int = 500
    timeout: float = 30.0


@dataclass
class CrawledImage:
    url: str
    alt: str
    local_path: str


@dataclass
class CodeBlock:
    language: str
    code: str
    context: str = ""

    def to_dict(self) -> dict:
        return {"language": self.language, "code": self.code, "context": self.context}


@dataclass(frozen=True)
class CrawledPage:
    """One successfully fetched and extracted page."""

    url: str
    title: str
    raw_html: str
    markdown: str
    images: list[CrawledImage] = field(default_factory=list)
    code_blocks: list[CodeBlock] = field(default_factory=list)
    links: list[str] = field(default_factory=list)
    crawled_at: datetime = field(default_factory=datetime.now)
