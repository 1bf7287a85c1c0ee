"""Site crawling — URL normalization, HTTP fetching, content extraction, BFS driver."""

from docsync.crawl.crawler import Crawler
from docsync.crawl.extractor import ContentExtractor
from docsync.crawl.fetcher import FetchError, HttpFetcher
from docsync.crawl.models import CodeBlock, CrawledImage, CrawledPage, CrawlerConfig
from docsync.crawl.urls import normalize_url, url_hash

__all__ = [
    "CodeBlock",
    "ContentExtractor",
    "CrawledImage",
    "CrawledPage",
    "Crawler",
    "CrawlerConfig",
    "FetchError",
    "HttpFetcher",
    "normalize_url",
    "url_hash",
]
