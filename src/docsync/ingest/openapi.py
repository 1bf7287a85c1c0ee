"""OpenAPI discovery — find spec links on crawled pages and cache the raw documents.

Only discovery and caching happen here; endpoint parsing belongs to the API
tooling that later reads ``raw/openapi/``.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

import yaml

from docsync.crawl.fetcher import HttpFetcher
from docsync.crawl.models import CrawledPage
from docsync.crawl.urls import url_hash

logger = logging.getLogger(__name__)

_SPEC_URL_RE = re.compile(
    r"https?://[^\s)\"'>]+(?:openapi|swagger|api-docs)[^\s)\"'>]*\.(?:json|ya?ml)",
    re.IGNORECASE,
)
_LINK_HINTS = ("openapi", "swagger", "api-docs")
_SPEC_SUFFIXES = (".json", ".yaml", ".yml")


def find_openapi_links(pages: list[CrawledPage]) -> list[str]:
    """Candidate OpenAPI/Swagger URLs, deduplicated in discovery order."""
    found: list[str] = []
    for page in pages:
        found.extend(m.group(0) for m in _SPEC_URL_RE.finditer(page.markdown))
        for link in page.links:
            lowered = link.lower()
            if any(h in lowered for h in _LINK_HINTS) or lowered.endswith(_SPEC_SUFFIXES):
                found.append(link)
    return list(dict.fromkeys(found))


class OpenApiCache:
    """Fetch candidate specs and store the valid ones under ``raw/openapi/``."""

    def __init__(self, openapi_dir: Path | str) -> None:
        self.openapi_dir = Path(openapi_dir)

    async def fetch_and_cache(self, url: str, fetcher: HttpFetcher) -> Path | None:
        """Return the cache path, or None if *url* is not an OpenAPI document.

        Raises:
            FetchError: the candidate could not be downloaded.
        """
        text = await fetcher.fetch_document(url)

        spec = parse_spec(text)
        if spec is None:
            logger.debug("Not an OpenAPI document: %s", url)
            return None

        self.openapi_dir.mkdir(parents=True, exist_ok=True)
        target = self.openapi_dir / f"{url_hash(url)}.json"
        target.write_text(
            json.dumps({"url": url, "spec": spec}, indent=2, ensure_ascii=False, default=str),
            encoding="utf-8",
        )
        logger.info("Cached OpenAPI spec %s -> %s", url, target.name)
        return target

    def load_cached(self) -> list[dict]:
        if not self.openapi_dir.exists():
            return []
        cached: list[dict] = []
        for path in sorted(self.openapi_dir.glob("*.json")):
            try:
                cached.append(json.loads(path.read_text(encoding="utf-8")))
            except json.JSONDecodeError:
                logger.warning("Skipping unreadable cached spec %s", path)
        return cached


def parse_spec(text: str) -> dict | None:
    """Parse JSON or YAML; return the mapping only if it declares openapi/swagger."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError:
        return None
    if isinstance(data, dict) and ("openapi" in data or "swagger" in data):
        return data
    return None
