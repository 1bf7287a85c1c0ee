"""Async HTTP fetcher shared by the crawler, image downloads and OpenAPI discovery.

Guards applied to every request:
- Allowed URL schemes: https:// and http:// only.
- Content-Type whitelist for pages: text/html and text/plain only.
- Max response body: 5 MB for pages, 20 MB for binary downloads.
- Timeout: 30 seconds total per request (configurable).
- Max redirects: 3.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import urllib.parse
from dataclasses import dataclass

import aiohttp

logger = logging.getLogger(__name__)

_USER_AGENT = "Mozilla/5.0 (compatible; docsync/0.1; +https://github.com/docsync/docsync)"
_MAX_PAGE_BYTES = 5 * 1024 * 1024  # 5 MB
_MAX_BINARY_BYTES = 20 * 1024 * 1024  # 20 MB
_TIMEOUT = 30.0  # seconds
_MAX_REDIRECTS = 3
_ALLOWED_SCHEMES = {"https", "http"}
_PAGE_CONTENT_TYPES = {"text/html", "text/plain", "application/xhtml+xml"}
_READ_CHUNK = 64 * 1024


class FetchError(RuntimeError):
    """Raised when a URL cannot be fetched (network, status, type or size)."""


class UnsupportedSchemeError(ValueError):
    """Raised for URLs whose scheme is not http(s)."""


@dataclass(frozen=True)
class FetchedBody:
    body: bytes
    content_type: str
    charset: str | None = None

    def text(self) -> str:
        """Decode with the declared charset; UTF-8 when absent or unknown."""
        encoding = "utf-8"
        if self.charset:
            try:
                encoding = codecs.lookup(self.charset).name
            except LookupError:
                logger.debug("Unknown charset %r, decoding as UTF-8", self.charset)
        return self.body.decode(encoding, errors="replace")


class HttpFetcher:
    """Lazily-opened aiohttp session with per-request guards.

    The session is created on first use and may be closed and re-opened;
    ``close()`` is safe to call more than once.

    Usage:
        async with HttpFetcher(timeout=30) as fetcher:
            html = await fetcher.fetch_text("https://developers.eduzz.com/")
    """

    def __init__(self, timeout: float = _TIMEOUT, user_agent: str = _USER_AGENT) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> HttpFetcher:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch_text(self, url: str) -> str:
        """Fetch an HTML/plain-text page and decode it with its declared charset."""
        response = await self._get(url, _MAX_PAGE_BYTES)
        if response.content_type not in _PAGE_CONTENT_TYPES:
            raise FetchError(
                f"Unsupported Content-Type '{response.content_type}' for URL '{url}'. "
                f"Accepted: {', '.join(sorted(_PAGE_CONTENT_TYPES))}"
            )
        return response.text()

    async def fetch_document(self, url: str) -> str:
        """Fetch a text document of any content type (JSON/YAML specs)."""
        response = await self._get(url, _MAX_PAGE_BYTES)
        return response.text()

    async def fetch_bytes(self, url: str) -> bytes:
        """Fetch a binary resource such as an image."""
        response = await self._get(url, _MAX_BINARY_BYTES)
        return response.body

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_scheme(url: str) -> None:
        parsed = urllib.parse.urlparse(url)
        if parsed.scheme not in _ALLOWED_SCHEMES:
            raise UnsupportedSchemeError(
                f"Unsupported URL scheme '{parsed.scheme}'. Only https:// and http:// are allowed."
            )

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": self.user_agent},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def _get(self, url: str, max_bytes: int) -> FetchedBody:
        """GET *url* and read the whole body, failing once it exceeds *max_bytes*."""
        self._validate_scheme(url)
        session = self._get_session()
        too_large = FetchError(
            f"Response body exceeds {max_bytes // (1024 * 1024)} MB limit for URL '{url}'."
        )
        try:
            async with session.get(url, max_redirects=_MAX_REDIRECTS) as response:
                if response.status >= 400:
                    raise FetchError(f"HTTP {response.status} for URL '{url}'")
                if response.content_length is not None and response.content_length > max_bytes:
                    raise too_large
                raw_ct = response.headers.get("Content-Type", "text/html")
                content_type = raw_ct.split(";")[0].strip().lower()
                charset = response.charset

                buf = bytearray()
                async for chunk in response.content.iter_chunked(_READ_CHUNK):
                    buf += chunk
                    if len(buf) > max_bytes:
                        raise too_large
        except asyncio.TimeoutError as exc:
            raise FetchError(f"Timed out after {self.timeout:.0f}s fetching '{url}'") from exc
        except aiohttp.ClientError as exc:
            raise FetchError(f"Failed to fetch URL '{url}': {exc}") from exc

        logger.debug("Fetched %s (%d bytes, %s)", url, len(buf), content_type)
        return FetchedBody(bytes(buf), content_type, charset)
