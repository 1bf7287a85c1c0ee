"""URL canonicalization and domain filtering for discovered links."""

from __future__ import annotations

import hashlib
import urllib.parse

from docsync.crawl.models import DEFAULT_BASE_URL, DEFAULT_DOMAIN_FILTER

_ALLOWED_SCHEMES = {"https", "http"}


def normalize_url(
    href: str,
    page_url: str,
    domain_filter: str = DEFAULT_DOMAIN_FILTER,
    base_url: str = DEFAULT_BASE_URL,
) -> str | None:
    """Resolve *href* against *page_url* and return its canonical form.

    Returns None when the link cannot be parsed, is not http(s), or its
    hostname does not contain *domain_filter*.

    Examples:
        normalize_url("/docs/x", "https://developers.eduzz.com/guide")
            -> "https://developers.eduzz.com/docs/x"
        normalize_url("https://other.com/x", "https://developers.eduzz.com/")
            -> None
    """
    try:
        resolved = urllib.parse.urljoin(page_url, href.strip())
        parts = urllib.parse.urlsplit(resolved)
        hostname = parts.hostname
    except ValueError:
        return None

    if parts.scheme.lower() not in _ALLOWED_SCHEMES or not hostname:
        return None
    if domain_filter not in hostname:
        return None

    normalized = urllib.parse.urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), parts.path or "/", parts.query, "")
    )
    if normalized.endswith("/") and normalized != base_url:
        normalized = normalized[:-1]
    return normalized


def url_hash(url: str) -> str:
    """Short, stable artifact key for *url* (first 12 hex chars of its MD5)."""
    return hashlib.md5(url.encode("utf-8")).hexdigest()[:12]
