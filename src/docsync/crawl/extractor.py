"""Content extractor — title, main content, images, code blocks and links from HTML.

Main content is located with a selector cascade; when none of the
documentation selectors matches non-empty content the extractor falls back
to ``<body>`` and finally to the whole document, so malformed pages still
yield text.
"""

from __future__ import annotations

import posixpath
import re
import urllib.parse
from dataclasses import dataclass, field
from pathlib import Path

import html2text
from bs4 import BeautifulSoup, Tag

from docsync.crawl.models import (
    DEFAULT_BASE_URL,
    DEFAULT_DOMAIN_FILTER,
    CodeBlock,
    CrawledImage,
)
from docsync.crawl.urls import normalize_url, url_hash

_MAIN_SELECTORS = ("main", "article", ".content", ".documentation", "#content")
_STRIP_TAGS = ["script", "style", "nav", "header", "footer", "noscript"]
_LANG_CLASS_RE = re.compile(r"^(?:language|lang)-([\w#+-]+)$")
_CONTEXT_CHARS = 200
_DEFAULT_IMAGE_EXT = "png"
_EXT_RE = re.compile(r"^[a-z0-9]{1,5}$")


def _make_converter() -> html2text.HTML2Text:
    h2t = html2text.HTML2Text()
    h2t.ignore_links = True
    h2t.ignore_images = True
    h2t.body_width = 0
    return h2t


@dataclass
class ExtractedContent:
    title: str
    main_html: str
    markdown: str
    images: list[CrawledImage] = field(default_factory=list)
    code_blocks: list[CodeBlock] = field(default_factory=list)
    links: list[str] = field(default_factory=list)


class ContentExtractor:
    """Turn a fetched HTML document into the pieces the crawler persists.

    Args:
        images_dir: Directory downloaded images are written to; used to build
            each image's ``local_path``.
        domain_filter: Hostname substring for links and images to be kept.
        base_url: Canonical seed URL (keeps its trailing slash).
    """

    def __init__(
        self,
        images_dir: Path | str,
        domain_filter: str = DEFAULT_DOMAIN_FILTER,
        base_url: str = DEFAULT_BASE_URL,
    ) -> None:
        self.images_dir = Path(images_dir)
        self.domain_filter = domain_filter
        self.base_url = base_url
        self._h2t = _make_converter()

    def extract(self, html: str, url: str) -> ExtractedContent:
        soup = BeautifulSoup(html, "html.parser")
        title = self.extract_title(soup)

        # Images, code and links are read from the full document before
        # page chrome (nav, header, footer) is stripped for the markdown body.
        images = self.extract_images(soup, url)
        code_blocks = self.extract_code_blocks(soup)
        links = self.extract_links(soup, url)

        for tag in soup.find_all(_STRIP_TAGS):
            tag.decompose()
        main_html = self._main_content_html(soup)
        markdown = self._h2t.handle(main_html).strip()

        return ExtractedContent(
            title=title,
            main_html=main_html,
            markdown=markdown,
            images=images,
            code_blocks=code_blocks,
            links=links,
        )

    # ------------------------------------------------------------------
    # Title + main content
    # ------------------------------------------------------------------

    @staticmethod
    def extract_title(soup: BeautifulSoup) -> str:
        if soup.title and soup.title.get_text(strip=True):
            return soup.title.get_text(strip=True)
        h1 = soup.find("h1")
        if h1 and h1.get_text(strip=True):
            return h1.get_text(strip=True)
        return "Untitled"

    @staticmethod
    def _main_content_html(soup: BeautifulSoup) -> str:
        for selector in _MAIN_SELECTORS:
            node = soup.select_one(selector)
            if node is not None and node.get_text(strip=True):
                return node.decode_contents()
        if soup.body is not None and soup.body.get_text(strip=True):
            return soup.body.decode_contents()
        return str(soup)

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def extract_images(self, soup: BeautifulSoup, page_url: str) -> list[CrawledImage]:
        images: list[CrawledImage] = []
        seen: set[str] = set()
        for img in soup.find_all("img", src=True):
            img_url = normalize_url(img["src"], page_url, self.domain_filter, self.base_url)
            if img_url is None or img_url in seen:
                continue
            seen.add(img_url)
            local_path = self.images_dir / f"{url_hash(img_url)}.{_image_ext(img_url)}"
            images.append(
                CrawledImage(url=img_url, alt=img.get("alt", "") or "", local_path=str(local_path))
            )
        return images

    # ------------------------------------------------------------------
    # Code blocks
    # ------------------------------------------------------------------

    def extract_code_blocks(self, soup: BeautifulSoup) -> list[CodeBlock]:
        blocks: list[CodeBlock] = []
        for pre in soup.find_all("pre"):
            code_tag = pre.find("code")
            text = (code_tag or pre).get_text()
            if not text.strip():
                continue
            language = _language_from_classes(code_tag) or _language_from_classes(pre) or "text"
            blocks.append(
                CodeBlock(language=language, code=text.strip(), context=_preceding_text(pre))
            )
        return blocks

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    def extract_links(self, soup: BeautifulSoup, page_url: str) -> list[str]:
        links: list[str] = []
        seen: set[str] = set()
        for anchor in soup.find_all("a", href=True):
            link = normalize_url(anchor["href"], page_url, self.domain_filter, self.base_url)
            if link and link not in seen:
                seen.add(link)
                links.append(link)
        return links


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _language_from_classes(tag: Tag | None) -> str | None:
    if tag is None:
        return None
    for cls in tag.get("class") or []:
        match = _LANG_CLASS_RE.match(cls)
        if match:
            return match.group(1)
    return None


def _preceding_text(pre: Tag) -> str:
    """Text of the element right before *pre* (or before its wrapper)."""
    for node in (pre, pre.parent):
        if node is None:
            continue
        sibling = node.find_previous_sibling()
        if sibling is not None:
            text = sibling.get_text(" ", strip=True)
            if text:
                return text[:_CONTEXT_CHARS]
    return ""


def _image_ext(img_url: str) -> str:
    path = urllib.parse.urlsplit(img_url).path
    ext = posixpath.splitext(path)[1].lstrip(".").lower()
    return ext if _EXT_RE.match(ext) else _DEFAULT_IMAGE_EXT
