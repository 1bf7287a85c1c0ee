"""Tests for chunk derivation: doc sections, image descriptions, code examples."""

from __future__ import annotations

from docsync.crawl.models import CodeBlock, CrawledPage
from docsync.ingest.chunks import build_code_chunks, build_doc_chunks, build_image_chunks
from docsync.ingest.images import ImageDescription

URL = "https://docs.example.com/webhooks"
_BODY = "Webhooks deliver events to your endpoint whenever a sale is approved."


def _page(**kwargs) -> CrawledPage:
    values = {"url": URL, "title": "Webhooks", "raw_html": "", "markdown": ""}
    values.update(kwargs)
    return CrawledPage(**values)


def test_doc_chunks_carry_section_metadata():
    page = _page(markdown=f"# Setup\n\n{_BODY}\n\n## Events\n\n{_BODY} Retries happen.")
    chunks = build_doc_chunks([page])

    assert [c.metadata.section for c in chunks] == ["Setup", "Events"]
    assert {c.metadata.type for c in chunks} == {"doc"}
    assert {c.metadata.title for c in chunks} == {"Webhooks"}
    assert {c.metadata.url for c in chunks} == {URL}


def test_doc_chunk_ids_are_deterministic():
    page = _page(markdown=f"# Setup\n\n{_BODY}")
    assert [c.id for c in build_doc_chunks([page])] == [c.id for c in build_doc_chunks([page])]


def test_same_text_on_different_pages_gets_different_ids():
    a = build_doc_chunks([_page(markdown=f"# Setup\n\n{_BODY}")])
    b = build_doc_chunks([_page(url="https://docs.example.com/other", markdown=f"# Setup\n\n{_BODY}")])
    assert a[0].content == b[0].content
    assert a[0].id != b[0].id


def test_code_chunks_fenced_with_context_and_category():
    page = _page(code_blocks=[CodeBlock(language="js", code="app.post('/webhook', h)\r\n", context="Receive events")])
    [chunk] = build_code_chunks([page])

    assert chunk.content == "Receive events\n\n```javascript\napp.post('/webhook', h)\n```"
    assert chunk.metadata.type == "example"
    assert chunk.metadata.section == "webhook"
    assert chunk.metadata.language == "javascript"
    assert chunk.metadata.title == "Webhooks"


def test_code_chunk_without_context_is_just_the_fence():
    page = _page(code_blocks=[CodeBlock(language="text", code="make build")])
    assert build_code_chunks([page])[0].content == "```text\nmake build\n```"


def test_image_chunks_skip_empty_descriptions():
    descriptions = [
        ImageDescription(URL + "/a.png", URL, "Webhooks", "/tmp/a.png", "Flow", "Sequence diagram of retries"),
        ImageDescription(URL + "/b.png", URL, "Webhooks", "/tmp/b.png", "", ""),
    ]
    [chunk] = build_image_chunks(descriptions)

    assert chunk.content == "Image: Flow\n\nSequence diagram of retries"
    assert chunk.metadata.type == "doc"
    assert chunk.metadata.section == "image"
    assert chunk.metadata.url == URL


def test_image_chunk_with_alt_only():
    descriptions = [ImageDescription(URL + "/a.png", URL, "Webhooks", "/tmp/a.png", "Flow", "Flow")]
    assert build_image_chunks(descriptions)[0].content == "Flow"
