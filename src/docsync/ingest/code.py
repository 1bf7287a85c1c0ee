"""Code block classification — language normalization, cleanup, topical category."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from docsync.crawl.models import CodeBlock

CATEGORIES: tuple[str, ...] = (
    "authentication",
    "webhook",
    "error-handling",
    "api-call",
    "data-model",
    "configuration",
    "example",
    "other",
)

_LANGUAGE_ALIASES: dict[str, str] = {
    "js": "javascript",
    "ts": "typescript",
    "py": "python",
    "rb": "ruby",
    "cs": "csharp",
    "c#": "csharp",
    "sh": "bash",
    "shell": "bash",
    "yml": "yaml",
    "json5": "json",
}

# Evaluated in order; the first rule with a matching keyword wins.
_CATEGORY_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("authentication", ("api_key", "api_secret", "authorization", "bearer", "token", "authenticate")),
    ("webhook", ("webhook", "callback", "notification", "postback")),
    ("error-handling", ("catch", "error", "exception", "try {")),
    ("api-call", ("fetch(", "axios", "httpclient", "request(", "/api/", "curl")),
    ("data-model", ("interface ", "type ", "class ", "struct ", "schema")),
    ("configuration", ("config", ".env", "settings", "environment")),
    ("example", ("example", "sample", "demo")),
)

_EXCESS_BLANK_LINES_RE = re.compile(r"\n{3,}")


@dataclass(frozen=True)
class ClassifiedCode:
    language: str
    code: str
    context: str
    category: str


class CodeClassifier:
    """Pure, total classifier over the closed set of ``CATEGORIES``."""

    @staticmethod
    def normalize_language(tag: str) -> str:
        normalized = tag.lower().strip()
        return _LANGUAGE_ALIASES.get(normalized, normalized)

    @staticmethod
    def clean_code(code: str) -> str:
        cleaned = code.replace("\r\n", "\n")
        cleaned = _EXCESS_BLANK_LINES_RE.sub("\n\n", cleaned)
        return cleaned.strip()

    @staticmethod
    def classify(code: str, context: str) -> str:
        combined = f"{code} {context}".lower()
        for category, keywords in _CATEGORY_RULES:
            if any(keyword in combined for keyword in keywords):
                return category
        return "other"

    def process(self, blocks: Iterable[CodeBlock]) -> list[ClassifiedCode]:
        return [
            ClassifiedCode(
                language=self.normalize_language(block.language),
                code=self.clean_code(block.code),
                context=block.context,
                category=self.classify(block.code, block.context),
            )
            for block in blocks
        ]

    def filter_by_language(
        self, codes: Iterable[ClassifiedCode], languages: Iterable[str]
    ) -> list[ClassifiedCode]:
        wanted = {self.normalize_language(lang) for lang in languages}
        return [c for c in codes if c.language in wanted]

    @staticmethod
    def filter_by_category(
        codes: Iterable[ClassifiedCode], categories: Iterable[str]
    ) -> list[ClassifiedCode]:
        wanted = set(categories)
        return [c for c in codes if c.category in wanted]
