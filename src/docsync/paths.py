"""Storage-root layout shared by the crawler, processors and the store."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

DEFAULT_STORAGE_DIR: Path = Path.home() / ".docsync"
DB_FILENAME = "knowledge.db.json"


@dataclass(frozen=True)
class RawLayout:
    """Directories under ``<root>/raw`` holding crawl artifacts."""

    root: Path

    @property
    def raw(self) -> Path:
        return self.root / "raw"

    @property
    def pages(self) -> Path:
        return self.raw / "pages"

    @property
    def code_examples(self) -> Path:
        return self.raw / "code-examples"

    @property
    def images(self) -> Path:
        return self.raw / "images"

    @property
    def openapi(self) -> Path:
        return self.raw / "openapi"

    def ensure(self) -> None:
        """Create every artifact directory (idempotent)."""
        for path in (self.pages, self.code_examples, self.images, self.openapi):
            path.mkdir(parents=True, exist_ok=True)
