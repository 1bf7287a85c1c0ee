"""Image processor — description text for crawled images.

For each image a ``<hash>.description.md`` file is kept next to the
downloaded bytes; an existing file is reused as-is. New descriptions come
from an optional vision model (LiteLLM) when the image was downloaded, and
otherwise fall back to the image's alt text. Vision failures are non-fatal.
"""

from __future__ import annotations

import base64
import logging
import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path

import litellm

from docsync.crawl.models import CrawledImage, CrawledPage

logger = logging.getLogger(__name__)

_VISION_PROMPT = (
    "Describe this documentation image concisely. "
    "Include any visible text, diagrams, or code."
)
_PROVIDER_KEYS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
}


@dataclass(frozen=True)
class ImageDescription:
    url: str
    page_url: str
    page_title: str
    local_path: str
    alt: str
    description: str


class VisionDescriber:
    """Describe an image file with a LiteLLM vision model.

    Args:
        model: LiteLLM model string, e.g. ``openai/gpt-4o-mini``.
        max_tokens: Cap on the generated description.
    """

    def __init__(self, model: str, max_tokens: int = 300) -> None:
        self.model = model
        self.max_tokens = max_tokens

    def is_available(self) -> bool:
        """True when the provider's API key is present in the environment."""
        provider = self.model.split("/")[0].lower() if "/" in self.model else ""
        env_var = _PROVIDER_KEYS.get(provider)
        return env_var is None or bool(os.environ.get(env_var))

    def describe(self, image_path: Path, alt: str = "") -> str:
        mime = mimetypes.guess_type(image_path.name)[0] or "image/png"
        encoded = base64.b64encode(image_path.read_bytes()).decode("ascii")
        response = litellm.completion(
            model=self.model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": _VISION_PROMPT},
                        {"type": "image_url", "image_url": {"url": f"data:{mime};base64,{encoded}"}},
                    ],
                }
            ],
            max_tokens=self.max_tokens,
            temperature=0.0,
        )
        return (response.choices[0].message.content or alt).strip()


class ImageProcessor:
    def __init__(self, describer: VisionDescriber | None = None) -> None:
        self._describer = describer if describer is not None and describer.is_available() else None
        if describer is not None and self._describer is None:
            logger.info("No API key for vision model '%s'; using alt text", describer.model)

    def process(self, pages: list[CrawledPage]) -> list[ImageDescription]:
        descriptions: list[ImageDescription] = []
        for page in pages:
            for image in page.images:
                descriptions.append(
                    ImageDescription(
                        url=image.url,
                        page_url=page.url,
                        page_title=page.title,
                        local_path=image.local_path,
                        alt=image.alt,
                        description=self.describe(image),
                    )
                )
        return descriptions

    def describe(self, image: CrawledImage) -> str:
        local = Path(image.local_path)
        description_path = local.with_suffix(".description.md")
        if description_path.exists():
            return description_path.read_text(encoding="utf-8")

        description = image.alt.strip()
        if self._describer is not None and local.exists():
            try:
                description = self._describer.describe(local, image.alt)
            except Exception as exc:
                logger.warning("Vision description failed for %s: %s", image.url, exc)

        if description and local.parent.exists():
            description_path.write_text(description, encoding="utf-8")
        return description
