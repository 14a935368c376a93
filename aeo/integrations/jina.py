"""
Jina Reader Client

Fetches a web page as clean markdown through https://r.jina.ai and parses it
into headings, paragraphs, list items, links, and images.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from .base import VendorClient
from .result import ApiResult

logger = logging.getLogger(__name__)

LINK_PATTERN = re.compile(r"(?<!!)\[([^\]]+)\]\(([^)]+)\)")
IMAGE_PATTERN = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")

WORDS_PER_MINUTE = 200


@dataclass
class ContentBlock:
    type: str  # heading | list | paragraph
    content: str
    level: Optional[int] = None


@dataclass
class ExtractedContent:
    """Parsed page content."""

    url: str
    title: str = ""
    description: str = ""
    content: str = ""
    blocks: List[ContentBlock] = field(default_factory=list)
    links: List[Dict[str, str]] = field(default_factory=list)
    images: List[Dict[str, str]] = field(default_factory=list)
    word_count: int = 0
    reading_time: int = 0

    @property
    def headings(self) -> List[ContentBlock]:
        return [b for b in self.blocks if b.type == "heading"]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "content": self.content,
            "blocks": [
                {"type": b.type, "content": b.content, **({"level": b.level} if b.level else {})}
                for b in self.blocks
            ],
            "links": self.links,
            "images": self.images,
            "metadata": {"wordCount": self.word_count, "readingTime": self.reading_time},
        }


def count_words(text: str) -> int:
    return len(text.split())


def estimate_reading_time(word_count: int) -> int:
    """Minutes at 200 words per minute, rounded up."""
    return math.ceil(word_count / WORDS_PER_MINUTE)


def parse_markdown(url: str, markdown: str) -> ExtractedContent:
    """
    Parse reader markdown into an ExtractedContent.

    The title is the first H1; the description is the first paragraph longer
    than 50 characters, truncated to 200.
    """
    extracted = ExtractedContent(url=url, content=markdown)

    for line in markdown.split("\n"):
        stripped = line.strip()

        if line.startswith("# ") and not extracted.title:
            extracted.title = line[2:].strip()
            extracted.blocks.append(ContentBlock("heading", extracted.title, 1))
        elif line.startswith("## "):
            extracted.blocks.append(ContentBlock("heading", line[3:].strip(), 2))
        elif line.startswith("### "):
            extracted.blocks.append(ContentBlock("heading", line[4:].strip(), 3))
        elif stripped.startswith("- ") or stripped.startswith("* "):
            extracted.blocks.append(ContentBlock("list", stripped[2:]))
        elif stripped:
            extracted.blocks.append(ContentBlock("paragraph", stripped))
            if not extracted.description and len(stripped) > 50:
                extracted.description = stripped[:200]

        for match in LINK_PATTERN.finditer(line):
            extracted.links.append({"text": match.group(1), "href": match.group(2)})
        for match in IMAGE_PATTERN.finditer(line):
            extracted.images.append({"src": match.group(2), "alt": match.group(1)})

    extracted.word_count = count_words(markdown)
    extracted.reading_time = estimate_reading_time(extracted.word_count)
    return extracted


class JinaClient(VendorClient):
    """
    Async client for the Jina Reader API.

    Usage:
        async with JinaClient(api_key="...") as jina:
            result = await jina.extract_clean_text("https://example.com")
    """

    BASE_URL = "https://r.jina.ai"
    ERROR_PREFIX = "JINA"

    def __init__(
        self,
        api_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ValueError("JINA_API_KEY not provided")

        super().__init__(
            headers={
                "Authorization": f"Bearer {api_key}",
                "X-Return-Format": "markdown",
            },
            timeout=timeout,
            transport=transport,
        )

    async def extract_clean_text(self, url: str) -> ApiResult[ExtractedContent]:
        """Fetch a URL through the reader and parse the markdown."""
        result = await self._request("GET", f"/{quote(url, safe='')}")
        if not result.success:
            return result

        markdown = result.data if isinstance(result.data, str) else str(result.data)
        return ApiResult.ok(parse_markdown(url, markdown))

    async def extract_metadata(self, url: str) -> ApiResult[Dict[str, Any]]:
        """Summary counts for a page without the full content."""
        result = await self.extract_clean_text(url)
        if not result.success:
            return result

        page = result.data
        return ApiResult.ok({
            "title": page.title,
            "description": page.description,
            "wordCount": page.word_count,
            "readingTime": page.reading_time,
            "headings": len(page.headings),
            "links": len(page.links),
            "images": len(page.images),
        })
