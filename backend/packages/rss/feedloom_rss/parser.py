"""
RSS/Atom feed parser.

Parses RSS and Atom feeds using feedparser and exposes per-entry
accessors for the fields ingestion needs, including enclosures and
Media RSS tags.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import feedparser
from bs4 import BeautifulSoup
from feedparser import FeedParserDict


@dataclass
class Enclosure:
    """Media enclosure attached to an entry."""

    url: str
    type: str | None = None
    thumbnail: str | None = None

    @property
    def is_image(self) -> bool:
        return bool(self.type and self.type.lower().startswith("image/"))


class ParsedFeed:
    """Parsed feed metadata."""

    def __init__(self, data: FeedParserDict):
        """
        Initialize from feedparser data.

        Args:
            data: Parsed feed data from feedparser.
        """
        feed_info = data.get("feed", {})
        self.title = feed_info.get("title", "")
        self.description = feed_info.get("description", "")
        self.site_url = feed_info.get("link", "")
        self.language = feed_info.get("language")
        self.entries = [ParsedEntry(entry) for entry in data.get("entries", [])]


class ParsedEntry:
    """Parsed entry data."""

    def __init__(self, data: dict[str, Any]):
        """
        Initialize from feedparser entry data.

        Args:
            data: Entry data from feedparser.
        """
        self.guid = data.get("id") or data.get("link", "")
        self.permalink = data.get("link") or data.get("id", "")
        self.title = data.get("title", "")
        self.author = data.get("author")
        self.description = data.get("summary")

        # Full content only; callers fall back to the description
        content_list = data.get("content", [])
        self.content = content_list[0].get("value") if content_list else None

        self.published_at = _parse_timestamp(data)
        self.media_thumbnails = [
            thumb["url"] for thumb in data.get("media_thumbnail", []) if thumb.get("url")
        ]
        self.enclosures = _parse_enclosures(data, self.media_thumbnails)
        self.media_contents: list[dict[str, str]] = [
            dict(media) for media in data.get("media_content", []) if media.get("url")
        ]

    @property
    def body(self) -> str:
        """Rendered body HTML: full content, else the description."""
        return self.content or self.description or ""


def _parse_timestamp(data: dict[str, Any]) -> int | None:
    published = data.get("published_parsed") or data.get("updated_parsed")
    if not published:
        return None
    try:
        return int(datetime(*published[:6], tzinfo=timezone.utc).timestamp())
    except (TypeError, ValueError, OverflowError):
        return None


def _parse_enclosures(data: dict[str, Any], media_thumbnails: list[str]) -> list[Enclosure]:
    # feedparser flattens media:thumbnail to the entry, so enclosures without
    # their own thumbnail inherit the entry's first one
    inherited = media_thumbnails[0] if media_thumbnails else None
    enclosures = []
    for raw in data.get("enclosures", []):
        url = raw.get("href") or raw.get("url")
        if not url:
            continue
        enclosures.append(
            Enclosure(url=url, type=raw.get("type") or None, thumbnail=raw.get("thumbnail") or inherited)
        )
    return enclosures


def strip_html(html: str | None) -> str:
    """Return the visible text of an HTML fragment."""
    if not html:
        return ""
    return BeautifulSoup(html, "html.parser").get_text(" ", strip=True)


async def parse_feed(content: str, url: str) -> ParsedFeed:
    """
    Parse RSS/Atom feed from content.

    Args:
        content: Feed XML content.
        url: Feed URL, used in error messages.

    Returns:
        Parsed feed data.

    Raises:
        ValueError: If feed parsing fails.
    """
    data = feedparser.parse(content)

    if data.get("bozo", False) and not data.get("entries"):
        # Feed has errors and no entries
        raise ValueError(f"Failed to parse feed {url}: {data.get('bozo_exception', 'Unknown error')}")

    if not data.get("version") and not data.get("entries"):
        raise ValueError(f"Document at {url} is not an RSS or Atom feed")

    return ParsedFeed(data)
