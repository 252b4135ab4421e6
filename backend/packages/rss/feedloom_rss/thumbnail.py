"""
Thumbnail resolution.

Walks an ordered fallback chain over an entry's enclosures, Media RSS
tags and body HTML; the first hit wins.
"""

import re

from .parser import ParsedEntry

IMG_SRC_PATTERN = re.compile(r"""<img\b[^>]*?\bsrc\s*=\s*["']([^"']+)["']""", re.IGNORECASE)


def _is_image_type(value: str | None) -> bool:
    return bool(value and value.lower().startswith("image/"))


def _from_enclosures(entry: ParsedEntry) -> str | None:
    if not entry.enclosures:
        return None

    primary = entry.enclosures[0]
    if primary.thumbnail:
        return primary.thumbnail
    if primary.is_image:
        return primary.url

    for enclosure in entry.enclosures:
        if enclosure.thumbnail:
            return enclosure.thumbnail
    for enclosure in entry.enclosures:
        if enclosure.is_image:
            return enclosure.url
    return None


def _from_media_tags(entry: ParsedEntry) -> str | None:
    if entry.media_thumbnails:
        return entry.media_thumbnails[0]

    for media in entry.media_contents:
        if media.get("medium") == "image" or _is_image_type(media.get("type")):
            return media["url"]
    return None


def _from_body(entry: ParsedEntry) -> str | None:
    match = IMG_SRC_PATTERN.search(entry.body)
    return match.group(1) if match else None


def resolve_thumbnail(entry: ParsedEntry) -> str | None:
    """
    Resolve a thumbnail URL for an entry.

    Order: primary enclosure thumbnail, primary image enclosure, any
    enclosure thumbnail, any image enclosure, media:thumbnail, image
    media:content, first <img> in the body.

    Args:
        entry: Parsed feed entry.

    Returns:
        Thumbnail URL, or None when nothing matches.
    """
    return _from_enclosures(entry) or _from_media_tags(entry) or _from_body(entry)
