"""
OPML import/export.

Handles OPML file parsing and generation for feed source management.
Nested folder outlines become slash-separated category paths.
"""

import io
from datetime import datetime, timezone
from typing import Any
from xml.etree import ElementTree as ET

CATEGORY_SEPARATOR = "/"


class OPMLFeed:
    """OPML feed entry."""

    def __init__(
        self,
        title: str,
        xml_url: str,
        html_url: str | None = None,
        category_path: str | None = None,
    ):
        """
        Initialize OPML feed entry.

        Args:
            title: Feed title.
            xml_url: Feed XML URL.
            html_url: Optional feed website URL.
            category_path: Folder path such as "Tech/Python", if nested.
        """
        self.title = title
        self.xml_url = xml_url
        self.html_url = html_url
        self.category_path = category_path


def _walk(element: ET.Element, folders: list[str], feeds: list[OPMLFeed]) -> None:
    for outline in element.findall("outline"):
        label = outline.get("title") or outline.get("text", "")
        xml_url = outline.get("xmlUrl")

        if not xml_url:
            # Folder outline
            _walk(outline, folders + [label] if label else folders, feeds)
            continue

        feeds.append(
            OPMLFeed(
                title=label,
                xml_url=xml_url,
                html_url=outline.get("htmlUrl"),
                category_path=CATEGORY_SEPARATOR.join(folders) or None,
            )
        )


def parse_opml(content: str) -> list[OPMLFeed]:
    """
    Parse OPML file.

    Args:
        content: OPML XML content.

    Returns:
        List of OPML feed entries in document order.

    Raises:
        ValueError: If OPML parsing fails.
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise ValueError(f"Invalid OPML format: {e}")

    feeds: list[OPMLFeed] = []
    body = root.find("body")
    if body is None:
        return feeds

    _walk(body, [], feeds)
    return feeds


def generate_opml(feeds: list[dict[str, Any]], title: str = "Feedloom Sources") -> str:
    """
    Generate OPML file from feeds.

    Args:
        feeds: List of feed dictionaries with 'title', 'url', and optional
            'site_url' and 'category_path'.
        title: OPML document title.

    Returns:
        OPML XML string.
    """
    opml = ET.Element("opml", version="2.0")

    head = ET.SubElement(opml, "head")
    title_elem = ET.SubElement(head, "title")
    title_elem.text = title

    date_created = ET.SubElement(head, "dateCreated")
    date_created.text = datetime.now(timezone.utc).strftime("%a, %d %b %Y %H:%M:%S GMT")

    body = ET.SubElement(opml, "body")
    folders: dict[str, ET.Element] = {}

    for feed in feeds:
        parent = body
        path = ""
        for name in filter(None, (feed.get("category_path") or "").split(CATEGORY_SEPARATOR)):
            path = f"{path}{CATEGORY_SEPARATOR}{name}" if path else name
            if path not in folders:
                folders[path] = ET.SubElement(parent, "outline", text=name, title=name)
            parent = folders[path]

        outline = ET.SubElement(
            parent,
            "outline",
            type="rss",
            text=feed.get("title", ""),
            title=feed.get("title", ""),
            xmlUrl=feed.get("url", ""),
        )

        if feed.get("site_url"):
            outline.set("htmlUrl", feed["site_url"])

    tree = ET.ElementTree(opml)
    ET.indent(tree, space="  ")

    output = io.BytesIO()
    tree.write(output, encoding="utf-8", xml_declaration=True)
    return output.getvalue().decode("utf-8")
