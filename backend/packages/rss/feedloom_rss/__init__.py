"""
RSS processing package.

Provides feed retrieval, RSS/Atom parsing, thumbnail resolution and
OPML import/export.
"""

from .fetcher import FetchResult, fetch_feed
from .opml import OPMLFeed, generate_opml, parse_opml
from .parser import Enclosure, ParsedEntry, ParsedFeed, parse_feed, strip_html
from .thumbnail import resolve_thumbnail

__all__ = [
    "fetch_feed",
    "FetchResult",
    "parse_feed",
    "ParsedFeed",
    "ParsedEntry",
    "Enclosure",
    "strip_html",
    "resolve_thumbnail",
    "parse_opml",
    "generate_opml",
    "OPMLFeed",
]
