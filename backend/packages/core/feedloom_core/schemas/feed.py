"""
Fetch and bulk operation schemas.
"""

from pydantic import BaseModel, Field


class FetchOutcome(BaseModel):
    """Result of one successful source fetch."""

    source_id: str
    new_items: int = 0
    duplicates: int = 0
    too_old: int = 0
    skipped_invalid: int = 0
    total_entries: int = 0
    not_modified: bool = False


class SourceImportRow(BaseModel):
    """One source to import: feed URL, optional title and category path."""

    feed_url: str
    title: str | None = None
    category_path: str | None = None


class BulkResult(BaseModel):
    """Aggregate counts of a bulk operation."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    deleted: int = 0
    cascaded: int = 0  # items removed along with deleted sources
    errors: dict[str, str] = Field(default_factory=dict)
