"""
Source model definition.

This module defines the Source model for subscribed RSS/Atom feeds.
"""

from enum import Enum

from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, generate_uuid


class SourceStatus(str, Enum):
    """Source lifecycle status."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class SourceFetchStatus(str, Enum):
    """Outcome of the most recent fetch, visible to the UI."""

    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


class Source(Base, TimestampMixin):
    """
    Subscribed feed source.

    Attributes:
        id: Unique source identifier (UUID).
        url: Feed URL (unique).
        title: Display title.
        site_url: Website URL taken from the feed document.
        refresh_interval: Seconds between scheduled fetches.
        last_fetched: Epoch seconds of the last fetch attempt, 0 if never.
        error_message: Last fetch error, empty when healthy.
        status: Lifecycle status; only active sources are scheduled.
        fetch_status: Result of the last fetch.
        category_ids: Category identifiers inherited by new items.
        etag: HTTP ETag for conditional requests.
        last_modified: HTTP Last-Modified header value.
    """

    __tablename__ = "sources"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    url: Mapped[str] = mapped_column(String(2000), unique=True, nullable=False, index=True)
    title: Mapped[str | None] = mapped_column(String(500))
    site_url: Mapped[str | None] = mapped_column(String(2000))

    refresh_interval: Mapped[int] = mapped_column(Integer, default=3600, nullable=False)
    last_fetched: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    error_message: Mapped[str] = mapped_column(String(1000), default="", nullable=False)

    status: Mapped[SourceStatus] = mapped_column(
        String(20), default=SourceStatus.ACTIVE, nullable=False, index=True
    )
    fetch_status: Mapped[SourceFetchStatus] = mapped_column(
        String(20), default=SourceFetchStatus.PENDING, nullable=False
    )
    category_ids: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    etag: Mapped[str | None] = mapped_column(String(255))
    last_modified: Mapped[str | None] = mapped_column(String(255))
