"""
Item model definition.

Items are entries ingested from a source's feed. The permalink is the
dedup key and is unique per source.
"""

from enum import Enum

from sqlalchemy import JSON, Boolean, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, generate_uuid


class ItemStatus(str, Enum):
    """Item visibility status."""

    PUBLISHED = "published"
    RETIRED = "retired"


class Item(Base, TimestampMixin):
    """
    Ingested feed item.

    `source_id` is a plain back-reference; deleting a source removes its
    items through the registry, not through the database.

    `is_favorite` may be NULL, which counts as not favorited.
    """

    __tablename__ = "items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    source_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    permalink: Mapped[str] = mapped_column(String(2000), nullable=False)
    title: Mapped[str] = mapped_column(String(1000), nullable=False)
    content: Mapped[str | None] = mapped_column(Text)
    excerpt: Mapped[str | None] = mapped_column(Text)
    author: Mapped[str | None] = mapped_column(String(500))
    thumbnail_url: Mapped[str | None] = mapped_column(String(2000))
    published_at: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    status: Mapped[ItemStatus] = mapped_column(
        String(20), default=ItemStatus.PUBLISHED, nullable=False
    )
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_favorite: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    category_ids: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    __table_args__ = (
        UniqueConstraint("source_id", "permalink", name="uq_items_source_permalink"),
        Index("ix_items_status_published_at", "status", "published_at"),
    )
