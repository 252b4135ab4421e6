"""
Category model definition.

Categories form a tree; a source's categories are copied onto its items.
"""

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, generate_uuid


class Category(Base, TimestampMixin):
    """Hierarchical category (e.g. "Tech" > "Python")."""

    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    parent_id: Mapped[str | None] = mapped_column(String(36), index=True)

    __table_args__ = (UniqueConstraint("parent_id", "name", name="uq_categories_parent_name"),)
