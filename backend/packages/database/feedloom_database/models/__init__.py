"""
Database models package.

This module exports all SQLAlchemy models for the Feedloom application.
"""

from .base import Base, TimestampMixin
from .category import Category
from .item import Item, ItemStatus
from .source import Source, SourceFetchStatus, SourceStatus

__all__ = [
    "Base",
    "TimestampMixin",
    "Source",
    "SourceStatus",
    "SourceFetchStatus",
    "Item",
    "ItemStatus",
    "Category",
]
