"""
Database package.

Provides SQLAlchemy models and session management for Feedloom.
"""

from .models import Base, Category, Item, ItemStatus, Source, SourceFetchStatus, SourceStatus
from .session import create_tables, get_engine, get_session_context, init_database

__all__ = [
    "Base",
    "Source",
    "SourceStatus",
    "SourceFetchStatus",
    "Item",
    "ItemStatus",
    "Category",
    "init_database",
    "get_engine",
    "get_session_context",
    "create_tables",
]
