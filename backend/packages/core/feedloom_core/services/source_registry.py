"""
Source registry service.

CRUD over feed sources plus the lifecycle events the scheduler listens
to. Deleting a source cascades to its items.
"""

from typing import Any
from urllib.parse import urlparse

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from feedloom_core import get_logger
from feedloom_core.errors import SourceNotFoundError
from feedloom_core.events import SourceEvent, SourceEvents
from feedloom_database.models import Category, Source, SourceStatus

from .item_store import ItemStore

logger = get_logger(__name__)

CATEGORY_SEPARATOR = "/"

# Fields written by the fetcher; changing them never reschedules a source
META_FIELDS = frozenset(
    {"site_url", "last_fetched", "error_message", "fetch_status", "etag", "last_modified"}
)


def validate_feed_url(url: str) -> str:
    """
    Validate that a feed URL is an absolute http(s) URL.

    Returns:
        The stripped URL.

    Raises:
        ValueError: If the URL is malformed.
    """
    url = url.strip()
    try:
        result = urlparse(url)
    except ValueError:
        raise ValueError(f"Invalid feed URL: {url!r}")
    if result.scheme not in ("http", "https") or not result.netloc:
        raise ValueError(f"Invalid feed URL: {url!r}")
    return url


class SourceRegistry:
    """Feed source management service."""

    def __init__(
        self,
        session: AsyncSession,
        events: SourceEvents | None = None,
        default_refresh_interval: int = 3600,
    ) -> None:
        """
        Initialize source registry.

        Args:
            session: Database session.
            events: Lifecycle event hub; a private one is created if omitted.
            default_refresh_interval: Interval for sources created without one.
        """
        self.session = session
        self.events = events or SourceEvents()
        self.default_refresh_interval = default_refresh_interval
        self.items = ItemStore(session)

    async def create(
        self,
        feed_url: str,
        title: str | None = None,
        refresh_interval: int | None = None,
        category_ids: list[str] | None = None,
        status: SourceStatus = SourceStatus.ACTIVE,
    ) -> Source:
        """
        Create a source and emit source_created.

        Raises:
            ValueError: If the URL is invalid or already registered.
        """
        feed_url = validate_feed_url(feed_url)
        if await self.get_by_url(feed_url):
            raise ValueError(f"Source already exists: {feed_url}")

        source = Source(
            url=feed_url,
            title=title or feed_url,
            refresh_interval=refresh_interval or self.default_refresh_interval,
            category_ids=list(category_ids or []),
            status=status,
        )
        self.session.add(source)
        await self.session.commit()

        logger.info("Created source %s", feed_url, extra={"source_id": source.id})
        await self.events.emit(SourceEvent.CREATED, source.id)
        return source

    async def find(self, source_id: str) -> Source | None:
        """Return a fresh copy of the source, or None if it does not exist."""
        stmt = (
            select(Source)
            .where(Source.id == source_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, source_id: str) -> Source:
        """
        Get a source by id.

        Raises:
            SourceNotFoundError: If the source does not exist.
        """
        source = await self.find(source_id)
        if source is None:
            raise SourceNotFoundError(source_id)
        return source

    async def get_by_url(self, feed_url: str) -> Source | None:
        """Look up a source by feed URL."""
        result = await self.session.execute(select(Source).where(Source.url == feed_url.strip()))
        return result.scalar_one_or_none()

    async def list_active(self) -> list[Source]:
        """Return all active sources."""
        stmt = (
            select(Source)
            .where(Source.status == SourceStatus.ACTIVE)
            .order_by(Source.created_at, Source.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_ids(self) -> list[str]:
        """Return the ids of all sources regardless of status."""
        result = await self.session.execute(select(Source.id).order_by(Source.created_at, Source.id))
        return list(result.scalars().all())

    async def list_all(self) -> list[Source]:
        """Return all sources regardless of status."""
        result = await self.session.execute(select(Source).order_by(Source.created_at, Source.id))
        return list(result.scalars().all())

    async def update_meta(self, source_id: str, **fields: Any) -> None:
        """
        Write fetch metadata without emitting events.

        Args:
            source_id: Source identifier.
            fields: Subset of META_FIELDS.
        """
        unknown = set(fields) - META_FIELDS
        if unknown:
            raise ValueError(f"Not metadata fields: {sorted(unknown)}")
        if not fields:
            return
        await self.session.execute(update(Source).where(Source.id == source_id).values(**fields))
        await self.session.commit()

    async def update(
        self,
        source_id: str,
        *,
        feed_url: str | None = None,
        title: str | None = None,
        refresh_interval: int | None = None,
        category_ids: list[str] | None = None,
    ) -> Source:
        """
        Edit user-facing source settings and emit source_updated.

        Editing the URL clears a recorded error so the source is retried.
        """
        source = await self.get(source_id)
        if feed_url is not None:
            source.url = validate_feed_url(feed_url)
            source.error_message = ""
            source.etag = None
            source.last_modified = None
        if title is not None:
            source.title = title
        if refresh_interval is not None:
            if refresh_interval <= 0:
                raise ValueError("refresh_interval must be positive")
            source.refresh_interval = refresh_interval
        if category_ids is not None:
            source.category_ids = list(category_ids)
        await self.session.commit()

        await self.events.emit(SourceEvent.UPDATED, source_id)
        return source

    async def set_status(self, source_id: str, status: SourceStatus) -> Source:
        """Activate or deactivate a source and emit source_status_changed."""
        source = await self.get(source_id)
        if source.status == status:
            return source
        source.status = status
        await self.session.commit()

        logger.info("Source %s is now %s", source_id, status.value)
        await self.events.emit(SourceEvent.STATUS_CHANGED, source_id)
        return source

    async def delete(self, source_id: str) -> int:
        """
        Delete a source and all items referencing it.

        Returns:
            Number of items deleted along with the source.

        Raises:
            SourceNotFoundError: If the source does not exist.
        """
        source = await self.get(source_id)
        deleted_items = await self.items.delete_for_source(source_id)
        await self.session.delete(source)
        await self.session.commit()

        logger.info(
            "Deleted source %s with %d items", source_id, deleted_items, extra={"source_id": source_id}
        )
        await self.events.emit(SourceEvent.DELETED, source_id)
        return deleted_items

    async def ensure_category_path(self, path: str | None) -> str | None:
        """
        Create missing categories along a path such as "Tech/Python".

        Returns:
            Id of the leaf category, or None for an empty path.
        """
        parent_id: str | None = None
        for name in (part.strip() for part in (path or "").split(CATEGORY_SEPARATOR)):
            if not name:
                continue
            stmt = select(Category).where(Category.name == name)
            stmt = stmt.where(
                Category.parent_id.is_(None) if parent_id is None else Category.parent_id == parent_id
            )
            result = await self.session.execute(stmt)
            category = result.scalar_one_or_none()
            if category is None:
                category = Category(name=name, parent_id=parent_id)
                self.session.add(category)
                await self.session.flush()
            parent_id = category.id
        await self.session.commit()
        return parent_id

    async def get_category_path(self, category_id: str) -> str | None:
        """Return the slash-separated path of a category, or None if unknown."""
        names: list[str] = []
        current: str | None = category_id
        while current is not None:
            category = await self.session.get(Category, current)
            if category is None:
                break
            names.append(category.name)
            current = category.parent_id
        return CATEGORY_SEPARATOR.join(reversed(names)) or None
