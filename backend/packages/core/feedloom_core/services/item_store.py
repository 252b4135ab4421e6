"""
Item store adapter.

Existence check by dedup key, insert, filtered id listing and batch
delete over the items table.
"""

from collections.abc import Iterable, Sequence

from sqlalchemy import ColumnElement, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from feedloom_core import get_logger
from feedloom_core.errors import ErrorKind, FetchError
from feedloom_database.models import Item, ItemStatus

logger = get_logger(__name__)


def not_favorited() -> ColumnElement[bool]:
    """Filter matching items whose favorite flag is unset or false."""
    return or_(Item.is_favorite.is_(None), Item.is_favorite.is_(False))


class ItemStore:
    """Persistence operations on feed items."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize item store.

        Args:
            session: Database session.
        """
        self.session = session

    async def exists(self, source_id: str, permalink: str) -> bool:
        """Return whether the source already holds an item with this permalink."""
        stmt = (
            select(Item.id)
            .where(Item.source_id == source_id, Item.permalink == permalink)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def insert(self, item: Item) -> str | None:
        """
        Insert and commit a single item.

        Args:
            item: New item.

        Returns:
            The item id, or None if a concurrent writer already stored the
            same (source_id, permalink).

        Raises:
            FetchError: With kind STORE_WRITE_FAILED on any other storage error.
        """
        source_id, permalink = item.source_id, item.permalink
        self.session.add(item)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            if await self.exists(source_id, permalink):
                logger.info(
                    "Lost insert race for %s, keeping the stored item",
                    permalink,
                    extra={"source_id": source_id},
                )
                return None
            raise FetchError(ErrorKind.STORE_WRITE_FAILED, f"Failed to store item: {e}", source_id)
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise FetchError(ErrorKind.STORE_WRITE_FAILED, f"Failed to store item: {e}", source_id)
        return item.id

    async def list_by_filter(
        self, *criteria: ColumnElement[bool], limit: int | None = None
    ) -> list[str]:
        """
        List item ids matching all criteria, oldest first.

        Args:
            criteria: SQLAlchemy filter expressions on Item.
            limit: Optional maximum number of ids.

        Returns:
            Matching item ids.
        """
        stmt = select(Item.id).where(*criteria).order_by(Item.published_at, Item.id)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count(self, *criteria: ColumnElement[bool]) -> int:
        """Count items matching all criteria."""
        result = await self.session.execute(select(func.count(Item.id)).where(*criteria))
        return result.scalar() or 0

    async def delete_batch(self, item_ids: Sequence[str]) -> int:
        """
        Permanently delete items by id.

        Args:
            item_ids: Ids to delete.

        Returns:
            Number of rows deleted.
        """
        if not item_ids:
            return 0
        result = await self.session.execute(delete(Item).where(Item.id.in_(list(item_ids))))
        await self.session.commit()
        return result.rowcount or 0

    async def delete_for_source(self, source_id: str) -> int:
        """Delete every item referencing a source without committing."""
        result = await self.session.execute(delete(Item).where(Item.source_id == source_id))
        return result.rowcount or 0

    async def set_status(self, item_ids: Iterable[str], status: ItemStatus) -> int:
        """Move items to a new status and commit."""
        ids = list(item_ids)
        if not ids:
            return 0
        result = await self.session.execute(
            update(Item).where(Item.id.in_(ids)).values(status=status)
        )
        await self.session.commit()
        return result.rowcount or 0
