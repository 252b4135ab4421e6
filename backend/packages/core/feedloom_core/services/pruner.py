"""
Item pruner.

Retires read items and permanently deletes old retired items in
bounded batches. Favorited items are never touched.
"""

import time
from collections.abc import Callable

from feedloom_core import get_logger
from feedloom_core.config import Settings
from feedloom_database.models import Item, ItemStatus

from .item_store import ItemStore, not_favorited

logger = get_logger(__name__)

SECONDS_PER_DAY = 86400


class ItemPruner:
    """Bounds storage growth by deleting retired items."""

    def __init__(
        self,
        store: ItemStore,
        settings: Settings,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.settings = settings
        self.clock = clock

    async def archive_read_items(self) -> int:
        """
        Move read, non-favorited published items to the retired state.

        Works in batches of prune_batch_size, committing each batch.

        Returns:
            Number of items retired.
        """
        retired = 0
        while True:
            item_ids = await self.store.list_by_filter(
                Item.status == ItemStatus.PUBLISHED,
                Item.is_read.is_(True),
                not_favorited(),
                limit=self.settings.prune_batch_size,
            )
            batch = await self.store.set_status(item_ids, ItemStatus.RETIRED)
            if not batch:
                break
            retired += batch
        if retired:
            logger.info("Retired %d read items", retired)
        return retired

    async def prune(self) -> int:
        """
        Delete one batch of retired items older than the retention window.

        Returns:
            Number of items deleted.
        """
        cutoff = int(self.clock()) - self.settings.retention_days * SECONDS_PER_DAY
        item_ids = await self.store.list_by_filter(
            Item.status == ItemStatus.RETIRED,
            Item.published_at < cutoff,
            not_favorited(),
            limit=self.settings.prune_batch_size,
        )
        deleted = await self.store.delete_batch(item_ids)
        if deleted:
            logger.info("Pruned %d old items", deleted)
        return deleted
