"""
Bulk operations service.

Refresh, delete and import across all sources. One source's failure
never aborts the batch; outcomes are tallied into a BulkResult.
"""

from collections.abc import Callable, Iterable

from feedloom_core import get_logger
from feedloom_core.errors import FetchError
from feedloom_core.schemas import BulkResult, SourceImportRow
from feedloom_rss import generate_opml, parse_opml

from .feed_fetcher import FeedFetcher
from .item_store import ItemStore
from .source_registry import SourceRegistry

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int], None]

DELETE_BATCH_SIZE = 100


class BulkOperations:
    """Whole-collection operations built on the registry, store and fetcher."""

    def __init__(
        self,
        registry: SourceRegistry,
        store: ItemStore,
        fetcher: FeedFetcher,
        progress: ProgressCallback | None = None,
    ) -> None:
        """
        Initialize bulk operations.

        Args:
            registry: Source registry.
            store: Item store.
            fetcher: Feed fetcher.
            progress: Optional callback receiving (done, total).
        """
        self.registry = registry
        self.store = store
        self.fetcher = fetcher
        self.progress = progress

    def _tick(self, done: int, total: int) -> None:
        if self.progress is not None:
            self.progress(done, total)

    async def refresh_all(self) -> BulkResult:
        """Fetch every active source now and tally successes and errors."""
        # Plain values: a failed insert rolls back and expires loaded sources
        sources = [(source.id, source.url) for source in await self.registry.list_active()]
        result = BulkResult(total=len(sources))

        for done, (source_id, feed_url) in enumerate(sources, start=1):
            try:
                await self.fetcher.fetch(source_id)
                result.succeeded += 1
            except FetchError as e:
                result.failed += 1
                result.errors[source_id] = e.message
                logger.warning("Error fetching %s: %s", feed_url, e.message)
            self._tick(done, len(sources))

        logger.info("Refreshed %d sources, %d failed", result.succeeded, result.failed)
        return result

    async def delete_all_items(self) -> BulkResult:
        """Permanently delete every item, favorites included."""
        item_ids = await self.store.list_by_filter()
        result = BulkResult(total=len(item_ids))

        for start in range(0, len(item_ids), DELETE_BATCH_SIZE):
            result.deleted += await self.store.delete_batch(item_ids[start : start + DELETE_BATCH_SIZE])
            self._tick(min(start + DELETE_BATCH_SIZE, len(item_ids)), len(item_ids))

        logger.info("Deleted %d items", result.deleted)
        return result

    async def delete_all_sources(self) -> BulkResult:
        """Delete every source; each deletion cascades to its items."""
        source_ids = await self.registry.list_ids()
        result = BulkResult(total=len(source_ids))

        for done, source_id in enumerate(source_ids, start=1):
            try:
                result.cascaded += await self.registry.delete(source_id)
                result.deleted += 1
            except FetchError as e:
                # Deleted concurrently
                result.skipped += 1
                result.errors[source_id] = e.message
            self._tick(done, len(source_ids))

        logger.info("Deleted %d sources and %d items", result.deleted, result.cascaded)
        return result

    async def import_sources(self, rows: Iterable[SourceImportRow]) -> BulkResult:
        """
        Create a source per row; each creation schedules its first fetch.

        Rows whose URL is already registered are skipped.
        """
        rows = list(rows)
        result = BulkResult(total=len(rows))

        for done, row in enumerate(rows, start=1):
            try:
                if await self.registry.get_by_url(row.feed_url):
                    result.skipped += 1
                    continue
                category_id = await self.registry.ensure_category_path(row.category_path)
                await self.registry.create(
                    row.feed_url,
                    title=row.title,
                    category_ids=[category_id] if category_id else None,
                )
                result.succeeded += 1
            except ValueError as e:
                result.failed += 1
                result.errors[row.feed_url] = str(e)
            finally:
                self._tick(done, len(rows))

        logger.info(
            "Imported %d sources (%d skipped, %d failed)",
            result.succeeded,
            result.skipped,
            result.failed,
        )
        return result

    async def import_opml(self, content: str) -> BulkResult:
        """
        Import sources from an OPML document.

        Raises:
            ValueError: If the OPML cannot be parsed.
        """
        rows = [
            SourceImportRow(feed_url=feed.xml_url, title=feed.title or None, category_path=feed.category_path)
            for feed in parse_opml(content)
        ]
        return await self.import_sources(rows)

    async def export_opml(self) -> str:
        """Export all sources as OPML, folders following their first category."""
        feeds = []
        for source in await self.registry.list_all():
            category_path = None
            if source.category_ids:
                category_path = await self.registry.get_category_path(source.category_ids[0])
            feeds.append(
                {
                    "title": source.title or source.url,
                    "url": source.url,
                    "site_url": source.site_url,
                    "category_path": category_path,
                }
            )
        return generate_opml(feeds)
