"""
Feed fetcher service.

Retrieves a source's feed, normalizes its entries, resolves thumbnails
and inserts entries that are not stored yet. Running a fetch twice
against an unchanged feed adds nothing the second time.
"""

import time
from collections.abc import Awaitable, Callable

from feedloom_core import get_logger
from feedloom_core.config import Settings
from feedloom_core.errors import ErrorKind, FetchError
from feedloom_core.schemas import FetchOutcome
from feedloom_database.models import Item, ItemStatus, SourceFetchStatus
from feedloom_rss import FetchResult, ParsedEntry, fetch_feed, parse_feed, resolve_thumbnail, strip_html

from .item_store import ItemStore
from .source_registry import SourceRegistry

logger = get_logger(__name__)

UNTITLED = "Untitled"
SECONDS_PER_DAY = 86400

FetchFunc = Callable[..., Awaitable[FetchResult | None]]


class FeedFetcher:
    """Fetches sources and ingests their new entries."""

    def __init__(
        self,
        registry: SourceRegistry,
        store: ItemStore,
        settings: Settings,
        clock: Callable[[], float] = time.time,
        fetch_func: FetchFunc = fetch_feed,
    ) -> None:
        """
        Initialize feed fetcher.

        Args:
            registry: Source registry for reading and updating sources.
            store: Item store used for dedup and inserts.
            settings: Engine settings.
            clock: Returns the current epoch time.
            fetch_func: Network retrieval function.
        """
        self.registry = registry
        self.store = store
        self.settings = settings
        self.clock = clock
        self.fetch_func = fetch_func

    async def fetch(self, source_id: str) -> FetchOutcome:
        """
        Fetch one source and store its new entries.

        Args:
            source_id: Source identifier.

        Returns:
            Counts of what happened to each entry.

        Raises:
            FetchError: NO_URL, FETCH_FAILED, STORE_WRITE_FAILED or NOT_FOUND.
        """
        source = await self.registry.get(source_id)
        feed_url = (source.url or "").strip()

        if not feed_url:
            await self.registry.update_meta(source_id, error_message="No feed URL configured")
            raise FetchError(ErrorKind.NO_URL, "No feed URL configured", source_id)

        now = int(self.clock())
        try:
            result = await self.fetch_func(
                feed_url,
                etag=source.etag,
                last_modified=source.last_modified,
                timeout=self.settings.fetch_timeout_seconds,
                user_agent=self.settings.user_agent,
            )
            parsed = await parse_feed(result.content, feed_url) if result is not None else None
        except ValueError as e:
            await self._record_failure(source_id, str(e), now)
            logger.warning("Fetch failed for %s: %s", feed_url, e, extra={"source_id": source_id})
            raise FetchError(ErrorKind.FETCH_FAILED, str(e), source_id)

        if parsed is None:
            # Not modified (304)
            await self.registry.update_meta(
                source_id,
                error_message="",
                fetch_status=SourceFetchStatus.SUCCESS,
                last_fetched=now,
            )
            return FetchOutcome(source_id=source_id, not_modified=True)

        # Read once; items keep a copy even if the source is re-categorized later
        category_ids = list(source.category_ids or [])
        cutoff = now - self.settings.import_window_days * SECONDS_PER_DAY
        entries = parsed.entries[: self.settings.max_items_per_fetch]
        outcome = FetchOutcome(source_id=source_id, total_entries=len(entries))

        for entry in entries:
            if entry.published_at is not None and entry.published_at < cutoff:
                outcome.too_old += 1
                continue

            if not entry.permalink:
                outcome.skipped_invalid += 1
                logger.warning(
                    "Skipping entry without permalink: %s",
                    entry.title or "unknown",
                    extra={"source_id": source_id},
                )
                continue

            if await self.store.exists(source_id, entry.permalink):
                outcome.duplicates += 1
                continue

            item = build_item(entry, source_id, category_ids, now)
            try:
                item_id = await self.store.insert(item)
            except FetchError as e:
                await self._record_failure(source_id, e.message, now)
                logger.warning(
                    "Store write failed for %s: %s", feed_url, e.message, extra={"source_id": source_id}
                )
                raise

            if item_id is None:
                outcome.duplicates += 1
            else:
                outcome.new_items += 1

        meta = {
            "error_message": "",
            "fetch_status": SourceFetchStatus.SUCCESS,
            "last_fetched": now,
            "etag": result.etag,
            "last_modified": result.last_modified,
        }
        if parsed.site_url:
            meta["site_url"] = parsed.site_url
        await self.registry.update_meta(source_id, **meta)

        logger.info(
            "Fetched %s: %d new, %d duplicate, %d too old",
            feed_url,
            outcome.new_items,
            outcome.duplicates,
            outcome.too_old,
            extra={"source_id": source_id},
        )
        return outcome

    async def fetch_all(self) -> list[FetchOutcome]:
        """Fetch every active source, discarding individual failures."""
        outcomes = []
        source_ids = [source.id for source in await self.registry.list_active()]
        for source_id in source_ids:
            try:
                outcomes.append(await self.fetch(source_id))
            except FetchError as e:
                logger.warning("Skipping source %s: %s", source_id, e.message)
        return outcomes

    async def _record_failure(self, source_id: str, message: str, now: int) -> None:
        await self.registry.update_meta(
            source_id,
            error_message=message[:1000],
            fetch_status=SourceFetchStatus.ERROR,
            last_fetched=now,
        )


def build_item(entry: ParsedEntry, source_id: str, category_ids: list[str], now: int) -> Item:
    """
    Normalize a parsed entry into a new item.

    Missing titles become "Untitled", missing content falls back to the
    description, and a missing publish date becomes the ingestion time.
    """
    return Item(
        source_id=source_id,
        permalink=entry.permalink,
        title=((entry.title or "").strip() or UNTITLED)[:1000],
        content=entry.content or entry.description,
        excerpt=strip_html(entry.description) or None,
        author=entry.author or None,
        thumbnail_url=resolve_thumbnail(entry),
        published_at=entry.published_at if entry.published_at is not None else now,
        status=ItemStatus.PUBLISHED,
        is_read=False,
        category_ids=list(category_ids),
    )
