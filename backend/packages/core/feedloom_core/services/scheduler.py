"""
Per-source fetch scheduler.

Every active source owns exactly one recurring fetch obligation. An
obligation fires, runs the fetch, and registers the next one, so the
schedule perpetuates itself without a global polling interval.
Overdue sources are staggered over a short window keyed on the source
id to avoid a thundering herd.
"""

import hashlib
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from redis.exceptions import RedisError

from feedloom_core import get_logger
from feedloom_core.config import Settings
from feedloom_core.errors import ErrorKind, FetchError
from feedloom_core.events import SourceEvent, SourceEvents
from feedloom_core.redis_keys import RedisKeys
from feedloom_database.models import Source, SourceStatus

from .feed_fetcher import FeedFetcher
from .job_facility import JobFacility, JobRejectedError
from .source_registry import SourceRegistry

logger = get_logger(__name__)

# Errors meaning the job backend is unreachable
FACILITY_ERRORS = (RedisError, OSError, JobRejectedError)

# Failures after which the source is not rescheduled until edited
NON_RETRYING = frozenset({ErrorKind.NO_URL.value, ErrorKind.NOT_FOUND.value})


class FacilityUnavailable(Exception):
    """Raised internally when no job facility is configured."""


def stagger_offset(source_id: str, window: int) -> int:
    """
    Deterministic offset in [0, window) seconds for a source.

    Args:
        source_id: Source identifier.
        window: Stagger window in seconds.

    Returns:
        Offset in seconds.
    """
    if window <= 0:
        return 0
    digest = hashlib.sha256(source_id.encode("utf-8")).hexdigest()
    return int(digest, 16) % window


class FeedScheduler:
    """Maintains one fetch obligation per active source."""

    def __init__(
        self,
        registry: SourceRegistry,
        fetcher: FeedFetcher,
        facility: JobFacility | None,
        settings: Settings,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize scheduler.

        Args:
            registry: Source registry.
            fetcher: Fetcher used when an obligation fires.
            facility: Job backend; None runs due fetches inline.
            settings: Engine settings.
            clock: Returns the current epoch time.
        """
        self.registry = registry
        self.fetcher = fetcher
        self.facility = facility
        self.settings = settings
        self.clock = clock

    def attach(self, events: SourceEvents) -> None:
        """Subscribe to source lifecycle events."""
        events.subscribe(SourceEvent.CREATED, self._on_source_changed)
        events.subscribe(SourceEvent.UPDATED, self._on_source_changed)
        events.subscribe(SourceEvent.STATUS_CHANGED, self._on_source_changed)
        events.subscribe(SourceEvent.DELETED, self._on_source_deleted)

    async def _on_source_changed(self, source_id: str) -> None:
        await self.schedule(source_id)

    async def _on_source_deleted(self, source_id: str) -> None:
        await self.unschedule(source_id)

    def _require_facility(self) -> JobFacility:
        if self.facility is None:
            raise FacilityUnavailable("No job facility configured")
        return self.facility

    def is_due(self, source: Source) -> bool:
        """Return whether the source's refresh interval has elapsed."""
        return source.last_fetched + source.refresh_interval <= self.clock()

    def next_run(self, source: Source) -> float:
        """
        Compute when a source should next be fetched.

        A source that is not due yet runs at last_fetched + refresh_interval;
        an overdue one runs now plus its stagger offset.
        """
        now = self.clock()
        due_at = source.last_fetched + source.refresh_interval
        if due_at > now:
            return float(due_at)
        return now + stagger_offset(source.id, self.settings.stagger_window_seconds)

    async def schedule(self, source_id: str, retry: bool = False) -> float | None:
        """
        Register the next obligation for a source, replacing any existing one.

        Inactive or missing sources are unscheduled instead. Without a
        reachable job facility a due source is fetched inline.

        Args:
            source_id: Source identifier.
            retry: Run one full refresh interval from now, for a fetch that
                failed before it could record last_fetched.

        Returns:
            Epoch time of the registered obligation, or None if nothing was
            registered.
        """
        source = await self.registry.find(source_id)
        if source is None or source.status != SourceStatus.ACTIVE:
            await self.unschedule(source_id)
            return None

        if not (source.url or "").strip():
            logger.warning("Not scheduling source %s without a feed URL", source_id)
            await self.unschedule(source_id)
            return None

        key = RedisKeys.fetch_obligation(source_id)
        run_at = self.clock() + source.refresh_interval if retry else self.next_run(source)
        try:
            facility = self._require_facility()
            await facility.cancel(key)
            await facility.schedule_at(datetime.fromtimestamp(run_at, tz=timezone.utc), key, source_id)
        except (FacilityUnavailable, *FACILITY_ERRORS) as e:
            if not retry and self.is_due(source):
                logger.warning("Job facility unavailable (%s); fetching %s inline", e, source_id)
                await self._fetch_inline(source_id)
            else:
                logger.warning(
                    "Job facility unavailable (%s); could not register fetch of %s at %d",
                    e,
                    source_id,
                    int(run_at),
                )
            return None

        logger.debug("Scheduled %s at %d", source_id, int(run_at))
        return run_at

    async def unschedule(self, source_id: str) -> bool:
        """Cancel a source's obligation. Returns True if one was registered."""
        try:
            return await self._require_facility().cancel(RedisKeys.fetch_obligation(source_id))
        except FacilityUnavailable:
            return False
        except FACILITY_ERRORS as e:
            logger.warning("Could not cancel obligation of %s: %s", source_id, e)
            return False

    async def request_refresh(self, source_id: str) -> dict[str, Any]:
        """
        Refresh a source now, bypassing its schedule and the stagger.

        Raises:
            SourceNotFoundError: If the source does not exist.
        """
        await self.registry.get(source_id)
        key = RedisKeys.fetch_obligation(source_id)
        try:
            facility = self._require_facility()
            await facility.cancel(key)
            job_id = await facility.enqueue_now(key, source_id)
        except (FacilityUnavailable, *FACILITY_ERRORS) as e:
            logger.warning("Job facility unavailable (%s); refreshing %s inline", e, source_id)
            return await self._fetch_inline(source_id)
        return {"status": "queued", "source_id": source_id, "job_id": job_id}

    async def run_obligation(self, source_id: str, job_id: str | None = None) -> dict[str, Any]:
        """
        Execute a fired obligation and register the next one.

        Args:
            source_id: Source identifier.
            job_id: Id of the firing job; stale jobs that are no longer the
                registered obligation do nothing.

        Returns:
            Result payload for the job backend.
        """
        key = RedisKeys.fetch_obligation(source_id)
        facility = self.facility

        if facility is not None and job_id is not None:
            try:
                if not await facility.is_current(key, job_id):
                    return {"status": "stale", "source_id": source_id}
            except FACILITY_ERRORS as e:
                logger.warning("Could not verify obligation of %s: %s", source_id, e)

        source = await self.registry.find(source_id)
        if source is None or source.status != SourceStatus.ACTIVE:
            return {"status": "skipped", "source_id": source_id}

        locked = False
        if facility is not None:
            try:
                if not await facility.acquire_run_lock(key, self.settings.fetch_lock_ttl_seconds):
                    return {"status": "busy", "source_id": source_id}
                locked = True
            except FACILITY_ERRORS as e:
                logger.warning("Could not lock obligation of %s: %s", source_id, e)

        try:
            result = await self._fetch(source_id)
        except Exception:
            # Keep the source on its schedule, then let the job backend see the failure
            logger.exception("Unexpected error fetching %s", source_id, extra={"source_id": source_id})
            await self.registry.session.rollback()
            await self.schedule(source_id, retry=True)
            raise
        finally:
            if locked:
                try:
                    await facility.release_run_lock(key)
                except FACILITY_ERRORS as e:
                    logger.warning("Could not release lock of %s: %s", source_id, e)

        if result.get("kind") not in NON_RETRYING:
            result["next_run"] = await self.schedule(source_id)
        return result

    async def schedule_all(self) -> int:
        """
        Register obligations for active sources that have none.

        Returns:
            Number of sources newly scheduled.
        """
        scheduled = 0
        source_ids = [source.id for source in await self.registry.list_active()]
        for source_id in source_ids:
            key = RedisKeys.fetch_obligation(source_id)
            try:
                if await self._require_facility().has_scheduled(key):
                    continue
            except FacilityUnavailable:
                pass
            except FACILITY_ERRORS as e:
                logger.warning("Could not inspect obligation of %s: %s", source_id, e)
            if await self.schedule(source_id) is not None:
                scheduled += 1
        logger.info("Registered %d fetch obligations", scheduled)
        return scheduled

    async def _fetch(self, source_id: str) -> dict[str, Any]:
        try:
            outcome = await self.fetcher.fetch(source_id)
        except FetchError as e:
            return {
                "status": "error",
                "source_id": source_id,
                "kind": e.kind.value,
                "message": e.message,
            }
        return {"status": "success", **outcome.model_dump()}

    async def _fetch_inline(self, source_id: str) -> dict[str, Any]:
        result = await self._fetch(source_id)
        result["inline"] = True
        return result
