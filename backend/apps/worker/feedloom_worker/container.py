"""
Service wiring.

Builds the engine services for one database session. The scheduler is
attached to the registry's lifecycle events so that source writes made
through these services keep obligations in sync.
"""

from dataclasses import dataclass

from arq.connections import ArqRedis
from sqlalchemy.ext.asyncio import AsyncSession

from feedloom_core.config import Settings
from feedloom_core.events import SourceEvents
from feedloom_core.services import (
    ArqJobFacility,
    BulkOperations,
    FeedFetcher,
    FeedScheduler,
    ItemPruner,
    ItemStore,
    SourceRegistry,
)


@dataclass
class Services:
    """Engine services sharing one session."""

    registry: SourceRegistry
    store: ItemStore
    fetcher: FeedFetcher
    scheduler: FeedScheduler
    pruner: ItemPruner
    bulk: BulkOperations


def build_services(session: AsyncSession, redis: ArqRedis | None, settings: Settings) -> Services:
    """
    Wire services for a session.

    Args:
        session: Database session.
        redis: arq pool; None makes the scheduler run due fetches inline.
        settings: Engine settings.

    Returns:
        Wired services.
    """
    events = SourceEvents()
    registry = SourceRegistry(session, events, settings.default_refresh_interval)
    store = ItemStore(session)
    fetcher = FeedFetcher(registry, store, settings)
    facility = ArqJobFacility(redis) if redis is not None else None
    scheduler = FeedScheduler(registry, fetcher, facility, settings)
    scheduler.attach(events)

    return Services(
        registry=registry,
        store=store,
        fetcher=fetcher,
        scheduler=scheduler,
        pruner=ItemPruner(store, settings),
        bulk=BulkOperations(registry, store, fetcher),
    )
