"""
Feedloom Worker - arq worker entry point.

Run with: arq feedloom_worker.main.WorkerSettings
"""

from typing import Any

from arq import cron
from arq.connections import RedisSettings

from feedloom_core import get_logger, init_logging
from feedloom_core.config import settings
from feedloom_database.session import close_database, create_tables, init_database

from .tasks.cleanup import scheduled_prune
from .tasks.feed_fetcher import bootstrap_schedules, fetch_source_task, refresh_source_task
from .tasks.operations import (
    delete_all_items_task,
    delete_all_sources_task,
    export_opml_task,
    import_opml_task,
    import_sources_task,
    refresh_all_task,
)

logger = get_logger(__name__)


async def startup(ctx: dict[str, Any]) -> None:
    """
    Worker startup.

    Initializes logging and the database, then makes sure every active
    source has a fetch obligation.
    """
    init_logging(settings.log_level)
    init_database(settings.database_url)
    await create_tables()

    result = await bootstrap_schedules(ctx)
    logger.info("Worker started", extra=result)


async def shutdown(ctx: dict[str, Any]) -> None:
    """Worker shutdown."""
    await close_database()
    logger.info("Worker stopped")


class WorkerSettings:
    """arq worker configuration."""

    functions = [
        fetch_source_task,
        refresh_source_task,
        refresh_all_task,
        delete_all_items_task,
        delete_all_sources_task,
        import_sources_task,
        import_opml_task,
        export_opml_task,
    ]

    cron_jobs = [
        cron(scheduled_prune, hour={settings.prune_hour}, minute={0}, run_at_startup=False),
    ]

    on_startup = startup
    on_shutdown = shutdown

    redis_settings = RedisSettings.from_dsn(settings.redis_url)

    # Fetch obligations carry their own job ids; results are not read back
    keep_result = 0
    max_jobs = 10
    job_timeout = settings.fetch_lock_ttl_seconds
