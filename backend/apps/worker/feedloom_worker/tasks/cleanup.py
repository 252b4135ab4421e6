"""
Cleanup tasks.

Daily retirement of read items and pruning of old retired items.
"""

from typing import Any

from feedloom_core import get_logger
from feedloom_core.config import settings
from feedloom_database.session import get_session_context

from ..container import build_services

logger = get_logger(__name__)


async def prune_items_task(ctx: dict[str, Any]) -> dict[str, int]:
    """
    Retire read items, then delete one batch of old retired items.

    Args:
        ctx: Worker context.

    Returns:
        Dictionary with retired and deleted counts.
    """
    async with get_session_context() as session:
        services = build_services(session, ctx.get("redis"), settings)
        retired = await services.pruner.archive_read_items()
        deleted = await services.pruner.prune()

    logger.info("Cleanup finished", extra={"retired": retired, "deleted": deleted})
    return {"retired": retired, "deleted": deleted}


async def scheduled_prune(ctx: dict[str, Any]) -> dict[str, int]:
    """
    Scheduled wrapper for the daily cron.

    Args:
        ctx: Worker context.

    Returns:
        Dictionary with retired and deleted counts.
    """
    return await prune_items_task(ctx)
