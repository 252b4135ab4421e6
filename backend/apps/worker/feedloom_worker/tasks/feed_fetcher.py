"""
Feed fetcher tasks.

Background tasks that execute per-source fetch obligations.
"""

from typing import Any

from feedloom_core import get_logger
from feedloom_core.config import settings
from feedloom_core.errors import SourceNotFoundError
from feedloom_database.session import get_session_context

from ..container import build_services

logger = get_logger(__name__)


async def fetch_source_task(ctx: dict[str, Any], source_id: str) -> dict[str, Any]:
    """
    Run a fired fetch obligation.

    Fetches the source and registers its next obligation. Fetch errors
    are recorded on the source and returned, never raised.

    Args:
        ctx: Worker context.
        source_id: Source identifier to fetch.

    Returns:
        Dictionary with fetch results.
    """
    async with get_session_context() as session:
        services = build_services(session, ctx.get("redis"), settings)
        return await services.scheduler.run_obligation(source_id, job_id=ctx.get("job_id"))


async def refresh_source_task(ctx: dict[str, Any], source_id: str) -> dict[str, Any]:
    """
    Refresh one source now.

    Args:
        ctx: Worker context.
        source_id: Source identifier.

    Returns:
        Dictionary with the queued job or inline fetch result.
    """
    async with get_session_context() as session:
        services = build_services(session, ctx.get("redis"), settings)
        try:
            return await services.scheduler.request_refresh(source_id)
        except SourceNotFoundError as e:
            return {"status": "error", "kind": e.kind.value, "message": e.message}


async def bootstrap_schedules(ctx: dict[str, Any]) -> dict[str, int]:
    """
    Register obligations for active sources that have none.

    Args:
        ctx: Worker context.

    Returns:
        Dictionary with the number of sources scheduled.
    """
    async with get_session_context() as session:
        services = build_services(session, ctx.get("redis"), settings)
        return {"scheduled": await services.scheduler.schedule_all()}
