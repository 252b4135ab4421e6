"""
Bulk operation tasks.

Entry points the admin surface enqueues for whole-collection work.
"""

from typing import Any

from feedloom_core.config import settings
from feedloom_core.schemas import SourceImportRow
from feedloom_database.session import get_session_context

from ..container import build_services


async def refresh_all_task(ctx: dict[str, Any]) -> dict[str, Any]:
    """Fetch every active source now."""
    async with get_session_context() as session:
        services = build_services(session, ctx.get("redis"), settings)
        result = await services.bulk.refresh_all()
    return result.model_dump()


async def delete_all_items_task(ctx: dict[str, Any]) -> dict[str, Any]:
    """Delete every stored item."""
    async with get_session_context() as session:
        services = build_services(session, ctx.get("redis"), settings)
        result = await services.bulk.delete_all_items()
    return result.model_dump()


async def delete_all_sources_task(ctx: dict[str, Any]) -> dict[str, Any]:
    """Delete every source together with its items."""
    async with get_session_context() as session:
        services = build_services(session, ctx.get("redis"), settings)
        result = await services.bulk.delete_all_sources()
    return result.model_dump()


async def import_sources_task(
    ctx: dict[str, Any], rows: list[tuple[str, str | None, str | None]]
) -> dict[str, Any]:
    """
    Import (feed_url, title, category_path) tuples and schedule each source.

    Args:
        ctx: Worker context.
        rows: Sources to import.

    Returns:
        Dictionary with import counts.
    """
    import_rows = [
        SourceImportRow(feed_url=feed_url, title=title, category_path=category_path)
        for feed_url, title, category_path in rows
    ]
    async with get_session_context() as session:
        services = build_services(session, ctx.get("redis"), settings)
        result = await services.bulk.import_sources(import_rows)
    return result.model_dump()


async def import_opml_task(ctx: dict[str, Any], content: str) -> dict[str, Any]:
    """Import sources from an OPML document."""
    async with get_session_context() as session:
        services = build_services(session, ctx.get("redis"), settings)
        try:
            result = await services.bulk.import_opml(content)
        except ValueError as e:
            return {"status": "error", "message": str(e)}
    return result.model_dump()


async def export_opml_task(ctx: dict[str, Any]) -> str:
    """Export all sources as an OPML document."""
    async with get_session_context() as session:
        services = build_services(session, ctx.get("redis"), settings)
        return await services.bulk.export_opml()
