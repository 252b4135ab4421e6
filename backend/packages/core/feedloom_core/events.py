"""
Source lifecycle events.

A small in-process pub/sub: the registry emits events from its write
path and awaits every subscriber before returning.
"""

from collections import defaultdict
from collections.abc import Awaitable, Callable
from enum import Enum

from . import get_logger

logger = get_logger(__name__)

SourceCallback = Callable[[str], Awaitable[None]]


class SourceEvent(str, Enum):
    """Events emitted by the source registry."""

    CREATED = "source_created"
    UPDATED = "source_updated"
    STATUS_CHANGED = "source_status_changed"
    DELETED = "source_deleted"


class SourceEvents:
    """Registry of lifecycle subscribers."""

    def __init__(self) -> None:
        self._subscribers: dict[SourceEvent, list[SourceCallback]] = defaultdict(list)

    def subscribe(self, event: SourceEvent, callback: SourceCallback) -> None:
        """Register a callback invoked with the source id."""
        self._subscribers[event].append(callback)

    async def emit(self, event: SourceEvent, source_id: str) -> None:
        """
        Invoke every subscriber of an event in registration order.

        A failing subscriber is logged and does not stop the others.
        """
        for callback in self._subscribers[event]:
            try:
                await callback(source_id)
            except Exception:
                logger.exception(
                    "Source event subscriber failed",
                    extra={"event": event.value, "source_id": source_id},
                )
