"""
Error taxonomy for the fetch engine.

Every per-source failure carries an ErrorKind so callers can decide
whether to retry, record, or ignore it.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of per-source failures."""

    NO_URL = "no_url"  # misconfigured, not retried until edited
    FETCH_FAILED = "fetch_failed"  # network/parse error, retried next cycle
    STORE_WRITE_FAILED = "store_write_failed"
    NOT_FOUND = "not_found"  # vanished between scheduling and execution


class FeedloomError(Exception):
    """Base class for engine errors."""


class FetchError(FeedloomError):
    """A fetch of one source failed."""

    def __init__(self, kind: ErrorKind, message: str, source_id: str | None = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.source_id = source_id

    def __repr__(self) -> str:
        return f"FetchError(kind={self.kind.value!r}, source_id={self.source_id!r}, message={self.message!r})"


class SourceNotFoundError(FetchError):
    """The referenced source does not exist."""

    def __init__(self, source_id: str):
        super().__init__(ErrorKind.NOT_FOUND, f"Source {source_id} not found", source_id)
