"""
Pydantic schemas package.

Result and request models shared by services and worker tasks.
"""

from .feed import BulkResult, FetchOutcome, SourceImportRow

__all__ = ["FetchOutcome", "BulkResult", "SourceImportRow"]
