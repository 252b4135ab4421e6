"""
Service layer package.

Business logic of the fetch, schedule and prune engine.
"""

from .bulk_service import BulkOperations
from .feed_fetcher import FeedFetcher
from .item_store import ItemStore
from .job_facility import ArqJobFacility, JobFacility
from .pruner import ItemPruner
from .scheduler import FeedScheduler
from .source_registry import SourceRegistry

__all__ = [
    "SourceRegistry",
    "ItemStore",
    "FeedFetcher",
    "FeedScheduler",
    "JobFacility",
    "ArqJobFacility",
    "ItemPruner",
    "BulkOperations",
]
