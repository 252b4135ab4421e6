"""Global pytest fixtures for testing."""

from __future__ import annotations

import contextlib
import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any

import dotenv
import pytest
import pytest_asyncio
from arq.constants import default_queue_name, job_key_prefix
from arq.jobs import Job
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

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
from feedloom_database import Base
from feedloom_rss import FetchResult

with contextlib.suppress(OSError):
    dotenv.load_dotenv()

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Fixed "now" used by every clock-injected service in tests
NOW = 1_760_000_000


class MockArqRedis:
    """Mock ArqRedis for testing."""

    def __init__(self):
        self.enqueued_jobs: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []
        self._store: dict[str, Any] = {}
        self._ttl: dict[str, int] = {}
        self._zsets: dict[str, set[str]] = {}

    async def enqueue_job(self, func_name: str, *args: Any, **kwargs: Any) -> Job | None:
        """Record the job the way arq would queue it, honouring _job_id uniqueness."""
        job_id = kwargs.get("_job_id") or uuid.uuid4().hex
        queue_name = kwargs.get("_queue_name") or default_queue_name
        if job_key_prefix + job_id in self._store:
            return None
        self.enqueued_jobs.append((func_name, args, kwargs))
        self._store[job_key_prefix + job_id] = func_name
        self._zsets.setdefault(queue_name, set()).add(job_id)
        return Job(job_id, self, _queue_name=queue_name)

    async def set(
        self, key: str, value: Any, ex: int | None = None, nx: bool = False
    ) -> bool | None:
        if nx and key in self._store:
            return None
        self._store[key] = value.encode() if isinstance(value, str) else value
        if ex is not None:
            self._ttl[key] = ex
        return True

    async def get(self, key: str) -> Any:
        return self._store.get(key)

    async def exists(self, *keys: str) -> int:
        return sum(1 for key in keys if key in self._store)

    async def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            if key in self._store:
                deleted += 1
                self._store.pop(key, None)
                self._ttl.pop(key, None)
        return deleted

    async def zrem(self, name: str, *values: str) -> int:
        members = self._zsets.get(name, set())
        removed = len(members.intersection(values))
        members.difference_update(values)
        return removed

    def queued(self, queue_name: str = default_queue_name) -> set[str]:
        """Return job ids still waiting in a queue."""
        return set(self._zsets.get(queue_name, set()))

    def finish(self, job_id: str, queue_name: str = default_queue_name) -> None:
        """Simulate arq completing a job."""
        self._zsets.get(queue_name, set()).discard(job_id)
        self._store.pop(job_key_prefix + job_id, None)

    def reset(self) -> None:
        """Reset all in-memory redis state."""
        self.enqueued_jobs.clear()
        self._store.clear()
        self._ttl.clear()
        self._zsets.clear()

    def has_key(self, key: str) -> bool:
        """Return whether key exists in mock store."""
        return key in self._store


class FakeFeedServer:
    """Stand-in for fetch_feed serving canned documents by URL."""

    def __init__(self):
        self.documents: dict[str, str | Exception | None] = {}
        self.calls: list[str] = []

    def serve(self, url: str, document: str | Exception | None) -> None:
        """Serve a document, raise an exception, or answer 304 (None) for a URL."""
        self.documents[url] = document

    async def __call__(self, url: str, **kwargs: Any) -> FetchResult | None:
        self.calls.append(url)
        document = self.documents.get(url, ValueError(f"Failed to fetch feed: 404 for {url}"))
        if isinstance(document, Exception):
            raise document
        if document is None:
            return None
        return FetchResult(content=document, etag='"v1"')


class FakeClock:
    """Settable epoch clock."""

    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def rss_date(epoch: float) -> str:
    """Format an epoch timestamp as an RFC 822 date."""
    return format_datetime(datetime.fromtimestamp(epoch, tz=timezone.utc), usegmt=True)


def build_rss(items: list[str], title: str = "Test Feed", link: str = "https://example.com") -> str:
    """Wrap <item> fragments in an RSS 2.0 document with the Media RSS namespace."""
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/"
     xmlns:content="http://purl.org/rss/1.0/modules/content/">
  <channel>
    <title>{title}</title>
    <link>{link}</link>
    <description>A test RSS feed</description>
    {"".join(items)}
  </channel>
</rss>"""


def rss_item(
    permalink: str,
    title: str | None = "Article",
    published: float | None = None,
    description: str | None = "Description",
    extra: str = "",
) -> str:
    """Build one RSS <item> fragment."""
    parts = [f"<link>{permalink}</link>", f"<guid>{permalink}</guid>"]
    if title is not None:
        parts.append(f"<title>{title}</title>")
    if description is not None:
        parts.append(f"<description><![CDATA[{description}]]></description>")
    if published is not None:
        parts.append(f"<pubDate>{rss_date(published)}</pubDate>")
    parts.append(extra)
    return f"<item>{''.join(parts)}</item>"


SAMPLE_MALFORMED_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Malformed Feed</title>
    <item>
      <title>Bad Item
"""

SAMPLE_NOT_A_FEED = """<html><body><p>This is not a feed</p></body></html>"""


@pytest.fixture
def mock_redis() -> MockArqRedis:
    """Provide a fresh mock arq redis."""
    return MockArqRedis()


@pytest.fixture
def clock() -> FakeClock:
    """Provide a fake clock frozen at NOW."""
    return FakeClock()


@pytest.fixture
def test_settings() -> Settings:
    """Engine settings with defaults, isolated from the environment."""
    return Settings(_env_file=None)


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory database engine with all tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async_session = async_sessionmaker(bind=test_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session


@pytest.fixture
def events() -> SourceEvents:
    """Provide a lifecycle event hub."""
    return SourceEvents()


@pytest.fixture
def registry(db_session: AsyncSession, events: SourceEvents) -> SourceRegistry:
    """Provide a source registry bound to the test session."""
    return SourceRegistry(db_session, events)


@pytest.fixture
def store(db_session: AsyncSession) -> ItemStore:
    """Provide an item store bound to the test session."""
    return ItemStore(db_session)


@pytest.fixture
def feed_server() -> FakeFeedServer:
    """Provide a fake feed server."""
    return FakeFeedServer()


@pytest.fixture
def fetcher(
    registry: SourceRegistry,
    store: ItemStore,
    test_settings: Settings,
    clock: FakeClock,
    feed_server: FakeFeedServer,
) -> FeedFetcher:
    """Provide a fetcher that reads from the fake feed server."""
    return FeedFetcher(registry, store, test_settings, clock=clock, fetch_func=feed_server)


@pytest.fixture
def facility(mock_redis: MockArqRedis) -> ArqJobFacility:
    """Provide an arq job facility over the mock redis."""
    return ArqJobFacility(mock_redis)


@pytest.fixture
def scheduler(
    registry: SourceRegistry,
    fetcher: FeedFetcher,
    facility: ArqJobFacility,
    test_settings: Settings,
    clock: FakeClock,
) -> FeedScheduler:
    """Provide a scheduler using the mock job facility (not attached to events)."""
    return FeedScheduler(registry, fetcher, facility, test_settings, clock=clock)


@pytest.fixture
def pruner(store: ItemStore, test_settings: Settings, clock: FakeClock) -> ItemPruner:
    """Provide an item pruner."""
    return ItemPruner(store, test_settings, clock=clock)


@pytest.fixture
def bulk(registry: SourceRegistry, store: ItemStore, fetcher: FeedFetcher) -> BulkOperations:
    """Provide bulk operations."""
    return BulkOperations(registry, store, fetcher)
