"""Tests for bulk operations."""

import pytest

from conftest import NOW, build_rss, rss_item
from feedloom_core.schemas import SourceImportRow
from feedloom_core.services import BulkOperations
from feedloom_database.models import Item, SourceStatus
from feedloom_rss import parse_opml

OPML = """<?xml version="1.0" encoding="UTF-8"?>
<opml version="2.0">
  <head><title>Subscriptions</title></head>
  <body>
    <outline text="Tech">
      <outline text="Python" title="Python">
        <outline type="rss" text="Planet Python" xmlUrl="https://planetpython.org/rss20.xml"/>
      </outline>
    </outline>
    <outline type="rss" text="Loose" xmlUrl="https://loose.example.com/feed"/>
  </body>
</opml>"""


class TestRefreshAll:
    """Test BulkOperations.refresh_all."""

    @pytest.mark.asyncio
    async def test_tallies_successes_and_errors(self, registry, bulk, feed_server, store):
        await registry.create("https://good.example.com/feed")
        bad = await registry.create("https://bad.example.com/feed")
        await registry.create("https://off.example.com/feed", status=SourceStatus.INACTIVE)
        feed_server.serve(
            "https://good.example.com/feed", build_rss([rss_item("https://example.com/a", published=NOW)])
        )

        result = await bulk.refresh_all()

        assert result.total == 2
        assert result.succeeded == 1
        assert result.failed == 1
        assert bad.id in result.errors
        assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_reports_progress(self, registry, store, fetcher, feed_server):
        ticks = []
        bulk = BulkOperations(registry, store, fetcher, progress=lambda done, total: ticks.append((done, total)))
        await registry.create("https://a.example.com/feed")
        await registry.create("https://b.example.com/feed")

        await bulk.refresh_all()

        assert ticks == [(1, 2), (2, 2)]


class TestDeletes:
    """Test bulk deletion."""

    @pytest.mark.asyncio
    async def test_delete_all_items_includes_favorites(self, bulk, store):
        for i in range(250):
            await store.insert(
                Item(
                    source_id="s1",
                    permalink=f"https://example.com/{i}",
                    title="t",
                    published_at=i,
                    is_favorite=i % 2 == 0,
                )
            )

        result = await bulk.delete_all_items()

        assert result.total == 250
        assert result.deleted == 250
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_delete_all_sources_cascades(self, registry, bulk, fetcher, feed_server, store):
        source = await registry.create("https://a.example.com/feed")
        await registry.create("https://b.example.com/feed", status=SourceStatus.INACTIVE)
        feed_server.serve(
            "https://a.example.com/feed",
            build_rss([rss_item(f"https://example.com/{i}", published=NOW) for i in range(3)]),
        )
        await fetcher.fetch(source.id)

        result = await bulk.delete_all_sources()

        assert result.deleted == 2
        assert result.cascaded == 3
        assert await registry.list_ids() == []
        assert await store.count() == 0


class TestImport:
    """Test source import."""

    @pytest.mark.asyncio
    async def test_import_rows(self, registry, bulk):
        await registry.create("https://existing.example.com/feed")
        rows = [
            SourceImportRow(feed_url="https://new.example.com/feed", title="New", category_path="News/World"),
            SourceImportRow(feed_url="https://existing.example.com/feed"),
            SourceImportRow(feed_url="not a url"),
        ]

        result = await bulk.import_sources(rows)

        assert (result.succeeded, result.skipped, result.failed) == (1, 1, 1)
        assert "not a url" in result.errors
        created = await registry.get_by_url("https://new.example.com/feed")
        assert created.title == "New"
        assert await registry.get_category_path(created.category_ids[0]) == "News/World"

    @pytest.mark.asyncio
    async def test_import_opml(self, registry, bulk):
        result = await bulk.import_opml(OPML)

        assert result.succeeded == 2
        python = await registry.get_by_url("https://planetpython.org/rss20.xml")
        assert python.title == "Planet Python"
        assert await registry.get_category_path(python.category_ids[0]) == "Tech/Python"
        loose = await registry.get_by_url("https://loose.example.com/feed")
        assert loose.category_ids == []

    @pytest.mark.asyncio
    async def test_import_invalid_opml(self, bulk):
        with pytest.raises(ValueError):
            await bulk.import_opml("<opml><body>")

    @pytest.mark.asyncio
    async def test_export_reimports(self, bulk):
        await bulk.import_opml(OPML)

        exported = parse_opml(await bulk.export_opml())

        assert {(feed.xml_url, feed.category_path) for feed in exported} == {
            ("https://planetpython.org/rss20.xml", "Tech/Python"),
            ("https://loose.example.com/feed", None),
        }
