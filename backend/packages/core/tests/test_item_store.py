"""Tests for the item store."""

import pytest
from sqlalchemy import select

from feedloom_database.models import Item, ItemStatus


def _item(permalink: str, source_id: str = "s1", published_at: int = 0, **kwargs) -> Item:
    kwargs.setdefault("title", "t")
    return Item(source_id=source_id, permalink=permalink, published_at=published_at, **kwargs)


class TestItemStore:
    """Test ItemStore operations."""

    @pytest.mark.asyncio
    async def test_insert_and_exists(self, store):
        item_id = await store.insert(_item("https://example.com/a"))

        assert item_id is not None
        assert await store.exists("s1", "https://example.com/a")
        assert not await store.exists("s2", "https://example.com/a")

    @pytest.mark.asyncio
    async def test_duplicate_insert_keeps_first(self, store, db_session):
        await store.insert(_item("https://example.com/a", title="First"))

        assert await store.insert(_item("https://example.com/a", title="Second")) is None

        titles = (await db_session.execute(select(Item.title))).scalars().all()
        assert titles == ["First"]

    @pytest.mark.asyncio
    async def test_list_by_filter_orders_and_limits(self, store):
        for i in (3, 1, 2):
            await store.insert(_item(f"https://example.com/{i}", published_at=i))

        ids = await store.list_by_filter(limit=2)
        items = [await store.session.get(Item, item_id) for item_id in ids]

        assert [item.published_at for item in items] == [1, 2]

    @pytest.mark.asyncio
    async def test_set_status_and_delete_batch(self, store):
        ids = [await store.insert(_item(f"https://example.com/{i}")) for i in range(3)]

        assert await store.set_status(ids[:2], ItemStatus.RETIRED) == 2
        assert await store.count(Item.status == ItemStatus.RETIRED) == 2
        assert await store.delete_batch(ids[:2]) == 2
        assert await store.count() == 1
        assert await store.delete_batch([]) == 0
