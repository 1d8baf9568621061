"""
Tests for the ChromaDB-backed content store (in-memory client).
"""

import uuid
from datetime import datetime, timedelta, timezone

import chromadb
import pytest

from topic_engine.schemas import ContentItem, GeoFilter
from topic_engine.tools.content_store import ChromaContentStore


def _item(item_id, embedding, hours_ago=1.0, state=None, city=None, likes=0):
    return ContentItem(
        id=item_id,
        content=f"content of {item_id}",
        embedding=embedding,
        author_id=f"u-{item_id}",
        created_at=datetime.now(timezone.utc) - timedelta(hours=hours_ago),
        like_count=likes,
        state=state,
        city=city,
    )


@pytest.fixture
def store():
    return ChromaContentStore(
        client=chromadb.EphemeralClient(),
        collection_name=f"test_{uuid.uuid4().hex[:8]}",
    )


@pytest.fixture
def populated(store):
    store.add_items([
        _item("ca-oak", [1.0, 0.0, 0.0], hours_ago=2, state="CA", city="Oakland", likes=3),
        _item("ca-fre", [0.9, 0.1, 0.0], hours_ago=5, state="CA", city="Fresno"),
        _item("nv-ren", [0.0, 1.0, 0.0], hours_ago=1, state="NV", city="Reno"),
        _item("old", [0.0, 0.0, 1.0], hours_ago=200),
    ])
    return store


class TestContentStore:

    def test_add_skips_invalid_embeddings(self, store):
        written = store.add_items([_item("ok", [1.0, 0.0]), _item("bad", [])])
        assert written == 1
        assert store.count() == 1

    @pytest.mark.asyncio
    async def test_fetch_window_and_order(self, populated):
        items = await populated.fetch_candidates(168)
        assert [i.id for i in items] == ["nv-ren", "ca-oak", "ca-fre"]

    @pytest.mark.asyncio
    async def test_round_trip_fields(self, populated):
        items = await populated.fetch_candidates(168, GeoFilter(scope="local", state="CA", city="Oakland"))
        assert len(items) == 1
        item = items[0]
        assert item.id == "ca-oak"
        assert item.like_count == 3
        assert item.content == "content of ca-oak"
        assert item.embedding == pytest.approx([1.0, 0.0, 0.0])
        assert item.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_state_filter(self, populated):
        items = await populated.fetch_candidates(168, GeoFilter(scope="state", state="CA"))
        assert {i.id for i in items} == {"ca-oak", "ca-fre"}

    @pytest.mark.asyncio
    async def test_search_similar(self, populated):
        matches = await populated.search_similar([1.0, 0.05, 0.0], limit=10, score_threshold=0.65)
        assert [m.item_id for m in matches] == ["ca-oak", "ca-fre"]
        assert all(0.65 <= m.score <= 1.0 + 1e-6 for m in matches)

    @pytest.mark.asyncio
    async def test_search_empty_store(self, store):
        assert await store.search_similar([1.0, 0.0], limit=5, score_threshold=0.5) == []

    def test_get_items_preserves_order(self, populated):
        assert [i.id for i in populated.get_items(["nv-ren", "ca-oak"])] == ["nv-ren", "ca-oak"]
