"""
Tests for the TTL result cache: keys, lazy expiry and backend failures.
"""

import pytest

from conftest import FakeClock
from topic_engine.tools.topic_cache import InMemoryCacheStore, TopicCache

FIFTEEN_MINUTES = 15 * 60


class BrokenStore:
    def get(self, key):
        raise ConnectionError("redis down")

    def set(self, key, value, ttl):
        raise ConnectionError("redis down")


class TestKeys:

    def test_scope_keys(self):
        assert TopicCache.make_key("national") == "national__"
        assert TopicCache.make_key("state", "CA") == "state_CA_"
        assert TopicCache.make_key("local", "CA", "Oakland") == "local_CA_Oakland"
        assert TopicCache.make_key("national", mode="discovery") == "national__:discovery"

    def test_coordinate_key_buckets_nearby_callers(self):
        cache = TopicCache(InMemoryCacheStore(), ttl_seconds=60, coordinate_precision=1)
        assert cache.make_coordinate_key(37.8044, -122.2712) == "geo_37.8_-122.3"
        assert cache.make_coordinate_key(37.81, -122.29) == cache.make_coordinate_key(37.8044, -122.2712)
        assert cache.make_coordinate_key(37.8, -122.3, mode="discovery") == "geo_37.8_-122.3:discovery"


class TestExpiry:

    def test_hit_before_ttl_miss_after(self):
        clock = FakeClock(1000.0)
        cache = TopicCache(InMemoryCacheStore(clock=clock), ttl_seconds=FIFTEEN_MINUTES)
        topics = ["topic-a", "topic-b"]

        cache.set("national__", topics)
        clock.advance(10 * 60)
        assert cache.get("national__") == topics
        assert cache.last_hit

        clock.advance(6 * 60)
        assert cache.get("national__") is None
        assert not cache.last_hit

    @pytest.mark.parametrize("elapsed,hit", [(0, True), (59.999, True), (60, False), (61, False)])
    def test_boundary(self, elapsed, hit):
        clock = FakeClock(0.0)
        store = InMemoryCacheStore(clock=clock)
        store.set("k", "v", ttl=60)
        clock.advance(elapsed)
        assert (store.get("k") == "v") is hit

    def test_overwrite_resets_timestamp(self):
        clock = FakeClock(0.0)
        store = InMemoryCacheStore(clock=clock)
        store.set("k", "old", ttl=60)
        clock.advance(50)
        store.set("k", "new", ttl=60)
        clock.advance(50)
        assert store.get("k") == "new"

    def test_expired_entries_evicted_on_read(self):
        clock = FakeClock(0.0)
        store = InMemoryCacheStore(clock=clock)
        store.set("k", "v", ttl=1)
        clock.advance(2)
        store.get("k")
        assert len(store) == 0


class TestBackendFailure:

    def test_read_failure_is_miss(self):
        cache = TopicCache(BrokenStore(), ttl_seconds=60)
        assert cache.get("national__") is None
        assert not cache.last_hit

    def test_write_failure_is_swallowed(self):
        cache = TopicCache(BrokenStore(), ttl_seconds=60)
        cache.set("national__", ["t"])
