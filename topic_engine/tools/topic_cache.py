"""
TTL result cache for computed topic lists.

Topic runs are expensive (a completion call per member plus one per topic),
so results are cached per geographic scope for cache_ttl_minutes. Expiry is
lazy: entries are checked on read, never swept.

Usage:
    cache = TopicCache(InMemoryCacheStore())
    key = cache.make_key("state", "CA", None)     # "state_CA_"
    topics = cache.get(key)                        # None on miss
    cache.set(key, topics)
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ..config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    key: str
    value: Any
    stored_at: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.stored_at < self.ttl


class InMemoryCacheStore:
    """Process-local CacheStore. Last writer wins."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_fresh(now):
                return entry.value
            del self._entries[key]
        return None

    def set(self, key: str, value: Any, ttl: float) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(key=key, value=value, stored_at=self._clock(), ttl=ttl)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class TopicCache:
    """Scope-keyed facade over a CacheStore.

    Backend failures are logged and treated as a miss (on read) or a no-op
    (on write); the caller recomputes instead of failing.
    """

    def __init__(self, store=None, ttl_seconds: Optional[float] = None, coordinate_precision: Optional[int] = None):
        settings = get_settings()
        self.store = store if store is not None else InMemoryCacheStore()
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.cache_ttl_seconds
        self.coordinate_precision = (
            coordinate_precision if coordinate_precision is not None
            else settings.cache_coordinate_precision
        )
        self.last_hit = False

    @staticmethod
    def make_key(scope: str, state: Optional[str] = None, city: Optional[str] = None, mode: Optional[str] = None) -> str:
        scope = getattr(scope, "value", scope)
        key = f"{scope}_{state or ''}_{city or ''}"
        return f"{key}:{mode}" if mode else key

    def make_coordinate_key(self, lat: float, lng: float, mode: Optional[str] = None) -> str:
        """Bucket nearby callers together (1 decimal place ≈ 11km)."""
        p = self.coordinate_precision
        key = f"geo_{round(lat, p):.{p}f}_{round(lng, p):.{p}f}"
        return f"{key}:{mode}" if mode else key

    def get(self, key: str) -> Optional[Any]:
        try:
            value = self.store.get(key)
        except Exception as e:
            logger.warning(f"Cache backend read failed for {key}: {e}")
            value = None
        self.last_hit = value is not None
        if self.last_hit:
            logger.debug(f"Cache hit: {key}")
        return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        try:
            self.store.set(key, value, self.ttl_seconds if ttl is None else ttl)
        except Exception as e:
            logger.warning(f"Cache backend write failed for {key}: {e}")
