"""
Collaborator interfaces the engine depends on.

Everything outside the engine (content storage, the completion service,
the cache backend, the default feed) is reached through these protocols so
any backend can be plugged in. Concrete implementations live in
topic_engine.tools (ChromaContentStore, LLMService, InMemoryCacheStore) and
in the test fakes.
"""

from typing import Any, List, Optional, Protocol, Sequence, runtime_checkable

from ..schemas import ContentItem, GeoFilter, ParseResult, SimilarItem, Stance


@runtime_checkable
class EmbeddingSource(Protocol):
    async def fetch_candidates(
        self, time_window_hours: float, geo_filter: Optional[GeoFilter] = None,
    ) -> List[ContentItem]:
        ...


@runtime_checkable
class StanceClassifier(Protocol):
    async def classify(self, text: str) -> ParseResult[Stance]:
        ...


@runtime_checkable
class TextCompletion(Protocol):
    async def complete(self, prompt: str, max_tokens: int = 400, temperature: float = 0.7) -> str:
        ...


@runtime_checkable
class SimilaritySearchIndex(Protocol):
    async def search_similar(
        self, vector: Sequence[float], limit: int, score_threshold: float,
    ) -> List[SimilarItem]:
        ...


@runtime_checkable
class CacheStore(Protocol):
    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any, ttl: float) -> None:
        ...


@runtime_checkable
class FeedProvider(Protocol):
    async def generate_feed(self, consumer_id: str, limit: int) -> List[ContentItem]:
        ...
