"""
Pytest configuration and shared fakes for the topic engine tests.

The fakes implement the collaborator protocols in
topic_engine/topics/interfaces.py with canned, inspectable behaviour.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from topic_engine.config import Settings
from topic_engine.schemas import ContentItem, Fallback, Parsed, SimilarItem, Stance
from topic_engine.tools.embeddings import similarity_to_many

pytest_plugins = ('pytest_asyncio',)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "asyncio: mark test as an async test."
    )


def make_item(
    item_id: str,
    embedding: List[float],
    content: str = "",
    hours_ago: float = 1.0,
    likes: int = 0,
    comments: int = 0,
    author: Optional[str] = None,
    state: Optional[str] = None,
    city: Optional[str] = None,
) -> ContentItem:
    return ContentItem(
        id=item_id,
        content=content or f"post {item_id}",
        embedding=embedding,
        author_id=author or f"author-{item_id}",
        created_at=NOW - timedelta(hours=hours_ago),
        like_count=likes,
        comment_count=comments,
        state=state,
        city=city,
    )


class FakeClock:
    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeClassifier:
    """Stance by item content; unknown content fails (→ neutral)."""

    def __init__(self, stances: Dict[str, str], raise_for: Optional[set] = None):
        self.stances = stances
        self.raise_for = raise_for or set()
        self.calls: List[str] = []

    async def classify(self, text: str):
        self.calls.append(text)
        if text in self.raise_for:
            raise RuntimeError("classifier exploded")
        if text in self.stances:
            return Parsed(Stance(self.stances[text]))
        return Fallback("unknown text")


class FakeCompletion:
    """Returns queued replies in order, then the default reply."""

    def __init__(self, replies: Optional[List[str]] = None, default: str = "neutral", error: Optional[Exception] = None):
        self.replies = list(replies or [])
        self.default = default
        self.error = error
        self.prompts: List[str] = []

    async def complete(self, prompt: str, max_tokens: int = 400, temperature: float = 0.7) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if self.replies:
            return self.replies.pop(0)
        return self.default


class FakeSource:
    def __init__(self, items: List[ContentItem]):
        self.items = items
        self.calls = 0

    async def fetch_candidates(self, time_window_hours, geo_filter=None):
        self.calls += 1
        return list(self.items)


class FakeIndex:
    """Brute-force similarity search over an in-memory item list."""

    def __init__(self, items: List[ContentItem], fail: bool = False):
        self.items = items
        self.fail = fail
        self.calls: List[tuple] = []

    async def search_similar(self, vector, limit, score_threshold):
        self.calls.append((limit, score_threshold))
        if self.fail:
            raise ConnectionError("index unavailable")
        sims = similarity_to_many(vector, [i.embedding for i in self.items])
        ranked = sorted(zip(self.items, sims), key=lambda pair: pair[1], reverse=True)
        return [
            SimilarItem(item_id=item.id, score=float(sim))
            for item, sim in ranked if sim >= score_threshold
        ][:limit]


class FakeFeed:
    def __init__(self, feed: List[ContentItem]):
        self.feed = feed
        self.calls = 0

    async def generate_feed(self, consumer_id: str, limit: int):
        self.calls += 1
        return list(self.feed[:limit])


@pytest.fixture
def settings() -> Settings:
    return Settings(
        OPENAI_API_KEY="",
        USE_OLLAMA=False,
        MOCK_MODE=False,
        STANCE_BATCH_PAUSE_SECONDS=0.0,
        _env_file=None,
    )


@pytest.fixture
def engine_clock() -> FakeClock:
    return FakeClock(NOW.timestamp())
