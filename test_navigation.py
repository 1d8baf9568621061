"""
Tests for topic navigation mode: enter/exit round-trip, paging, fallbacks.
"""

import pytest

from conftest import FakeFeed, FakeIndex, make_item
from topic_engine.schemas import Stance, StanceVector, Topic
from topic_engine.topics.navigation import NavigationManager, TopicNotFoundError


@pytest.fixture
def corpus():
    near = [make_item(f"n{k}", [1.0, 0.05 * k]) for k in range(6)]
    far = [make_item(f"f{k}", [0.0, 1.0]) for k in range(3)]
    return near + far


@pytest.fixture
def topic(corpus):
    support = corpus[:2]
    oppose = corpus[2:4]
    return Topic(
        id="transit-levy-abc123",
        title="Transit Levy",
        support_vector=StanceVector(label=Stance.SUPPORT, vector=[1.0, 0.025], members=support, percentage=50),
        oppose_vector=StanceVector(label=Stance.OPPOSE, vector=[1.0, 0.125], members=oppose, percentage=50),
        centroid=[1.0, 0.075],
        member_similarity={"n0": 0.997, "n1": 0.999, "n2": 1.0, "n3": 0.999},
    )


@pytest.fixture
def feed():
    return [make_item(f"feed{k}", [0.5, 0.5]) for k in range(5)]


class TestRoundTrip:

    @pytest.mark.asyncio
    async def test_exit_restores_entered_feed(self, settings, corpus, topic, feed):
        nav = NavigationManager(FakeFeed([]), FakeIndex(corpus), settings=settings)

        await nav.enter("u1", topic, current_feed=feed)
        restored = await nav.exit("u1")

        assert [i.id for i in restored] == [i.id for i in feed]
        assert restored == feed

    @pytest.mark.asyncio
    async def test_snapshot_taken_from_feed_provider(self, settings, corpus, topic, feed):
        provider = FakeFeed(feed)
        nav = NavigationManager(provider, FakeIndex(corpus), settings=settings)

        await nav.enter("u1", topic)
        restored = await nav.exit("u1")

        assert provider.calls == 1
        assert restored == feed

    @pytest.mark.asyncio
    async def test_snapshot_is_a_copy(self, settings, corpus, topic, feed):
        nav = NavigationManager(FakeFeed([]), FakeIndex(corpus), settings=settings)
        original = list(feed)
        await nav.enter("u1", topic, current_feed=feed)
        feed.pop()
        assert await nav.exit("u1") == original

    @pytest.mark.asyncio
    async def test_exit_without_snapshot_regenerates(self, settings, corpus, topic, feed):
        provider = FakeFeed(feed)
        nav = NavigationManager(provider, FakeIndex(corpus), settings=settings)

        await nav.enter("u1", topic, current_feed=[])
        nav.state("u1").fallback_feed = None
        restored = await nav.exit("u1")

        assert provider.calls == 1
        assert restored == feed

    @pytest.mark.asyncio
    async def test_exit_with_no_state_regenerates(self, settings, feed):
        provider = FakeFeed(feed)
        nav = NavigationManager(provider, settings=settings)
        assert await nav.exit("stranger") == feed
        assert provider.calls == 1


class TestFilteredView:

    @pytest.mark.asyncio
    async def test_enter_filters_by_centroid(self, settings, corpus, topic, feed):
        index = FakeIndex(corpus)
        nav = NavigationManager(FakeFeed([]), index, settings=settings)

        state = await nav.enter("u1", topic, current_feed=feed, limit=10)

        assert state.mode == "topic-filtered"
        assert set(state.filtered_item_ids) == {f"n{k}" for k in range(6)}
        assert index.calls == [(20, settings.navigation_similarity_threshold)]
        assert nav.current("u1") is topic

    @pytest.mark.asyncio
    async def test_reenter_replaces_state(self, settings, corpus, topic, feed):
        nav = NavigationManager(FakeFeed([]), FakeIndex(corpus), settings=settings)
        other = topic.model_copy(update={"id": "other", "centroid": [0.0, 1.0]})

        await nav.enter("u1", topic, current_feed=feed)
        state = await nav.enter("u1", other, current_feed=feed[:2])

        assert nav.current("u1") is other
        assert set(state.filtered_item_ids) == {"f0", "f1", "f2"}
        assert await nav.exit("u1") == feed[:2]
        assert nav.current("u1") is None

    @pytest.mark.asyncio
    async def test_index_failure_falls_back_to_members(self, settings, corpus, topic, feed):
        nav = NavigationManager(FakeFeed([]), FakeIndex(corpus, fail=True), settings=settings)
        state = await nav.enter("u1", topic, current_feed=feed)
        assert state.filtered_item_ids == ["n2", "n1", "n3", "n0"]

    @pytest.mark.asyncio
    async def test_page_queries_index_with_offset(self, settings, corpus, topic, feed):
        index = FakeIndex(corpus)
        nav = NavigationManager(FakeFeed([]), index, settings=settings)
        await nav.enter("u1", topic, current_feed=feed)

        first = await nav.page("u1", offset=0, limit=3)
        second = await nav.page("u1", offset=3, limit=3)

        assert len(first) == 3 and len(second) == 3
        assert not set(first) & set(second)
        assert index.calls[-1] == (6, settings.navigation_similarity_threshold)

    @pytest.mark.asyncio
    async def test_page_without_topic_is_empty(self, settings):
        nav = NavigationManager(settings=settings)
        assert await nav.page("nobody") == []


class TestEnterById:

    @pytest.mark.asyncio
    async def test_unknown_topic_raises(self, settings):
        class EmptyEngine:
            async def find_topic(self, topic_id, query=None):
                return None

        nav = NavigationManager(FakeFeed([]), engine=EmptyEngine(), settings=settings)
        with pytest.raises(TopicNotFoundError):
            await nav.enter_by_id("u1", "missing")

    @pytest.mark.asyncio
    async def test_known_topic_enters(self, settings, corpus, topic, feed):
        class OneTopicEngine:
            async def find_topic(self, topic_id, query=None):
                return topic if topic_id == topic.id else None

        nav = NavigationManager(FakeFeed([]), FakeIndex(corpus), engine=OneTopicEngine(), settings=settings)
        state = await nav.enter_by_id("u1", topic.id, current_feed=feed)
        assert state.active_topic is topic
