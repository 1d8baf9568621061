"""
Topic navigation mode.

A consumer is either browsing their default (algorithm-ranked) feed or a
topic-filtered view built from items near the topic centroid. Entering a
topic snapshots the default feed; exiting hands the snapshot back exactly,
or regenerates a feed when no snapshot exists (e.g. after a restart).

State is owned by the NavigationManager instance, keyed by consumer id.
"""

import logging
from typing import Dict, List, Optional

from ..config import get_settings
from ..schemas import ContentItem, NavigationState, Topic
from ..tools.embeddings import cosine_similarity

logger = logging.getLogger(__name__)


class TopicNotFoundError(LookupError):
    """Raised when a topic id is not among the current results."""


class NavigationManager:
    """Per-consumer Default <-> Filtered state machine.

    Args:
        feed_provider: FeedProvider producing a consumer's default feed.
        index: SimilaritySearchIndex used to build filtered views. Without one,
            the topic's own members (ranked by similarity) are used.
        engine: TopicEngine used by enter_by_id to resolve topic ids.
    """

    def __init__(self, feed_provider=None, index=None, engine=None, settings=None):
        self.settings = settings or get_settings()
        self.feed_provider = feed_provider
        self.index = index
        self.engine = engine
        self._states: Dict[str, NavigationState] = {}

    async def _generate_feed(self, consumer_id: str) -> List[ContentItem]:
        if self.feed_provider is None:
            logger.warning(f"Navigation: no feed provider, empty default feed for {consumer_id}")
            return []
        return list(await self.feed_provider.generate_feed(consumer_id, self.settings.navigation_feed_limit))

    async def _similar_ids(self, topic: Topic, limit: int) -> List[str]:
        threshold = self.settings.navigation_similarity_threshold
        if self.index is not None and topic.centroid:
            try:
                matches = await self.index.search_similar(topic.centroid, limit, threshold)
                return [m.item_id for m in matches]
            except Exception as e:
                logger.warning(f"Navigation: similarity search failed, using topic members: {e}")
        return self._member_ids(topic, threshold)[:limit]

    @staticmethod
    def _member_ids(topic: Topic, threshold: float) -> List[str]:
        """Topic members at or above threshold, most similar first."""
        scored = []
        for item in topic.members():
            sim = topic.member_similarity.get(item.id)
            if sim is None:
                sim = cosine_similarity(topic.centroid, item.embedding)
            if sim >= threshold:
                scored.append((sim, item.id))
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [item_id for _, item_id in scored]

    async def enter(
        self,
        consumer_id: str,
        topic: Topic,
        current_feed: Optional[List[ContentItem]] = None,
        limit: Optional[int] = None,
    ) -> NavigationState:
        """Switch the consumer into the topic-filtered view.

        Replaces any previous state for the consumer.
        """
        limit = limit or self.settings.navigation_feed_limit
        if current_feed is None:
            current_feed = await self._generate_feed(consumer_id)

        filtered = await self._similar_ids(topic, limit * 2)
        state = NavigationState(
            consumer_id=consumer_id,
            active_topic=topic,
            filtered_item_ids=filtered,
            fallback_feed=list(current_feed),
        )
        self._states[consumer_id] = state
        logger.info(f"Navigation: {consumer_id} entered topic {topic.id} ({len(filtered)} items)")
        return state

    async def enter_by_id(
        self,
        consumer_id: str,
        topic_id: str,
        current_feed: Optional[List[ContentItem]] = None,
        query=None,
    ) -> NavigationState:
        if self.engine is None:
            raise TopicNotFoundError(f"Topic {topic_id} not found (no engine configured)")
        topic = await self.engine.find_topic(topic_id, query)
        if topic is None:
            raise TopicNotFoundError(f"Topic {topic_id} not found")
        return await self.enter(consumer_id, topic, current_feed)

    async def page(self, consumer_id: str, offset: int = 0, limit: int = 20) -> List[str]:
        """Further item ids for the active topic, queried fresh against the centroid."""
        state = self._states.get(consumer_id)
        if state is None or state.active_topic is None:
            return []
        ids = await self._similar_ids(state.active_topic, offset + limit)
        return ids[offset:offset + limit]

    def current(self, consumer_id: str) -> Optional[Topic]:
        state = self._states.get(consumer_id)
        return state.active_topic if state else None

    def state(self, consumer_id: str) -> Optional[NavigationState]:
        return self._states.get(consumer_id)

    async def exit(self, consumer_id: str) -> List[ContentItem]:
        """Leave topic mode and return the feed to show."""
        state = self._states.pop(consumer_id, None)
        if state is not None and state.fallback_feed is not None:
            logger.info(f"Navigation: {consumer_id} exited topic mode, restoring snapshot")
            return list(state.fallback_feed)
        logger.info(f"Navigation: {consumer_id} exited with no snapshot, regenerating feed")
        return await self._generate_feed(consumer_id)
