"""
Topic engine: candidates in, ranked stance-split topics out.

Two variants share one pipeline:

  aggregate_topics  stance aggregation for comparison. Recency-ordered
                    seeds, tight 0.70 threshold, 168h window, one-sided
                    clusters dropped (configurable), ranked by relevance.
  discover_topics   trending discovery. Engagement-ordered seeds, wide
                    0.60 threshold so opposing views land in one cluster,
                    24h window, one-sided clusters kept as single-vector
                    topics, ranked by engagement.

Pipeline per run:
  cache lookup -> fetch candidates -> order -> greedy cluster
    -> stance split (batched completion calls) -> keep/drop
    -> score -> summarise -> assemble -> rank -> truncate -> cache

Any unexpected error in a run is logged and yields an empty list.
"""

import logging
import math
import re
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence

from ..config import get_settings
from ..schemas import (
    CandidateOrder,
    ContentItem,
    GeoFilter,
    GeographicScope,
    SingleStancePolicy,
    Stance,
    StanceSplit,
    Topic,
    TopicItem,
    TopicItemsPage,
    TopicQuery,
    TopicSummary,
)
from ..tools.embeddings import cosine_similarity
from ..tools.topic_cache import InMemoryCacheStore, TopicCache
from .clustering import greedy_cluster, order_candidates
from .signals import compute_all_scores
from .stance import LLMStanceClassifier, StanceSplitter
from .summary import SummaryGenerator

logger = logging.getLogger(__name__)

DISCOVERY_MODE = "discovery"


@dataclass(frozen=True)
class RunVariant:
    """Knobs that differ between aggregation and discovery runs."""
    order: str
    timeframe_hours: int
    similarity_threshold: float
    single_stance_policy: str
    rank_by: str
    cache_mode: Optional[str] = None


def make_topic_id(title: str) -> str:
    """Slug of the title plus a short random suffix."""
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")[:50].rstrip("-")
    return f"{slug or 'topic'}-{uuid.uuid4().hex[:8]}"


def determine_scope(
    members: Sequence[ContentItem],
    state: Optional[str] = None,
    city: Optional[str] = None,
) -> GeographicScope:
    """local if every author with a city shares the viewer's, state likewise, else national."""
    cities = {m.city for m in members if m.city}
    states = {m.state for m in members if m.state}
    if city and len(cities) == 1 and city in cities:
        return GeographicScope.LOCAL
    if state and len(states) == 1 and state in states:
        return GeographicScope.STATE
    return GeographicScope.NATIONAL


def rotating_subset(
    topics: Sequence[Topic],
    count: int = 3,
    bucket_seconds: float = 15,
    now: Optional[float] = None,
) -> List[Topic]:
    """Time-bucketed window of `count` topics for compact displays.

    The window start advances by one every bucket_seconds and wraps over
    the valid start positions.
    """
    if count <= 0 or not topics:
        return []
    now = time.time() if now is None else now
    positions = max(1, len(topics) - count + 1)
    start = int(math.floor(now / bucket_seconds)) % positions
    return list(topics[start:start + count])


class TopicEngine:
    """Builds, caches and serves topics.

    Args:
        source: EmbeddingSource providing candidates (e.g. ChromaContentStore).
        completion: TextCompletion service (LLMService by default).
        classifier: StanceClassifier; defaults to one built on `completion`.
        cache: TopicCache; defaults to an in-memory store.
        single_stance_policy: "drop" or "single_vector" for aggregation runs.
        clock: epoch-seconds clock used for ages and rotation.
    """

    def __init__(
        self,
        source=None,
        completion=None,
        classifier=None,
        cache: Optional[TopicCache] = None,
        settings=None,
        single_stance_policy: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings or get_settings()
        self.source = source
        if completion is None and classifier is None:
            from ..tools.llm_service import LLMService
            completion = LLMService(settings=self.settings)
        self.completion = completion
        self.classifier = classifier or LLMStanceClassifier(completion)
        self.splitter = StanceSplitter(
            self.classifier,
            batch_size=self.settings.stance_batch_size,
            batch_pause_seconds=self.settings.stance_batch_pause_seconds,
        )
        self.summarizer = SummaryGenerator(completion)
        self.cache = cache or TopicCache(
            InMemoryCacheStore(clock=clock), ttl_seconds=self.settings.cache_ttl_seconds,
        )
        self.single_stance_policy = SingleStancePolicy(
            single_stance_policy or self.settings.single_stance_policy
        ).value
        self.clock = clock

    # ── Variants ──

    def _aggregation_variant(self) -> RunVariant:
        return RunVariant(
            order=CandidateOrder.RECENCY.value,
            timeframe_hours=self.settings.timeframe_hours,
            similarity_threshold=self.settings.similarity_threshold,
            single_stance_policy=self.single_stance_policy,
            rank_by="relevance_score",
        )

    def _discovery_variant(self) -> RunVariant:
        return RunVariant(
            order=CandidateOrder.ENGAGEMENT.value,
            timeframe_hours=self.settings.discovery_timeframe_hours,
            similarity_threshold=self.settings.discovery_similarity_threshold,
            single_stance_policy=SingleStancePolicy.SINGLE_VECTOR.value,
            rank_by="engagement_score",
            cache_mode=DISCOVERY_MODE,
        )

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self.clock(), tz=timezone.utc)

    def cache_key(self, query: TopicQuery, mode: Optional[str] = None) -> str:
        if query.lat is not None and query.lng is not None:
            return self.cache.make_coordinate_key(query.lat, query.lng, mode)
        return self.cache.make_key(query.scope, query.state, query.city, mode)

    # ── Public entry points ──

    async def aggregate_topics(self, query: Optional[TopicQuery] = None) -> List[Topic]:
        """Stance-aggregated topics for the viewer's scope (cached)."""
        return await self._cached_run(query or TopicQuery(), self._aggregation_variant())

    async def discover_topics(self, query: Optional[TopicQuery] = None) -> List[Topic]:
        """Trending discovery run (cached separately from aggregation)."""
        return await self._cached_run(query or TopicQuery(), self._discovery_variant())

    async def build_topics(
        self,
        items: Sequence[ContentItem],
        query: Optional[TopicQuery] = None,
        discovery: bool = False,
    ) -> List[Topic]:
        """Run the pipeline on an explicit candidate list (no cache, no source)."""
        variant = self._discovery_variant() if discovery else self._aggregation_variant()
        return await self._build(list(items), query or TopicQuery(), variant)

    async def get_map_topics(self, query: Optional[TopicQuery] = None, count: Optional[int] = None) -> List[Topic]:
        topics = await self.aggregate_topics(query)
        return rotating_subset(
            topics,
            count=count or self.settings.map_topic_count,
            bucket_seconds=self.settings.map_rotation_seconds,
            now=self.clock(),
        )

    async def find_topic(self, topic_id: str, query: Optional[TopicQuery] = None) -> Optional[Topic]:
        """Look a topic id up in the aggregation then discovery results."""
        query = query or TopicQuery()
        for run in (self.aggregate_topics, self.discover_topics):
            for topic in await run(query):
                if topic.id == topic_id:
                    return topic
        return None

    def get_topic_items(
        self,
        topic: Topic,
        stance: str = "all",
        page: int = 1,
        limit: int = 20,
    ) -> TopicItemsPage:
        """Paginated, stance-tagged members of one topic.

        Sorted by similarity to the centroid when similarities are spread
        by more than 0.1, otherwise newest first.
        """
        stance = getattr(stance, "value", stance)
        if stance not in ("all", Stance.SUPPORT.value, Stance.OPPOSE.value, Stance.NEUTRAL.value):
            raise ValueError(f"Unknown stance filter: {stance}")
        page = max(1, page)
        limit = max(1, limit)

        tagged: List[TopicItem] = []
        for label, members in (
            (Stance.SUPPORT, topic.support_vector.members if topic.support_vector else []),
            (Stance.OPPOSE, topic.oppose_vector.members if topic.oppose_vector else []),
            (Stance.NEUTRAL, topic.neutral_members or []),
        ):
            if stance not in ("all", label.value):
                continue
            for item in members:
                tagged.append(TopicItem(
                    item=item,
                    stance=label,
                    similarity=topic.member_similarity.get(item.id, 0.0),
                ))

        if tagged:
            sims = [t.similarity for t in tagged]
            if max(sims) - min(sims) > 0.1:
                tagged.sort(key=lambda t: t.similarity, reverse=True)
            else:
                tagged.sort(key=lambda t: t.item.created_at, reverse=True)

        offset = (page - 1) * limit
        return TopicItemsPage(
            topic_id=topic.id,
            items=tagged[offset:offset + limit],
            page=page,
            limit=limit,
            total=len(tagged),
            has_more=offset + limit < len(tagged),
        )

    # ── Pipeline ──

    async def _cached_run(self, query: TopicQuery, variant: RunVariant) -> List[Topic]:
        key = self.cache_key(query, variant.cache_mode)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info(f"Topics: cache hit for {key} ({len(cached)} topics)")
            return list(cached)

        try:
            if self.source is None:
                logger.warning("Topics: no embedding source configured")
                return []
            timeframe = variant.timeframe_hours if query.timeframe_hours is None else query.timeframe_hours
            geo = GeoFilter(scope=query.scope, state=query.state, city=query.city)
            items = await self.source.fetch_candidates(timeframe, geo)
            logger.info(f"Topics: {len(items)} candidates for {key} in last {timeframe}h")
            topics = await self._build(items, query, variant)
        except Exception as e:
            logger.error(f"Topics: run failed for {key}: {e}", exc_info=True)
            return []

        self.cache.set(key, list(topics))
        return topics

    async def _build(self, items: List[ContentItem], query: TopicQuery, variant: RunVariant) -> List[Topic]:
        s = self.settings
        min_posts = s.min_posts_per_topic if query.min_posts_per_topic is None else query.min_posts_per_topic
        max_topics = s.max_topics if query.max_topics is None else query.max_topics
        threshold = (
            variant.similarity_threshold if query.similarity_threshold is None
            else query.similarity_threshold
        )

        if len(items) < min_posts:
            logger.info(f"Topics: {len(items)} candidates < minimum {min_posts}")
            return []

        ordered = order_candidates(items, variant.order)
        clusters = greedy_cluster(
            ordered,
            threshold=threshold,
            min_posts_per_topic=min_posts,
            max_clusters=s.max_clusters,
            max_candidates=s.max_candidates,
        )

        now = self._now()
        topics: List[Topic] = []
        dropped = 0
        for cluster in clusters:
            split = await self.splitter.split(cluster)
            if not split.is_dual and variant.single_stance_policy == SingleStancePolicy.DROP.value:
                dropped += 1
                logger.info(f"Topics: dropped one-sided cluster of {cluster.size} ({split.counts})")
                continue
            summary = await self.summarizer.generate(split)
            topics.append(self.assemble_topic(split, summary, query, now))

        topics.sort(key=lambda t: getattr(t, variant.rank_by), reverse=True)
        topics = topics[:max_topics]
        logger.info(
            f"Topics: {len(topics)} topics from {len(clusters)} clusters "
            f"({dropped} dropped, ranked by {variant.rank_by})"
        )
        return topics

    def assemble_topic(
        self,
        split: StanceSplit,
        summary: TopicSummary,
        query: TopicQuery,
        now: Optional[datetime] = None,
    ) -> Topic:
        now = now or self._now()
        cluster = split.cluster
        members = cluster.members

        scores = compute_all_scores(
            members,
            support_count=len(split.support),
            oppose_count=len(split.oppose),
            scope=query.scope,
            state=query.state,
            city=query.city,
            controversy_override=query.controversy_override,
            now=now,
        )

        support_vector = None
        if split.support_vector is not None:
            support_vector = split.support_vector.model_copy(update={"summary": summary.support_summary})
        oppose_vector = None
        if split.oppose_vector is not None:
            oppose_vector = split.oppose_vector.model_copy(update={"summary": summary.oppose_summary})

        scope = determine_scope(members, query.state, query.city)
        return Topic(
            id=make_topic_id(summary.title),
            title=summary.title,
            summary=summary.summary,
            support_vector=support_vector,
            oppose_vector=oppose_vector,
            neutral_members=list(split.neutral) or None,
            centroid=list(cluster.centroid),
            stance_counts=split.counts,
            total_posts=len(members),
            participant_count=scores["participant_count"],
            relevance_score=scores["relevance_score"],
            trending_score=scores["trending_score"],
            complexity_score=scores["complexity_score"],
            evidence_quality_score=scores["evidence_quality_score"],
            controversy_score=scores["controversy_score"],
            engagement_score=scores["engagement_score"],
            prevailing_position=summary.prevailing_position,
            leading_critique=summary.leading_critique,
            category=summary.category,
            keywords=summary.keywords,
            member_similarity={m.id: cosine_similarity(cluster.centroid, m.embedding) for m in members},
            geographic_scope=scope,
            state=query.state if scope != GeographicScope.NATIONAL else None,
            city=query.city if scope == GeographicScope.LOCAL else None,
            created_at=now,
            last_activity=scores["last_activity"],
            expires_at=now + timedelta(seconds=self.cache.ttl_seconds),
        )
