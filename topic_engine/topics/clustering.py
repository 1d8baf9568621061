"""
Greedy single-pass clustering of content embeddings.

Pipeline: validate -> order -> seed/assign loop -> clusters

The head of the pool seeds each cluster and every remaining item with
cosine similarity >= threshold to the seed joins it. Clusters are therefore
order-sensitive: the same candidates in a different order can cluster
differently. Callers choose the ordering explicitly via order_candidates().

Items assigned to an undersized cluster are consumed, not returned to the
pool, so every item is evaluated as a member at most once.
"""

import logging
from typing import List, Sequence, Tuple

import numpy as np

from ..schemas import CandidateOrder, ContentItem, TopicCluster
from ..tools.embeddings import dominant_dimension, similarity_to_many

logger = logging.getLogger(__name__)


def order_candidates(items: Sequence[ContentItem], by: str = CandidateOrder.RECENCY.value) -> List[ContentItem]:
    """Sort the pool so the intended seed comes first.

    recency:    newest first
    engagement: likes desc, comments desc, newest first
    """
    by = getattr(by, "value", by)
    if by == CandidateOrder.ENGAGEMENT.value:
        return sorted(
            items,
            key=lambda i: (i.like_count, i.comment_count, i.created_at),
            reverse=True,
        )
    if by == CandidateOrder.RECENCY.value:
        return sorted(items, key=lambda i: i.created_at, reverse=True)
    raise ValueError(f"Unknown candidate order: {by}")


def validate_items(items: Sequence[ContentItem]) -> Tuple[List[ContentItem], int]:
    """Drop items whose embedding can't take part in cosine comparison.

    Rejected: empty vectors, non-finite values, and vectors whose length
    differs from the run's dominant dimension. Order is preserved.

    Returns (valid_items, skipped_count).
    """
    finite = [i for i in items if i.has_valid_embedding()]
    dim = dominant_dimension([i.embedding for i in finite])
    valid = [i for i in finite if i.dimension == dim]

    skipped = len(items) - len(valid)
    if skipped:
        logger.warning(
            f"Clustering: skipped {skipped}/{len(items)} items with malformed embeddings "
            f"(dominant dimension {dim})"
        )
    return valid, skipped


def greedy_cluster(
    items: Sequence[ContentItem],
    threshold: float = 0.70,
    min_posts_per_topic: int = 5,
    max_clusters: int = 20,
    max_candidates: int = 1000,
) -> List[TopicCluster]:
    """Cluster items in the order given.

    Args:
        items: Candidates, already ordered. Truncated to max_candidates.
        threshold: Minimum cosine similarity to the seed for membership.
        min_posts_per_topic: Clusters smaller than this (seed included) are discarded.
        max_clusters: Stop after this many clusters are kept.

    Returns:
        Kept clusters in discovery order, each with its centroid computed.
    """
    if min_posts_per_topic < 1:
        raise ValueError("min_posts_per_topic must be >= 1")

    pool, _ = validate_items(list(items)[:max_candidates])
    if len(pool) < min_posts_per_topic:
        logger.info(f"Clustering: {len(pool)} usable items < minimum {min_posts_per_topic}, no clusters")
        return []

    matrix = np.asarray([i.embedding for i in pool], dtype=float)
    remaining = list(range(len(pool)))
    clusters: List[TopicCluster] = []
    discarded = 0

    while len(remaining) >= min_posts_per_topic and len(clusters) < max_clusters:
        seed_idx = remaining[0]
        rest = remaining[1:]

        if rest:
            sims = similarity_to_many(matrix[seed_idx], matrix[rest])
            assigned = [idx for idx, sim in zip(rest, sims) if sim >= threshold]
        else:
            assigned = []
        member_idx = [seed_idx] + assigned

        taken = set(member_idx)
        remaining = [idx for idx in rest if idx not in taken]

        if len(member_idx) >= min_posts_per_topic:
            members = [pool[idx] for idx in member_idx]
            clusters.append(TopicCluster.from_members(members, seed_id=pool[seed_idx].id))
            logger.debug(f"Clustering: kept cluster of {len(members)} seeded by {pool[seed_idx].id}")
        else:
            discarded += 1

    logger.info(
        f"Clustering: {len(clusters)} clusters from {len(pool)} items "
        f"(threshold={threshold}, min={min_posts_per_topic}, discarded={discarded})"
    )
    return clusters
