"""
Signal computation modules for topic scoring.

Each module computes a family of signals independently:
- relevance.py: recency/engagement/velocity/geography relevance for a viewer
- trending.py: trending_score, controversy_score, engagement_score
- content.py: complexity_score, evidence_quality_score

compute_all_scores() runs every family and merges the results into a flat
dict whose keys match the Topic score fields. A failing family is logged and
contributes neutral (zero) defaults.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from ...schemas import ContentItem, GeographicScope
from .content import compute_content_signals, complexity_score, evidence_quality_score
from .relevance import compute_relevance
from .trending import (
    activity_multiplier,
    compute_trending_signals,
    controversy_score,
    engagement_score,
    trending_score,
)

logger = logging.getLogger(__name__)

_DEFAULTS: Dict[str, Any] = {
    "relevance_score": 0.0,
    "trending_score": 0.0,
    "controversy_score": 0.0,
    "engagement_score": 0.0,
    "participant_count": 0,
    "last_activity": None,
    "complexity_score": 0.0,
    "evidence_quality_score": 0.0,
}


def compute_all_scores(
    members: List[ContentItem],
    support_count: int = 0,
    oppose_count: int = 0,
    scope: str = GeographicScope.NATIONAL.value,
    state: Optional[str] = None,
    city: Optional[str] = None,
    controversy_override: Optional[float] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Compute ALL scores for one topic's members."""
    scores = dict(_DEFAULTS)
    if not members:
        return scores

    try:
        scores["relevance_score"] = compute_relevance(members, scope, state, city, now)
    except Exception as e:
        logger.warning(f"Relevance signal computation failed: {e}")

    try:
        scores.update(compute_trending_signals(
            members, support_count, oppose_count, controversy_override, now,
        ))
    except Exception as e:
        logger.warning(f"Trending signal computation failed: {e}")

    try:
        scores.update(compute_content_signals(members))
    except Exception as e:
        logger.warning(f"Content signal computation failed: {e}")

    return scores


__all__ = [
    "compute_all_scores",
    "compute_relevance",
    "compute_trending_signals",
    "compute_content_signals",
    "trending_score",
    "activity_multiplier",
    "controversy_score",
    "engagement_score",
    "complexity_score",
    "evidence_quality_score",
]
