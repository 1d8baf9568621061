"""
Momentum signals: trending, controversy and engagement.

SIGNALS:
  trending_score:    (posts*0.1 + participants*0.2) x activity multiplier
                     x exp(-hours_since_created/48) x (1 + controversy*0.5).
                     Activity multiplier: x2 <1h, x1.5 <6h, x1.2 <24h since
                     last activity. Never negative.
  controversy_score: stance balance 2*min(s,o)/(s+o). 1.0 = evenly split,
                     0.0 = one-sided (or no stance split at all).
  engagement_score:  mean of (likes + comments*2) * (1 + recency) where
                     recency = max(0, 1 - age_hours/24). Discovery ranking.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ...schemas import ContentItem

logger = logging.getLogger(__name__)


def activity_multiplier(hours_since_activity: float) -> float:
    if hours_since_activity < 1:
        return 2.0
    if hours_since_activity < 6:
        return 1.5
    if hours_since_activity < 24:
        return 1.2
    return 1.0


def trending_score(
    post_count: int,
    participant_count: int,
    hours_since_created: float,
    hours_since_activity: float,
    controversy: float = 0.0,
) -> float:
    score = post_count * 0.1 + participant_count * 0.2
    score *= activity_multiplier(hours_since_activity)
    score *= math.exp(-hours_since_created / 48.0)
    score *= 1 + controversy * 0.5
    return max(0.0, score)


def controversy_score(support_count: int, oppose_count: int) -> float:
    sided = support_count + oppose_count
    if sided <= 0:
        return 0.0
    return 2.0 * min(support_count, oppose_count) / sided


def engagement_score(members: List[ContentItem], now: Optional[datetime] = None) -> float:
    if not members:
        return 0.0
    now = now or datetime.now(timezone.utc)
    total = 0.0
    for item in members:
        recency = max(0.0, 1.0 - item.age_hours(now) / 24.0)
        total += (item.like_count + item.comment_count * 2) * (1 + recency)
    return total / len(members)


def compute_trending_signals(
    members: List[ContentItem],
    support_count: int = 0,
    oppose_count: int = 0,
    controversy_override: Optional[float] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """All momentum signals for one topic's members."""
    if not members:
        return {
            "trending_score": 0.0, "controversy_score": 0.0, "engagement_score": 0.0,
            "participant_count": 0, "last_activity": None,
        }
    now = now or datetime.now(timezone.utc)

    controversy = (
        controversy_override if controversy_override is not None
        else controversy_score(support_count, oppose_count)
    )
    first_seen = min(m.created_at for m in members)
    last_seen = max(m.created_at for m in members)
    participants = len({m.author_id for m in members})

    return {
        "trending_score": trending_score(
            post_count=len(members),
            participant_count=participants,
            hours_since_created=max(0.0, (now - first_seen).total_seconds() / 3600.0),
            hours_since_activity=max(0.0, (now - last_seen).total_seconds() / 3600.0),
            controversy=controversy,
        ),
        "controversy_score": controversy,
        "engagement_score": engagement_score(members, now),
        "participant_count": participants,
        "last_activity": last_seen,
    }
