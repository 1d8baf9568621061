"""
Relevance signal: how much a topic matters to a particular viewer right now.

SIGNALS:
  relevance_score: unbounded, summed over members.
    recency     exp(-age_hours / 48) * 10 per member (48h decay constant)
    engagement  likes * 2 + comments * 3 per member
    velocity    +5 per member created in the last 6 hours
    geography   +10 per member matching the viewer's city AND state (local),
                +7 per member matching the viewer's state (state scope)
"""

import logging
import math
from datetime import datetime, timezone
from typing import List, Optional

from ...schemas import ContentItem, GeographicScope

logger = logging.getLogger(__name__)

RECENCY_DECAY_HOURS = 48.0
RECENCY_WEIGHT = 10.0
LIKE_WEIGHT = 2.0
COMMENT_WEIGHT = 3.0
VELOCITY_WINDOW_HOURS = 6.0
VELOCITY_BONUS = 5.0
LOCAL_BONUS = 10.0
STATE_BONUS = 7.0


def compute_relevance(
    members: List[ContentItem],
    scope: str = GeographicScope.NATIONAL.value,
    state: Optional[str] = None,
    city: Optional[str] = None,
    now: Optional[datetime] = None,
) -> float:
    if not members:
        return 0.0
    now = now or datetime.now(timezone.utc)
    scope = getattr(scope, "value", scope)

    score = 0.0
    for item in members:
        age = max(0.0, item.age_hours(now))
        score += math.exp(-age / RECENCY_DECAY_HOURS) * RECENCY_WEIGHT
        score += item.like_count * LIKE_WEIGHT + item.comment_count * COMMENT_WEIGHT
        if age < VELOCITY_WINDOW_HOURS:
            score += VELOCITY_BONUS

    if scope == GeographicScope.LOCAL.value:
        local = [m for m in members if m.city == city and m.state == state]
        score += len(local) * LOCAL_BONUS
    elif scope == GeographicScope.STATE.value:
        in_state = [m for m in members if m.state == state]
        score += len(in_state) * STATE_BONUS

    return score
