"""
Common enums and value objects used across the entire engine.

These are foundational types that don't belong to any specific layer.
They define the vocabulary of the system: stance labels, geographic scopes,
candidate orderings and the policy applied to one-sided clusters.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel


# ══════════════════════════════════════════════════════════════════════════════
# ENUMS - Classification Types
# ══════════════════════════════════════════════════════════════════════════════

class Stance(str, Enum):
    """Position of a content item relative to its cluster's topic."""
    SUPPORT = "support"
    OPPOSE = "oppose"
    NEUTRAL = "neutral"


class GeographicScope(str, Enum):
    """Geographic reach of a topic (or of a viewer's query)."""
    NATIONAL = "national"
    STATE = "state"
    LOCAL = "local"


class CandidateOrder(str, Enum):
    """
    Ordering applied to the candidate pool before greedy clustering.

    The head of the pool becomes the first seed, so the ordering is part of
    the clustering contract: RECENCY favours the newest conversations
    (stance aggregation), ENGAGEMENT favours the most liked/commented items
    (topic discovery).
    """
    RECENCY = "recency"
    ENGAGEMENT = "engagement"


class SingleStancePolicy(str, Enum):
    """What to do with a cluster lacking a support or an oppose member."""
    DROP = "drop"
    SINGLE_VECTOR = "single_vector"


# ══════════════════════════════════════════════════════════════════════════════
# VALUE OBJECTS - Immutable, Reusable
# ══════════════════════════════════════════════════════════════════════════════

class GeoFilter(BaseModel):
    """Geographic restriction applied when fetching candidates."""
    scope: GeographicScope = GeographicScope.NATIONAL
    state: Optional[str] = None
    city: Optional[str] = None

    class Config:
        frozen = True
        use_enum_values = True
