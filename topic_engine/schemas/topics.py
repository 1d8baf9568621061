"""
Topic data models.

Defines the transient per-run structures (TopicCluster, StanceVector,
StanceSplit, TopicSummary) and the output entity (Topic) handed to the
presentation layer.

Lifecycle:
  ContentItem[] ─cluster→ TopicCluster ─split→ StanceSplit
       ─score + summarise→ Topic ─cache→ Topic[]
"""

import logging
import math
from datetime import datetime, timezone
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_validator

from .base import GeographicScope, Stance
from .content import ContentItem

logger = logging.getLogger(__name__)

FALLBACK_TITLE = "Trending Discussion"
FALLBACK_SUPPORT_SUMMARY = "Supporting this position"
FALLBACK_OPPOSE_SUMMARY = "Opposing this position"


def stance_percentage(side_count: int, total: int) -> int:
    """Rounded share of the whole cluster, half-up (12.5 → 13)."""
    if total <= 0:
        return 0
    return int(math.floor(100.0 * side_count / total + 0.5))


class TopicCluster(BaseModel):
    """Group of similar items produced by one clustering run."""
    centroid: List[float] = Field(default_factory=list)
    members: List[ContentItem] = Field(default_factory=list)
    seed_id: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.members)

    @classmethod
    def from_members(cls, members: List[ContentItem], seed_id: Optional[str] = None) -> "TopicCluster":
        """Build a cluster and compute its centroid from the member embeddings."""
        from ..tools.embeddings import compute_centroid
        return cls(
            centroid=compute_centroid([m.embedding for m in members]),
            members=list(members),
            seed_id=seed_id,
        )

    def with_members(self, members: List[ContentItem]) -> "TopicCluster":
        """Return a new cluster for changed membership (centroid recomputed)."""
        return TopicCluster.from_members(members, seed_id=self.seed_id)


class StanceVector(BaseModel):
    """One side of a topic: mean embedding, members and share of the cluster."""
    label: Stance
    vector: List[float] = Field(default_factory=list)
    members: List[ContentItem] = Field(default_factory=list)
    percentage: int = 0
    summary: str = ""

    class Config:
        use_enum_values = True

    @property
    def count(self) -> int:
        return len(self.members)


class StanceSplit(BaseModel):
    """Outcome of classifying every member of one cluster."""
    cluster: TopicCluster
    support: List[ContentItem] = Field(default_factory=list)
    oppose: List[ContentItem] = Field(default_factory=list)
    neutral: List[ContentItem] = Field(default_factory=list)
    support_vector: Optional[StanceVector] = None
    oppose_vector: Optional[StanceVector] = None
    neutral_vector: Optional[StanceVector] = None
    failed_classifications: int = 0

    @property
    def total(self) -> int:
        return len(self.support) + len(self.oppose) + len(self.neutral)

    @property
    def is_dual(self) -> bool:
        """Both sides need at least one member for a comparative topic."""
        return len(self.support) >= 1 and len(self.oppose) >= 1

    @property
    def counts(self) -> Dict[str, int]:
        return {
            Stance.SUPPORT.value: len(self.support),
            Stance.OPPOSE.value: len(self.oppose),
            Stance.NEUTRAL.value: len(self.neutral),
        }

    def stance_of(self, item_id: str) -> Stance:
        if any(m.id == item_id for m in self.support):
            return Stance.SUPPORT
        if any(m.id == item_id for m in self.oppose):
            return Stance.OPPOSE
        return Stance.NEUTRAL


class TopicSummary(BaseModel):
    """Human-readable text for a topic, from the completion service or fallback."""
    title: str = FALLBACK_TITLE
    summary: str = ""
    support_summary: str = FALLBACK_SUPPORT_SUMMARY
    oppose_summary: str = FALLBACK_OPPOSE_SUMMARY
    prevailing_position: Optional[str] = None
    leading_critique: Optional[str] = None
    category: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    is_fallback: bool = False

    @field_validator('title', mode='before')
    @classmethod
    def clean_title(cls, v):
        if not v or not str(v).strip():
            return FALLBACK_TITLE
        title = str(v).strip().strip('"').strip()
        if len(title) > 100:
            title = title[:97].rstrip() + "..."
        return title or FALLBACK_TITLE

    @field_validator('keywords', mode='before')
    @classmethod
    def coerce_keywords(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [k.strip() for k in v.split(",") if k.strip()]
        seen = []
        for k in v:
            k = str(k).strip()
            if k and k not in seen:
                seen.append(k)
        return seen


class Topic(BaseModel):
    """
    Assembled topic, the engine's output entity.

    A dual-stance topic carries both support_vector and oppose_vector.
    A single-vector topic (emitted only under the single_vector policy)
    carries at most the one side that has members; when every member is
    neutral it carries neither and the centroid is its only vector.
    """
    id: str
    title: str
    summary: str = ""
    support_vector: Optional[StanceVector] = None
    oppose_vector: Optional[StanceVector] = None
    neutral_members: Optional[List[ContentItem]] = None
    centroid: List[float] = Field(default_factory=list)
    stance_counts: Dict[str, int] = Field(default_factory=dict)
    total_posts: int = 0
    participant_count: int = 0

    # Scores
    relevance_score: float = 0.0
    trending_score: float = 0.0
    complexity_score: float = 0.0
    evidence_quality_score: float = 0.0
    controversy_score: float = 0.0
    engagement_score: float = 0.0

    # Text from the summary generator
    prevailing_position: Optional[str] = None
    leading_critique: Optional[str] = None
    category: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)

    # Cosine similarity of each member to the centroid, by item id
    member_similarity: Dict[str, float] = Field(default_factory=dict)

    geographic_scope: GeographicScope = GeographicScope.NATIONAL
    state: Optional[str] = None
    city: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_activity: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    class Config:
        use_enum_values = True

    @property
    def is_dual_stance(self) -> bool:
        return self.support_vector is not None and self.oppose_vector is not None

    def members(self) -> List[ContentItem]:
        """Every member in support → oppose → neutral order (single-vector: as stored)."""
        out: List[ContentItem] = []
        if self.support_vector:
            out.extend(self.support_vector.members)
        if self.oppose_vector:
            out.extend(self.oppose_vector.members)
        if self.neutral_members:
            out.extend(self.neutral_members)
        return out

    def stance_of(self, item_id: str) -> Stance:
        if self.support_vector and any(m.id == item_id for m in self.support_vector.members):
            return Stance.SUPPORT
        if self.oppose_vector and any(m.id == item_id for m in self.oppose_vector.members):
            return Stance.OPPOSE
        return Stance.NEUTRAL


class TopicQuery(BaseModel):
    """Caller options for one aggregation/discovery run."""
    scope: GeographicScope = GeographicScope.NATIONAL
    state: Optional[str] = None
    city: Optional[str] = None
    # Coordinate-based callers are bucketed by rounded lat/lng in the cache
    lat: Optional[float] = None
    lng: Optional[float] = None
    timeframe_hours: Optional[int] = Field(default=None, gt=0)
    min_posts_per_topic: Optional[int] = Field(default=None, ge=1)
    max_topics: Optional[int] = Field(default=None, ge=0)
    similarity_threshold: Optional[float] = Field(default=None, ge=-1.0, le=1.0)
    controversy_override: Optional[float] = None

    class Config:
        use_enum_values = True
