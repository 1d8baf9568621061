"""
Content item models.

These models represent the raw material of the engine: authored items that
the embedding source has already reduced to a fixed-dimension vector.

Hierarchy: ContentItem → (fed into clustering/stance/scoring)
"""

import math
from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator


class ContentItem(BaseModel):
    """
    One authored item with its semantic embedding.

    Immutable once fetched for a run. Geography is the author's, used for
    geographic relevance bonuses and topic scope detection.
    """
    id: str
    content: str = ""
    embedding: List[float] = Field(default_factory=list)
    author_id: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Engagement counters
    like_count: int = 0
    comment_count: int = 0
    share_count: int = 0

    # Author geography
    state: Optional[str] = None
    city: Optional[str] = None

    class Config:
        frozen = True

    @field_validator('created_at', mode='after')
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @field_validator('like_count', 'comment_count', 'share_count', mode='before')
    @classmethod
    def coerce_counter(cls, v):
        if v is None:
            return 0
        return max(0, int(v))

    @property
    def dimension(self) -> int:
        return len(self.embedding)

    def has_valid_embedding(self) -> bool:
        """True if the embedding is non-empty and every value is finite."""
        return bool(self.embedding) and all(math.isfinite(x) for x in self.embedding)

    def age_hours(self, now: Optional[datetime] = None) -> float:
        now = now or datetime.now(timezone.utc)
        return (now - self.created_at).total_seconds() / 3600.0


class SimilarItem(BaseModel):
    """A ranked reference returned by the similarity search index."""
    item_id: str
    score: float = 0.0
