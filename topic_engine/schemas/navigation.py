"""Navigation mode state and paged topic views.

NavigationState is per consumer and ephemeral (held in memory by the
NavigationManager that created it). TopicItemsPage is the paginated,
stance-tagged view of one topic's members.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field

from .base import Stance
from .content import ContentItem
from .topics import Topic


@dataclass
class NavigationState:
    """Topic-filtered view for a single consumer."""
    consumer_id: str
    active_topic: Optional[Topic] = None
    filtered_item_ids: List[str] = field(default_factory=list)
    # Snapshot of the consumer's feed taken on enter; None after a restart
    fallback_feed: Optional[List[ContentItem]] = None
    entered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def mode(self) -> str:
        return "topic-filtered" if self.active_topic is not None else "algorithm-based"


class TopicItem(BaseModel):
    item: ContentItem
    stance: Stance = Stance.NEUTRAL
    similarity: float = 0.0

    class Config:
        use_enum_values = True


class TopicItemsPage(BaseModel):
    topic_id: str
    items: List[TopicItem] = Field(default_factory=list)
    page: int = 1
    limit: int = 20
    total: int = 0
    has_more: bool = False
