"""
Schemas package: all data models for the topic engine.

Models are organized by domain in submodules:
  - base.py: Common enums and value objects (Stance, GeographicScope, GeoFilter)
  - content.py: ContentItem, SimilarItem
  - topics.py: TopicCluster, StanceVector, StanceSplit, TopicSummary, Topic, TopicQuery
  - navigation.py: NavigationState, TopicItem, TopicItemsPage
  - results.py: Parsed / Fallback tagged results for AI payloads
"""

# base.py: enums and value objects
from topic_engine.schemas.base import (
    Stance, GeographicScope, CandidateOrder, SingleStancePolicy, GeoFilter,
)

# content.py: content item models
from topic_engine.schemas.content import ContentItem, SimilarItem

# topics.py: topic models
from topic_engine.schemas.topics import (
    TopicCluster, StanceVector, StanceSplit, TopicSummary, Topic, TopicQuery,
    stance_percentage, FALLBACK_TITLE, FALLBACK_SUPPORT_SUMMARY, FALLBACK_OPPOSE_SUMMARY,
)

# navigation.py: navigation state
from topic_engine.schemas.navigation import NavigationState, TopicItem, TopicItemsPage

# results.py: tagged results
from topic_engine.schemas.results import Parsed, Fallback, ParseResult

__all__ = [
    # base
    "Stance", "GeographicScope", "CandidateOrder", "SingleStancePolicy", "GeoFilter",
    # content
    "ContentItem", "SimilarItem",
    # topics
    "TopicCluster", "StanceVector", "StanceSplit", "TopicSummary", "Topic", "TopicQuery",
    "stance_percentage", "FALLBACK_TITLE", "FALLBACK_SUPPORT_SUMMARY", "FALLBACK_OPPOSE_SUMMARY",
    # navigation
    "NavigationState", "TopicItem", "TopicItemsPage",
    # results
    "Parsed", "Fallback", "ParseResult",
]
