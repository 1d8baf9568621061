"""
Topic discovery and stance aggregation.

Modules:
- clustering.py: candidate ordering, embedding validation, greedy clustering
- stance.py: stance reply parsing, LLM-backed classifier, StanceSplitter
- signals/: relevance, trending, controversy, engagement, complexity, evidence
- summary.py: SummaryGenerator with deterministic keyword fallback
- engine.py: TopicEngine (aggregation + discovery), rotating_subset
- navigation.py: NavigationManager, TopicNotFoundError
- interfaces.py: collaborator protocols
"""

from .clustering import greedy_cluster, order_candidates, validate_items
from .engine import RunVariant, TopicEngine, determine_scope, make_topic_id, rotating_subset
from .navigation import NavigationManager, TopicNotFoundError
from .stance import LLMStanceClassifier, StanceSplitter, parse_stance
from .summary import SummaryGenerator, extract_keywords, fallback_summary

__all__ = [
    "greedy_cluster",
    "order_candidates",
    "validate_items",
    "RunVariant",
    "TopicEngine",
    "determine_scope",
    "make_topic_id",
    "rotating_subset",
    "NavigationManager",
    "TopicNotFoundError",
    "LLMStanceClassifier",
    "StanceSplitter",
    "parse_stance",
    "SummaryGenerator",
    "extract_keywords",
    "fallback_summary",
]
