"""
Discussion quality signals computed from member text.

SIGNALS:
  complexity_score:       0-1. Nuance of the discussion:
                          min(0.3, avg_words/100) + min(0.3, question_ratio*2)
                          + min(0.4, argument_families/5)
  evidence_quality_score: 0-1, mean over members. +0.2 per evidence keyword,
                          +0.3 for a link, +0.2 for a percentage or dollar
                          figure, capped at 1.0 per member.
"""

import logging
import re
from typing import Any, Dict, List

from ...schemas import ContentItem

logger = logging.getLogger(__name__)

# Substring cues, matched against lower-cased text
ARGUMENT_FAMILIES = {
    "counterargument": ("however", "but", "although"),
    "evidence_based": ("evidence", "study", "research"),
    "experiential": ("experience", "personally"),
    "economic": ("cost", "budget", "economic"),
}

EVIDENCE_KEYWORDS = (
    "study", "research", "data", "statistics", "survey",
    "report", "analysis", "university", "published",
    "source", "according to", "expert",
)

_FIGURE_RE = re.compile(r'\d+%|\$[\d,]+')


def complexity_score(members: List[ContentItem]) -> float:
    if not members:
        return 0.0

    total_words = 0
    questions = 0
    families = set()
    for item in members:
        text = (item.content or "").lower()
        total_words += len(text.split())
        questions += text.count("?")
        for family, cues in ARGUMENT_FAMILIES.items():
            if any(cue in text for cue in cues):
                families.add(family)

    avg_words = total_words / len(members)
    question_ratio = questions / len(members)

    score = min(0.3, avg_words / 100) + min(0.3, question_ratio * 2) + min(0.4, len(families) / 5)
    return max(0.0, min(1.0, score))


def _item_evidence(text: str) -> float:
    lowered = text.lower()
    score = sum(0.2 for kw in EVIDENCE_KEYWORDS if kw in lowered)
    if "http" in text or "www." in text:
        score += 0.3
    if _FIGURE_RE.search(text):
        score += 0.2
    return min(1.0, score)


def evidence_quality_score(members: List[ContentItem]) -> float:
    if not members:
        return 0.0
    return sum(_item_evidence(m.content or "") for m in members) / len(members)


def compute_content_signals(members: List[ContentItem]) -> Dict[str, Any]:
    return {
        "complexity_score": complexity_score(members),
        "evidence_quality_score": evidence_quality_score(members),
    }
