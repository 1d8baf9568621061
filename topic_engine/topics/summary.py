"""
Topic summary generation.

One completion call per topic: sample a few members from each side, ask
for a JSON payload, parse it defensively. When the reply is unusable (or
the call fails) a deterministic summary is built from the cluster's most
frequent words instead, so generate() never raises.
"""

import logging
import re
from collections import Counter
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..config import get_settings
from ..schemas import (
    FALLBACK_OPPOSE_SUMMARY,
    FALLBACK_SUPPORT_SUMMARY,
    FALLBACK_TITLE,
    ContentItem,
    StanceSplit,
    TopicSummary,
)
from ..tools import json_repair

logger = logging.getLogger(__name__)

_STOP_WORDS = frozenset({
    "this", "that", "with", "from", "they", "have", "been", "were",
    "about", "their", "there", "what", "when", "will", "would", "could",
    "should", "just", "more", "than", "them", "then", "very", "your",
})

_MAX_SAMPLE_CHARS = 500

SUMMARY_PROMPT = """You are summarizing a public discussion for a trending topics system.

SUPPORTING POSTS:
{support}

OPPOSING POSTS:
{oppose}

OTHER POSTS:
{neutral}

TASK: Describe what this discussion is about and the positions taken.

Respond with JSON only:
{{
    "title": "clear, engaging topic title (max 60 chars)",
    "summary": "2-3 sentence overview of what this topic is about",
    "support_summary": "one sentence stating the supporting position",
    "oppose_summary": "one sentence stating the opposing position",
    "prevailing_position": "the main viewpoint emerging from these posts",
    "leading_critique": "the main counterargument or concern being raised",
    "category": "politics|social|local|news|general",
    "keywords": ["word1", "word2", "word3"]
}}"""

# Alternate key spellings seen from different models
_KEY_ALIASES = {
    "supportSummary": "support_summary",
    "opposeSummary": "oppose_summary",
    "prevailingPosition": "prevailing_position",
    "leadingCritique": "leading_critique",
    "keyWords": "keywords",
    "key_words": "keywords",
}


def extract_keywords(contents: List[str], top_n: int = 5) -> List[str]:
    """Most frequent words longer than 3 chars, stop words removed."""
    text = re.sub(r"[^\w\s]", " ", " ".join(contents).lower())
    words = [w for w in text.split() if len(w) > 3 and w not in _STOP_WORDS]
    return [w for w, _ in Counter(words).most_common(top_n)]


def fallback_summary(members: List[ContentItem]) -> TopicSummary:
    keywords = extract_keywords([m.content for m in members])
    title = " ".join(keywords[:3])[:60]
    return TopicSummary(
        title=title or FALLBACK_TITLE,
        summary=f"A discussion involving {len(members)} posts with active engagement",
        support_summary=FALLBACK_SUPPORT_SUMMARY,
        oppose_summary=FALLBACK_OPPOSE_SUMMARY,
        keywords=keywords,
        is_fallback=True,
    )


def _format_samples(items: List[ContentItem]) -> str:
    if not items:
        return "(none)"
    return "\n".join(f"- {item.content[:_MAX_SAMPLE_CHARS]}" for item in items)


def _normalize_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    return {_KEY_ALIASES.get(k, k): v for k, v in data.items()}


_TEXT_FIELDS = (
    "title", "summary", "support_summary", "oppose_summary",
    "prevailing_position", "leading_critique", "category",
)


def _sanitize_summary_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    """Coerce summary JSON to the expected types. Logs every correction.

    Text fields become stripped strings (lists joined, category takes its
    first entry) or are dropped; keywords become a list of strings.
    """
    coercions = 0
    clean: Dict[str, Any] = {}

    for field in _TEXT_FIELDS:
        val = data.get(field)
        if val is None:
            continue
        if isinstance(val, (list, tuple)):
            parts = [str(v).strip() for v in val if v is not None and str(v).strip()]
            val = (parts[0] if parts else "") if field == "category" else " ".join(parts)
            coercions += 1
        elif isinstance(val, dict):
            logger.debug(f"Summary field {field} was an object, dropped")
            coercions += 1
            continue
        elif not isinstance(val, str):
            val = str(val)
            coercions += 1
        if val.strip():
            clean[field] = val.strip()

    keywords = data.get("keywords")
    if isinstance(keywords, str):
        clean["keywords"] = [k.strip() for k in keywords.split(",") if k.strip()]
        coercions += 1
    elif isinstance(keywords, (list, tuple)):
        clean["keywords"] = [str(k).strip() for k in keywords if k is not None and str(k).strip()]
    elif keywords is not None:
        coercions += 1

    if coercions:
        logger.info(f"Summary: coerced {coercions} malformed field(s) in LLM reply")
    return clean


class SummaryGenerator:
    """Builds a TopicSummary for one stance split via the completion service."""

    def __init__(self, completion=None, sample_per_side: Optional[int] = None,
                 max_tokens: Optional[int] = None, temperature: Optional[float] = None):
        settings = get_settings()
        self.completion = completion
        self.sample_per_side = sample_per_side or settings.summary_sample_per_side
        self.max_tokens = max_tokens or settings.summary_max_tokens
        self.temperature = temperature if temperature is not None else settings.summary_temperature

    def build_prompt(self, split: StanceSplit) -> str:
        n = self.sample_per_side
        return SUMMARY_PROMPT.format(
            support=_format_samples(split.support[:n]),
            oppose=_format_samples(split.oppose[:n]),
            neutral=_format_samples(split.neutral[:n]),
        )

    def parse_reply(self, reply: str, members: List[ContentItem]) -> TopicSummary:
        """JSON first, then TITLE:/SUPPORT:/OPPOSE: lines, then the fallback."""
        fallback = fallback_summary(members)

        parsed = json_repair.parse_json_object(reply)
        if parsed.ok:
            data = _sanitize_summary_payload(_normalize_keys(parsed.value))
            if data.get("title"):
                try:
                    return TopicSummary(
                        title=data["title"],
                        summary=data.get("summary") or fallback.summary,
                        support_summary=data.get("support_summary") or FALLBACK_SUPPORT_SUMMARY,
                        oppose_summary=data.get("oppose_summary") or FALLBACK_OPPOSE_SUMMARY,
                        prevailing_position=data.get("prevailing_position"),
                        leading_critique=data.get("leading_critique"),
                        category=data.get("category"),
                        keywords=data.get("keywords") or fallback.keywords,
                    )
                except ValidationError as e:
                    logger.warning(f"Summary JSON failed validation, using fallback: {e}")
                    return fallback
            logger.debug("Summary JSON had no title, trying line format")

        lines = json_repair.parse_labeled_lines(reply, ("TITLE", "SUPPORT", "OPPOSE", "SUMMARY"))
        if lines.ok and "TITLE" in lines.value:
            found = lines.value
            try:
                return TopicSummary(
                    title=found["TITLE"],
                    summary=found.get("SUMMARY", fallback.summary),
                    support_summary=found.get("SUPPORT", FALLBACK_SUPPORT_SUMMARY),
                    oppose_summary=found.get("OPPOSE", FALLBACK_OPPOSE_SUMMARY),
                    keywords=fallback.keywords,
                )
            except ValidationError as e:
                logger.warning(f"Summary lines failed validation, using fallback: {e}")

        logger.warning(f"Unparseable summary reply, using fallback: {reply[:100]!r}")
        return fallback

    async def generate(self, split: StanceSplit) -> TopicSummary:
        members = split.cluster.members
        if self.completion is None:
            return fallback_summary(members)

        try:
            reply = await self.completion.complete(
                self.build_prompt(split), max_tokens=self.max_tokens, temperature=self.temperature,
            )
        except Exception as e:
            logger.warning(f"Summary generation failed, using fallback: {e}")
            return fallback_summary(members)
        return self.parse_reply(reply, members)
