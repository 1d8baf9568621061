"""
Stance splitting: label every cluster member support / oppose / neutral.

The classifier is an unreliable external call. A failed or unparsable
reply resolves to neutral for that one member; the split itself never
raises. Calls run concurrently in small batches with a short pause between
batches to stay under provider rate limits.
"""

import asyncio
import logging
import re
from typing import List, Optional

from ..config import get_settings
from ..schemas import (
    ContentItem,
    Fallback,
    Parsed,
    ParseResult,
    Stance,
    StanceSplit,
    StanceVector,
    TopicCluster,
    stance_percentage,
)
from ..tools.embeddings import compute_centroid

logger = logging.getLogger(__name__)

STANCE_PROMPT = (
    "Analyze the stance of this post. Respond with ONLY one word: support, oppose, or neutral.\n\n"
    'Post: "{text}"'
)

_STANCE_WORDS = {
    "support": Stance.SUPPORT,
    "supports": Stance.SUPPORT,
    "supportive": Stance.SUPPORT,
    "for": Stance.SUPPORT,
    "pro": Stance.SUPPORT,
    "favor": Stance.SUPPORT,
    "favour": Stance.SUPPORT,
    "oppose": Stance.OPPOSE,
    "opposes": Stance.OPPOSE,
    "opposed": Stance.OPPOSE,
    "against": Stance.OPPOSE,
    "con": Stance.OPPOSE,
    "neutral": Stance.NEUTRAL,
}

_WORD_RE = re.compile(r"[a-z]+")


def parse_stance(reply: Optional[str]) -> ParseResult[Stance]:
    """Map a free-text classifier reply to a Stance.

    Accepts casing, quotes, punctuation and a short sentence around the
    label. Exactly one distinct stance may be mentioned; a reply naming
    two different stances is ambiguous.
    """
    if not reply or not reply.strip():
        return Fallback("empty reply")

    words = _WORD_RE.findall(reply.lower())
    if not words:
        return Fallback(f"no stance word in reply: {reply[:50]!r}")

    # A bare one-word reply may be a synonym; inside a sentence only the
    # canonical labels count ("for" and "con" are too common as words)
    if len(words) == 1:
        stance = _STANCE_WORDS.get(words[0])
        return Parsed(stance) if stance else Fallback(f"unrecognised stance: {words[0]!r}")

    found = {_STANCE_WORDS[w] for w in words if w in _STANCE_WORDS and w not in ("for", "con", "pro")}
    if len(found) == 1:
        return Parsed(found.pop())
    if not found:
        return Fallback(f"no stance word in reply: {reply[:50]!r}")
    return Fallback(f"ambiguous stance reply: {reply[:50]!r}")


def normalise_stance_result(result) -> ParseResult[Stance]:
    """Coerce a classifier result to Parsed(Stance) or Fallback.

    Classifiers may return a tagged result or a bare label; anything outside
    support / oppose / neutral becomes a Fallback.
    """
    if isinstance(result, Fallback):
        return result
    if isinstance(result, Parsed):
        result = result.value
    if isinstance(result, Stance):
        return Parsed(result)
    if isinstance(result, str):
        return parse_stance(result)
    return Fallback(f"unusable classifier result: {result!r:.50}")


class LLMStanceClassifier:
    """StanceClassifier backed by the completion service."""

    def __init__(self, completion, max_tokens: Optional[int] = None, temperature: Optional[float] = None):
        settings = get_settings()
        self.completion = completion
        self.max_tokens = max_tokens or settings.stance_max_tokens
        self.temperature = temperature if temperature is not None else settings.stance_temperature

    async def classify(self, text: str) -> ParseResult[Stance]:
        prompt = STANCE_PROMPT.format(text=text)
        try:
            reply = await self.completion.complete(
                prompt, max_tokens=self.max_tokens, temperature=self.temperature,
            )
        except Exception as e:
            logger.debug(f"Stance classification call failed: {e}")
            return Fallback(f"completion failed: {e}")
        return parse_stance(reply)


def build_stance_vector(label: Stance, members: List[ContentItem], total: int) -> Optional[StanceVector]:
    if not members:
        return None
    return StanceVector(
        label=label,
        vector=compute_centroid([m.embedding for m in members]),
        members=list(members),
        percentage=stance_percentage(len(members), total),
    )


class StanceSplitter:
    """Partition a cluster by classifier label and build per-side vectors."""

    def __init__(
        self,
        classifier,
        batch_size: Optional[int] = None,
        batch_pause_seconds: Optional[float] = None,
    ):
        settings = get_settings()
        self.classifier = classifier
        self.batch_size = max(1, batch_size or settings.stance_batch_size)
        self.batch_pause_seconds = (
            batch_pause_seconds if batch_pause_seconds is not None
            else settings.stance_batch_pause_seconds
        )

    async def _classify_one(self, item: ContentItem) -> ParseResult[Stance]:
        try:
            result = await self.classifier.classify(item.content)
        except Exception as e:
            logger.warning(f"Stance classifier raised for {item.id}: {e}")
            return Fallback(f"classifier raised: {e}")
        return normalise_stance_result(result)

    async def classify_members(self, members: List[ContentItem]) -> List[ParseResult[Stance]]:
        results: List[ParseResult[Stance]] = []
        for start in range(0, len(members), self.batch_size):
            if start > 0 and self.batch_pause_seconds > 0:
                await asyncio.sleep(self.batch_pause_seconds)
            batch = members[start:start + self.batch_size]
            results.extend(await asyncio.gather(*(self._classify_one(m) for m in batch)))
        return results

    async def split(self, cluster: TopicCluster) -> StanceSplit:
        members = cluster.members
        results = await self.classify_members(members)

        support: List[ContentItem] = []
        oppose: List[ContentItem] = []
        neutral: List[ContentItem] = []
        failed = 0
        for item, result in zip(members, results):
            if not result.ok:
                failed += 1
                logger.debug(f"Stance fallback to neutral for {item.id}: {result.reason}")
            stance = result.value_or(Stance.NEUTRAL)
            if stance == Stance.SUPPORT:
                support.append(item)
            elif stance == Stance.OPPOSE:
                oppose.append(item)
            else:
                neutral.append(item)

        if failed:
            logger.warning(f"Stance: {failed}/{len(members)} classifications fell back to neutral")

        total = len(members)
        split = StanceSplit(
            cluster=cluster,
            support=support,
            oppose=oppose,
            neutral=neutral,
            support_vector=build_stance_vector(Stance.SUPPORT, support, total),
            oppose_vector=build_stance_vector(Stance.OPPOSE, oppose, total),
            neutral_vector=build_stance_vector(Stance.NEUTRAL, neutral, total),
            failed_classifications=failed,
        )
        logger.info(
            f"Stance split: {len(support)} support / {len(oppose)} oppose / {len(neutral)} neutral "
            f"(dual={split.is_dual})"
        )
        return split
