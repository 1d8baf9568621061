"""
Topic Discovery and Stance-Aggregation Engine - CLI entry point.

Usage:
    python -m topic_engine.main --items items.json --mock
    python -m topic_engine.main --discover --scope state --state CA
    python -m topic_engine.main --items items.json --ingest   # load into the content store
"""

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import List

from pydantic import ValidationError

from .config import get_settings
from .schemas import ContentItem, Topic, TopicQuery
from .tools.content_store import ChromaContentStore
from .tools.llm_service import LLMService
from .topics.engine import TopicEngine

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

# Suppress noisy loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("chromadb").setLevel(logging.WARNING)


def load_items(path: Path) -> List[ContentItem]:
    """Load a JSON array of content items, skipping entries that don't validate."""
    raw = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = raw.get("items", [])
    items = []
    for i, entry in enumerate(raw):
        try:
            items.append(ContentItem.model_validate(entry))
        except ValidationError as e:
            logger.warning(f"Skipping item #{i}: {e.error_count()} validation errors")
    return items


def print_topics(topics: List[Topic]) -> None:
    print("\n" + "=" * 60)
    print(f"TOPICS ({len(topics)})")
    print("=" * 60)
    for rank, topic in enumerate(topics, 1):
        counts = topic.stance_counts
        print(f"\n{rank}. {topic.title}  [{topic.geographic_scope}]")
        if topic.summary:
            print(f"   {topic.summary}")
        print(
            f"   posts={topic.total_posts} participants={topic.participant_count} "
            f"support={counts.get('support', 0)} oppose={counts.get('oppose', 0)} "
            f"neutral={counts.get('neutral', 0)}"
        )
        if topic.support_vector:
            print(f"   + {topic.support_vector.percentage}% {topic.support_vector.summary}")
        if topic.oppose_vector:
            print(f"   - {topic.oppose_vector.percentage}% {topic.oppose_vector.summary}")
        print(
            f"   relevance={topic.relevance_score:.2f} trending={topic.trending_score:.2f} "
            f"complexity={topic.complexity_score:.2f} evidence={topic.evidence_quality_score:.2f}"
        )
    print("=" * 60 + "\n")


async def cli_main():
    """Command-line interface for running the engine."""
    parser = argparse.ArgumentParser(
        description="Topic Discovery and Stance-Aggregation Engine"
    )
    parser.add_argument("--items", type=Path, help="JSON file of content items with embeddings")
    parser.add_argument("--ingest", action="store_true", help="Store --items in the content store, then run on the store")
    parser.add_argument("--discover", action="store_true", help="Run the discovery variant (wide clusters, engagement ranking)")
    parser.add_argument("--scope", choices=["national", "state", "local"], default="national")
    parser.add_argument("--state", default=None)
    parser.add_argument("--city", default=None)
    parser.add_argument("--policy", choices=["drop", "single_vector"], default=None,
                        help="What to do with one-sided clusters (default: settings)")
    parser.add_argument("--mock", action="store_true", help="Run in mock mode (no real API calls)")
    parser.add_argument("--json", action="store_true", help="Print topics as JSON")

    args = parser.parse_args()
    settings = get_settings()

    completion = LLMService(mock_mode=args.mock, settings=settings)
    query = TopicQuery(scope=args.scope, state=args.state, city=args.city)

    store = None
    items: List[ContentItem] = []
    if args.items:
        items = load_items(args.items)
        logger.info(f"Loaded {len(items)} items from {args.items}")
    if not args.items or args.ingest:
        store = ChromaContentStore()
        if items:
            store.add_items(items)

    engine = TopicEngine(source=store, completion=completion, settings=settings, single_stance_policy=args.policy)

    if store is not None:
        topics = await (engine.discover_topics(query) if args.discover else engine.aggregate_topics(query))
    else:
        topics = await engine.build_topics(items, query, discovery=args.discover)

    if args.json:
        print(json.dumps([t.model_dump(mode="json", exclude={"centroid"}) for t in topics], indent=2))
    else:
        print_topics(topics)


def main():
    """Entry point for CLI."""
    asyncio.run(cli_main())


if __name__ == "__main__":
    main()
