"""
Persistent content + embedding store using ChromaDB.

Serves two roles for the engine:
1. EmbeddingSource: recent items (with their vectors) for a time window and
   geographic filter, fed into clustering.
2. SimilaritySearchIndex: items nearest a topic centroid, used by
   navigation mode to build the topic-filtered feed.

Usage:
    store = ChromaContentStore()                 # persistent, settings path
    store = ChromaContentStore(client=chromadb.EphemeralClient())  # tests
    store.add_items(items)
    candidates = await store.fetch_candidates(168, GeoFilter())
    similar = await store.search_similar(topic.centroid, limit=40, score_threshold=0.65)
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import chromadb

from ..config import get_settings
from ..schemas import ContentItem, GeoFilter, GeographicScope, SimilarItem

logger = logging.getLogger(__name__)

# Max metadata value size for ChromaDB (it has a limit)
_MAX_META_STR = 8000


class ChromaContentStore:
    """ChromaDB collection in cosine space (distance = 1 - similarity)."""

    def __init__(self, db_path: Optional[str] = None, client=None, collection_name: str = "content_items"):
        self.db_path = db_path or get_settings().content_store_path
        self.client = client if client is not None else chromadb.PersistentClient(path=self.db_path)
        self.collection_name = collection_name
        self.collection = self._open_collection()

    def _open_collection(self):
        return self.client.get_or_create_collection(
            name=self.collection_name,
            metadata={"hnsw:space": "cosine"},
        )

    def add_items(self, items: Sequence[ContentItem]) -> int:
        """Upsert items with their embeddings. Items without a valid vector are skipped.

        Returns number of items written.
        """
        ids, documents, embeds, metadatas = [], [], [], []
        skipped = 0
        for item in items:
            if not item.has_valid_embedding():
                skipped += 1
                continue
            ids.append(item.id)
            documents.append(item.content[:_MAX_META_STR])
            embeds.append(list(item.embedding))
            metadatas.append(self._item_to_metadata(item))

        if skipped:
            logger.warning(f"ContentStore: skipped {skipped} items without a usable embedding")
        if not ids:
            return 0

        batch_size = 5000
        for i in range(0, len(ids), batch_size):
            self.collection.upsert(
                ids=ids[i: i + batch_size],
                documents=documents[i: i + batch_size],
                embeddings=embeds[i: i + batch_size],
                metadatas=metadatas[i: i + batch_size],
            )
        logger.info(f"ContentStore: upserted {len(ids)} items. Total: {self.collection.count()}")
        return len(ids)

    async def fetch_candidates(
        self,
        time_window_hours: float,
        geo_filter: Optional[GeoFilter] = None,
        limit: Optional[int] = None,
    ) -> List[ContentItem]:
        """Items created within the window, newest first, capped at max_candidates."""
        limit = limit or get_settings().max_candidates
        cutoff = time.time() - time_window_hours * 3600.0

        conditions: List[Dict[str, Any]] = [{"created_ts": {"$gte": cutoff}}]
        if geo_filter is not None:
            scope = getattr(geo_filter.scope, "value", geo_filter.scope)
            if scope in (GeographicScope.STATE.value, GeographicScope.LOCAL.value) and geo_filter.state:
                conditions.append({"state": geo_filter.state})
            if scope == GeographicScope.LOCAL.value and geo_filter.city:
                conditions.append({"city": geo_filter.city})
        where = conditions[0] if len(conditions) == 1 else {"$and": conditions}

        if self.collection.count() == 0:
            return []
        result = self.collection.get(
            where=where,
            include=["embeddings", "metadatas", "documents"],
        )

        items = []
        for item_id, meta, doc, embedding in zip(
            result["ids"], result["metadatas"], result["documents"], result["embeddings"],
        ):
            try:
                items.append(self._metadata_to_item(item_id, meta, doc, embedding))
            except (KeyError, ValueError, TypeError) as e:
                logger.debug(f"ContentStore: skip corrupt entry {item_id}: {e}")

        items.sort(key=lambda i: i.created_at, reverse=True)
        logger.info(f"ContentStore: {len(items)} candidates in last {time_window_hours}h")
        return items[:limit]

    async def search_similar(
        self,
        vector: Sequence[float],
        limit: int,
        score_threshold: float,
    ) -> List[SimilarItem]:
        """Nearest items to vector with cosine similarity >= score_threshold, best first."""
        count = self.collection.count()
        if count == 0 or limit <= 0:
            return []
        result = self.collection.query(
            query_embeddings=[list(vector)],
            n_results=min(limit, count),
            include=["distances"],
        )
        matches = []
        for item_id, distance in zip(result["ids"][0], result["distances"][0]):
            score = 1.0 - float(distance)
            if score >= score_threshold:
                matches.append(SimilarItem(item_id=item_id, score=score))
        return matches

    def get_items(self, item_ids: Sequence[str]) -> List[ContentItem]:
        """Load items by id, preserving the requested order."""
        if not item_ids:
            return []
        result = self.collection.get(
            ids=list(item_ids),
            include=["embeddings", "metadatas", "documents"],
        )
        by_id = {}
        for item_id, meta, doc, embedding in zip(
            result["ids"], result["metadatas"], result["documents"], result["embeddings"],
        ):
            by_id[item_id] = self._metadata_to_item(item_id, meta, doc, embedding)
        return [by_id[i] for i in item_ids if i in by_id]

    def count(self) -> int:
        return self.collection.count()

    def clear(self):
        """Wipe all stored items."""
        self.client.delete_collection(self.collection_name)
        self.collection = self._open_collection()
        logger.info("ContentStore: cleared")

    # ── Serialization helpers ──

    def _item_to_metadata(self, item: ContentItem) -> Dict:
        """ChromaDB metadata values must be str, int, float, or bool (no None)."""
        meta = {
            "author_id": item.author_id,
            "created_at": item.created_at.isoformat(),
            "created_ts": item.created_at.timestamp(),
            "like_count": item.like_count,
            "comment_count": item.comment_count,
            "share_count": item.share_count,
        }
        if item.state:
            meta["state"] = item.state
        if item.city:
            meta["city"] = item.city
        return meta

    def _metadata_to_item(self, item_id: str, meta: Dict, document: Optional[str], embedding) -> ContentItem:
        created = datetime.fromisoformat(meta["created_at"])
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        return ContentItem(
            id=item_id,
            content=document or "",
            embedding=[float(x) for x in embedding],
            author_id=meta.get("author_id", ""),
            created_at=created,
            like_count=meta.get("like_count", 0),
            comment_count=meta.get("comment_count", 0),
            share_count=meta.get("share_count", 0),
            state=meta.get("state"),
            city=meta.get("city"),
        )
