# Tools module
from .llm_service import LLMService
from .provider_manager import ProviderManager
from .content_store import ChromaContentStore
from .topic_cache import CacheEntry, InMemoryCacheStore, TopicCache
from .embeddings import (
    cosine_similarity,
    similarity_to_many,
    compute_centroid,
    dominant_dimension,
)

__all__ = [
    # LLM
    "LLMService",
    "ProviderManager",
    # Storage
    "ChromaContentStore",
    "CacheEntry",
    "InMemoryCacheStore",
    "TopicCache",
    # Embeddings
    "cosine_similarity",
    "similarity_to_many",
    "compute_centroid",
    "dominant_dimension",
]
