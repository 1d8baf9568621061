"""
Vector helpers for pre-computed content embeddings.

Embedding generation is external: items arrive with a fixed-dimension vector
(e.g. 384-dim from a MiniLM model). This module only compares and averages
them.

IMPORTANT: All vectors in one run MUST share a dimension. Mixed dimensions
make cosine similarity meaningless, so the engine drops items whose
dimension differs from the run's dominant dimension (see dominant_dimension).
"""

import logging
from collections import Counter
from typing import List, Sequence

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity as _sk_cosine_similarity

logger = logging.getLogger(__name__)


def cosine_similarity(emb1: Sequence[float], emb2: Sequence[float]) -> float:
    """Cosine similarity in [-1, 1]. Zero-norm or mismatched vectors → 0.0."""
    if emb1 is None or emb2 is None or len(emb1) == 0 or len(emb2) == 0:
        return 0.0
    if len(emb1) != len(emb2):
        return 0.0

    vec1 = np.asarray(emb1, dtype=float)
    vec2 = np.asarray(emb2, dtype=float)

    norm1 = np.linalg.norm(vec1)
    norm2 = np.linalg.norm(vec2)
    if norm1 == 0 or norm2 == 0:
        return 0.0

    return float(np.dot(vec1, vec2) / (norm1 * norm2))


def similarity_to_many(
    query: Sequence[float],
    candidates: Sequence[Sequence[float]],
) -> np.ndarray:
    """Cosine similarity of one vector against each row of candidates.

    Zero-norm rows (and a zero-norm query) score 0.0: sklearn normalizes
    zero vectors to zero rather than dividing by zero.
    """
    if len(candidates) == 0:
        return np.array([])
    q = np.asarray(query, dtype=float).reshape(1, -1)
    matrix = np.asarray(candidates, dtype=float)
    return _sk_cosine_similarity(q, matrix)[0]


def compute_centroid(embeddings: Sequence[Sequence[float]]) -> List[float]:
    """Arithmetic mean per dimension. Empty input → []."""
    if len(embeddings) == 0:
        return []
    matrix = np.asarray(embeddings, dtype=float)
    return matrix.mean(axis=0).tolist()


def dominant_dimension(embeddings: Sequence[Sequence[float]]) -> int:
    """Most common non-zero vector length (ties → the larger count seen first)."""
    lengths = Counter(len(e) for e in embeddings if len(e) > 0)
    if not lengths:
        return 0
    return lengths.most_common(1)[0][0]
