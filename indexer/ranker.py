# SiteChat Retrieval Ranker
# Ranks stored chunks against a query vector by cosine similarity

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Sequence

import numpy as np

logger = logging.getLogger(__name__)


class RankCandidate(Protocol):
    """Anything with chunk text, metadata and an embedding vector."""
    text: str
    metadata: Dict[str, Any]
    embedding: Sequence[float]


@dataclass(frozen=True)
class RetrievalResult:
    """A chunk scored against a query."""
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    similarity: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "metadata": dict(self.metadata), "similarity": self.similarity}


def cosine_similarity(a, b) -> float:
    """Calculate cosine similarity between two vectors; 0.0 if either is zero"""
    a = np.asarray(a, dtype=np.float32)
    b = np.asarray(b, dtype=np.float32)
    if a.shape != b.shape:
        raise ValueError(f"Vector dimensions differ: {a.shape[0]} vs {b.shape[0]}")

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = float(np.dot(a, b) / (norm_a * norm_b))
    return max(-1.0, min(1.0, similarity))


def rank(query_vector: Sequence[float],
         candidates: Sequence[RankCandidate],
         top_k: int = 5) -> List[RetrievalResult]:
    """
    Rank candidates by cosine similarity to the query vector

    Args:
        query_vector: Query embedding
        candidates: Chunks carrying text, metadata and embedding
        top_k: Number of results to return

    Returns:
        At most top_k results, most similar first; equal scores keep input order
    """
    if top_k < 0:
        raise ValueError("top_k cannot be negative")
    if top_k == 0 or not candidates:
        return []

    query = np.asarray(query_vector, dtype=np.float32)
    matrix = np.asarray([candidate.embedding for candidate in candidates], dtype=np.float32)
    if matrix.ndim != 2 or matrix.shape[1] != query.shape[0]:
        raise ValueError(
            f"Candidate embedding dimension {matrix.shape[-1]} does not match query dimension {query.shape[0]}"
        )

    query_norm = np.linalg.norm(query)
    row_norms = np.linalg.norm(matrix, axis=1)
    denominators = row_norms * query_norm

    similarities = np.zeros(len(candidates), dtype=np.float32)
    nonzero = denominators > 0
    similarities[nonzero] = (matrix[nonzero] @ query) / denominators[nonzero]
    similarities = np.clip(similarities, -1.0, 1.0)

    # Stable sort on the negated scores keeps insertion order for ties
    order = np.argsort(-similarities, kind="stable")[:top_k]

    results = [
        RetrievalResult(
            text=candidates[i].text,
            metadata=dict(candidates[i].metadata or {}),
            similarity=float(similarities[i]),
        )
        for i in order
    ]
    logger.debug(f"Ranked {len(candidates)} candidates, returning {len(results)}")
    return results
