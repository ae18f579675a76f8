"""Similarity ranking over embedding vectors."""

import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass

EmbeddingVector = list[float]
DistanceFunction = Callable[[EmbeddingVector, EmbeddingVector], float]


@dataclass(frozen=True)
class RankedEmbedding:
    """A corpus key with its distance from the query (lower is closer)."""

    key: str
    distance: float


def _cosine_similarity(vec_a: EmbeddingVector, vec_b: EmbeddingVector) -> float:
    """Compute cosine similarity between two vectors.

    Args:
        vec_a: First embedding vector.
        vec_b: Second embedding vector.

    Returns:
        Cosine similarity score between -1.0 and 1.0.
    """
    if len(vec_a) != len(vec_b):
        return 0.0

    dot_product = sum(a * b for a, b in zip(vec_a, vec_b, strict=False))
    norm_a = math.sqrt(sum(a * a for a in vec_a))
    norm_b = math.sqrt(sum(b * b for b in vec_b))

    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    return dot_product / (norm_a * norm_b)


def cosine_distance(vec_a: EmbeddingVector, vec_b: EmbeddingVector) -> float:
    """Cosine distance in [0, 2]; 0 means identical direction."""
    return 1.0 - _cosine_similarity(vec_a, vec_b)


def rank_embeddings(
    query: EmbeddingVector,
    corpus: Iterable[tuple[str, EmbeddingVector]],
    count: int,
    distance: DistanceFunction = cosine_distance,
) -> list[RankedEmbedding]:
    """Rank corpus entries by distance to the query.

    Args:
        query: Query embedding.
        corpus: (key, vector) pairs to rank.
        count: Maximum number of results.
        distance: Distance function; lower means more similar.

    Returns:
        Up to ``count`` entries, closest first. Equal distances are ordered by
        key so the result does not depend on corpus iteration order.
    """
    if count <= 0:
        return []

    scored = [
        RankedEmbedding(key=key, distance=distance(query, vector))
        for key, vector in corpus
    ]
    scored.sort(key=lambda r: (r.distance, r.key))
    return scored[:count]
