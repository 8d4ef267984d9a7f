"""
Cosine similarity and top-K ranking.

Exact full-scan ranking: every candidate is scored. Results are ordered by
descending score; equal scores keep their input order, so repeated calls on
the same inputs return identical lists and a larger k only appends.
"""

import heapq
import math
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from ragstore.errors import DimensionMismatchError

T = TypeVar("T")

# (input position, item, score)
Scored = Tuple[int, T, float]
Selector = Callable[[List[Scored], int], List[Scored]]


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """
    Cosine similarity between two vectors of equal length.

    Raises DimensionMismatchError on length mismatch. A zero vector has no
    direction and scores 0.0 against anything.
    """
    if len(vec_a) != len(vec_b):
        raise DimensionMismatchError(len(vec_a), len(vec_b))

    dot_product = sum(a * b for a, b in zip(vec_a, vec_b))
    norm_a = math.sqrt(sum(a * a for a in vec_a))
    norm_b = math.sqrt(sum(b * b for b in vec_b))

    if norm_a == 0 or norm_b == 0:
        return 0.0

    # Clamp float drift so identical vectors never exceed 1.0
    return max(-1.0, min(1.0, dot_product / (norm_a * norm_b)))


def _rank_key(entry: Scored):
    position, _, score = entry
    return (-score, position)


def full_sort(scored: List[Scored], k: int) -> List[Scored]:
    """Sort everything, keep the first k."""
    return sorted(scored, key=_rank_key)[:k]


def heap_select(scored: List[Scored], k: int) -> List[Scored]:
    """Partial selection of the k best without sorting the whole list."""
    return heapq.nsmallest(k, scored, key=_rank_key)


def top_k(
    query_vector: Sequence[float],
    candidates: Sequence[Tuple[T, Sequence[float]]],
    k: int,
    threshold: Optional[float] = None,
    selector: Selector = heap_select,
) -> List[Tuple[T, float]]:
    """
    Rank candidates against the query and return the best k as (item, score).

    Candidates scoring below threshold (when given) are dropped before the k
    cutoff. Any candidate vector whose length differs from the query raises
    DimensionMismatchError.
    """
    if k <= 0 or not candidates:
        return []

    scored: List[Scored] = []
    for position, (item, vector) in enumerate(candidates):
        score = cosine_similarity(query_vector, vector)
        if threshold is not None and score < threshold:
            continue
        scored.append((position, item, score))

    return [(item, score) for _, item, score in selector(scored, k)]
