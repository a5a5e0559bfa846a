"""Cosine similarity, greedy deduplication and candidate-pair ranking."""

from dataclasses import dataclass
from typing import Generic, List, Sequence, Set, TypeVar

import numpy as np

IdType = TypeVar("IdType")


@dataclass(frozen=True)
class RankedPair(Generic[IdType]):
    source_id: IdType
    target_id: IdType
    similarity: float
    batch_index: int


def similarity_matrix(embeddings: Sequence[Sequence[float]]) -> np.ndarray:
    """Pairwise cosine similarity; rows with zero norm compare as 0 to everything."""
    if len(embeddings) == 0:
        return np.zeros((0, 0))
    vectors = np.asarray(embeddings, dtype=np.float64)
    norms = np.linalg.norm(vectors, axis=1)
    safe = np.where(norms == 0, 1.0, norms)
    unit = vectors / safe[:, None]
    unit[norms == 0] = 0.0
    return unit @ unit.T


def greedy_dedup(matrix: np.ndarray, threshold: float) -> List[int]:
    """Indices merged away by one greedy pass in index order.

    For each ``i`` not yet merged, every later ``j`` not yet merged with
    ``sim(i, j) >= threshold`` is merged. This is not a clustering: if A~B
    and B~C but not A~C, the pass visits A first, merges B, and then C is
    only compared against survivors.
    """
    count = matrix.shape[0]
    merged: Set[int] = set()
    order: List[int] = []
    for i in range(count):
        if i in merged:
            continue
        for j in range(i + 1, count):
            if j in merged:
                continue
            if matrix[i, j] >= threshold:
                merged.add(j)
                order.append(j)
    return order


def candidate_pairs(
    ids: Sequence[IdType],
    matrix: np.ndarray,
    threshold: float,
    batch_size: int,
) -> List[RankedPair[IdType]]:
    """Unordered pairs above ``threshold`` ranked by descending similarity.

    ``batch_index`` is ``rank // batch_size``. The comparison is strict, so
    a pair exactly at the threshold is excluded.
    """
    pairs = []
    count = len(ids)
    for i in range(count):
        for j in range(i + 1, count):
            similarity = float(matrix[i, j])
            if similarity > threshold:
                pairs.append((ids[i], ids[j], similarity))

    # Stable sort keeps index order among equal similarities
    pairs.sort(key=lambda pair: pair[2], reverse=True)
    return [
        RankedPair(source_id=s, target_id=t, similarity=sim, batch_index=rank // batch_size)
        for rank, (s, t, sim) in enumerate(pairs)
    ]


def batch_count(pair_count: int, batch_size: int) -> int:
    return -(-pair_count // batch_size)
