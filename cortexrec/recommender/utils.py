"""Utility functions for the recommendation engine.

This module provides the id-to-index mapping helpers, the cosine similarity
used everywhere in the engine, the popularity ranking fallback and the sparse
rating matrix used for model statistics.
"""

import logging
from typing import Callable, Dict, Iterable, List, Sequence, Tuple, TypeVar

import numpy as np
from scipy.sparse import csr_matrix
from sklearn.metrics.pairwise import cosine_similarity as pairwise_cosine

from cortexrec.recommender.models import Item, Rating

# Configure module logger
logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_index_map(ids: Iterable[int]) -> Dict[int, int]:
    """Assign a dense row index to every distinct id, in first-seen order.

    Args:
        ids: Entity identifiers. Duplicates keep their first index.

    Returns:
        Dictionary mapping id to row index.

    Example:
        >>> build_index_map([7, 3, 7, 9])
        {7: 0, 3: 1, 9: 2}
    """
    index_map: Dict[int, int] = {}
    for entity_id in ids:
        if entity_id not in index_map:
            index_map[entity_id] = len(index_map)
    return index_map


def deduplicate_ratings(ratings: Iterable[Rating]) -> List[Rating]:
    """Collapse ratings to one per (user, item) pair.

    The latest rating by ``created_at`` wins; on equal timestamps the later
    record in the input wins. Output keeps first-seen pair order.
    """
    latest: Dict[Tuple[int, int], Rating] = {}
    for rating in ratings:
        key = (rating.user_id, rating.item_id)
        current = latest.get(key)
        if current is None or rating.created_at >= current.created_at:
            latest[key] = rating
    return list(latest.values())


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity of two vectors.

    Returns 0.0 when either vector has zero norm or the shapes differ, so
    degenerate vectors never cause a division by zero.
    """
    if a is None or b is None:
        return 0.0
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        return 0.0

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(a, b) / (norm_a * norm_b))


def cosine_scores(vector: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of one vector against every row of a matrix.

    Zero rows (and a zero query vector) score 0.0.
    """
    matrix = np.atleast_2d(np.asarray(matrix, dtype=np.float64))
    if matrix.shape[0] == 0:
        return np.zeros(0)
    vector = np.asarray(vector, dtype=np.float64).reshape(1, -1)
    return pairwise_cosine(vector, matrix)[0]


def rank_by_score(
    candidates: Sequence[T],
    scores: Sequence[float],
    count: int,
) -> List[T]:
    """Return the top ``count`` candidates by descending score.

    Ties keep the candidates' input order.
    """
    if count <= 0:
        return []
    order = sorted(range(len(candidates)), key=lambda i: scores[i], reverse=True)
    return [candidates[i] for i in order[:count]]


def rank_by_popularity(
    items: Sequence[Item],
    count: int,
    exclude: Callable[[Item], bool] = lambda item: False,
) -> List[Item]:
    """Popularity fallback: items by quality rating, highest first."""
    remaining = [item for item in items if not exclude(item)]
    return rank_by_score(remaining, [item.rating for item in remaining], count)


def build_rating_matrix(
    ratings: Sequence[Rating],
    user_id_to_idx: Dict[int, int],
    item_id_to_idx: Dict[int, int],
) -> csr_matrix:
    """Build a sparse user x item matrix of explicit ratings.

    Ratings for ids missing from either map are skipped.
    """
    rows, cols, data = [], [], []
    for rating in ratings:
        user_idx = user_id_to_idx.get(rating.user_id)
        item_idx = item_id_to_idx.get(rating.item_id)
        if user_idx is None or item_idx is None:
            continue
        rows.append(user_idx)
        cols.append(item_idx)
        data.append(float(rating.rating))

    matrix = csr_matrix(
        (np.asarray(data, dtype=np.float32), (rows, cols)),
        shape=(len(user_id_to_idx), len(item_id_to_idx)),
        dtype=np.float32,
    )
    matrix.eliminate_zeros()
    return matrix


def matrix_density(matrix: csr_matrix) -> float:
    n_users, n_items = matrix.shape
    if n_users == 0 or n_items == 0:
        return 0.0
    return matrix.nnz / (n_users * n_items)
