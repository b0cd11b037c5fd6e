"""Tests for the recommendation engine utilities."""

from datetime import datetime

import numpy as np
import pytest

from cortexrec.recommender.models import Item, Rating
from cortexrec.recommender.utils import (
    build_index_map,
    build_rating_matrix,
    cosine_scores,
    cosine_similarity,
    deduplicate_ratings,
    matrix_density,
    rank_by_popularity,
    rank_by_score,
)


def test_build_index_map_keeps_first_seen_order():
    index_map = build_index_map([7, 3, 7, 9])
    assert index_map == {7: 0, 3: 1, 9: 2}


def test_deduplicate_ratings_keeps_latest():
    early = datetime(2025, 1, 1)
    late = datetime(2025, 2, 1)
    ratings = [
        Rating(user_id=1, item_id=1, rating=5, created_at=late),
        Rating(user_id=1, item_id=1, rating=2, created_at=early),
        Rating(user_id=1, item_id=2, rating=3, created_at=early),
        Rating(user_id=1, item_id=2, rating=4, created_at=early),
    ]
    deduplicated = deduplicate_ratings(ratings)

    assert [(r.item_id, r.rating) for r in deduplicated] == [(1, 5), (2, 4)]


class TestCosineSimilarity:
    def test_symmetric(self):
        a = np.array([1.0, 2.0, -0.5])
        b = np.array([0.3, -1.0, 2.0])
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))

    def test_self_similarity_is_one(self):
        v = np.array([0.2, -0.7, 1.5, 3.0])
        assert cosine_similarity(v, v) == pytest.approx(1.0)

    def test_opposite_vectors(self):
        v = np.array([1.0, 1.0])
        assert cosine_similarity(v, -v) == pytest.approx(-1.0)

    def test_zero_vector_scores_zero(self):
        v = np.array([1.0, 2.0])
        assert cosine_similarity(v, np.zeros(2)) == 0.0
        assert cosine_similarity(np.zeros(2), np.zeros(2)) == 0.0

    def test_mismatched_shapes_score_zero(self):
        assert cosine_similarity(np.ones(2), np.ones(3)) == 0.0


def test_cosine_scores_matches_pairwise_similarity():
    vector = np.array([1.0, 0.0])
    matrix = np.array([[1.0, 0.0], [0.0, 1.0], [-1.0, 0.0], [0.0, 0.0]])

    scores = cosine_scores(vector, matrix)

    np.testing.assert_allclose(scores, [1.0, 0.0, -1.0, 0.0], atol=1e-12)


def test_rank_by_score_is_stable_on_ties():
    ranked = rank_by_score(["a", "b", "c", "d"], [1.0, 3.0, 1.0, 3.0], count=3)
    assert ranked == ["b", "d", "a"]


def test_rank_by_score_with_non_positive_count():
    assert rank_by_score(["a"], [1.0], count=0) == []


def test_rank_by_popularity_orders_by_item_rating():
    items = [Item(id=1, rating=4.0), Item(id=2, rating=3.0), Item(id=3, rating=4.5)]

    ranked = rank_by_popularity(items, count=2, exclude=lambda item: item.id == 3)

    assert [item.id for item in ranked] == [1, 2]


def test_build_rating_matrix_skips_unknown_ids():
    ratings = [
        Rating(user_id=1, item_id=10, rating=5),
        Rating(user_id=2, item_id=20, rating=3),
        Rating(user_id=99, item_id=10, rating=1),
    ]
    matrix = build_rating_matrix(ratings, {1: 0, 2: 1}, {10: 0, 20: 1, 30: 2})

    assert matrix.shape == (2, 3)
    assert matrix.nnz == 2
    assert matrix[0, 0] == 5.0
    assert matrix_density(matrix) == pytest.approx(2 / 6)
