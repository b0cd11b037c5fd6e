"""Tests for item content vectors and user preference vectors."""

import numpy as np
import pytest

from cortexrec.recommender.content import (
    build_ad_hoc_preference_vector,
    build_item_content_vectors,
    build_user_preference_vectors,
    collect_user_ratings,
    content_vector_for_tags,
)
from cortexrec.recommender.embed import TagEmbeddingTable
from cortexrec.recommender.models import Item, Rating, User


@pytest.fixture
def table():
    """Fixture providing a hand-made 2-d tag table."""
    embeddings = np.array([[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
    return TagEmbeddingTable(embeddings, {"Action": 0, "Puzzle": 1, "Mixed": 2})


@pytest.fixture
def items():
    return [
        Item(id=10, tags=["Action"]),
        Item(id=20, tags=["Puzzle"]),
        Item(id=30, tags=["Action", "Puzzle"]),
        Item(id=40, tags=["Unknown"]),
        Item(id=50, tags=[]),
    ]


def test_content_vector_is_mean_of_known_tags(table):
    np.testing.assert_allclose(
        content_vector_for_tags(["Action", "Puzzle", "Unknown"], table), [0.5, 0.5]
    )


def test_content_vector_without_known_tags_is_zero(table):
    np.testing.assert_array_equal(content_vector_for_tags(["Unknown"], table), [0.0, 0.0])


def test_item_content_vectors(table, items):
    item_map = {item.id: idx for idx, item in enumerate(items)}
    vectors = build_item_content_vectors(items, item_map, table)

    assert vectors.shape == (5, 2)
    np.testing.assert_allclose(vectors[0], [1.0, 0.0])
    np.testing.assert_allclose(vectors[2], [0.5, 0.5])
    np.testing.assert_array_equal(vectors[3], [0.0, 0.0])
    np.testing.assert_array_equal(vectors[4], [0.0, 0.0])


def test_user_preference_weights_ratings_and_ownership(table, items):
    # A 5 on an Action game (weight 1.0) and an unrated owned Puzzle game (weight 0.5)
    user = User(id=1, owned_item_ids={20})
    ratings = {1: {10: Rating(user_id=1, item_id=10, rating=5)}}

    vectors = build_user_preference_vectors(
        [user], items, ratings, {1: 0}, table, owned_weight=0.5
    )

    np.testing.assert_allclose(vectors[0], [1.0 / 1.5, 0.5 / 1.5])


def test_owned_and_rated_item_counts_once(table, items):
    user = User(id=1, owned_item_ids={10})
    ratings = {1: {10: Rating(user_id=1, item_id=10, rating=1)}}

    vectors = build_user_preference_vectors(
        [user], items, ratings, {1: 0}, table, owned_weight=0.5
    )

    # Only the 0.2-weighted rating contributes, so the mean is the Action vector
    np.testing.assert_allclose(vectors[0], [1.0, 0.0])


def test_user_without_signal_gets_zero_vector(table, items):
    user = User(id=1, owned_item_ids={40})
    vectors = build_user_preference_vectors([user], items, {}, {1: 0}, table)

    np.testing.assert_array_equal(vectors[0], [0.0, 0.0])


def test_ad_hoc_preference_vector(table):
    np.testing.assert_allclose(
        build_ad_hoc_preference_vector({"Action", "Mixed"}, table), [1.0, 0.5]
    )
    assert build_ad_hoc_preference_vector({"Unknown"}, table) is None
    assert build_ad_hoc_preference_vector(set(), table) is None


def test_collect_user_ratings_prefers_rating_list():
    user = User(id=1)
    user.upsert_rating(Rating(user_id=1, item_id=10, rating=2))
    listed = [
        Rating(user_id=1, item_id=10, rating=5),
        Rating(user_id=2, item_id=20, rating=3),
    ]

    merged = collect_user_ratings([user], listed)

    assert merged[1][10].rating == 5
    assert merged[2][20].rating == 3
