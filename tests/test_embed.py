"""Tests for tag embedding learning."""

import numpy as np
import pytest

from cortexrec.recommender.embed import (
    collect_tags,
    initialize_tag_embeddings,
    learn_tag_embeddings,
)
from cortexrec.recommender.models import Item


@pytest.fixture
def tagged_items():
    """Fixture providing items where RPG and Fantasy always co-occur."""
    return [
        Item(id=1, tags=["RPG", "Fantasy"]),
        Item(id=2, tags=["RPG", "Fantasy", "Open World"]),
        Item(id=3, tags=["Sports", "Racing"]),
        Item(id=4, tags=["Puzzle"]),
        Item(id=5, tags=[]),
    ]


def initial_table(items, dim=8, seed=42):
    return initialize_tag_embeddings(collect_tags(items), dim, np.random.default_rng(seed))


def distance(table, a, b):
    return float(np.linalg.norm(table.get_embedding(a) - table.get_embedding(b)))


def test_collect_tags_is_sorted_and_distinct(tagged_items):
    assert collect_tags(tagged_items) == [
        "Fantasy", "Open World", "Puzzle", "RPG", "Racing", "Sports",
    ]


def test_table_shape(tagged_items):
    table = learn_tag_embeddings(tagged_items, embedding_dim=8, rng=np.random.default_rng(42))

    assert len(table) == 6
    assert table.embedding_dim == 8
    assert "RPG" in table
    assert "Strategy" not in table
    assert table.get_embedding("Strategy") is None


def test_co_occurring_tags_move_together(tagged_items):
    before = initial_table(tagged_items)
    after = learn_tag_embeddings(tagged_items, embedding_dim=8, rng=np.random.default_rng(42))

    assert distance(after, "RPG", "Fantasy") < distance(before, "RPG", "Fantasy")
    assert distance(after, "Sports", "Racing") < distance(before, "Sports", "Racing")


def test_isolated_tag_keeps_initial_vector(tagged_items):
    before = initial_table(tagged_items)
    after = learn_tag_embeddings(tagged_items, embedding_dim=8, rng=np.random.default_rng(42))

    np.testing.assert_array_equal(after.get_embedding("Puzzle"), before.get_embedding("Puzzle"))


def test_zero_epochs_returns_initialization(tagged_items):
    before = initial_table(tagged_items)
    after = learn_tag_embeddings(
        tagged_items, embedding_dim=8, epochs=0, rng=np.random.default_rng(42)
    )

    np.testing.assert_array_equal(after.embeddings, before.embeddings)


def test_learning_is_deterministic(tagged_items):
    first = learn_tag_embeddings(tagged_items, rng=np.random.default_rng(7))
    second = learn_tag_embeddings(tagged_items, rng=np.random.default_rng(7))

    np.testing.assert_array_equal(first.embeddings, second.embeddings)


def test_learned_table_is_read_only(tagged_items):
    table = learn_tag_embeddings(tagged_items)

    with pytest.raises(ValueError):
        table.embeddings[0, 0] = 1.0


def test_mean_embedding_ignores_unknown_tags(tagged_items):
    table = learn_tag_embeddings(tagged_items)

    expected = (table.get_embedding("RPG") + table.get_embedding("Fantasy")) / 2
    np.testing.assert_allclose(table.mean_embedding(["RPG", "Fantasy", "Unknown"]), expected)
    assert table.mean_embedding(["Unknown"]) is None
    assert table.mean_embedding([]) is None
