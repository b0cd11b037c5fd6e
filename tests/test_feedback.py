"""Tests for the implicit feedback policy."""

import numpy as np
import pytest

from cortexrec.recommender.feedback import (
    InteractionType,
    interaction_for_rating,
    update_preferences_from_interaction,
)
from cortexrec.recommender.models import Item, User

TAGS = ["RPG", "Fantasy", "Open World", "Action", "Adventure", "Indie"]


@pytest.fixture
def item():
    return Item(id=5, title="Dragon Quest", tags=TAGS)


def replay(seed, threshold, tags=TAGS):
    """Tags an identically seeded generator would select."""
    rng = np.random.default_rng(seed)
    return {tag for tag in tags if rng.random() < threshold}


@pytest.mark.parametrize(
    "score, expected",
    [
        (5, InteractionType.RATE_HIGH),
        (4, InteractionType.RATE_HIGH),
        (3, None),
        (2, InteractionType.RATE_LOW),
        (1, InteractionType.RATE_LOW),
    ],
)
def test_interaction_for_rating(score, expected):
    assert interaction_for_rating(score) == expected


def test_view_adds_tags_with_probability(item):
    user = User(id=1)
    update_preferences_from_interaction(
        user, item, InteractionType.VIEW, np.random.default_rng(11)
    )

    assert user.preferred_tags == replay(11, 0.3)
    assert user.wishlist_item_ids == set()


def test_wishlist_adds_item_and_tags_with_probability(item):
    user = User(id=1)
    update_preferences_from_interaction(
        user, item, InteractionType.ADD_TO_WISHLIST, np.random.default_rng(11)
    )

    assert user.wishlist_item_ids == {5}
    assert user.preferred_tags == replay(11, 0.6)


def test_purchase_moves_item_from_wishlist_to_library(item):
    user = User(id=1, wishlist_item_ids={5, 6})
    update_preferences_from_interaction(
        user, item, InteractionType.PURCHASE, np.random.default_rng(0)
    )

    assert user.owns(5)
    assert user.wishlist_item_ids == {6}
    assert user.preferred_tags == set(TAGS)


def test_high_rating_adds_all_tags(item):
    user = User(id=1, preferred_tags={"Puzzle"})
    update_preferences_from_interaction(
        user, item, InteractionType.RATE_HIGH, np.random.default_rng(0)
    )

    assert user.preferred_tags == set(TAGS) | {"Puzzle"}


def test_low_rating_removes_tags_with_probability(item):
    user = User(id=1, preferred_tags=set(TAGS) | {"Puzzle"})
    update_preferences_from_interaction(
        user, item, InteractionType.RATE_LOW, np.random.default_rng(11)
    )

    removed = replay(11, 0.4)
    assert user.preferred_tags == (set(TAGS) - removed) | {"Puzzle"}


def test_view_rate_over_many_trials():
    item = Item(id=1, tags=["RPG"])
    rng = np.random.default_rng(2024)
    hits = 0
    for _ in range(5000):
        user = User(id=1)
        update_preferences_from_interaction(user, item, InteractionType.VIEW, rng)
        hits += "RPG" in user.preferred_tags

    assert hits / 5000 == pytest.approx(0.3, abs=0.03)


def test_returns_same_user(item):
    user = User(id=1)
    result = update_preferences_from_interaction(
        user, item, InteractionType.PURCHASE, np.random.default_rng(0)
    )
    assert result is user
