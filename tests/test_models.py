"""Tests for the domain records."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from cortexrec.recommender.models import Item, Rating, User, UserRole


@pytest.mark.parametrize("score", [0, 6, -1])
def test_rating_outside_scale_is_rejected(score):
    with pytest.raises(ValidationError):
        Rating(user_id=1, item_id=1, rating=score)


@pytest.mark.parametrize("score", [1, 3, 5])
def test_rating_on_scale_is_accepted(score):
    rating = Rating(user_id=1, item_id=2, rating=score)
    assert rating.rating == score
    assert isinstance(rating.created_at, datetime)


def test_item_tags_are_deduplicated_and_stripped():
    item = Item(id=1, tags=["RPG", " RPG", "", "Fantasy", "RPG"])
    assert item.tags == ["RPG", "Fantasy"]


def test_item_defaults():
    item = Item(id=7)
    assert item.tags == []
    assert item.rating == 0.0
    assert item.release_date is None


def test_user_upsert_replaces_rating_of_same_item():
    user = User(id=1)
    user.upsert_rating(Rating(user_id=1, item_id=10, rating=2))
    user.upsert_rating(Rating(user_id=1, item_id=10, rating=5))

    assert len(user.ratings) == 1
    assert user.ratings[10].rating == 5


def test_user_upsert_rejects_foreign_rating():
    user = User(id=1)
    with pytest.raises(ValueError, match="belongs to user 2"):
        user.upsert_rating(Rating(user_id=2, item_id=10, rating=4))


def test_roles_grant_capabilities():
    admin = User(id=1, role=UserRole.ADMIN)
    player = User(id=2)

    assert admin.is_admin
    assert admin.has_capability("train_model")
    assert admin.has_capability("rate")

    assert not player.is_admin
    assert player.has_capability("purchase")
    assert not player.has_capability("manage_catalog")


def test_owns():
    user = User(id=1, owned_item_ids={3, 4})
    assert user.owns(3)
    assert not user.owns(5)
