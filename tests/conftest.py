"""Shared fixtures: a small, deterministic game library.

Users 1-4 love RPGs and dislike sports games, users 5-8 the reverse. Each
user rates every game whose id plus the user's id is divisible by three,
which gives 54 ratings spread over both genres.
"""

from datetime import date, datetime, timedelta
from typing import List

import pytest

from cortexrec.recommender.config import EngineConfig
from cortexrec.recommender.models import Item, Rating, User, UserRole
from cortexrec.recommender.service import RecommendationService
from cortexrec.store import InMemoryInteractionStore

RATED_AT = datetime(2025, 1, 1, 12, 0, 0)


def make_items() -> List[Item]:
    items = []
    for item_id in range(1, 21):
        if item_id <= 10:
            tags = ["RPG", "Fantasy"] if item_id % 2 else ["RPG", "Fantasy", "Open World"]
        else:
            tags = ["Sports", "Racing"] if item_id % 2 else ["Sports", "Multiplayer"]
        items.append(
            Item(
                id=item_id,
                title=f"Game {item_id}",
                tags=tags,
                rating=round(3.0 + (item_id % 5) * 0.4, 1),
                rating_count=item_id * 10,
                release_date=date(2024, 1, 1) + timedelta(days=item_id * 30),
                developer="Nordlight",
            )
        )
    return items


def make_users() -> List[User]:
    users = []
    for user_id in range(1, 9):
        users.append(
            User(
                id=user_id,
                username=f"player{user_id}",
                role=UserRole.ADMIN if user_id == 1 else UserRole.USER,
                preferred_tags={"RPG"} if user_id <= 4 else {"Sports"},
            )
        )
    # Player 1 owns two RPGs, one of them rated
    users[0].owned_item_ids.update({2, 4})
    return users


def make_ratings(users: List[User], items: List[Item]) -> List[Rating]:
    ratings = []
    for user in users:
        likes_rpg = user.id <= 4
        for item in items:
            if (item.id + user.id) % 3:
                continue
            is_rpg = "RPG" in item.tags
            ratings.append(
                Rating(
                    user_id=user.id,
                    item_id=item.id,
                    rating=5 if is_rpg == likes_rpg else 1,
                    created_at=RATED_AT,
                )
            )
    return ratings


@pytest.fixture
def items() -> List[Item]:
    return make_items()


@pytest.fixture
def users() -> List[User]:
    return make_users()


@pytest.fixture
def ratings(users, items) -> List[Rating]:
    return make_ratings(users, items)


@pytest.fixture
def store(users, items, ratings) -> InMemoryInteractionStore:
    return InMemoryInteractionStore(users=users, items=items, ratings=ratings)


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def trained_service(config, users, items, ratings) -> RecommendationService:
    service = RecommendationService(config)
    assert service.train(users, items, ratings)
    yield service
    service.shutdown()
