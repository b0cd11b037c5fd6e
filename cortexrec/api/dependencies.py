"""Request-scoped access to the objects the application factory created."""

import numpy as np
from fastapi import Request

from cortexrec.api.exceptions import ItemNotFoundError, UserNotFoundError
from cortexrec.api.metrics import MetricsTracker
from cortexrec.recommender.models import Item, User
from cortexrec.recommender.service import RecommendationService
from cortexrec.store import InMemoryInteractionStore


def get_service(request: Request) -> RecommendationService:
    return request.app.state.service


def get_store(request: Request) -> InMemoryInteractionStore:
    return request.app.state.store


def get_metrics(request: Request) -> MetricsTracker:
    return request.app.state.metrics


def get_feedback_rng(request: Request) -> np.random.Generator:
    return request.app.state.feedback_rng


def require_user(store: InMemoryInteractionStore, user_id: int) -> User:
    user = store.get_user(user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


def require_item(store: InMemoryInteractionStore, item_id: int) -> Item:
    item = store.get_item(item_id)
    if item is None:
        raise ItemNotFoundError(item_id)
    return item
