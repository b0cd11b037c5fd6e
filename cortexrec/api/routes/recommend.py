"""Recommendation endpoints for the CortexRec API.

This module provides API endpoints for personalized recommendations, similar
items, similar users and trending items.
"""

import logging
import time
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from cortexrec.api.dependencies import (
    get_metrics,
    get_service,
    get_store,
    require_item,
    require_user,
)
from cortexrec.api.exceptions import CortexRecException, RecommendationError
from cortexrec.api.metrics import MetricsTracker
from cortexrec.recommender.models import Item, User
from cortexrec.recommender.service import RecommendationService
from cortexrec.store import InMemoryInteractionStore

# Configure module logger
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/recommend",
    tags=["recommendations"],
)

DEFAULT_TOP_N = 10
MAX_TOP_N = 100


class ItemSummary(BaseModel):
    """Public view of a catalog item."""

    id: int
    title: str
    tags: List[str]
    rating: float

    @classmethod
    def from_item(cls, item: Item) -> "ItemSummary":
        return cls(id=item.id, title=item.title, tags=item.tags, rating=item.rating)


class UserSummary(BaseModel):
    id: int
    username: str

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(id=user.id, username=user.username)


class RecommendationResponse(BaseModel):
    """Response model for recommendation requests.

    Attributes:
        user_id: The user ID for which recommendations were generated.
        recommendations: Recommended items, best first.
        method: Strategy used: hybrid, cold_start or popularity.
        model_trained: Whether a trained model was available.
        scores: Per-item score breakdown, only when explain=true.
    """

    user_id: int = Field(..., description="User ID for recommendations")
    recommendations: List[ItemSummary] = Field(..., description="Recommended items")
    method: str = Field(..., description="Recommendation strategy used")
    model_trained: bool
    scores: Optional[Dict[int, Dict[str, float]]] = None


class SimilarItemsResponse(BaseModel):
    item_id: int
    similar_items: List[ItemSummary]


class SimilarUsersResponse(BaseModel):
    user_id: int
    similar_users: List[UserSummary]


class TrendingResponse(BaseModel):
    items: List[ItemSummary]


@router.get("/trending", response_model=TrendingResponse)
def get_trending(
    top_n: int = Query(DEFAULT_TOP_N, ge=1, le=MAX_TOP_N),
    service: RecommendationService = Depends(get_service),
    store: InMemoryInteractionStore = Depends(get_store),
) -> TrendingResponse:
    """Items released in the last six months, best rated first."""
    items = service.get_trending_items(store.list_items(), top_n)
    return TrendingResponse(items=[ItemSummary.from_item(item) for item in items])


@router.get("/items/{item_id}/similar", response_model=SimilarItemsResponse)
def get_similar_items(
    item_id: int,
    top_n: int = Query(DEFAULT_TOP_N, ge=1, le=MAX_TOP_N),
    service: RecommendationService = Depends(get_service),
    store: InMemoryInteractionStore = Depends(get_store),
) -> SimilarItemsResponse:
    """Get items similar to a catalog item."""
    target = require_item(store, item_id)
    try:
        similar = service.get_similar_items(target, store.list_items(), top_n)
    except Exception as e:
        logger.error(f"Error finding items similar to {item_id}: {e}", exc_info=True)
        raise RecommendationError("find similar items", e)

    return SimilarItemsResponse(
        item_id=item_id,
        similar_items=[ItemSummary.from_item(item) for item in similar],
    )


@router.get("/users/{user_id}/similar", response_model=SimilarUsersResponse)
def get_similar_users(
    user_id: int,
    top_n: int = Query(DEFAULT_TOP_N, ge=1, le=MAX_TOP_N),
    service: RecommendationService = Depends(get_service),
    store: InMemoryInteractionStore = Depends(get_store),
) -> SimilarUsersResponse:
    """Get users with similar taste. Empty while the model is untrained."""
    user = require_user(store, user_id)
    similar = service.find_similar_users(user, store.list_users(), top_n)
    return SimilarUsersResponse(
        user_id=user_id,
        similar_users=[UserSummary.from_user(other) for other in similar],
    )


@router.get("/{user_id}", response_model=RecommendationResponse)
def get_recommendations(
    user_id: int,
    top_n: int = Query(DEFAULT_TOP_N, ge=1, le=MAX_TOP_N),
    explain: bool = False,
    service: RecommendationService = Depends(get_service),
    store: InMemoryInteractionStore = Depends(get_store),
    metrics: MetricsTracker = Depends(get_metrics),
) -> RecommendationResponse:
    """Get personalized recommendations for a user.

    Args:
        user_id: User ID for which to generate recommendations.
        top_n: Number of recommendations to return (default: 10).
        explain: If true, include the per-item score breakdown.

    Returns:
        RecommendationResponse with the recommended items.

    Raises:
        UserNotFoundError: If the user is not in the store.
        RecommendationError: If scoring fails unexpectedly.

    Example:
        GET /recommend/42?top_n=5&explain=true
    """
    start_time = time.time()
    user = require_user(store, user_id)
    logger.info(f"Generating recommendations for user {user_id}, top_n={top_n}")

    try:
        method, items, scores = service.explain_recommendations(
            user, store.list_items(), top_n
        )
    except CortexRecException:
        raise
    except Exception as e:
        logger.error(
            f"Error generating recommendations for user {user_id}: {e}",
            exc_info=True,
        )
        raise RecommendationError("generate recommendations", e)

    metrics.record_inference((time.time() - start_time) * 1000)

    return RecommendationResponse(
        user_id=user_id,
        recommendations=[ItemSummary.from_item(item) for item in items],
        method=method,
        model_trained=service.is_trained(),
        scores=scores if explain else None,
    )
