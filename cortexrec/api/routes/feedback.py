"""Rating and interaction endpoints.

Rating writes are validated here, at the boundary, before the engine sees
them. Every accepted rating also feeds the implicit feedback policy and the
online model update.
"""

import logging
from typing import List, Optional

import numpy as np
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from cortexrec.api.dependencies import (
    get_feedback_rng,
    get_metrics,
    get_service,
    get_store,
    require_item,
    require_user,
)
from cortexrec.api.metrics import MetricsTracker
from cortexrec.recommender.feedback import (
    InteractionType,
    interaction_for_rating,
    update_preferences_from_interaction,
)
from cortexrec.recommender.models import MAX_RATING, MIN_RATING, Rating
from cortexrec.recommender.service import RecommendationService
from cortexrec.store import InMemoryInteractionStore

# Configure module logger
logger = logging.getLogger(__name__)

router = APIRouter(tags=["feedback"])


class RatingRequest(BaseModel):
    user_id: int
    item_id: int
    rating: int = Field(..., ge=MIN_RATING, le=MAX_RATING, description="Score from 1 to 5")
    review: Optional[str] = None


class RatingResponse(BaseModel):
    user_id: int
    item_id: int
    rating: int
    replaced_previous: bool
    model_updated: bool


class InteractionRequest(BaseModel):
    user_id: int
    item_id: int
    interaction: InteractionType


class InteractionResponse(BaseModel):
    user_id: int
    preferred_tags: List[str]


@router.post("/ratings", response_model=RatingResponse)
def submit_rating(
    request: RatingRequest,
    service: RecommendationService = Depends(get_service),
    store: InMemoryInteractionStore = Depends(get_store),
    metrics: MetricsTracker = Depends(get_metrics),
    rng: np.random.Generator = Depends(get_feedback_rng),
) -> RatingResponse:
    """Create or replace a user's rating of an item.

    The rating is stored, the user's preferred tags are adjusted (high ratings
    add the item's tags, low ratings may remove them) and the live model gets
    one online update.
    """
    user = require_user(store, request.user_id)
    item = require_item(store, request.item_id)

    rating = Rating(
        user_id=request.user_id,
        item_id=request.item_id,
        rating=request.rating,
        review=request.review,
    )
    previous = store.upsert_rating(rating)

    interaction = interaction_for_rating(rating.rating)
    if interaction is not None:
        update_preferences_from_interaction(user, item, interaction, rng)

    model_updated = service.on_new_rating(rating)
    if model_updated:
        metrics.record_online_update()

    logger.info(
        "Rating stored",
        extra={
            "user_id": rating.user_id,
            "item_id": rating.item_id,
            "rating": rating.rating,
            "model_updated": model_updated,
        },
    )

    return RatingResponse(
        user_id=rating.user_id,
        item_id=rating.item_id,
        rating=rating.rating,
        replaced_previous=previous is not None,
        model_updated=model_updated,
    )


@router.post("/interactions", response_model=InteractionResponse)
def record_interaction(
    request: InteractionRequest,
    store: InMemoryInteractionStore = Depends(get_store),
    rng: np.random.Generator = Depends(get_feedback_rng),
) -> InteractionResponse:
    """Record a view, wishlist, purchase or rating interaction."""
    user = require_user(store, request.user_id)
    item = require_item(store, request.item_id)

    update_preferences_from_interaction(user, item, request.interaction, rng)

    return InteractionResponse(
        user_id=user.id,
        preferred_tags=sorted(user.preferred_tags),
    )
