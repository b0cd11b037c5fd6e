"""Implicit feedback policy.

Purchases, wishlisting, views and ratings adjust a user's preferred tags. The
model is not retrained here: the new tags reach content vectors on the next
full training run, and cold-start users read them immediately.
"""

import logging
from enum import Enum
from typing import Optional

import numpy as np

from cortexrec.recommender.models import Item, User

# Configure module logger
logger = logging.getLogger(__name__)

VIEW_ADD_PROBABILITY = 0.3
WISHLIST_ADD_PROBABILITY = 0.6
LOW_RATING_REMOVE_PROBABILITY = 0.4
HIGH_RATING_THRESHOLD = 4
LOW_RATING_THRESHOLD = 2


class InteractionType(str, Enum):
    """Types of user interactions for implicit feedback."""

    VIEW = "view"
    ADD_TO_WISHLIST = "add_to_wishlist"
    PURCHASE = "purchase"
    RATE_HIGH = "rate_high"
    RATE_LOW = "rate_low"


def interaction_for_rating(score: int) -> Optional[InteractionType]:
    """Map an explicit score to its feedback interaction.

    4 and 5 count as a high rating, 1 and 2 as a low one; 3 is neutral.
    """
    if score >= HIGH_RATING_THRESHOLD:
        return InteractionType.RATE_HIGH
    if score <= LOW_RATING_THRESHOLD:
        return InteractionType.RATE_LOW
    return None


def update_preferences_from_interaction(
    user: User,
    item: Item,
    interaction: InteractionType,
    rng: np.random.Generator,
) -> User:
    """Update a user's preferred tags from one interaction.

    Args:
        user: User to update in place.
        item: Item the user interacted with.
        interaction: Kind of interaction.
        rng: Seeded random generator deciding the stochastic tag changes.

    Returns:
        The same user, for chaining.
    """
    if interaction == InteractionType.VIEW:
        for tag in item.tags:
            if rng.random() < VIEW_ADD_PROBABILITY:
                user.preferred_tags.add(tag)

    elif interaction == InteractionType.ADD_TO_WISHLIST:
        user.wishlist_item_ids.add(item.id)
        for tag in item.tags:
            if rng.random() < WISHLIST_ADD_PROBABILITY:
                user.preferred_tags.add(tag)

    elif interaction == InteractionType.PURCHASE:
        user.owned_item_ids.add(item.id)
        user.wishlist_item_ids.discard(item.id)
        user.preferred_tags.update(item.tags)

    elif interaction == InteractionType.RATE_HIGH:
        user.preferred_tags.update(item.tags)

    elif interaction == InteractionType.RATE_LOW:
        for tag in item.tags:
            if rng.random() < LOW_RATING_REMOVE_PROBABILITY:
                user.preferred_tags.discard(tag)

    logger.debug(
        f"Updated preferences for user {user.id} from {interaction.value} on item {item.id}"
    )
    return user
