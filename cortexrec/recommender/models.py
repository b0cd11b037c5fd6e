"""Domain records handed to the recommendation engine.

Users, items and ratings arrive from the interaction store as plain in-memory
records. They are pydantic models so that malformed input (for example a
rating outside 1-5) is rejected where the record is built, before it can reach
the engine.
"""

from datetime import date, datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Set

from pydantic import BaseModel, Field, field_validator

MIN_RATING = 1
MAX_RATING = 5


class UserRole(str, Enum):
    """Role carried by every user."""

    USER = "user"
    ADMIN = "admin"


ROLE_CAPABILITIES: Dict[UserRole, FrozenSet[str]] = {
    UserRole.USER: frozenset({"rate", "purchase", "wishlist"}),
    UserRole.ADMIN: frozenset(
        {"rate", "purchase", "wishlist", "manage_catalog", "manage_users", "train_model"}
    ),
}


class Rating(BaseModel):
    """A single explicit rating of an item by a user.

    Attributes:
        user_id: Identifier of the rating user.
        item_id: Identifier of the rated item.
        rating: Integer score between 1 and 5 inclusive.
        review: Optional free text.
        created_at: When the rating was given.
    """

    user_id: int
    item_id: int
    rating: int = Field(..., ge=MIN_RATING, le=MAX_RATING)
    review: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)


class Item(BaseModel):
    """A catalog item (a video game)."""

    id: int
    title: str = ""
    tags: List[str] = Field(default_factory=list)
    rating: float = 0.0
    rating_count: int = 0
    release_date: Optional[date] = None
    developer: Optional[str] = None
    publisher: Optional[str] = None

    @field_validator("tags", mode="before")
    @classmethod
    def _collapse_tags(cls, value):
        if value is None:
            return []
        seen = []
        for tag in value:
            tag = str(tag).strip()
            if tag and tag not in seen:
                seen.append(tag)
        return seen


class User(BaseModel):
    """A user together with the preference signals the engine reads.

    Ratings are keyed by item id so that rating the same item twice replaces
    the earlier record instead of appending a second one.
    """

    id: int
    username: str = ""
    role: UserRole = UserRole.USER
    owned_item_ids: Set[int] = Field(default_factory=set)
    wishlist_item_ids: Set[int] = Field(default_factory=set)
    ratings: Dict[int, Rating] = Field(default_factory=dict)
    preferred_tags: Set[str] = Field(default_factory=set)

    def has_capability(self, capability: str) -> bool:
        """Check whether the user's role grants a capability."""
        return capability in ROLE_CAPABILITIES.get(self.role, frozenset())

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def upsert_rating(self, rating: Rating) -> None:
        """Store a rating, replacing any earlier rating of the same item."""
        if rating.user_id != self.id:
            raise ValueError(
                f"Rating belongs to user {rating.user_id}, not user {self.id}"
            )
        self.ratings[rating.item_id] = rating

    def owns(self, item_id: int) -> bool:
        return item_id in self.owned_item_ids
