"""Interaction store adapter.

The engine only needs read-only snapshots of users, items and ratings. This
module defines that interface, an in-memory implementation with rating upsert
semantics, and CSV loading/saving with pandas.

CSV layout (list columns are pipe-separated)::

    users.csv      user_id, username, role, preferred_tags
    items.csv      item_id, title, tags, rating, rating_count,
                   release_date, developer, publisher
    ratings.csv    user_id, item_id, rating, review, created_at
    ownership.csv  user_id, item_id          (optional)
"""

import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

import pandas as pd

from cortexrec.recommender.models import Item, Rating, User, UserRole

# Configure module logger
logger = logging.getLogger(__name__)

USERS_FILENAME = "users.csv"
ITEMS_FILENAME = "items.csv"
RATINGS_FILENAME = "ratings.csv"
OWNERSHIP_FILENAME = "ownership.csv"
LIST_SEPARATOR = "|"


class InteractionStore(Protocol):
    """Read interface the recommendation engine consumes."""

    def list_users(self) -> List[User]: ...

    def list_items(self) -> List[Item]: ...

    def list_ratings(self) -> List[Rating]: ...


class InMemoryInteractionStore:
    """Holds users, items and ratings in memory.

    Ratings are keyed by (user_id, item_id); writing a second rating for the
    same pair replaces the first, both here and on the user record.
    """

    def __init__(
        self,
        users: Optional[Iterable[User]] = None,
        items: Optional[Iterable[Item]] = None,
        ratings: Optional[Iterable[Rating]] = None,
    ):
        self._lock = threading.Lock()
        self._users: Dict[int, User] = {user.id: user for user in users or []}
        self._items: Dict[int, Item] = {item.id: item for item in items or []}
        self._ratings: Dict[Tuple[int, int], Rating] = {}
        for rating in ratings or []:
            self.upsert_rating(rating)

    def list_users(self) -> List[User]:
        return list(self._users.values())

    def list_items(self) -> List[Item]:
        return list(self._items.values())

    def list_ratings(self) -> List[Rating]:
        return list(self._ratings.values())

    def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    def get_item(self, item_id: int) -> Optional[Item]:
        return self._items.get(item_id)

    def add_user(self, user: User) -> None:
        with self._lock:
            self._users[user.id] = user

    def add_item(self, item: Item) -> None:
        with self._lock:
            self._items[item.id] = item

    def upsert_rating(self, rating: Rating) -> Optional[Rating]:
        """Insert or replace a rating.

        Returns:
            The rating it replaced, if any.
        """
        with self._lock:
            key = (rating.user_id, rating.item_id)
            previous = self._ratings.get(key)
            self._ratings[key] = rating
            user = self._users.get(rating.user_id)
            if user is not None:
                user.upsert_rating(rating)
        return previous


def _split_list(value) -> List[str]:
    if pd.isna(value):
        return []
    return [part for part in str(value).split(LIST_SEPARATOR) if part.strip()]


def _optional(value):
    return None if pd.isna(value) else value


def _read_csv(path: Path, required_columns: Iterable[str], required: bool = True) -> pd.DataFrame:
    if not path.exists():
        if required:
            raise FileNotFoundError(f"CSV file not found: {path}")
        return pd.DataFrame(columns=list(required_columns))

    df = pd.read_csv(path)
    missing = set(required_columns) - set(df.columns)
    if missing:
        raise ValueError(f"{path.name} missing required columns: {missing}")

    logger.info(f"Loaded {len(df)} rows from {path}")
    return df


def load_store_from_csv(data_dir: str) -> InMemoryInteractionStore:
    """Load users, items, ratings and ownership from CSV files.

    Args:
        data_dir: Directory holding the CSV files.

    Returns:
        Populated InMemoryInteractionStore.

    Raises:
        FileNotFoundError: If users, items or ratings CSV is missing.
        ValueError: If a CSV is missing required columns.
        pydantic.ValidationError: If a row is invalid, e.g. a rating
            outside 1-5.

    Example:
        >>> store = load_store_from_csv("data")
        >>> print(f"{len(store.list_ratings())} ratings loaded")
    """
    data_path = Path(data_dir)
    logger.info(f"Loading interaction data from {data_dir}")

    users_df = _read_csv(data_path / USERS_FILENAME, ["user_id"])
    items_df = _read_csv(data_path / ITEMS_FILENAME, ["item_id", "tags"])
    ratings_df = _read_csv(data_path / RATINGS_FILENAME, ["user_id", "item_id", "rating"])
    ownership_df = _read_csv(
        data_path / OWNERSHIP_FILENAME, ["user_id", "item_id"], required=False
    )

    users = []
    for row in users_df.to_dict("records"):
        users.append(
            User(
                id=int(row["user_id"]),
                username=str(_optional(row.get("username")) or ""),
                role=UserRole(_optional(row.get("role")) or UserRole.USER.value),
                preferred_tags=set(_split_list(row.get("preferred_tags"))),
            )
        )

    items = []
    for row in items_df.to_dict("records"):
        release_date = _optional(row.get("release_date"))
        items.append(
            Item(
                id=int(row["item_id"]),
                title=str(_optional(row.get("title")) or ""),
                tags=_split_list(row["tags"]),
                rating=float(_optional(row.get("rating")) or 0.0),
                rating_count=int(_optional(row.get("rating_count")) or 0),
                release_date=pd.to_datetime(release_date).date() if release_date else None,
                developer=_optional(row.get("developer")),
                publisher=_optional(row.get("publisher")),
            )
        )

    ratings = []
    for row in ratings_df.to_dict("records"):
        created_at = _optional(row.get("created_at"))
        fields = {
            "user_id": int(row["user_id"]),
            "item_id": int(row["item_id"]),
            "rating": row["rating"],
            "review": _optional(row.get("review")),
        }
        if created_at:
            fields["created_at"] = pd.to_datetime(created_at).to_pydatetime()
        ratings.append(Rating(**fields))

    store = InMemoryInteractionStore(users=users, items=items, ratings=ratings)

    for row in ownership_df.to_dict("records"):
        user = store.get_user(int(row["user_id"]))
        if user is not None:
            user.owned_item_ids.add(int(row["item_id"]))

    logger.info(
        f"Store loaded: {len(users)} users, {len(items)} items, "
        f"{len(store.list_ratings())} ratings"
    )
    return store


def save_store_to_csv(store: InMemoryInteractionStore, output_dir: str) -> None:
    """Write the store back out in the layout read by load_store_from_csv."""
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    users = store.list_users()
    pd.DataFrame(
        [
            {
                "user_id": user.id,
                "username": user.username,
                "role": user.role.value,
                "preferred_tags": LIST_SEPARATOR.join(sorted(user.preferred_tags)),
            }
            for user in users
        ],
        columns=["user_id", "username", "role", "preferred_tags"],
    ).to_csv(output_path / USERS_FILENAME, index=False)

    pd.DataFrame(
        [
            {
                "item_id": item.id,
                "title": item.title,
                "tags": LIST_SEPARATOR.join(item.tags),
                "rating": item.rating,
                "rating_count": item.rating_count,
                "release_date": item.release_date.isoformat() if item.release_date else None,
                "developer": item.developer,
                "publisher": item.publisher,
            }
            for item in store.list_items()
        ],
        columns=[
            "item_id", "title", "tags", "rating", "rating_count",
            "release_date", "developer", "publisher",
        ],
    ).to_csv(output_path / ITEMS_FILENAME, index=False)

    pd.DataFrame(
        [
            {
                "user_id": rating.user_id,
                "item_id": rating.item_id,
                "rating": rating.rating,
                "review": rating.review,
                "created_at": rating.created_at.isoformat(),
            }
            for rating in store.list_ratings()
        ],
        columns=["user_id", "item_id", "rating", "review", "created_at"],
    ).to_csv(output_path / RATINGS_FILENAME, index=False)

    pd.DataFrame(
        [
            {"user_id": user.id, "item_id": item_id}
            for user in users
            for item_id in sorted(user.owned_item_ids)
        ],
        columns=["user_id", "item_id"],
    ).to_csv(output_path / OWNERSHIP_FILENAME, index=False)

    logger.info(f"Saved interaction data to {output_dir}")
