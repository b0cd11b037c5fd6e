"""Content vectors built from tag embeddings.

Items get the mean of their tags' embeddings; users get a rating-weighted
mean over the tags of the items they rated or own.
"""

import logging
from typing import Dict, Iterable, Mapping, Optional, Sequence

import numpy as np

from cortexrec.recommender.config import DEFAULT_OWNED_WEIGHT
from cortexrec.recommender.embed import TagEmbeddingTable
from cortexrec.recommender.models import MAX_RATING, Item, Rating, User

# Configure module logger
logger = logging.getLogger(__name__)


def content_vector_for_tags(
    tags: Iterable[str],
    table: TagEmbeddingTable,
) -> np.ndarray:
    """Mean embedding of the known tags, or a zero vector if there are none."""
    vector = table.mean_embedding(tags)
    if vector is None:
        return np.zeros(table.embedding_dim)
    return vector


def build_item_content_vectors(
    items: Sequence[Item],
    item_id_to_idx: Mapping[int, int],
    table: TagEmbeddingTable,
) -> np.ndarray:
    """Build one content vector per indexed item.

    Items without tags, or whose tags have no embedding, keep a zero row.

    Returns:
        Array of shape (n_items, embedding_dim).
    """
    vectors = np.zeros((len(item_id_to_idx), table.embedding_dim))
    for item in items:
        item_idx = item_id_to_idx.get(item.id)
        if item_idx is None:
            continue
        vectors[item_idx] = content_vector_for_tags(item.tags, table)
    return vectors


def build_user_preference_vectors(
    users: Sequence[User],
    items: Sequence[Item],
    user_ratings: Mapping[int, Mapping[int, Rating]],
    user_id_to_idx: Mapping[int, int],
    table: TagEmbeddingTable,
    owned_weight: float = DEFAULT_OWNED_WEIGHT,
) -> np.ndarray:
    """Build one preference vector per indexed user.

    Each rated item contributes its known tag embeddings weighted by
    ``rating / 5``; each owned but unrated item contributes with
    ``owned_weight``. Every contributing tag adds its weight to a running
    total and the weighted sum is divided by that total. A user with no
    contributing weight keeps a zero vector, which the hybrid scorer reads as
    "no content signal".

    Args:
        users: Users to build vectors for.
        items: Catalog items, used to resolve tags.
        user_ratings: Ratings per user id, keyed by item id.
        user_id_to_idx: Row index per user id.
        table: Learned tag embeddings.
        owned_weight: Weight for owned-but-unrated items.

    Returns:
        Array of shape (n_users, embedding_dim).
    """
    items_by_id = {item.id: item for item in items}
    vectors = np.zeros((len(user_id_to_idx), table.embedding_dim))
    empty = 0

    for user in users:
        user_idx = user_id_to_idx.get(user.id)
        if user_idx is None:
            continue

        ratings = user_ratings.get(user.id, {})
        weighted = [
            (items_by_id[item_id], rating.rating / MAX_RATING)
            for item_id, rating in ratings.items()
            if item_id in items_by_id
        ]
        weighted.extend(
            (items_by_id[item_id], owned_weight)
            for item_id in sorted(user.owned_item_ids)
            if item_id in items_by_id and item_id not in ratings
        )

        total_weight = 0.0
        vector = np.zeros(table.embedding_dim)
        for item, weight in weighted:
            for tag in item.tags:
                embedding = table.get_embedding(tag)
                if embedding is None:
                    continue
                vector += embedding * weight
                total_weight += weight

        if total_weight > 0:
            vectors[user_idx] = vector / total_weight
        else:
            empty += 1

    if empty:
        logger.debug(f"{empty} users have no content signal (zero preference vector)")
    return vectors


def build_ad_hoc_preference_vector(
    preferred_tags: Iterable[str],
    table: TagEmbeddingTable,
) -> Optional[np.ndarray]:
    """Preference vector for a user unknown to the model.

    Mean of the embeddings of the user's explicit preferred tags, or None if
    none of them is known.
    """
    return table.mean_embedding(sorted(preferred_tags))


def collect_user_ratings(
    users: Iterable[User],
    ratings: Iterable[Rating],
) -> Dict[int, Dict[int, Rating]]:
    """Merge per-user rating records with the global rating list.

    Ratings carried on the user records are read first; entries from
    ``ratings`` then replace them per (user, item), keeping upsert semantics.
    """
    merged: Dict[int, Dict[int, Rating]] = {}
    for user in users:
        merged[user.id] = dict(user.ratings)
    for rating in ratings:
        merged.setdefault(rating.user_id, {})[rating.item_id] = rating
    return merged
