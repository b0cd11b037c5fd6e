"""Tag embeddings for content-based recommendations.

Learns a dense vector per tag from tag co-occurrence within items: tags that
appear on the same item are pulled toward each other.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from cortexrec.recommender.config import (
    DEFAULT_LEARNING_RATE,
    DEFAULT_RANDOM_STATE,
    DEFAULT_TAG_EMBEDDING_SIZE,
    DEFAULT_TAG_EPOCHS,
)
from cortexrec.recommender.models import Item

# Configure module logger
logger = logging.getLogger(__name__)

# Fraction of the learning rate applied to each co-occurrence nudge
CO_OCCURRENCE_STEP = 0.1


class TagEmbeddingTable:
    """Holds tag embeddings.

    Rows of ``embeddings`` are indexed through ``tag_to_idx``. The array is
    marked read-only once learning finishes.
    """

    def __init__(self, embeddings: np.ndarray, tag_to_idx: Dict[str, int]):
        self.embeddings = embeddings
        self.tag_to_idx = tag_to_idx

    def __len__(self) -> int:
        return len(self.tag_to_idx)

    def __contains__(self, tag: str) -> bool:
        return tag in self.tag_to_idx

    @property
    def embedding_dim(self) -> int:
        return int(self.embeddings.shape[1])

    @property
    def tags(self) -> List[str]:
        return list(self.tag_to_idx)

    def get_embedding(self, tag: str) -> Optional[np.ndarray]:
        """Get embedding for a tag, or None if the tag was never seen."""
        idx = self.tag_to_idx.get(tag)
        if idx is None:
            return None
        return self.embeddings[idx]

    def mean_embedding(self, tags: Iterable[str]) -> Optional[np.ndarray]:
        """Average the embeddings of the known tags.

        Returns None when none of the tags has an embedding.
        """
        indices = [self.tag_to_idx[tag] for tag in tags if tag in self.tag_to_idx]
        if not indices:
            return None
        return self.embeddings[indices].mean(axis=0)

    def freeze(self) -> "TagEmbeddingTable":
        self.embeddings.setflags(write=False)
        return self


def collect_tags(items: Iterable[Item]) -> List[str]:
    """Every distinct tag across items, sorted for a stable row order."""
    tags = set()
    for item in items:
        tags.update(item.tags)
    return sorted(tags)


def initialize_tag_embeddings(
    tags: Sequence[str],
    embedding_dim: int,
    rng: np.random.Generator,
) -> TagEmbeddingTable:
    """Draw a random vector per tag from N(0, 1) scaled by sqrt(2 / dim)."""
    scale = np.sqrt(2.0 / embedding_dim)
    embeddings = rng.standard_normal((len(tags), embedding_dim)) * scale
    tag_to_idx = {tag: idx for idx, tag in enumerate(tags)}
    return TagEmbeddingTable(embeddings=embeddings, tag_to_idx=tag_to_idx)


def learn_tag_embeddings(
    items: Sequence[Item],
    embedding_dim: int = DEFAULT_TAG_EMBEDDING_SIZE,
    epochs: int = DEFAULT_TAG_EPOCHS,
    learning_rate: float = DEFAULT_LEARNING_RATE,
    rng: Optional[np.random.Generator] = None,
) -> TagEmbeddingTable:
    """Learn tag embeddings from co-occurrence within items.

    Every tag starts from a seeded random vector. For a fixed number of
    epochs, each unordered pair of tags on the same item is nudged together:
    with ``diff = e1 - e2``, ``e1`` moves by ``-step * diff`` and ``e2`` by
    ``+step * diff`` where ``step = learning_rate * 0.1``. There is no
    convergence check; items with fewer than two tags contribute nothing and
    tags that never co-occur keep their initial vector.

    Args:
        items: Catalog items with their tag lists.
        embedding_dim: Width of each tag vector.
        epochs: Number of passes over all items.
        learning_rate: Global learning rate.
        rng: Seeded random generator. Defaults to one seeded with 42.

    Returns:
        Frozen TagEmbeddingTable.

    Example:
        >>> table = learn_tag_embeddings([Item(id=1, tags=["RPG", "Fantasy"])])
        >>> table.get_embedding("RPG").shape
        (8,)
    """
    if rng is None:
        rng = np.random.default_rng(DEFAULT_RANDOM_STATE)

    tags = collect_tags(items)
    table = initialize_tag_embeddings(tags, embedding_dim, rng)
    logger.info(f"Learning tag embeddings for {len(tags)} unique tags, dim={embedding_dim}")

    # Items are fixed during learning, so resolve tag rows once
    tag_rows = [
        [table.tag_to_idx[tag] for tag in item.tags]
        for item in items
        if len(item.tags) >= 2
    ]

    step = learning_rate * CO_OCCURRENCE_STEP
    embeddings = table.embeddings
    for _ in range(epochs):
        for rows in tag_rows:
            for i in range(len(rows)):
                for j in range(i + 1, len(rows)):
                    diff = embeddings[rows[i]] - embeddings[rows[j]]
                    embeddings[rows[i]] -= step * diff
                    embeddings[rows[j]] += step * diff

    logger.debug(
        f"Tag embeddings learned from {len(tag_rows)} multi-tag items over {epochs} epochs"
    )
    return table.freeze()
