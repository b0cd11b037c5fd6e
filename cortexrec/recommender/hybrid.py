"""Hybrid recommendation module.

Combines collaborative filtering and content-based filtering over a fully
built model snapshot.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List

import numpy as np

from cortexrec.recommender.config import DEFAULT_CB_WEIGHT, DEFAULT_CF_WEIGHT
from cortexrec.recommender.embed import TagEmbeddingTable
from cortexrec.recommender.train import FactorModel
from cortexrec.recommender.utils import cosine_similarity

# Configure module logger
logger = logging.getLogger(__name__)


@dataclass
class ModelSnapshot:
    """Everything the scorer needs, built together by one training run.

    A snapshot is only handed to the service once every field is populated.
    Online updates mutate ``factors`` in place; all other fields stay as
    training left them.
    """

    factors: FactorModel
    tag_table: TagEmbeddingTable
    item_content_vectors: np.ndarray
    user_preference_vectors: np.ndarray
    user_id_to_idx: Dict[int, int]
    item_id_to_idx: Dict[int, int]
    rmse_history: List[float] = field(default_factory=list)
    converged: bool = False
    n_training_ratings: int = 0
    rating_density: float = 0.0
    trained_at: datetime = field(default_factory=datetime.now)

    @property
    def n_users(self) -> int:
        return len(self.user_id_to_idx)

    @property
    def n_items(self) -> int:
        return len(self.item_id_to_idx)

    @property
    def n_parameters(self) -> int:
        """Learned CF parameters plus tag, item and user content vectors."""
        return int(
            self.factors.n_parameters
            + self.tag_table.embeddings.size
            + self.item_content_vectors.size
            + self.user_preference_vectors.size
        )


class HybridScorer:
    """Combines CF and content-based predictions and similarities.

    Scores are read from one snapshot; weights default to 0.6 CF, 0.4 CB.
    """

    def __init__(
        self,
        snapshot: ModelSnapshot,
        cf_weight: float = DEFAULT_CF_WEIGHT,
        cb_weight: float = DEFAULT_CB_WEIGHT,
    ):
        self.snapshot = snapshot
        self.cf_weight = cf_weight
        self.cb_weight = cb_weight

    def predict_cf(self, user_idx: int, item_idx: int) -> float:
        """Clipped collaborative filtering prediction."""
        return self.snapshot.factors.predict(user_idx, item_idx)

    def predict_cb(self, user_idx: int, item_idx: int) -> float:
        """Content-based prediction on the rating scale.

        Maps cosine similarity in [-1, 1] to [1, 5]. Falls back to the global
        mean when the user or the item has no content signal.
        """
        preference = self.snapshot.user_preference_vectors[user_idx]
        content = self.snapshot.item_content_vectors[item_idx]
        if not np.any(preference) or not np.any(content):
            return self.snapshot.factors.global_mean

        similarity = cosine_similarity(preference, content)
        return 1.0 + (similarity + 1.0) * 2.0

    def predict(self, user_idx: int, item_idx: int) -> float:
        """Hybrid prediction."""
        return (
            self.cf_weight * self.predict_cf(user_idx, item_idx)
            + self.cb_weight * self.predict_cb(user_idx, item_idx)
        )

    def score_breakdown(self, user_idx: int, item_idx: int) -> Dict[str, float]:
        """CF, CB and hybrid components of one prediction."""
        cf_score = self.predict_cf(user_idx, item_idx)
        cb_score = self.predict_cb(user_idx, item_idx)
        return {
            "cf_score": cf_score,
            "cb_score": cb_score,
            "hybrid_score": self.cf_weight * cf_score + self.cb_weight * cb_score,
        }

    def item_similarity(self, item_idx_a: int, item_idx_b: int) -> float:
        """Weighted cosine similarity of item factors and item content vectors."""
        factors = self.snapshot.factors.item_factors
        content = self.snapshot.item_content_vectors

        cf_similarity = cosine_similarity(factors[item_idx_a], factors[item_idx_b])
        content_similarity = cosine_similarity(content[item_idx_a], content[item_idx_b])
        return self.cf_weight * cf_similarity + self.cb_weight * content_similarity

    def user_similarity(self, user_idx_a: int, user_idx_b: int) -> float:
        """Weighted cosine similarity of user factors and preference vectors."""
        factors = self.snapshot.factors.user_factors
        preferences = self.snapshot.user_preference_vectors

        cf_similarity = cosine_similarity(factors[user_idx_a], factors[user_idx_b])
        preference_similarity = cosine_similarity(preferences[user_idx_a], preferences[user_idx_b])
        return self.cf_weight * cf_similarity + self.cb_weight * preference_similarity
