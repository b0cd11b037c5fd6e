"""Recommendation service.

Owns the model lifecycle: trains a snapshot, swaps it in, answers top-K
queries against it, applies online updates and falls back to popularity or
cold-start ranking when the model cannot answer.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from cortexrec.recommender.config import EngineConfig
from cortexrec.recommender.content import (
    build_ad_hoc_preference_vector,
    build_item_content_vectors,
    build_user_preference_vectors,
    collect_user_ratings,
    content_vector_for_tags,
)
from cortexrec.recommender.embed import learn_tag_embeddings
from cortexrec.recommender.hybrid import HybridScorer, ModelSnapshot
from cortexrec.recommender.models import Item, Rating, User
from cortexrec.recommender.train import sgd_step, train_matrix_factorization
from cortexrec.recommender.utils import (
    build_index_map,
    build_rating_matrix,
    cosine_scores,
    deduplicate_ratings,
    matrix_density,
    rank_by_popularity,
    rank_by_score,
)
from cortexrec.store import InteractionStore

# Configure module logger
logger = logging.getLogger(__name__)

# Recommendation strategies reported by explain_recommendations
METHOD_HYBRID = "hybrid"
METHOD_COLD_START = "cold_start"
METHOD_POPULARITY = "popularity"

TRENDING_WINDOW_MONTHS = 6

ScoredItems = Tuple[str, List[Item], Dict[int, Dict[str, float]]]


class RecommendationService:
    """Trains, holds and serves the hybrid recommendation model.

    The current model lives in a single ``ModelSnapshot`` reference. Training
    builds a new snapshot off to the side and replaces the reference only once
    it is complete, so queries always read either the previous snapshot or the
    new one. ``None`` means the engine is untrained.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self._snapshot: Optional[ModelSnapshot] = None
        self._train_lock = threading.Lock()
        self._update_lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._online_updates = 0

        logger.info(
            f"Initialized RecommendationService: "
            f"CF weight={self.config.cf_weight:.2f}, "
            f"CB weight={self.config.cb_weight:.2f}, "
            f"min ratings={self.config.min_ratings}"
        )

    # ----- training -----

    def train(
        self,
        users: Sequence[User],
        items: Sequence[Item],
        ratings: Sequence[Rating],
    ) -> bool:
        """Run a full training pass and swap in the new snapshot.

        With fewer usable ratings than ``min_ratings`` the numerical training
        is skipped and the engine becomes untrained; queries then fall back
        to popularity ranking.

        Args:
            users: All users.
            items: All catalog items.
            ratings: All ratings. Duplicates per (user, item) collapse to the
                latest one.

        Returns:
            True if the engine is trained afterwards.
        """
        with self._train_lock:
            start_time = time.time()
            usable = deduplicate_ratings(ratings)

            if len(usable) < self.config.min_ratings:
                logger.warning(
                    f"Not enough ratings for training ({len(usable)} < "
                    f"{self.config.min_ratings}). Using popularity fallback."
                )
                self._snapshot = None
                self._online_updates = 0
                return False

            logger.info(
                f"Starting hybrid training with {len(users)} users, "
                f"{len(items)} items, {len(usable)} ratings"
            )
            snapshot = self._build_snapshot(users, items, usable)
            self._snapshot = snapshot
            self._online_updates = 0

            logger.info(
                "Hybrid training complete",
                extra={
                    "event": "training_complete",
                    "num_users": snapshot.n_users,
                    "num_items": snapshot.n_items,
                    "num_tags": len(snapshot.tag_table),
                    "epochs": len(snapshot.rmse_history),
                    "final_rmse": snapshot.rmse_history[-1] if snapshot.rmse_history else None,
                    "train_time_ms": round((time.time() - start_time) * 1000, 2),
                },
            )
            return True

    def _build_snapshot(
        self,
        users: Sequence[User],
        items: Sequence[Item],
        ratings: Sequence[Rating],
    ) -> ModelSnapshot:
        config = self.config
        rng = np.random.default_rng(config.random_state)

        user_id_to_idx = build_index_map(user.id for user in users)
        item_id_to_idx = build_index_map(item.id for item in items)

        tag_table = learn_tag_embeddings(
            items,
            embedding_dim=config.tag_embedding_size,
            epochs=config.tag_epochs,
            learning_rate=config.learning_rate,
            rng=rng,
        )
        item_content_vectors = build_item_content_vectors(items, item_id_to_idx, tag_table)
        user_preference_vectors = build_user_preference_vectors(
            users,
            items,
            collect_user_ratings(users, ratings),
            user_id_to_idx,
            tag_table,
            owned_weight=config.owned_weight,
        )

        result = train_matrix_factorization(
            ratings,
            user_id_to_idx,
            item_id_to_idx,
            n_factors=config.latent_factors,
            learning_rate=config.learning_rate,
            regularization=config.regularization,
            max_iterations=config.max_iterations,
            rmse_threshold=config.rmse_threshold,
            rng=rng,
        )

        rating_matrix = build_rating_matrix(ratings, user_id_to_idx, item_id_to_idx)

        return ModelSnapshot(
            factors=result.model,
            tag_table=tag_table,
            item_content_vectors=item_content_vectors,
            user_preference_vectors=user_preference_vectors,
            user_id_to_idx=user_id_to_idx,
            item_id_to_idx=item_id_to_idx,
            rmse_history=result.rmse_history,
            converged=result.converged,
            n_training_ratings=result.n_ratings,
            rating_density=matrix_density(rating_matrix),
        )

    def train_from_store(self, store: InteractionStore) -> bool:
        """Train from anything exposing list_users/list_items/list_ratings."""
        return self.train(store.list_users(), store.list_items(), store.list_ratings())

    def train_in_background(self, store: InteractionStore) -> Future:
        """Schedule ``train_from_store`` on the dedicated training worker.

        The single worker thread means background runs never overlap; queries
        keep using the current snapshot until the new one is swapped in.
        """
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="cortexrec-train"
            )
        logger.info("Scheduling background training", extra={"event": "training_scheduled"})
        return self._executor.submit(self.train_from_store, store)

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def is_trained(self) -> bool:
        return self._snapshot is not None

    # ----- queries -----

    def get_recommendations(
        self,
        user: User,
        items: Sequence[Item],
        count: int,
    ) -> List[Item]:
        """Get recommendations for a user.

        Items the user owns are never returned. An untrained engine ranks by
        popularity, a user unknown to the model goes through the cold-start
        policy, and everyone else gets the hybrid ranking.
        """
        _, recommendations, _ = self._recommend(user, items, count, explain=False)
        return recommendations

    def explain_recommendations(
        self,
        user: User,
        items: Sequence[Item],
        count: int,
    ) -> Tuple[str, List[Item], Dict[int, Dict[str, float]]]:
        """Recommendations with the strategy used and per-item scores.

        Returns:
            Tuple of (method, items, scores by item id). For the hybrid
            method each score dict holds ``cf_score``, ``cb_score`` and
            ``hybrid_score``; cold start reports ``content_similarity``;
            popularity reports the item's ``rating``.
        """
        return self._recommend(user, items, count, explain=True)

    def _recommend(
        self,
        user: User,
        items: Sequence[Item],
        count: int,
        explain: bool,
    ) -> ScoredItems:
        start_time = time.time()
        snapshot = self._snapshot
        candidates = [item for item in items if not user.owns(item.id)]

        if snapshot is None:
            logger.debug(f"Model not trained, popularity ranking for user {user.id}")
            method, ranked, scores = self._popularity(candidates, count)
        elif user.id not in snapshot.user_id_to_idx:
            logger.info(f"User {user.id} not in model, using cold start")
            method, ranked, scores = self._cold_start(snapshot, user, candidates, count)
        else:
            method, ranked, scores = self._hybrid(snapshot, user, candidates, count, explain)

        logger.info(
            "Recommendations generated",
            extra={
                "event": "recommendations",
                "user_id": user.id,
                "method": method,
                "num_candidates": len(candidates),
                "num_recommendations": len(ranked),
                "total_time_ms": round((time.time() - start_time) * 1000, 2),
            },
        )
        return method, ranked, scores

    def _hybrid(
        self,
        snapshot: ModelSnapshot,
        user: User,
        candidates: Sequence[Item],
        count: int,
        explain: bool,
    ) -> ScoredItems:
        scorer = self._scorer(snapshot)
        user_idx = snapshot.user_id_to_idx[user.id]

        # Items added to the catalog after training have no factors to score
        known = [item for item in candidates if item.id in snapshot.item_id_to_idx]
        breakdowns = [
            scorer.score_breakdown(user_idx, snapshot.item_id_to_idx[item.id])
            for item in known
        ]
        ranked = rank_by_score(known, [b["hybrid_score"] for b in breakdowns], count)

        scores: Dict[int, Dict[str, float]] = {}
        if explain:
            by_id = {item.id: b for item, b in zip(known, breakdowns)}
            scores = {item.id: by_id[item.id] for item in ranked}
        return METHOD_HYBRID, ranked, scores

    def _cold_start(
        self,
        snapshot: ModelSnapshot,
        user: User,
        candidates: Sequence[Item],
        count: int,
    ) -> ScoredItems:
        """Rank by similarity to the user's explicit preferred tags."""
        preference = build_ad_hoc_preference_vector(user.preferred_tags, snapshot.tag_table)
        if preference is None or not candidates:
            return self._popularity(candidates, count)

        content = np.vstack([self._content_vector(snapshot, item) for item in candidates])
        similarities = cosine_scores(preference, content)
        ranked = rank_by_score(candidates, list(similarities), count)

        by_id = {item.id: float(sim) for item, sim in zip(candidates, similarities)}
        scores = {item.id: {"content_similarity": by_id[item.id]} for item in ranked}
        return METHOD_COLD_START, ranked, scores

    @staticmethod
    def _popularity(candidates: Sequence[Item], count: int) -> ScoredItems:
        ranked = rank_by_popularity(candidates, count)
        return METHOD_POPULARITY, ranked, {item.id: {"rating": item.rating} for item in ranked}

    @staticmethod
    def _content_vector(snapshot: ModelSnapshot, item: Item) -> np.ndarray:
        item_idx = snapshot.item_id_to_idx.get(item.id)
        if item_idx is not None:
            return snapshot.item_content_vectors[item_idx]
        return content_vector_for_tags(item.tags, snapshot.tag_table)

    def _scorer(self, snapshot: ModelSnapshot) -> HybridScorer:
        return HybridScorer(
            snapshot,
            cf_weight=self.config.cf_weight,
            cb_weight=self.config.cb_weight,
        )

    def get_similar_items(
        self,
        target: Item,
        items: Sequence[Item],
        count: int,
    ) -> List[Item]:
        """Find items similar to ``target`` by hybrid item-item similarity.

        Falls back to popularity when the engine is untrained or the target
        item is not in the model.
        """
        snapshot = self._snapshot
        candidates = [item for item in items if item.id != target.id]

        if snapshot is None or target.id not in snapshot.item_id_to_idx:
            logger.debug(f"No model data for item {target.id}, popularity ranking")
            return rank_by_popularity(candidates, count)

        scorer = self._scorer(snapshot)
        target_idx = snapshot.item_id_to_idx[target.id]
        known = [item for item in candidates if item.id in snapshot.item_id_to_idx]
        scores = [
            scorer.item_similarity(target_idx, snapshot.item_id_to_idx[item.id])
            for item in known
        ]
        return rank_by_score(known, scores, count)

    def find_similar_users(
        self,
        user: User,
        users: Sequence[User],
        count: int,
    ) -> List[User]:
        """Find users with similar taste.

        Returns an empty list when the engine is untrained or the user is not
        in the model.
        """
        snapshot = self._snapshot
        if snapshot is None or user.id not in snapshot.user_id_to_idx:
            return []

        scorer = self._scorer(snapshot)
        target_idx = snapshot.user_id_to_idx[user.id]
        known = [
            other for other in users
            if other.id != user.id and other.id in snapshot.user_id_to_idx
        ]
        scores = [
            scorer.user_similarity(target_idx, snapshot.user_id_to_idx[other.id])
            for other in known
        ]
        return rank_by_score(known, scores, count)

    def get_trending_items(
        self,
        items: Sequence[Item],
        count: int,
        today: Optional[date] = None,
    ) -> List[Item]:
        """Items released in the last six months, best rated first."""
        today = today or date.today()
        cutoff = (pd.Timestamp(today) - pd.DateOffset(months=TRENDING_WINDOW_MONTHS)).date()
        recent = [
            item for item in items
            if item.release_date is not None and cutoff < item.release_date <= today
        ]
        return rank_by_popularity(recent, count)

    # ----- online learning -----

    def on_new_rating(self, rating: Rating) -> bool:
        """Nudge the live model with one new or changed rating.

        Runs a single SGD step at the online learning rate against the current
        factors and biases. Tag embeddings and content vectors are left alone
        until the next full training. Does nothing when the engine is
        untrained or the user or item is not in the model.

        Returns:
            True if the model was updated.
        """
        snapshot = self._snapshot
        if snapshot is None:
            return False

        user_idx = snapshot.user_id_to_idx.get(rating.user_id)
        item_idx = snapshot.item_id_to_idx.get(rating.item_id)
        if user_idx is None or item_idx is None:
            logger.debug(
                f"Rating for user {rating.user_id}, item {rating.item_id} "
                "is outside the model; waiting for next training"
            )
            return False

        with self._update_lock:
            error = sgd_step(
                snapshot.factors,
                user_idx,
                item_idx,
                float(rating.rating),
                self.config.online_learning_rate,
                self.config.regularization,
            )
            self._online_updates += 1

        logger.debug(
            "Model updated with new rating",
            extra={
                "event": "online_update",
                "user_id": rating.user_id,
                "item_id": rating.item_id,
                "rating": rating.rating,
                "error": round(float(error), 4),
            },
        )
        return True

    # ----- introspection -----

    def get_item_embedding(self, item_id: int) -> Optional[np.ndarray]:
        """Copy of an item's latent factor vector."""
        snapshot = self._snapshot
        if snapshot is None or item_id not in snapshot.item_id_to_idx:
            return None
        return snapshot.factors.item_factors[snapshot.item_id_to_idx[item_id]].copy()

    def get_item_content_vector(self, item_id: int) -> Optional[np.ndarray]:
        """Copy of an item's tag-based content vector."""
        snapshot = self._snapshot
        if snapshot is None or item_id not in snapshot.item_id_to_idx:
            return None
        return snapshot.item_content_vectors[snapshot.item_id_to_idx[item_id]].copy()

    def get_user_embedding(self, user_id: int) -> Optional[np.ndarray]:
        """Copy of a user's latent factor vector."""
        snapshot = self._snapshot
        if snapshot is None or user_id not in snapshot.user_id_to_idx:
            return None
        return snapshot.factors.user_factors[snapshot.user_id_to_idx[user_id]].copy()

    def get_tag_embedding(self, tag: str) -> Optional[np.ndarray]:
        snapshot = self._snapshot
        if snapshot is None:
            return None
        embedding = snapshot.tag_table.get_embedding(tag)
        return None if embedding is None else embedding.copy()

    def get_model_stats(self) -> Dict[str, Any]:
        """Descriptive summary of the current model. Informational only."""
        config = self.config
        stats: Dict[str, Any] = {
            "trained": False,
            "hyperparameters": {
                "latent_factors": config.latent_factors,
                "tag_embedding_size": config.tag_embedding_size,
                "learning_rate": config.learning_rate,
                "online_learning_rate": config.online_learning_rate,
                "regularization": config.regularization,
                "max_iterations": config.max_iterations,
                "tag_epochs": config.tag_epochs,
                "cf_weight": config.cf_weight,
                "cb_weight": config.cb_weight,
                "min_ratings": config.min_ratings,
            },
        }

        snapshot = self._snapshot
        if snapshot is None:
            return stats

        stats.update(
            {
                "trained": True,
                "num_users": snapshot.n_users,
                "num_items": snapshot.n_items,
                "num_tags": len(snapshot.tag_table),
                "num_training_ratings": snapshot.n_training_ratings,
                "rating_density": round(snapshot.rating_density, 6),
                "global_mean": round(snapshot.factors.global_mean, 4),
                "epochs_run": len(snapshot.rmse_history),
                "final_rmse": (
                    round(snapshot.rmse_history[-1], 4) if snapshot.rmse_history else None
                ),
                "converged": snapshot.converged,
                "online_updates": self._online_updates,
                "total_parameters": snapshot.n_parameters,
                "trained_at": snapshot.trained_at.isoformat(),
            }
        )
        return stats
