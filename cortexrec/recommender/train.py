"""Collaborative filtering model training module.

This module trains a biased matrix factorization model with stochastic
gradient descent. Each user and item gets a latent factor vector and a bias;
a rating is predicted as the global mean plus both biases plus the dot product
of the two factor vectors.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from cortexrec.recommender.config import (
    DEFAULT_LATENT_FACTORS,
    DEFAULT_LEARNING_RATE,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_RANDOM_STATE,
    DEFAULT_REGULARIZATION,
    DEFAULT_RMSE_THRESHOLD,
)
from cortexrec.recommender.models import MAX_RATING, MIN_RATING, Rating

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_GLOBAL_MEAN = 3.0
LOG_EVERY_N_EPOCHS = 20


class FactorModel:
    """Latent factors, biases and global mean of a trained model.

    Rows of ``user_factors`` and ``item_factors`` are addressed through the
    index maps held by the owning snapshot.
    """

    def __init__(
        self,
        user_factors: np.ndarray,
        item_factors: np.ndarray,
        user_bias: np.ndarray,
        item_bias: np.ndarray,
        global_mean: float,
    ):
        self.user_factors = user_factors
        self.item_factors = item_factors
        self.user_bias = user_bias
        self.item_bias = item_bias
        self.global_mean = global_mean

    @property
    def n_factors(self) -> int:
        return int(self.user_factors.shape[1])

    @property
    def n_parameters(self) -> int:
        """Factor entries plus one bias per user and item."""
        return int(
            self.user_factors.size
            + self.item_factors.size
            + self.user_bias.size
            + self.item_bias.size
        )

    def raw_prediction(self, user_idx: int, item_idx: int) -> float:
        """Unclipped prediction, used for gradients."""
        return float(
            self.global_mean
            + self.user_bias[user_idx]
            + self.item_bias[item_idx]
            + np.dot(self.user_factors[user_idx], self.item_factors[item_idx])
        )

    def predict(self, user_idx: int, item_idx: int) -> float:
        """Serving prediction, clipped to the rating scale."""
        return float(np.clip(self.raw_prediction(user_idx, item_idx), MIN_RATING, MAX_RATING))

    def predict_many(self, user_idx: np.ndarray, item_idx: np.ndarray) -> np.ndarray:
        """Clipped predictions for aligned arrays of user and item rows."""
        raw = (
            self.global_mean
            + self.user_bias[user_idx]
            + self.item_bias[item_idx]
            + np.sum(self.user_factors[user_idx] * self.item_factors[item_idx], axis=1)
        )
        return np.clip(raw, MIN_RATING, MAX_RATING)


@dataclass
class TrainingResult:
    """Outcome of a factorization run."""

    model: FactorModel
    rmse_history: List[float] = field(default_factory=list)
    n_ratings: int = 0
    converged: bool = False

    @property
    def epochs_run(self) -> int:
        return len(self.rmse_history)

    @property
    def final_rmse(self) -> Optional[float]:
        return self.rmse_history[-1] if self.rmse_history else None


def initialize_factor_model(
    n_users: int,
    n_items: int,
    n_factors: int,
    global_mean: float,
    rng: np.random.Generator,
) -> FactorModel:
    """Gaussian factors with std sqrt(2 / (n_users + n_items)), zero biases."""
    total = n_users + n_items
    scale = math.sqrt(2.0 / total) if total > 0 else 0.0
    return FactorModel(
        user_factors=rng.standard_normal((n_users, n_factors)) * scale,
        item_factors=rng.standard_normal((n_items, n_factors)) * scale,
        user_bias=np.zeros(n_users),
        item_bias=np.zeros(n_items),
        global_mean=global_mean,
    )


def sgd_step(
    model: FactorModel,
    user_idx: int,
    item_idx: int,
    actual: float,
    learning_rate: float,
    regularization: float,
) -> float:
    """Apply one SGD update for a single rating and return its error.

    The error is taken against the unclipped prediction. Biases and factor rows
    are written in place into the model arrays. The item row update uses the
    user row as it was before this step. Callers serialize concurrent steps.
    """
    error = actual - model.raw_prediction(user_idx, item_idx)

    model.user_bias[user_idx] += learning_rate * (error - regularization * model.user_bias[user_idx])
    model.item_bias[item_idx] += learning_rate * (error - regularization * model.item_bias[item_idx])

    user_row = model.user_factors[user_idx].copy()
    item_row = model.item_factors[item_idx].copy()
    model.user_factors[user_idx] = user_row + learning_rate * (error * item_row - regularization * user_row)
    model.item_factors[item_idx] = item_row + learning_rate * (error * user_row - regularization * item_row)

    return error


def _index_ratings(
    ratings: Sequence[Rating],
    user_id_to_idx: Dict[int, int],
    item_id_to_idx: Dict[int, int],
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Resolve ratings to (user rows, item rows, scores), skipping unknown ids."""
    users, items, scores = [], [], []
    skipped = 0
    for rating in ratings:
        user_idx = user_id_to_idx.get(rating.user_id)
        item_idx = item_id_to_idx.get(rating.item_id)
        if user_idx is None or item_idx is None:
            skipped += 1
            continue
        users.append(user_idx)
        items.append(item_idx)
        scores.append(float(rating.rating))

    if skipped:
        logger.debug(f"Skipped {skipped} ratings for users or items outside the index")

    return (
        np.asarray(users, dtype=np.int64),
        np.asarray(items, dtype=np.int64),
        np.asarray(scores, dtype=np.float64),
    )


def compute_rmse(
    model: FactorModel,
    user_rows: np.ndarray,
    item_rows: np.ndarray,
    scores: np.ndarray,
) -> float:
    """Root-mean-squared error of the clipped predictions."""
    if scores.size == 0:
        return 0.0
    predictions = model.predict_many(user_rows, item_rows)
    return float(np.sqrt(np.mean((scores - predictions) ** 2)))


def train_matrix_factorization(
    ratings: Sequence[Rating],
    user_id_to_idx: Dict[int, int],
    item_id_to_idx: Dict[int, int],
    n_factors: int = DEFAULT_LATENT_FACTORS,
    learning_rate: float = DEFAULT_LEARNING_RATE,
    regularization: float = DEFAULT_REGULARIZATION,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    rmse_threshold: float = DEFAULT_RMSE_THRESHOLD,
    rng: Optional[np.random.Generator] = None,
) -> TrainingResult:
    """Train a biased matrix factorization model with SGD.

    Ratings are shuffled at the start of every epoch. For each rating the
    error against the raw (unclipped) prediction drives the updates::

        b_u += lr * (err - reg * b_u)
        b_i += lr * (err - reg * b_i)
        p_u += lr * (err * q_i - reg * p_u)
        q_i += lr * (err * p_u - reg * q_i)

    After every epoch the RMSE of the clipped predictions over all usable
    ratings is recorded. Training stops once RMSE drops below
    ``rmse_threshold`` or after ``max_iterations`` epochs.

    Args:
        ratings: Training ratings, one per (user, item) pair.
        user_id_to_idx: Row index per user id.
        item_id_to_idx: Row index per item id.
        n_factors: Width of the latent factor vectors.
        learning_rate: SGD learning rate.
        regularization: L2 regularization strength.
        max_iterations: Maximum number of epochs.
        rmse_threshold: Early-stopping RMSE.
        rng: Seeded random generator for initialization and shuffling.

    Returns:
        TrainingResult holding the model and the per-epoch RMSE history.

    Example:
        >>> result = train_matrix_factorization(ratings, user_map, item_map)
        >>> print(f"RMSE after {result.epochs_run} epochs: {result.final_rmse:.4f}")
    """
    if rng is None:
        rng = np.random.default_rng(DEFAULT_RANDOM_STATE)

    # Mean over every rating passed in, including ones outside the index
    global_mean = (
        float(np.mean([rating.rating for rating in ratings])) if ratings else DEFAULT_GLOBAL_MEAN
    )
    user_rows, item_rows, scores = _index_ratings(ratings, user_id_to_idx, item_id_to_idx)

    model = initialize_factor_model(
        n_users=len(user_id_to_idx),
        n_items=len(item_id_to_idx),
        n_factors=n_factors,
        global_mean=global_mean,
        rng=rng,
    )
    result = TrainingResult(model=model, n_ratings=int(scores.size))

    if scores.size == 0:
        logger.warning("No usable ratings; factor model left at initialization")
        return result

    logger.info(
        f"Training matrix factorization: {len(user_id_to_idx)} users, "
        f"{len(item_id_to_idx)} items, {scores.size} ratings, {n_factors} factors"
    )
    logger.info(f"Learning rate: {learning_rate}, Regularization: {regularization}")

    for epoch in range(max_iterations):
        for position in rng.permutation(scores.size):
            sgd_step(
                model,
                int(user_rows[position]),
                int(item_rows[position]),
                scores[position],
                learning_rate,
                regularization,
            )

        rmse = compute_rmse(model, user_rows, item_rows, scores)
        result.rmse_history.append(rmse)

        if epoch % LOG_EVERY_N_EPOCHS == 0:
            logger.info(f"CF epoch {epoch}: RMSE = {rmse:.4f}")

        if rmse < rmse_threshold:
            result.converged = True
            logger.info(f"Converged at epoch {epoch} with RMSE = {rmse:.4f}")
            break

    logger.info(f"Model training completed, final RMSE: {result.final_rmse:.4f}")
    return result
