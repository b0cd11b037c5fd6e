"""Tests for hybrid recommendation system.

This module contains tests for the hybrid scorer that combines collaborative
filtering with content-based filtering over a model snapshot.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from cortexrec.recommender.embed import TagEmbeddingTable
from cortexrec.recommender.hybrid import HybridScorer, ModelSnapshot
from cortexrec.recommender.train import FactorModel


@pytest.fixture
def snapshot():
    """Fixture providing a hand-built snapshot with 3 users and 3 items.

    User 0 has preference [1, 0]; user 1 has none; user 2 has [1, 0] too.
    Item 0 points along [1, 0], item 1 along [-1, 0], item 2 has no tags.
    """
    factors = FactorModel(
        user_factors=np.array([[1.0, 0.0], [0.0, 1.0], [1.0, 0.1]]),
        item_factors=np.array([[0.5, 0.0], [0.0, 0.5], [0.5, 0.05]]),
        user_bias=np.zeros(3),
        item_bias=np.zeros(3),
        global_mean=3.5,
    )
    table = TagEmbeddingTable(np.array([[1.0, 0.0], [-1.0, 0.0]]), {"A": 0, "B": 1})
    return ModelSnapshot(
        factors=factors,
        tag_table=table,
        item_content_vectors=np.array([[1.0, 0.0], [-1.0, 0.0], [0.0, 0.0]]),
        user_preference_vectors=np.array([[1.0, 0.0], [0.0, 0.0], [1.0, 0.0]]),
        user_id_to_idx={100: 0, 101: 1, 102: 2},
        item_id_to_idx={10: 0, 11: 1, 12: 2},
    )


@pytest.fixture
def scorer(snapshot):
    return HybridScorer(snapshot, cf_weight=0.6, cb_weight=0.4)


def test_snapshot_counts(snapshot):
    assert snapshot.n_users == 3
    assert snapshot.n_items == 3
    # 12 factor entries + 6 biases + 4 tag + 6 item content + 6 user preference
    assert snapshot.n_parameters == 34


def test_cf_prediction(scorer):
    assert scorer.predict_cf(0, 0) == pytest.approx(3.5 + 0.5)


def test_cb_prediction_maps_cosine_to_rating_scale(scorer):
    assert scorer.predict_cb(0, 0) == pytest.approx(5.0)
    assert scorer.predict_cb(0, 1) == pytest.approx(1.0)


def test_cb_prediction_falls_back_to_global_mean(scorer):
    # User without content signal
    assert scorer.predict_cb(1, 0) == 3.5
    # Item without content signal
    assert scorer.predict_cb(0, 2) == 3.5


def test_hybrid_prediction_is_weighted_sum(scorer):
    expected = 0.6 * scorer.predict_cf(0, 0) + 0.4 * scorer.predict_cb(0, 0)
    assert scorer.predict(0, 0) == pytest.approx(expected)


def test_score_breakdown(scorer):
    breakdown = scorer.score_breakdown(0, 1)

    assert set(breakdown) == {"cf_score", "cb_score", "hybrid_score"}
    assert breakdown["hybrid_score"] == pytest.approx(scorer.predict(0, 1))


def test_custom_weights(snapshot):
    cf_only = HybridScorer(snapshot, cf_weight=1.0, cb_weight=0.0)
    assert cf_only.predict(0, 1) == pytest.approx(cf_only.predict_cf(0, 1))


def test_item_similarity(scorer):
    assert scorer.item_similarity(0, 0) == pytest.approx(1.0)
    assert scorer.item_similarity(0, 1) == pytest.approx(scorer.item_similarity(1, 0))
    # Orthogonal factors, opposite content
    assert scorer.item_similarity(0, 1) == pytest.approx(0.6 * 0.0 + 0.4 * -1.0)


def test_user_similarity(scorer):
    assert scorer.user_similarity(0, 2) > scorer.user_similarity(0, 1)
    # Zero preference vector contributes nothing
    assert scorer.user_similarity(0, 1) == pytest.approx(0.0)
