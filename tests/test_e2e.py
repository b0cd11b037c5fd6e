"""End-to-end tests for the CortexRec API.

Tests the full cycle: synthetic data generated and written to CSV, loaded by
the application at startup, trained, queried and updated over HTTP.
"""

import logging
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from cortexrec.api.main import DATA_DIR_ENV, create_app, load_default_store
from cortexrec.recommender.config import EngineConfig
from cortexrec.store import save_store_to_csv
from scripts.generate_fake_data import generate_fake_store

# Configure logging for tests
logging.basicConfig(level=logging.WARNING)


@pytest.fixture(scope="module")
def data_dir(tmp_path_factory) -> Path:
    """Generate a synthetic game library on disk for e2e testing."""
    directory = tmp_path_factory.mktemp("e2e_data")
    store = generate_fake_store(num_users=30, num_items=60, num_ratings=400, seed=7)
    save_store_to_csv(store, str(directory))
    return directory


@pytest.fixture
def client(data_dir, monkeypatch):
    monkeypatch.setenv(DATA_DIR_ENV, str(data_dir))
    app = create_app(store=load_default_store(), config=EngineConfig(max_iterations=30))
    with TestClient(app) as test_client:
        yield test_client


def test_generated_files_exist(data_dir):
    for name in ["users.csv", "items.csv", "ratings.csv", "ownership.csv"]:
        assert (data_dir / name).exists()


def test_load_default_store_without_data_dir(monkeypatch):
    monkeypatch.delenv(DATA_DIR_ENV, raising=False)
    store = load_default_store()

    assert store.list_users() == []
    assert store.list_ratings() == []


def test_full_recommendation_cycle(client):
    status = client.get("/status").json()
    assert status["trained"] is True
    assert status["num_users"] == 30
    assert status["num_items"] == 60

    response = client.get("/recommend/2?top_n=10&explain=true")
    assert response.status_code == 200
    data = response.json()
    assert data["method"] == "hybrid"
    assert len(data["recommendations"]) <= 10
    assert len(data["scores"]) == len(data["recommendations"])

    first = data["recommendations"][0]["id"]
    rating = client.post("/ratings", json={"user_id": 2, "item_id": first, "rating": 1})
    assert rating.status_code == 200
    assert rating.json()["model_updated"] is True

    similar = client.get(f"/recommend/items/{first}/similar?top_n=5").json()
    assert len(similar["similar_items"]) == 5

    assert client.post("/model/train?user_id=1").status_code == 202
    client.app.state.service.shutdown()
    assert client.get("/status").json()["online_updates"] == 0
