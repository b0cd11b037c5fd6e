"""Model lifecycle endpoints: status and retraining."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query, status

from cortexrec.api.dependencies import get_service, get_store, require_user
from cortexrec.api.exceptions import PermissionDeniedError
from cortexrec.recommender.service import RecommendationService
from cortexrec.store import InMemoryInteractionStore

# Configure module logger
logger = logging.getLogger(__name__)

router = APIRouter(tags=["model"])

TRAIN_CAPABILITY = "train_model"


@router.get("/status")
def model_status(
    service: RecommendationService = Depends(get_service),
) -> Dict[str, Any]:
    """Return model statistics: counts, hyperparameters, training outcome."""
    return service.get_model_stats()


@router.post("/model/train", status_code=status.HTTP_202_ACCEPTED)
def train_model(
    user_id: int = Query(..., description="Id of the user requesting the retrain"),
    service: RecommendationService = Depends(get_service),
    store: InMemoryInteractionStore = Depends(get_store),
) -> Dict[str, str]:
    """Retrain the model from the store on the service's training worker.

    Only users whose role grants ``train_model`` may trigger a retrain.
    Queries keep using the current model until the new one is complete.
    """
    user = require_user(store, user_id)
    if not user.has_capability(TRAIN_CAPABILITY):
        logger.warning(
            "Retraining refused",
            extra={"event": "train_refused", "user_id": user_id, "role": user.role.value},
        )
        raise PermissionDeniedError(user_id, TRAIN_CAPABILITY)

    logger.info("Retraining requested", extra={"event": "train_requested", "user_id": user_id})
    service.train_in_background(store)
    return {"status": "Training scheduled"}
