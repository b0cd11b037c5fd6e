"""FastAPI application main module.

This module builds the CortexRec application: it wires the interaction store,
the recommendation service and the metrics tracker onto ``app.state``, trains
the model at startup and registers the routers and error handlers.
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, Optional

import numpy as np
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cortexrec import __version__
from cortexrec.api.exceptions import CortexRecException
from cortexrec.api.logging_config import RequestLoggingMiddleware
from cortexrec.api.metrics import MetricsTracker
from cortexrec.api.routes import feedback, model, recommend
from cortexrec.recommender.config import EngineConfig
from cortexrec.recommender.service import RecommendationService
from cortexrec.store import InMemoryInteractionStore, load_store_from_csv

# Configure module logger
logger = logging.getLogger(__name__)

DATA_DIR_ENV = "CORTEXREC_DATA_DIR"


def load_default_store() -> InMemoryInteractionStore:
    """Load the store from ``CORTEXREC_DATA_DIR`` or start empty."""
    data_dir = os.environ.get(DATA_DIR_ENV)
    if data_dir and Path(data_dir).exists():
        return load_store_from_csv(data_dir)

    logger.warning(f"{DATA_DIR_ENV} not set or missing; starting with an empty store")
    return InMemoryInteractionStore()


def create_app(
    store: Optional[InMemoryInteractionStore] = None,
    config: Optional[EngineConfig] = None,
    train_on_startup: bool = True,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        store: Interaction store. Defaults to ``load_default_store()``.
        config: Engine configuration. Defaults to ``EngineConfig.from_env()``.
        train_on_startup: Run a full training pass when the app starts.

    Returns:
        Configured FastAPI application.
    """
    config = config or EngineConfig.from_env()
    service = RecommendationService(config)
    store = store if store is not None else load_default_store()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if train_on_startup:
            service.train_from_store(store)
        yield
        service.shutdown()

    app = FastAPI(
        title="CortexRec API",
        description="Hybrid game recommendation service",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.store = store
    app.state.service = service
    app.state.metrics = MetricsTracker()
    app.state.feedback_rng = np.random.default_rng(config.random_state)

    app.add_middleware(RequestLoggingMiddleware)

    @app.exception_handler(CortexRecException)
    async def handle_cortexrec_exception(
        request: Request, exc: CortexRecException
    ) -> JSONResponse:
        logger.warning(
            f"{type(exc).__name__}: {exc.message}",
            extra={"path": str(request.url.path), "status_code": exc.status_code},
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.get("/ping")
    def ping() -> Dict[str, str]:
        """Health check endpoint.

        Returns:
            Dictionary with status key set to "ok".
        """
        return {"status": "ok"}

    @app.get("/metrics")
    def get_metrics() -> Dict:
        """Inference count and latency statistics."""
        return app.state.metrics.get_metrics()

    app.include_router(recommend.router)
    app.include_router(feedback.router)
    app.include_router(model.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    from cortexrec.api.logging_config import setup_logging

    setup_logging(
        os.environ.get("CORTEXREC_LOG_LEVEL", "INFO"),
        engine_log_level=os.environ.get("CORTEXREC_ENGINE_LOG_LEVEL"),
    )
    uvicorn.run(
        "cortexrec.api.main:app",
        host="0.0.0.0",
        port=8000,
    )
