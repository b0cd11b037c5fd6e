"""CortexRec: hybrid game recommendation engine.

This package provides a recommendation engine that fuses matrix-factorization
collaborative filtering with a content-based tag-embedding model, plus a small
HTTP service around it.

Modules:
    api: FastAPI application and REST API endpoints
    recommender: model training, scoring and the recommendation service
    store: in-memory interaction store and CSV loading
"""

__version__ = "0.1.0"
