"""Engine configuration.

All hyperparameters of the hybrid engine live on a single validated pydantic
model. Defaults mirror the module constants below; any field can be overridden
through ``CORTEXREC_<FIELD_NAME>`` environment variables.
"""

import logging
import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field, model_validator

# Configure module logger
logger = logging.getLogger(__name__)

ENV_PREFIX = "CORTEXREC_"

# Collaborative filtering
DEFAULT_LATENT_FACTORS = 10
DEFAULT_LEARNING_RATE = 0.01
DEFAULT_REGULARIZATION = 0.02
DEFAULT_MAX_ITERATIONS = 100
DEFAULT_RMSE_THRESHOLD = 0.1
DEFAULT_ONLINE_LR_MULTIPLIER = 2.0

# Content-based filtering
DEFAULT_TAG_EMBEDDING_SIZE = 8
DEFAULT_TAG_EPOCHS = 50
DEFAULT_OWNED_WEIGHT = 0.5

# Hybrid / service
DEFAULT_CF_WEIGHT = 0.6
DEFAULT_CB_WEIGHT = 0.4
DEFAULT_MIN_RATINGS = 10
DEFAULT_RANDOM_STATE = 42


class EngineConfig(BaseModel):
    """Hyperparameters for training and serving the hybrid model."""

    latent_factors: int = Field(default=DEFAULT_LATENT_FACTORS, gt=0)
    learning_rate: float = Field(default=DEFAULT_LEARNING_RATE, gt=0)
    regularization: float = Field(default=DEFAULT_REGULARIZATION, ge=0)
    max_iterations: int = Field(default=DEFAULT_MAX_ITERATIONS, gt=0)
    rmse_threshold: float = Field(default=DEFAULT_RMSE_THRESHOLD, ge=0)
    online_lr_multiplier: float = Field(default=DEFAULT_ONLINE_LR_MULTIPLIER, gt=0)
    tag_embedding_size: int = Field(default=DEFAULT_TAG_EMBEDDING_SIZE, gt=0)
    tag_epochs: int = Field(default=DEFAULT_TAG_EPOCHS, ge=0)
    owned_weight: float = Field(default=DEFAULT_OWNED_WEIGHT, ge=0)
    cf_weight: float = Field(default=DEFAULT_CF_WEIGHT, ge=0)
    cb_weight: float = Field(default=DEFAULT_CB_WEIGHT, ge=0)
    min_ratings: int = Field(default=DEFAULT_MIN_RATINGS, ge=0)
    random_state: int = DEFAULT_RANDOM_STATE

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_weights(self) -> "EngineConfig":
        if self.cf_weight + self.cb_weight <= 0:
            raise ValueError("cf_weight and cb_weight cannot both be zero")
        return self

    @property
    def online_learning_rate(self) -> float:
        return self.learning_rate * self.online_lr_multiplier

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """Build a config from ``CORTEXREC_*`` environment variables.

        Unset variables keep their defaults. Values are parsed by pydantic, so
        a malformed value raises ``pydantic.ValidationError``.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            Validated EngineConfig.

        Example:
            >>> EngineConfig.from_env({"CORTEXREC_LATENT_FACTORS": "16"}).latent_factors
            16
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        for name in cls.model_fields:
            key = ENV_PREFIX + name.upper()
            if key in environ:
                overrides[name] = environ[key]

        if overrides:
            logger.info(f"Engine config overrides from environment: {sorted(overrides)}")

        return cls(**overrides)
