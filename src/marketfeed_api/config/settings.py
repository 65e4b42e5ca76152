# src/marketfeed_api/config/settings.py
# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Marketfeed Configuration (Pydantic Settings, v2)

Summary:
    Typed, validated application configuration for the Marketfeed API. This
    module centralizes environment parsing and validation. Only adapters and
    infrastructure read it at runtime; use cases receive plain values via DI.

Design:
    - Pydantic v2 BaseSettings; unknown env is ignored (shared containers).
    - Explicit field declarations with constrained types and ranges.
    - Environment enumeration for behavior toggles (includes TEST).
    - Singleton accessor `get_settings()` with LRU cache.
    - Provider endpoints/timeouts live in provider settings
      (`infrastructure/external_apis/provider_settings.py`).
"""

from __future__ import annotations

import logging
from enum import Enum
from functools import lru_cache
from typing import Literal

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Environment(str, Enum):
    """Logical deployment environment.

    This is a thin classification used for coarse-grained behavior toggles.
    """

    DEVELOPMENT = "development"
    TEST = "test"
    CI = "ci"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Typed application configuration for Marketfeed."""

    # ---------------------------
    # Core environment
    # ---------------------------
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Logical deployment environment.",
        validation_alias="ENVIRONMENT",
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level.",
        validation_alias="LOG_LEVEL",
    )
    service_version: str | None = Field(
        default=None,
        description="Service version reported in OpenAPI and startup logs.",
        validation_alias="SERVICE_VERSION",
    )

    # Raw env for CORS; we compute the parsed list in a model validator.
    cors_allow_origins_raw: str | None = Field(
        default=None,
        description="Raw env for allowed CORS origins (comma-separated).",
        validation_alias="ALLOWED_ORIGINS",
    )
    cors_allow_origins: list[str] = Field(
        default_factory=list,
        description="Allowed CORS origins. Derived from ALLOWED_ORIGINS.",
    )

    # ---------------------------
    # Cache backend
    # ---------------------------
    cache_backend: Literal["memory", "redis"] = Field(
        default="memory",
        description="Response cache backend. The in-flight coalescing map is always in-process.",
        validation_alias="CACHE_BACKEND",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL used when CACHE_BACKEND=redis.",
        validation_alias="REDIS_URL",
    )
    redis_socket_timeout_s: float = Field(
        default=3.0,
        ge=0.1,
        le=60.0,
        description="Socket timeout in seconds for Redis commands.",
        validation_alias="REDIS_SOCKET_TIMEOUT_S",
    )
    cache_namespace: str = Field(
        default="marketfeed:market_data:v1",
        description="Key prefix for the distributed cache.",
        validation_alias="CACHE_NAMESPACE",
    )

    # ---------------------------
    # TTL bands (seconds)
    # ---------------------------
    quote_cache_ttl_s: int = Field(
        default=60,
        ge=0,
        le=3600,
        description="TTL for cached upstream quote payloads.",
        validation_alias="QUOTE_CACHE_TTL_S",
    )
    history_cache_ttl_s: int = Field(
        default=3600,
        ge=0,
        le=86400,
        description="TTL for cached upstream history payloads.",
        validation_alias="HISTORY_CACHE_TTL_S",
    )
    fx_cache_ttl_s: int = Field(
        default=3600,
        ge=0,
        le=86400,
        description="TTL for the cached USD/ILS rate.",
        validation_alias="FX_CACHE_TTL_S",
    )

    # ---------------------------
    # Batch merge
    # ---------------------------
    quotes_max_concurrency: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Upper bound on concurrent per-ID waterfalls within one batch.",
        validation_alias="QUOTES_MAX_CONCURRENCY",
    )
    quotes_per_id_timeout_s: float = Field(
        default=15.0,
        gt=0.0,
        le=120.0,
        description="Deadline for resolving a single ID across all of its stages.",
        validation_alias="QUOTES_PER_ID_TIMEOUT_S",
    )
    yahoo_batch_size: int = Field(
        default=50,
        ge=1,
        le=50,
        description="Maximum symbols per Yahoo batch quote request.",
        validation_alias="YAHOO_BATCH_SIZE",
    )
    quotes_stage_timeout_s: float = Field(
        default=3.5,
        gt=0.0,
        le=60.0,
        description="Deadline for a single waterfall stage before the next provider is tried.",
        validation_alias="QUOTES_STAGE_TIMEOUT_S",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _derive_cors(self) -> Settings:
        """Parse ALLOWED_ORIGINS and reject '*' in production."""
        raw = self.cors_allow_origins_raw
        if raw:
            self.cors_allow_origins = [o.strip() for o in raw.split(",") if o.strip()]
        if self.environment is Environment.PRODUCTION and "*" in self.cors_allow_origins:
            raise ValueError("ALLOWED_ORIGINS must not contain '*' in production")
        return self

    @property
    def is_test(self) -> bool:
        """Return True for hermetic test/CI environments."""
        return self.environment in (Environment.TEST, Environment.CI)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide Settings singleton.

    Raises:
        ValidationError: If the environment holds invalid values.
    """
    try:
        settings = Settings()
    except ValidationError:
        logger.error("settings_validation_failed")
        raise
    logger.debug(
        "settings_loaded",
        extra={
            "extra": {
                "environment": settings.environment.value,
                "cache_backend": settings.cache_backend,
            }
        },
    )
    return settings
