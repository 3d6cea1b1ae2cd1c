"""Application-wide configuration management using Pydantic settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the artwork feed.

    Every field can be overridden with an ``ARTFEED_``-prefixed environment variable.
    Out-of-range values raise ``pydantic.ValidationError`` at load time.
    """

    model_config = SettingsConfigDict(env_prefix="ARTFEED_", env_file=".env", extra="ignore")

    environment: str = "development"
    log_level: str = "INFO"
    log_file: Optional[str] = Field(default=None, description="JSON lines log file; stderr when unset")

    # HTTP
    http_timeout: float = Field(default=30.0, gt=0.0)
    user_agent: str = "artfeed/0.1"
    aic_user_agent: str = "artfeed (public-domain art viewer)"

    # Museum APIs
    met_base_url: str = "https://collectionapi.metmuseum.org/public/collection/v1"
    aic_base_url: str = "https://api.artic.edu/api/v1"
    cma_base_url: str = "https://openaccess-api.clevelandart.org/api"

    # Pool / sampling
    default_query: str = "painting"
    per_source_cap: int = Field(default=350, ge=1)
    sampler_max_attempts: int = Field(default=200, ge=1)

    # Navigation / prefetch
    history_cap: int = Field(default=20, ge=1)
    prefetch_buffer_size: int = Field(default=3, ge=0)
    image_cache_capacity: int = Field(default=20, ge=1)

    # Initial load retry policy
    max_auto_retries: int = Field(default=1, ge=0)
    retry_delay_seconds: float = Field(default=0.6, ge=0.0)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load and cache configuration for the current process."""

    return Settings()  # type: ignore[arg-type]


__all__ = ["Settings", "get_settings"]
