"""Engine settings using pydantic-settings."""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Navigation engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SURVEYNAV_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(levelname)s  %(name)s  %(message)s"

    # Render walk
    max_hops: int = Field(
        default=25,
        ge=1,
        description="Maximum resolve hops per render request before giving up",
    )

    # Randomization
    deterministic_shuffle: bool = Field(
        default=True,
        description="Seed shuffles from (session, cache key) so a lost cache write reproduces the order",
    )
    shuffle_seed_salt: str = ""

    # Redis render state
    redis_url: str = "redis://localhost:6379/0"
    redis_prefix: str = "surveynav"
    render_state_ttl_seconds: int = Field(default=86400, ge=1)


@lru_cache
def get_settings() -> EngineSettings:
    """Get cached settings instance."""
    return EngineSettings()


def configure_logging(settings: Optional[EngineSettings] = None) -> None:
    """Configure the root logger from settings. Call once at process start."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=settings.log_format,
    )
