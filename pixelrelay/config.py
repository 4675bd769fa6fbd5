"""Runtime configuration: env-driven via pydantic-settings.

Reads from a .env file and PIXELRELAY_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from pixelrelay.core.retry_queue import BackoffPolicy, RetryQueue


class RelaySettings(BaseSettings):
    """Relay configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export PIXELRELAY_LOG_LEVEL=DEBUG
        export PIXELRELAY_MAX_ATTEMPTS=5
        export PIXELRELAY_BACKOFF_BASE_MS=250

    Or via .env file::

        PIXELRELAY_ENVIRONMENT=production
        PIXELRELAY_IGNORE_UNMAPPED_PROPERTIES=true
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PIXELRELAY_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Retry behaviour
    max_attempts: int = Field(default=3, ge=0)
    backoff_base_ms: float = Field(default=500.0, ge=0)
    backoff_factor: float = Field(default=2.0, ge=1.0)
    backoff_max_ms: float = Field(default=60_000.0, ge=0)

    # Delivery records kept by a dispatcher after tasks settle
    history_limit: int = Field(default=1000, ge=0)

    # Mapping
    ignore_unmapped_properties: bool = False

    # Local file destination output
    events_dir: Path = Path(".pixelrelay/events")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def backoff_policy(self) -> BackoffPolicy:
        return BackoffPolicy(
            base_ms=self.backoff_base_ms,
            factor=self.backoff_factor,
            max_ms=self.backoff_max_ms,
        )

    def retry_queue(self) -> RetryQueue:
        """A fresh RetryQueue configured from these settings."""
        return RetryQueue(max_attempts=self.max_attempts, backoff=self.backoff_policy())


# Module-level singleton, import as `from pixelrelay.config import settings`
settings = RelaySettings()
