"""Client configuration with pydantic-settings.

All values can be overridden through ``VADIS_*`` environment variables or a
local ``.env`` file.

Usage:
    from vadis_intake.config import get_settings

    settings = get_settings()
    client = ProductionAPIClient(settings.api_url, timeout=settings.request_timeout)
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MAX_SCRIPT_BYTES = 10 * 1024 * 1024
PDF_MIME_TYPE = "application/pdf"


class Settings(BaseSettings):
    """Intake client settings."""

    model_config = SettingsConfigDict(
        env_prefix="VADIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Backend ===

    api_url: str = Field(
        default="http://localhost:5000",
        description="Production backend base URL (without the /api prefix)",
        examples=["http://localhost:5000", "https://app.vadis.example"],
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for HTTP calls other than analysis features",
    )

    # === Analysis fan-out ===

    feature_timeout: float = Field(
        default=300.0,
        gt=0,
        description="Upper bound in seconds for a single analysis feature request",
    )
    max_concurrency: int | None = Field(
        default=None,
        ge=1,
        description="Max parallel feature requests (None = all at once, 1 = sequential)",
    )
    merge_policy: Literal["merge", "replace"] = Field(
        default="merge",
        description="Whether a partial re-run keeps results of features it does not include",
    )
    notify_analysis_start: bool = Field(
        default=False,
        description="POST /projects/:id/analyze before running the features",
    )
    poll_interval: float = Field(
        default=5.0,
        gt=0,
        description="Seconds between aggregated analysis polls",
    )
    watch_timeout: float = Field(
        default=600.0,
        gt=0,
        description="Seconds before a progress watcher gives up",
    )

    # === Script upload ===

    max_script_bytes: int = Field(default=MAX_SCRIPT_BYTES, ge=1)
    accepted_script_type: str = Field(default=PDF_MIME_TYPE)

    # === Logging ===

    service_name: str = Field(
        default="vadis-intake",
        description="Service name for structured logging",
    )
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        """Strip trailing slashes and reject an explicit /api suffix."""
        cleaned = v.strip().rstrip("/")
        if not cleaned:
            raise ValueError("api_url must not be empty")
        if cleaned.endswith("/api"):
            raise ValueError("api_url must not include the /api prefix")
        return cleaned

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
