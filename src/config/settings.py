# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for provider credentials, polling defaults,
router limits and logging. Cross-field rules raise ConfigurationError.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === PROVIDER CREDENTIALS ===
    google_cloud_project_id: str = ""
    vertex_ai_location: str = "us-central1"
    vertex_ai_api_key: str = ""
    google_service_account_path: str = ""

    azure_openai_api_key: str = ""
    azure_openai_endpoint: str = ""
    azure_openai_deployment: str = "gpt-4.1"

    openai_api_key: str = ""
    runway_api_key: str = ""
    stability_api_key: str = ""

    # === Async job polling ===
    polling_initial_delay_s: float = 5.0
    polling_max_delay_s: float = 30.0
    polling_backoff_multiplier: float = 1.5
    polling_max_attempts: int = 120
    polling_timeout_s: float = 600.0
    polling_stuck_after_s: float = 900.0
    polling_max_active_jobs: int = 100
    polling_history_size: int = 200

    # === Router ===
    prompt_soft_limit: int = 5000
    fallback_max_candidates: int = 3
    status_url_prefix: str = "/api/ai-generators/status"
    metrics_history_size: int = 1000

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("fallback_max_candidates", "prompt_soft_limit")
    @classmethod
    def validate_positive(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @model_validator(mode="after")
    def validate_polling_consistency(self) -> Settings:
        """Validate cross-field polling rules."""
        errors: list[str] = []

        if self.polling_max_delay_s < self.polling_initial_delay_s:
            errors.append(
                "POLLING_MAX_DELAY_S must be >= POLLING_INITIAL_DELAY_S"
            )
        if self.polling_backoff_multiplier < 1:
            errors.append("POLLING_BACKOFF_MULTIPLIER must be >= 1")
        if self.polling_timeout_s <= 0:
            errors.append("POLLING_TIMEOUT_S must be > 0")
        if self.polling_max_attempts < 1:
            errors.append("POLLING_MAX_ATTEMPTS must be >= 1")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or embedding).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
