# src/config/settings.py
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for credentials, pacing, planner sizing, storage
paths and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is missing or internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === LLM ===
    llm_provider: str = "anthropic"
    llm_model: str = "claude-3-haiku-20240307"
    llm_max_tokens: int = 4096
    llm_temperature: float = 0.7

    # Provider API keys
    anthropic_api_key: str = ""
    openai_api_key: str = ""

    # === Pacing and retries ===
    min_call_interval_s: float = 2.0
    rate_limit_max_retries: int = 5
    rate_limit_base_delay_s: float = 10.0
    transient_max_retries: int = 3
    transient_base_delay_s: float = 2.0

    # === Planner ===
    sections_per_topic: int = 3
    min_sections: int = 120
    default_target_words: int = 1000

    # === Worker ===
    context_sections: int = 2
    context_chars: int = 2000

    # === Storage ===
    output_dir: Path = Path("./output")
    progress_dir: Path = Path("./progress")
    checkpoint_backend: Literal["json", "sqlite"] = "json"

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("min_call_interval_s")
    @classmethod
    def validate_interval(cls, v: float) -> float:  # noqa: N805
        if v < 0:
            raise ValueError("min_call_interval_s must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.sections_per_topic < 1:
            errors.append("SECTIONS_PER_TOPIC must be >= 1")

        if self.min_sections < 1:
            errors.append("MIN_SECTIONS must be >= 1")

        if self.rate_limit_max_retries < 0 or self.transient_max_retries < 0:
            errors.append("retry counts must be >= 0")

        if self.context_sections < 0:
            errors.append("CONTEXT_SECTIONS must be >= 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def api_key(self) -> str:
        """API key for the configured provider ("" when unknown)."""
        return getattr(self, f"{self.llm_provider}_api_key", "")

    def require_api_key(self) -> str:
        """Return the active provider's API key or fail fast.

        Raises:
            ConfigurationError: If the key is empty.
        """
        key = self.api_key
        if not key:
            raise ConfigurationError(
                f"{self.llm_provider.upper()}_API_KEY is not set"
            )
        return key


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or CLI flags).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
