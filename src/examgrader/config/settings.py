"""
Configuration management for the exam grading service.

All configuration comes from environment variables or .env file.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator
from typing import Optional
from functools import lru_cache

from examgrader.config.constants import (
    DEFAULT_DATABASE_URL,
    DEFAULT_OPENAI_MODEL,
    SCORING_MAX_ATTEMPTS,
    SCORING_BACKOFF_SECONDS,
    SCORING_TIMEOUT_SECONDS,
    SCORING_CONCURRENCY,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="EXAMGRADER_",
        case_sensitive=False
    )

    # Security (required)
    jwt_secret: str = Field(..., min_length=32)

    # Database
    database_url: str = DEFAULT_DATABASE_URL

    # Assisted scoring service
    scoring_provider: str = "none"  # "none", "openai", "http"
    openai_api_key: str = ""
    openai_model: str = DEFAULT_OPENAI_MODEL
    openai_base_url: Optional[str] = None
    scoring_service_url: str = ""
    scoring_service_token: str = ""

    # Retry / timeout policy for assisted scoring
    scoring_timeout_seconds: float = Field(SCORING_TIMEOUT_SECONDS, gt=0)
    scoring_max_attempts: int = Field(SCORING_MAX_ATTEMPTS, ge=1, le=5)
    scoring_backoff_seconds: float = Field(SCORING_BACKOFF_SECONDS, ge=0)
    scoring_concurrency: int = Field(SCORING_CONCURRENCY, ge=1)

    # Holistic narrative after grading
    generate_ai_analysis: bool = True

    # Notifications
    notification_webhook_url: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # Error tracking
    sentry_dsn: str = ""
    sentry_environment: str = "development"
    sentry_traces_sample_rate: float = 0.1

    # Rate limiting
    submit_rate_limit: str = "10/minute"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Validators
    @field_validator('jwt_secret')
    @classmethod
    def reject_default_values(cls, v: str) -> str:
        """Reject default/weak JWT secrets."""
        forbidden = ['your-secret-key-change-in-production', 'change-me-change-me-change-me-change-me']
        if v.lower() in forbidden or len(set(v)) < 4:
            raise ValueError("JWT_SECRET cannot be a default value. Generate with: openssl rand -base64 32")
        return v

    @field_validator('scoring_provider')
    @classmethod
    def validate_scoring_provider(cls, v: str) -> str:
        """Validate scoring provider is a supported value."""
        valid_providers = ['none', 'openai', 'http']
        if v.lower() not in valid_providers:
            raise ValueError(f"scoring_provider must be one of: {', '.join(valid_providers)}")
        return v.lower()

    @model_validator(mode='after')
    def validate_provider_credentials(self):
        """Ensure the configured scoring provider can actually be reached."""
        if self.scoring_provider == "openai" and not self.openai_api_key:
            raise ValueError("EXAMGRADER_OPENAI_API_KEY required when scoring_provider=openai")
        if self.scoring_provider == "http" and not self.scoring_service_url:
            raise ValueError("EXAMGRADER_SCORING_SERVICE_URL required when scoring_provider=http")
        return self


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def reload_settings() -> Settings:
    """Reload settings from environment."""
    get_settings.cache_clear()
    return get_settings()
