"""Configuration management for the ExamCraft question paper service.

This module uses Pydantic Settings to load configuration from environment
variables. All settings are validated at startup to catch configuration
errors early.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    The Gemini API key is optional: without it the paper editor works
    normally and only the AI suggestion endpoint is unavailable.
    """

    # Gemini API Configuration
    gemini_api_key: Optional[str] = Field(
        default=None,
        description="Google Gemini API key for drafting sample questions"
    )

    # AI Model Configuration
    model_name: str = Field(
        default="gemini-3-flash-preview",
        description="Gemini model to use for question suggestions"
    )

    # Suggestion Configuration
    default_suggestion_count: int = Field(
        default=1,
        ge=1,
        description="Questions requested per suggestion when the client does not say"
    )
    max_suggestion_count: int = Field(
        default=10,
        ge=1,
        description="Upper bound on questions requested in one suggestion call"
    )

    # Print output
    pdf_font_path: Optional[str] = Field(
        default=None,
        description="TrueType font for PDF output (needed for Devanagari and math symbols)"
    )

    # Rate limiting
    suggest_rate_limit: str = Field(
        default="10/minute",
        description="slowapi limit string for the suggestion endpoint"
    )
    trusted_proxies: Optional[str] = Field(
        default=None,
        description="Comma-separated proxy IPs or CIDR ranges allowed to set X-Forwarded-For"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR)"
    )

    # Model configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("gemini_api_key")
    @classmethod
    def validate_gemini_api_key(cls, v: Optional[str]) -> Optional[str]:
        """Reject a GEMINI_API_KEY that is set but blank."""
        if v is None:
            return None
        if not v.strip():
            raise ValueError(
                "GEMINI_API_KEY must not be empty. Unset it to disable AI "
                "suggestions, or get an API key from https://ai.google.dev/"
            )
        return v.strip()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"LOG_LEVEL must be DEBUG, INFO, WARNING, ERROR or CRITICAL, got {v!r}")
        return level


@lru_cache
def get_settings() -> Settings:
    """Get cached Settings instance.

    This function uses lru_cache to ensure settings are loaded only once
    and reused across the application lifetime.

    Returns:
        Settings: Validated application settings

    Raises:
        ValueError: If environment variables are present but invalid
    """
    return Settings()
