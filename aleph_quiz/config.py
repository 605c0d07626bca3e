"""
Configuration settings for aleph-quiz.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Content Generation
    # ========================================
    gemini_api_key: str | None = Field(
        default=None,
        description="Google Gemini API key for quiz generation",
    )
    ai_model: str = Field(
        default="gemini-2.5-flash",
        description="Model used to generate quiz items",
    )
    generation_temperature: float = Field(
        default=0.9,
        description="Sampling temperature (high for variety between items)",
    )

    # ========================================
    # Prefetch Buffer
    # ========================================
    buffer_target_size: int = Field(
        default=3,
        ge=1,
        description="Ready items to keep prepared ahead of the learner (K)",
    )
    session_target_correct: int = Field(
        default=5,
        ge=1,
        description="Correct answers needed to complete a level (N)",
    )
    media_timeout_seconds: float | None = Field(
        default=5.0,
        description="Give up waiting on item media after this long (None = wait forever)",
    )

    # ========================================
    # Media
    # ========================================
    image_base_url: str = Field(
        default="https://image.pollinations.ai/prompt/",
        description="Text-to-image endpoint; the prompt is appended to this URL",
    )
    image_style_prefix: str = Field(
        default="cute colorful 3d render cartoon of ",
        description="Style phrase prepended to every image prompt",
    )
    image_size: int = Field(
        default=180,
        ge=16,
        description="Square image size in pixels",
    )
    media_request_timeout_seconds: float = Field(
        default=10.0,
        description="HTTP timeout for a single media request",
    )

    # ========================================
    # Progress
    # ========================================
    progress_file: str = Field(
        default="~/.aleph_quiz/progress.json",
        description="Where coins, badges and unlocked levels are stored",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging level",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional log file path",
    )

    def has_ai_configured(self) -> bool:
        """Check if the content generator has credentials."""
        return bool(self.gemini_api_key)

    def get_media_config(self) -> dict[str, object]:
        """Get media URL configuration as a dictionary."""
        return {
            "base_url": self.image_base_url,
            "style_prefix": self.image_style_prefix,
            "size": self.image_size,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
