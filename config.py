# config.py
"""Configuration settings for the DJX Storyteller client.
Uses Pydantic BaseSettings for automatic environment variable loading.
"""

from __future__ import annotations

import os

import structlog
from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

logger = structlog.get_logger()


class StorytellerSettings(BaseSettings):
    """Full configuration for the storyteller core."""

    # Upstream text generation API
    GEMINI_API_KEY: str = ""
    GEMINI_API_BASE: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_MODEL: str = "gemini-2.0-flash"

    # Bounded calls and retries
    API_TIMEOUT_SECONDS: float = 10.0
    LLM_RETRY_ATTEMPTS: int = 3
    LLM_RETRY_DELAY_SECONDS: float = 1.0
    # When true, 4xx responses are retried like any other failure
    RETRY_CLIENT_ERRORS: bool = False

    # Client-side rate budget
    RATE_LIMIT_WINDOW_SECONDS: float = 60.0
    RATE_LIMIT_MAX_REQUESTS: int = 60

    # Connectivity
    HEALTH_CHECK_URL: str = "http://127.0.0.1:3000/api/health-check"
    HEALTH_CHECK_TIMEOUT_SECONDS: float = 5.0
    OFFLINE_MODE: bool = False

    # Caching and persistence
    STORY_CACHE_SIZE: int = 128
    BASE_OUTPUT_DIR: str = "story_output"
    STATE_FILE: str = "story_state.json"
    STORAGE_KEY: str = "djx-story-state"

    # Logging & UI
    LOG_LEVEL_STR: str = Field("INFO", alias="STORY_LOG_LEVEL")
    LOG_FORMAT: str = (
        "%(asctime)s - %(levelname)s - [%(name)s:%(funcName)s:%(lineno)d] - %(message)s"
    )
    LOG_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"
    LOG_FILE: str | None = "storyteller.log"
    ENABLE_RICH_PROGRESS: bool = True

    @model_validator(mode="after")
    def validate_limits(self) -> StorytellerSettings:
        if self.API_TIMEOUT_SECONDS <= 0:
            raise ValueError("API_TIMEOUT_SECONDS must be positive")
        if self.LLM_RETRY_ATTEMPTS < 1:
            raise ValueError("LLM_RETRY_ATTEMPTS must be at least 1")
        if self.LLM_RETRY_DELAY_SECONDS < 0:
            raise ValueError("LLM_RETRY_DELAY_SECONDS cannot be negative")
        if self.RATE_LIMIT_WINDOW_SECONDS <= 0 or self.RATE_LIMIT_MAX_REQUESTS < 1:
            raise ValueError("Rate limit window and request budget must be positive")
        if not self.GEMINI_API_KEY.strip():
            logger.warning(
                "GEMINI_API_KEY is not set. Story requests will fail until it is configured."
            )
        return self

    def has_api_key(self) -> bool:
        """Return ``True`` when a usable upstream credential is configured."""
        return bool(self.GEMINI_API_KEY and self.GEMINI_API_KEY.strip())

    model_config = SettingsConfigDict(
        env_prefix="", env_file=".env", populate_by_name=True, extra="ignore"
    )


settings = StorytellerSettings()

STATE_FILE_PATH = (
    settings.STATE_FILE
    if os.path.isabs(settings.STATE_FILE)
    else os.path.join(settings.BASE_OUTPUT_DIR, settings.STATE_FILE)
)
