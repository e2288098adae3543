"""Configuration settings for the training planner."""

from pathlib import Path
from functools import lru_cache

from pydantic_settings import BaseSettings


# __file__ = src/training_planner/config.py
# .parent.parent.parent = project root
PACKAGE_ROOT = Path(__file__).parent  # src/training_planner/
PROJECT_ROOT = PACKAGE_ROOT.parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Gemini (primary provider)
    gemini_api_key: str = ""
    gemini_api_url: str = "https://generativelanguage.googleapis.com/v1beta/models"
    gemini_model: str = "gemini-2.0-flash"
    gemini_temperature: float = 0.3
    gemini_top_k: int = 40
    gemini_top_p: float = 0.95
    gemini_max_output_tokens: int = 16384

    # OpenAI (secondary provider)
    openai_api_key: str = ""
    openai_model: str = "gpt-4.1-mini"
    openai_temperature: float = 0.3
    openai_max_tokens: int = 16384
    fallback_enabled: bool = True

    # Retry policy
    generation_max_attempts: int = 3
    generation_base_delay: float = 1.0  # seconds, doubled per retry
    generation_attempt_timeout: float = 30.0  # seconds per attempt

    # Logging
    log_level: str = "INFO"

    # Plan metadata
    plan_author: str = "Training Planner"

    class Config:
        env_file = str(PROJECT_ROOT / ".env")
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
