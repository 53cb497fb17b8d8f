"""Application settings and configuration management."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/interview.db")
    APP_CONFIG_PATH: str = Field(default="app_config.json")

    EVAL_WORKERS: int = 4
    EVAL_MAX_RETRIES: int = 3
    EVAL_BACKOFF_S: float = 2.0
    EVAL_STALE_AFTER_S: float = 300.0

    CELERY_BROKER_URL: str = Field(default="redis://localhost:6379/0")
    CELERY_RESULT_BACKEND: str | None = None
    CELERY_TASK_ALWAYS_EAGER: bool = False

    POLL_INTERVAL_S: float = 3.0
    POLL_MAX_ATTEMPTS: int = 20

    DRAFT_DEBOUNCE_S: float = 2.0

    SANDBOX_URL: str | None = None
    SANDBOX_API_KEY_ENV: str | None = "SANDBOX_API_KEY"
    SANDBOX_TIMEOUT_S: float = 30.0

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
