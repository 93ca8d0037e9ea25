"""Application configuration."""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

DEFAULT_BACKEND_URL = "http://localhost:8000"


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    backend_url: str | None = None
    data_path: Path = Path(".calorie_vision/state.db")
    request_timeout_seconds: float = 15.0
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
