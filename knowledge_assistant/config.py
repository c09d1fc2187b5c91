from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import PositiveFloat
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the assistant.

    Values are loaded from environment variables by default and may be
    overridden via CLI flags by the application entrypoint.
    """

    # Storage
    data_file: Path = Path("data.json")

    # Speech
    speech_enabled: bool = True
    speech_timeout_s: PositiveFloat = 15.0

    # Session
    confirm_reset: bool = True
    prompt: str = "> "

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_prefix="KNOWLEDGE_ASSISTANT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
