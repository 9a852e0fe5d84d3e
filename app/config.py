"""Application configuration models."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


JIKAN_MAX_PAGE_SIZE = 25


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Anime Explorer", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=8000, alias="PORT")

    jikan_api_url: HttpUrl = Field(
        default="https://api.jikan.moe/v4", alias="JIKAN_API_URL"
    )
    network_timeout_seconds: float = Field(
        default=30.0, alias="NETWORK_TIMEOUT", ge=1, le=300
    )
    default_page_size: int = Field(
        default=20, alias="DEFAULT_PAGE_SIZE", ge=1, le=JIKAN_MAX_PAGE_SIZE
    )

    offline_mode: bool = Field(default=False, alias="OFFLINE_MODE")
    connectivity_timeout_seconds: float = Field(
        default=3.0, alias="CONNECTIVITY_TIMEOUT", gt=0, le=60
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./anime_explorer.db", alias="DATABASE_URL"
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> str:
        """Accept level names in any case and reject unknown ones."""

        if value is None:
            return "INFO"
        level = str(value).strip().upper()
        if not level:
            return "INFO"
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def jikan_base_url(self) -> str:
        """Return the API root without a trailing slash."""

        return str(self.jikan_api_url).rstrip("/")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
