"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Mediadex", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    rawg_api_key: str | None = Field(default=None, alias="RAWG_API_KEY")
    google_books_api_key: str | None = Field(
        default=None, alias="GOOGLE_BOOKS_API_KEY"
    )

    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )
    tmdb_image_url: HttpUrl = Field(
        default="https://image.tmdb.org/t/p", alias="TMDB_IMAGE_URL"
    )
    jikan_api_url: HttpUrl = Field(
        default="https://api.jikan.moe/v4", alias="JIKAN_API_URL"
    )
    rawg_api_url: HttpUrl = Field(
        default="https://api.rawg.io/api", alias="RAWG_API_URL"
    )
    google_books_api_url: HttpUrl = Field(
        default="https://www.googleapis.com/books/v1", alias="GOOGLE_BOOKS_API_URL"
    )

    content_language: str = Field(default="en-US", alias="CONTENT_LANGUAGE")
    books_language: str | None = Field(default=None, alias="BOOKS_LANGUAGE")
    description_placeholder: str = Field(
        default="No description available.", alias="DESCRIPTION_PLACEHOLDER"
    )

    genre_cache_ttl_seconds: int = Field(
        default=86_400, alias="GENRE_CACHE_TTL", ge=60
    )

    tmdb_rate_limit: float = Field(default=40.0, alias="TMDB_RATE_LIMIT", gt=0)
    jikan_rate_limit: float = Field(default=1.0, alias="JIKAN_RATE_LIMIT", gt=0)
    rawg_rate_limit: float = Field(default=5.0, alias="RAWG_RATE_LIMIT", gt=0)
    google_books_rate_limit: float = Field(
        default=10.0, alias="GOOGLE_BOOKS_RATE_LIMIT", gt=0
    )
    provider_timeout_seconds: float = Field(
        default=15.0, alias="PROVIDER_TIMEOUT", gt=0
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator(
        "tmdb_api_key",
        "rawg_api_key",
        "google_books_api_key",
        "books_language",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        """Treat empty environment values as unset."""

        if isinstance(value, str) and not value.strip():
            return None
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> str:
        if value is None:
            return "INFO"
        text = str(value).strip().upper()
        return text or "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
