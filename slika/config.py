"""
Runtime configuration helpers for the Slika API.

Loads DATABASE_URL and the identity provider / object storage settings from
the environment, falling back to the .env file in the project root.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[1]

ENV_PATH = BASE_DIR / ".env"

# Platform-provided variables win over .env defaults
load_dotenv(dotenv_path=ENV_PATH, override=False)


class Settings(BaseSettings):
    database_url: str = Field(..., alias="DATABASE_URL")

    app_name: str = Field(default="Slika API", alias="APP_NAME")
    api_version: str = Field(default="0.1.0", alias="API_VERSION")
    cors_origins: str | None = Field(default=None, alias="CORS_ORIGINS")

    feed_page_size: int = Field(default=40, alias="FEED_PAGE_SIZE")
    search_page_size: int = Field(default=50, alias="SEARCH_PAGE_SIZE")

    # Identity provider (Clerk-compatible REST API)
    identity_api_url: str = Field(default="https://api.clerk.com/v1", alias="IDENTITY_API_URL")
    identity_secret_key: str | None = Field(default=None, alias="IDENTITY_SECRET_KEY")
    identity_jwt_key: str | None = Field(default=None, alias="IDENTITY_JWT_KEY")
    identity_jwt_algorithm: str = Field(default="RS256", alias="IDENTITY_JWT_ALGORITHM")
    identity_timeout: float = Field(default=10.0, alias="IDENTITY_TIMEOUT")

    # S3-compatible object storage
    storage_endpoint: str | None = Field(default=None, alias="STORAGE_ENDPOINT")
    storage_region: str | None = Field(default=None, alias="STORAGE_REGION")
    storage_bucket: str = Field(default="slika-uploads", alias="STORAGE_BUCKET")
    storage_access_key: str | None = Field(default=None, alias="STORAGE_ACCESS_KEY")
    storage_secret_key: str | None = Field(default=None, alias="STORAGE_SECRET_KEY")
    storage_public_url: str | None = Field(default=None, alias="STORAGE_PUBLIC_URL")
    storage_folder: str = Field(default="uploads", alias="STORAGE_FOLDER")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
