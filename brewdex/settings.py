"""Centralized configuration management for the brewdex beer state store."""

from __future__ import annotations

import logging
import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field, PrivateAttr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables defined in a local .env file so every
# :class:`AppSettings` instance sees the same configuration.
load_dotenv()

# -- Application-wide constants -------------------------------------------------

DEFAULT_CATALOG_API_BASE_URL = "https://api.punkapi.com/v2"
DEFAULT_CATALOG_RESOURCE = "beers"
DEFAULT_APP_API_BASE_URL = "http://localhost:8080"
DEFAULT_QUOTA_HEADER = "x-ratelimit-remaining"
DEFAULT_PERSISTENCE_KEY = "beersState"
DEFAULT_REDIS_URL = "redis://localhost:6379/0"
DEFAULT_HTTP_TIMEOUT_SECONDS = 15.0
DEFAULT_LOG_LEVEL = "INFO"

BEERS_INFO_PATH = "/app/v1/beers-info"
PROFILE_PATH = "/app/v1/user/profile"


def _normalize_base_url(url: str) -> str:
    """Return ``url`` stripped of whitespace and trailing slashes."""

    return url.strip().rstrip("/")


class AppSettings(BaseSettings):
    """Typed configuration surface built on top of ``pydantic-settings``.

    Besides the raw values the class exposes the derived endpoint URLs used by
    the catalog store and the profile gateway so that URL assembly lives in a
    single place.
    """

    _explicit_redis_url: bool = PrivateAttr(default=False)
    _explicit_app_api_base_url: bool = PrivateAttr(default=False)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    def __init__(self, **values: object) -> None:  # noqa: D401 - short override explanation
        """Capture explicit overrides prior to delegating to ``BaseSettings``."""

        normalized_keys = {str(key).lower() for key in values}
        super().__init__(**values)
        self._explicit_redis_url = "redis_url" in normalized_keys
        self._explicit_app_api_base_url = "app_api_base_url" in normalized_keys
        redis_env = os.getenv("REDIS_URL")
        if redis_env is not None and redis_env.strip():
            self._explicit_redis_url = True
        app_env = os.getenv("APP_API_BASE_URL")
        if app_env is not None and app_env.strip():
            self._explicit_app_api_base_url = True

    catalog_api_base_url: str = Field(
        default=DEFAULT_CATALOG_API_BASE_URL,
        alias="CATALOG_API_BASE_URL",
        description="Base URL of the public, read-mostly beer catalog API.",
    )
    catalog_resource: str = Field(
        default=DEFAULT_CATALOG_RESOURCE,
        alias="CATALOG_RESOURCE",
        description="Collection name appended to the catalog base URL.",
    )
    app_api_base_url: str = Field(
        default=DEFAULT_APP_API_BASE_URL,
        alias="APP_API_BASE_URL",
        description=(
            "Base URL of the application backend serving the aggregate beers"
            " info and the user profile endpoint."
        ),
    )
    quota_header: str = Field(
        default=DEFAULT_QUOTA_HEADER,
        alias="QUOTA_HEADER",
        description="Response header carrying the remaining catalog request quota.",
    )
    http_timeout_seconds: float = Field(
        default=DEFAULT_HTTP_TIMEOUT_SECONDS,
        alias="HTTP_TIMEOUT_SECONDS",
        description="Timeout applied to the default HTTP client.",
    )
    persistence_key: str = Field(
        default=DEFAULT_PERSISTENCE_KEY,
        alias="PERSISTENCE_KEY",
        description="Storage key under which the persisted state document lives.",
    )
    redis_url: str = Field(
        default=DEFAULT_REDIS_URL,
        alias="REDIS_URL",
        description=(
            "Redis connection string used for durable state. When Redis cannot"
            " be reached the store falls back to in-process storage."
        ),
    )
    log_level: str = Field(
        default=DEFAULT_LOG_LEVEL,
        alias="LOG_LEVEL",
        description="Root logging level (e.g. INFO, DEBUG, WARNING).",
    )

    @property
    def beers_url(self) -> str:
        """Return the URL listing the whole catalog collection."""

        base = _normalize_base_url(self.catalog_api_base_url)
        return f"{base}/{self.catalog_resource.strip('/')}"

    def beer_url(self, beer_id: int) -> str:
        """Return the URL of a single catalog entry."""

        return f"{self.beers_url}/{beer_id}"

    @property
    def beers_info_url(self) -> str:
        return f"{_normalize_base_url(self.app_api_base_url)}{BEERS_INFO_PATH}"

    @property
    def profile_url(self) -> str:
        return f"{_normalize_base_url(self.app_api_base_url)}{PROFILE_PATH}"

    @property
    def log_level_numeric(self) -> int:
        """Translate ``log_level`` into the numeric constant expected by logging."""

        candidate = logging.getLevelName(self.log_level.upper())
        if isinstance(candidate, int):
            return candidate
        return logging.INFO

    def optional_config_warnings(self) -> list[str]:
        """Return human-readable warnings for unset optional configuration."""

        warnings: list[str] = []

        if not self._explicit_redis_url and self.redis_url == DEFAULT_REDIS_URL:
            warnings.append(
                "REDIS_URL is not set - state will only persist in memory when "
                "the default Redis instance is unreachable"
            )

        if (
            not self._explicit_app_api_base_url
            and self.app_api_base_url == DEFAULT_APP_API_BASE_URL
        ):
            warnings.append(
                "APP_API_BASE_URL is not set - profile sync and beers info will "
                "target a localhost backend"
            )

        return warnings


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return a cached instance of :class:`AppSettings`."""

    return AppSettings()


__all__ = [
    "AppSettings",
    "BEERS_INFO_PATH",
    "DEFAULT_APP_API_BASE_URL",
    "DEFAULT_CATALOG_API_BASE_URL",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_PERSISTENCE_KEY",
    "DEFAULT_QUOTA_HEADER",
    "DEFAULT_REDIS_URL",
    "PROFILE_PATH",
    "get_settings",
]
