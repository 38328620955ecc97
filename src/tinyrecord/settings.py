"""Environment-driven settings for tinyrecord.

``TinyRecordSettings`` describes the default connection (and any extra
named connections) plus logging preferences.  Values come from
``TINYRECORD_*`` environment variables or a ``.env`` file.

Examples:
    >>> import os
    >>> os.environ["TINYRECORD_DSN"] = "sqlite:///app.db"
    >>> get_settings.cache_clear()
    >>> get_settings().dsn
    'sqlite:///app.db'

Extra connections are given as JSON::

    TINYRECORD_CONNECTIONS='{"reporting": "pgsql:host=db;dbname=reports"}'

Tags:
    settings, configuration, pydantic, environment, tinyrecord
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TinyRecordSettings(BaseSettings):
    """Connection and logging settings.

    Fields
    ──────
    dsn           : Data-source descriptor of the ``default`` connection
    username      : Credentials for the default connection
    password      : Credentials for the default connection
    connections   : Extra named connections (name → DSN)
    raise_errors  : Raise ``QueryError`` on write failures instead of returning ``None``
    log_level     : structlog log level
    log_format    : ``json`` or ``console``
    """

    model_config = SettingsConfigDict(
        env_prefix="TINYRECORD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    dsn: str = Field(default="sqlite::memory:")
    username: str | None = None
    password: str | None = None
    connections: dict[str, str] = Field(default_factory=dict)
    raise_errors: bool = False

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "console"

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return value

    @field_validator("log_format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        value = value.lower()
        if value not in {"json", "console"}:
            raise ValueError(f"log_format must be 'json' or 'console', got {value!r}")
        return value


@lru_cache
def get_settings() -> TinyRecordSettings:
    """Return the cached settings instance."""
    return TinyRecordSettings()


__all__ = [
    "TinyRecordSettings",
    "get_settings",
]
