"""
Centralized settings for sqlwave.

Every option of a migration run can come from ``SQLWAVE_*`` environment
variables or a ``.env`` file, so the same artifacts can be pointed at a
local SQLite file in development and at another database in CI without
editing code. Explicit CLI flags and ``MigrateOptions`` arguments take
precedence over these values.

Fields
──────
database     : SQLite database path used by the CLI
root         : Artifact location (directory, or ``package:<pkg>/<subdir>``)
table_name   : Ledger table name
dialect      : SQL dialect for ledger statements (sqlite, postgresql)
log_level    : Structlog log level
log_format   : ``json``, ``console`` or ``auto``

Tags:
    sqlwave, configuration, settings, pydantic, environment
"""

from __future__ import annotations

import re

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SqlwaveSettings(BaseSettings):
    """sqlwave configuration, read from ``SQLWAVE_*`` env vars and ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="SQLWAVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    database: str = Field(default="sqlwave.db", description="SQLite database path for the CLI")
    dialect: str = Field(default="sqlite")

    # ── Migrations ───────────────────────────────────────────────
    root: str = Field(default="migrations/")
    table_name: str = Field(default="migrations")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="auto")

    @field_validator("table_name")
    @classmethod
    def _check_table_name(cls, value: str) -> str:
        if not IDENTIFIER_RE.match(value):
            raise ValueError(f"table_name must be a plain SQL identifier, got {value!r}")
        return value

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("json", "console", "auto"):
            raise ValueError("log_format must be one of: json, console, auto")
        return value

    @property
    def json_logs(self) -> bool | None:
        """``configure_logging`` json flag (None = auto-detect)."""
        if self.log_format == "auto":
            return None
        return self.log_format == "json"


_settings_cache: dict[str, SqlwaveSettings] = {}


def get_settings(*, _force_reload: bool = False) -> SqlwaveSettings:
    """Load, validate, and cache a :class:`SqlwaveSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = SqlwaveSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = ["SqlwaveSettings", "get_settings", "clear_settings_cache", "IDENTIFIER_RE"]
