"""
Centralized settings for strata.

Manifesto:
    Configuration is read once at startup, validated, and turned into the
    frozen connection config of the selected adapter.  Nothing below the
    lifecycle reads environment variables.

    - **Pydantic validation:** Type-checked at startup, not on first query
    - **Environment-driven:** ``STRATA_*`` variables and ``.env`` files
    - **Sensible defaults:** SQLite under ``data/`` works out of the box

Examples:
    >>> settings = StrataSettings(adapter="relational", db_name="app.db")
    >>> settings.to_connection_config().database
    'app.db'

Tags:
    settings, configuration, pydantic, environment, strata

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

import shlex
from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from strata.core.adapters.types import (
    AdapterKind,
    ConnectionConfig,
    DocumentConfig,
    RelationalConfig,
    SchemaFirstConfig,
)
from strata.core.errors import ConfigError

PRODUCTION_ENVIRONMENTS = frozenset({"production", "prod"})
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class StrataSettings(BaseSettings):
    """Strata configuration.

    All fields can be set via ``STRATA_*`` environment variables (e.g.
    ``STRATA_ADAPTER=document``) or through a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="STRATA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Adapter ──────────────────────────────────────────────────
    adapter: AdapterKind = Field(default=AdapterKind.RELATIONAL)

    # ── Relational ───────────────────────────────────────────────
    database_url: str | None = Field(default=None, description="Full SQLAlchemy URL")
    db_dialect: str = Field(default="sqlite")
    db_host: str = Field(default="localhost")
    db_port: int | None = Field(default=None)
    db_name: str = Field(default="data/strata.db")
    db_user: str | None = Field(default=None)
    db_password: str | None = Field(default=None)
    db_pool_size: int = Field(default=5, ge=1)
    db_connect_timeout: int = Field(default=10, ge=1, description="Driver connect timeout (seconds)")
    db_echo: bool = Field(default=False)

    # ── Document ─────────────────────────────────────────────────
    mongo_uri: str = Field(default="mongodb://localhost:27017")
    mongo_database: str = Field(default="")

    # ── Schema-first ─────────────────────────────────────────────
    client_factory: str = Field(default="", description="'module:attribute' of the client factory")
    schema_migrate_command: str = Field(default="prisma migrate deploy")
    schema_reset_command: str = Field(default="prisma migrate reset --force")

    # ── Lifecycle ────────────────────────────────────────────────
    eager_sync: bool = Field(default=False, description="Create missing tables from models")
    environment: str = Field(default="development")
    models_dir: str = Field(default="models")
    migrations_dir: str = Field(default="migrations")
    ledger_table: str = Field(default="strata_migrations")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")

    @field_validator("adapter", mode="before")
    @classmethod
    def _parse_adapter(cls, value: Any) -> AdapterKind:
        try:
            return AdapterKind.parse(value)
        except ConfigError as e:
            raise ValueError(e.message) from e

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("console", "json"):
            raise ValueError("log_format must be 'console' or 'json'")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return value

    # ── Derived properties ───────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in PRODUCTION_ENVIRONMENTS

    @property
    def json_logs(self) -> bool:
        return self.log_format == "json"

    def to_connection_config(self) -> ConnectionConfig:
        """Build the frozen config for the selected adapter."""
        if self.adapter is AdapterKind.RELATIONAL:
            return RelationalConfig(
                dialect=self.db_dialect,
                database=self.db_name,
                host=self.db_host,
                port=self.db_port,
                username=self.db_user,
                password=self.db_password,
                url=self.database_url,
                pool_size=self.db_pool_size,
                echo=self.db_echo,
                connect_timeout=self.db_connect_timeout,
            )
        if self.adapter is AdapterKind.DOCUMENT:
            return DocumentConfig(uri=self.mongo_uri, database=self.mongo_database)
        return SchemaFirstConfig(
            client_factory=self.client_factory,
            migrate_command=tuple(shlex.split(self.schema_migrate_command)),
            reset_command=tuple(shlex.split(self.schema_reset_command)),
        )


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, StrataSettings] = {}


def load_settings(**overrides: Any) -> StrataSettings:
    """Build settings from the environment plus *overrides*.

    Raises:
        ConfigError: If validation fails.
    """
    try:
        return StrataSettings(**overrides)
    except ValidationError as e:
        raise ConfigError(f"Invalid strata configuration: {e}", cause=e) from e


def get_settings(*, _force_reload: bool = False) -> StrataSettings:
    """Load, validate, and cache the process settings."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = load_settings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    _settings_cache.clear()


__all__ = [
    "StrataSettings",
    "load_settings",
    "get_settings",
    "clear_settings_cache",
]
