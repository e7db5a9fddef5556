"""Adapter kinds, descriptions and connection configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sqlalchemy.engine import URL, make_url

from strata.core.errors import ConfigError, UnsupportedAdapterError


class AdapterKind(str, Enum):
    """Supported persistence kinds."""

    RELATIONAL = "relational"
    DOCUMENT = "document"
    SCHEMA_FIRST = "schema_first"

    @classmethod
    def parse(cls, value: AdapterKind | str) -> AdapterKind:
        """Resolve a kind from its value or a common alias.

        Raises:
            UnsupportedAdapterError: If *value* names no known kind.
        """
        if isinstance(value, AdapterKind):
            return value
        key = str(value).strip().lower().replace("-", "_")
        key = _KIND_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise UnsupportedAdapterError(str(value)) from None


_KIND_ALIASES = {
    "sql": "relational",
    "sqlalchemy": "relational",
    "sequelize": "relational",
    "mongo": "document",
    "mongodb": "document",
    "mongoose": "document",
    "prisma": "schema_first",
    "schemafirst": "schema_first",
}


@dataclass(frozen=True)
class AdapterDescription:
    """Static description of an adapter kind.

    ``ddl_flavor`` is ``"sql"`` for ledger-managed SQL DDL, ``"none"`` when
    the backend provisions itself, ``"external"`` when schema changes are
    owned by external tooling.
    """

    kind: AdapterKind
    required_config_fields: tuple[str, ...]
    supports_schema_migrations: bool
    ddl_flavor: str


@dataclass(frozen=True)
class RelationalConfig:
    """
    Connection configuration for SQL databases.

    Either ``url`` (a full SQLAlchemy URL) or the discrete fields are used.
    For SQLite ``database`` is the file path.
    """

    dialect: str = "sqlite"
    database: str = ""
    host: str = "localhost"
    port: int | None = None
    username: str | None = None
    password: str | None = None
    url: str | None = None

    # Pool (delegated to SQLAlchemy)
    pool_size: int = 5
    pool_timeout: int = 30
    echo: bool = False
    connect_timeout: int = 10

    # Extra engine keyword arguments
    options: dict[str, Any] = field(default_factory=dict)

    @property
    def dialect_name(self) -> str:
        if self.url:
            return make_url(self.url).get_backend_name()
        return self.dialect

    @property
    def database_name(self) -> str:
        if self.url:
            return make_url(self.url).database or ""
        return self.database

    def to_url(self, drivername: str, default_port: int | None = None) -> URL:
        """Build the SQLAlchemy URL for the target database."""
        if self.url:
            return make_url(self.url)
        return URL.create(
            drivername=drivername,
            username=self.username,
            password=self.password,
            host=None if drivername == "sqlite" else self.host,
            port=None if drivername == "sqlite" else (self.port or default_port),
            database=self.database or None,
        )

    def validate(self) -> None:
        if not self.url and not self.database:
            raise ConfigError("Relational adapter requires 'database' or 'url'")


@dataclass(frozen=True)
class DocumentConfig:
    """Connection configuration for a MongoDB document store."""

    uri: str = "mongodb://localhost:27017"
    database: str = ""
    server_selection_timeout_ms: int = 5000
    options: dict[str, Any] = field(default_factory=dict)

    def validate(self) -> None:
        if not self.uri:
            raise ConfigError("Document adapter requires 'uri'")


@dataclass(frozen=True)
class SchemaFirstConfig:
    """
    Configuration for a schema-first generated client.

    ``client_factory`` is an import path (``"package.module:Factory"``) to a
    callable returning the generated client.  Schema changes are made by the
    external tool named in ``migrate_command``.
    """

    client_factory: str = ""
    migrate_command: tuple[str, ...] = ("prisma", "migrate", "deploy")
    reset_command: tuple[str, ...] = ("prisma", "migrate", "reset", "--force")
    working_dir: str | None = None

    def validate(self) -> None:
        if not self.client_factory:
            raise ConfigError("Schema-first adapter requires 'client_factory'")
        if ":" not in self.client_factory:
            raise ConfigError(
                f"client_factory must look like 'module:attribute', got {self.client_factory!r}"
            )


ConnectionConfig = RelationalConfig | DocumentConfig | SchemaFirstConfig


__all__ = [
    "AdapterKind",
    "AdapterDescription",
    "RelationalConfig",
    "DocumentConfig",
    "SchemaFirstConfig",
    "ConnectionConfig",
]
