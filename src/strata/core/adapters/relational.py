"""Relational (SQL) adapter built on SQLAlchemy.

The handle wraps an ``Engine`` plus the ``MetaData`` that model definitions
register their tables on.  Vendor differences (database creation DDL,
missing-database detection) come from :mod:`strata.core.dialect`; the
driver itself is only needed when ``open()`` runs.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any, ClassVar

from sqlalchemy import MetaData, Table, create_engine, inspect, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from strata.core.dialect import Dialect, get_dialect
from strata.core.errors import (
    ConfigError,
    ConnectionError,
    DatabaseCreationError,
    ErrorContext,
    MissingDatabaseError,
)
from strata.core.logging import get_logger

from .base import ConnectionHandle, PersistenceAdapter
from .types import AdapterDescription, AdapterKind, RelationalConfig

logger = get_logger(__name__)

EngineFactory = Callable[..., Engine]

# Driver keyword for the connect timeout (seconds)
CONNECT_TIMEOUT_ARGS: dict[str, str] = {
    "psycopg2": "connect_timeout",
    "psycopg": "connect_timeout",
    "mysqlconnector": "connection_timeout",
    "pymysql": "connect_timeout",
    "mysqldb": "connect_timeout",
    "pyodbc": "timeout",
}


class RelationalHandle(ConnectionHandle):
    """Live SQLAlchemy engine plus the model ``MetaData``."""

    kind = AdapterKind.RELATIONAL

    def __init__(self, engine: Engine, dialect: Dialect, database: str = ""):
        super().__init__()
        self.engine = engine
        self.dialect = dialect
        self.database = database
        self.metadata = MetaData()

    @property
    def raw(self) -> Engine:
        return self.engine

    def _release(self) -> None:
        self.engine.dispose()

    def ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def table_names(self) -> list[str]:
        return inspect(self.engine).get_table_names()

    def reset_metadata(self) -> MetaData:
        """Start a fresh ``MetaData`` (used before each model scan)."""
        self.metadata = MetaData()
        return self.metadata

    def sync_models(self, tables: list[Table] | None = None) -> None:
        """Create missing tables for the loaded models."""
        self.metadata.create_all(self.engine, tables=tables)
        logger.info("models.synced", tables=len(tables or self.metadata.tables))

    def drop_models(self, tables: list[Table]) -> list[str]:
        """Drop the given model tables; returns the names that existed."""
        existing = set(self.table_names())
        self.metadata.drop_all(self.engine, tables=tables)
        return sorted(t.name for t in tables if t.name in existing)

    def drop_all(self) -> list[str]:
        reflected = MetaData()
        reflected.reflect(bind=self.engine)
        names = [t.name for t in reflected.sorted_tables]
        reflected.drop_all(bind=self.engine)
        return names

    def drop_model(self, model: Any) -> str:
        """Drop the table behind *model* (a ``Table`` or a table name)."""
        if isinstance(model, Table):
            model.drop(bind=self.engine, checkfirst=True)
            return model.name
        table = Table(str(model), MetaData())
        table.drop(bind=self.engine, checkfirst=True)
        return table.name


class RelationalAdapter(PersistenceAdapter):
    """
    SQL adapter for SQLite, PostgreSQL, MySQL/MariaDB and SQL Server.

    ``engine_factory`` defaults to ``sqlalchemy.create_engine``; tests inject
    a fake to simulate driver errors.
    """

    description: ClassVar[AdapterDescription] = AdapterDescription(
        kind=AdapterKind.RELATIONAL,
        required_config_fields=("dialect", "database"),
        supports_schema_migrations=True,
        ddl_flavor="sql",
    )
    config_type: ClassVar[type] = RelationalConfig

    def __init__(self, config: RelationalConfig, *, engine_factory: EngineFactory | None = None):
        super().__init__(config)
        self._dialect = get_dialect(config.dialect_name)
        self._engine_factory = engine_factory or create_engine

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    @property
    def target_name(self) -> str:
        return self._config.database_name

    @property
    def url(self) -> URL:
        return self._config.to_url(self._dialect.drivername, self._dialect.default_port)

    @property
    def admin_url(self) -> URL:
        """URL of the administrative connection (server, no target database)."""
        # URL.set() ignores database=None, which MySQL needs
        url = self.url
        return URL.create(
            url.drivername,
            username=url.username,
            password=url.password,
            host=url.host,
            port=url.port,
            database=self._dialect.admin_database,
            query=url.query,
        )

    def _context(self) -> ErrorContext:
        return ErrorContext(
            adapter=self.kind.value, dialect=self._dialect.name, database=self.target_name
        )

    def _engine_kwargs(self, url: URL) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"echo": self._config.echo}
        if self._dialect.server_based:
            kwargs["pool_size"] = self._config.pool_size
            kwargs["pool_timeout"] = self._config.pool_timeout
            kwargs["pool_pre_ping"] = True
        options = dict(self._config.options)
        timeout_arg = CONNECT_TIMEOUT_ARGS.get(url.get_driver_name())
        if timeout_arg and self._config.connect_timeout:
            connect_args = {timeout_arg: self._config.connect_timeout}
            connect_args.update(options.pop("connect_args", {}))
            kwargs["connect_args"] = connect_args
        kwargs.update(options)
        return kwargs

    def _create_engine(self, url: URL, **extra: Any) -> Engine:
        try:
            return self._engine_factory(url, **self._engine_kwargs(url), **extra)
        except ImportError as e:
            raise ConfigError(
                f"Driver for {self._dialect.name} is not installed "
                f"(pip install strata[{self._dialect.name}])",
                context=self._context(),
                cause=e,
            ) from e

    def open(self) -> RelationalHandle:
        """Create the engine and verify it with a round-trip."""
        engine = self._create_engine(self.url)
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except DBAPIError as e:
            engine.dispose()
            if self._dialect.is_missing_database(e):
                raise MissingDatabaseError(
                    self.target_name, context=self._context(), cause=e
                ) from e
            raise ConnectionError(
                f"Failed to connect to {self._dialect.name}: {e.orig or e}",
                context=self._context(),
                cause=e,
            ) from e
        except SQLAlchemyError as e:
            engine.dispose()
            raise ConnectionError(
                f"Failed to connect to {self._dialect.name}: {e}",
                context=self._context(),
                cause=e,
            ) from e

        logger.debug("relational.opened", dialect=self._dialect.name, database=self.target_name)
        return RelationalHandle(engine, self._dialect, self.target_name)

    def create_database_if_missing(self) -> bool:
        """
        Issue the dialect's ``CREATE DATABASE`` over an administrative connection.

        SQLite creates its file on connect, so only the parent directory is
        ensured.  A concurrent "already exists" is treated as success.
        """
        ddl = self._dialect.create_database_sql(self.target_name)
        if ddl is None:
            if self.target_name and self.target_name != ":memory:":
                Path(self.target_name).parent.mkdir(parents=True, exist_ok=True)
            return False

        admin = self._create_engine(self.admin_url, isolation_level="AUTOCOMMIT")
        try:
            with admin.connect() as conn:
                conn.execute(text(ddl))
        except DBAPIError as e:
            if self._dialect.is_duplicate_database(e):
                logger.info("bootstrap.database_exists", database=self.target_name)
                return False
            raise DatabaseCreationError(
                f"Could not create database {self.target_name!r}: {e.orig or e}",
                context=self._context(),
                cause=e,
            ) from e
        except SQLAlchemyError as e:
            raise DatabaseCreationError(
                f"Could not create database {self.target_name!r}: {e}",
                context=self._context(),
                cause=e,
            ) from e
        finally:
            admin.dispose()

        logger.info("bootstrap.database_created", dialect=self._dialect.name, database=self.target_name)
        return True


__all__ = [
    "RelationalHandle",
    "RelationalAdapter",
]
