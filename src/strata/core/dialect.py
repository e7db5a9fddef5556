"""SQL dialect abstraction for the relational adapter.

Each supported SQL backend differs in exactly the places the lifecycle
touches: how a database is created, how identifiers are quoted, how a table's
existence is introspected, and how the driver reports "that database does not
exist".  ``Dialect`` captures those differences so the bootstrapper and the
migration ledger are written once.

Manifesto:
    The bootstrap path must recognise a *missing database* precisely, not
    "some connection error".  Retrying on anything else would mask real auth
    or network failures.  Every dialect therefore classifies driver errors
    itself, by error code first and message second.

Architecture::

    ┌──────────┐ ┌──────────────┐ ┌──────────────┐ ┌──────────────┐
    │ SQLite   │ │ PostgreSQL   │ │ MySQL        │ │ MSSQL        │
    │ no-op    │ │ "name"       │ │ `name`       │ │ [name]       │
    │ create   │ │ no IF NOT    │ │ IF NOT       │ │ IF DB_ID()   │
    │          │ │ EXISTS       │ │ EXISTS       │ │ IS NULL      │
    │ "unable  │ │ SQLSTATE     │ │ errno 1049   │ │ error 4060   │
    │ to open" │ │ 3D000        │ │              │ │              │
    └──────────┘ └──────────────┘ └──────────────┘ └──────────────┘

All SQL returned here is executed through ``sqlalchemy.text`` and uses
named ``:param`` binds, so placeholders are never dialect specific.

Examples:
    >>> from strata.core.dialect import get_dialect
    >>> d = get_dialect("mysql")
    >>> d.create_database_sql("app_test")
    'CREATE DATABASE IF NOT EXISTS `app_test`'

Tags:
    dialect, sql, ddl, bootstrap, strata

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from strata.core.errors import UnsupportedAdapterError


def _driver_error(exc: BaseException) -> BaseException:
    """Unwrap a SQLAlchemy ``DBAPIError`` to the driver exception."""
    return getattr(exc, "orig", None) or exc


def _error_code(exc: BaseException) -> int | None:
    orig = _driver_error(exc)
    errno = getattr(orig, "errno", None)
    if isinstance(errno, int):
        return errno
    args = getattr(orig, "args", ())
    if args and isinstance(args[0], int):
        return args[0]
    return None


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract used by the bootstrapper and the ledger."""

    @property
    def name(self) -> str:
        """Dialect name (e.g. ``'postgresql'``)."""
        ...

    @property
    def drivername(self) -> str:
        """SQLAlchemy URL drivername (e.g. ``'postgresql+psycopg2'``)."""
        ...

    @property
    def default_port(self) -> int | None:
        ...

    @property
    def admin_database(self) -> str | None:
        """Database the administrative connection targets (``None`` = none)."""
        ...

    @property
    def server_based(self) -> bool:
        """Whether databases live on a server and must be created explicitly."""
        ...

    def quote_identifier(self, name: str) -> str:
        ...

    def create_database_sql(self, database: str) -> str | None:
        """DDL creating *database*; ``None`` when creation is implicit."""
        ...

    def is_missing_database(self, exc: BaseException) -> bool:
        """Whether *exc* means "target database does not exist"."""
        ...

    def is_duplicate_database(self, exc: BaseException) -> bool:
        """Whether *exc* means "database already exists" during creation."""
        ...

    def table_exists_query(self) -> str:
        """Query returning a row when table ``:name`` exists."""
        ...

    def ledger_table_ddl(self, table: str) -> str:
        """DDL for the migration ledger table (single ``name`` column)."""
        ...


# =========================================================================
# Concrete Dialect Implementations
# =========================================================================


class SQLiteDialect:
    """SQLite — file-backed, created on first connect once its directory exists."""

    @property
    def name(self) -> str:
        return "sqlite"

    @property
    def drivername(self) -> str:
        return "sqlite"

    @property
    def default_port(self) -> int | None:
        return None

    @property
    def admin_database(self) -> str | None:
        return None

    @property
    def server_based(self) -> bool:
        return False

    def quote_identifier(self, name: str) -> str:
        return '"' + name.replace('"', '""') + '"'

    def create_database_sql(self, database: str) -> str | None:  # noqa: ARG002
        return None

    def is_missing_database(self, exc: BaseException) -> bool:
        return "unable to open database file" in str(_driver_error(exc))

    def is_duplicate_database(self, exc: BaseException) -> bool:  # noqa: ARG002
        return False

    def table_exists_query(self) -> str:
        return "SELECT name FROM sqlite_master WHERE type = 'table' AND name = :name"

    def ledger_table_ddl(self, table: str) -> str:
        return (
            f"CREATE TABLE IF NOT EXISTS {self.quote_identifier(table)} ("
            "name VARCHAR(255) NOT NULL UNIQUE, "
            "PRIMARY KEY (name))"
        )


class PostgreSQLDialect:
    """PostgreSQL — no ``IF NOT EXISTS`` for databases; SQLSTATE ``3D000``."""

    @property
    def name(self) -> str:
        return "postgresql"

    @property
    def drivername(self) -> str:
        return "postgresql+psycopg2"

    @property
    def default_port(self) -> int | None:
        return 5432

    @property
    def admin_database(self) -> str | None:
        return "postgres"

    @property
    def server_based(self) -> bool:
        return True

    def quote_identifier(self, name: str) -> str:
        return '"' + name.replace('"', '""') + '"'

    def create_database_sql(self, database: str) -> str | None:
        return f"CREATE DATABASE {self.quote_identifier(database)}"

    def is_missing_database(self, exc: BaseException) -> bool:
        orig = _driver_error(exc)
        code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
        if code is not None:
            return code == "3D000"
        message = str(orig)
        return "database" in message and "does not exist" in message

    def is_duplicate_database(self, exc: BaseException) -> bool:
        orig = _driver_error(exc)
        code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
        if code is not None:
            return code == "42P04"
        return "already exists" in str(orig)

    def table_exists_query(self) -> str:
        return (
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_schema = current_schema() AND table_name = :name"
        )

    def ledger_table_ddl(self, table: str) -> str:
        return (
            f"CREATE TABLE IF NOT EXISTS {self.quote_identifier(table)} ("
            "name VARCHAR(255) PRIMARY KEY NOT NULL, "
            "UNIQUE (name))"
        )


class MySQLDialect:
    """MySQL / MariaDB — backtick quoting, ``ER_BAD_DB_ERROR`` (1049)."""

    ER_BAD_DB_ERROR = 1049
    ER_DB_CREATE_EXISTS = 1007

    @property
    def name(self) -> str:
        return "mysql"

    @property
    def drivername(self) -> str:
        return "mysql+mysqlconnector"

    @property
    def default_port(self) -> int | None:
        return 3306

    @property
    def admin_database(self) -> str | None:
        return None

    @property
    def server_based(self) -> bool:
        return True

    def quote_identifier(self, name: str) -> str:
        return "`" + name.replace("`", "``") + "`"

    def create_database_sql(self, database: str) -> str | None:
        return f"CREATE DATABASE IF NOT EXISTS {self.quote_identifier(database)}"

    def is_missing_database(self, exc: BaseException) -> bool:
        code = _error_code(exc)
        if code is not None:
            return code == self.ER_BAD_DB_ERROR
        return "Unknown database" in str(_driver_error(exc))

    def is_duplicate_database(self, exc: BaseException) -> bool:
        return _error_code(exc) == self.ER_DB_CREATE_EXISTS

    def table_exists_query(self) -> str:
        return (
            "SELECT TABLE_NAME FROM INFORMATION_SCHEMA.TABLES "
            "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = :name"
        )

    def ledger_table_ddl(self, table: str) -> str:
        return (
            f"CREATE TABLE IF NOT EXISTS {self.quote_identifier(table)} ("
            "name VARCHAR(255) NOT NULL, "
            "PRIMARY KEY (name), "
            "UNIQUE KEY name_unique (name)"
            ") ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_unicode_ci"
        )


class MSSQLDialect:
    """SQL Server — bracket quoting, guarded ``CREATE DATABASE``, error 4060."""

    CANNOT_OPEN_DATABASE = 4060
    DATABASE_EXISTS = 1801

    @property
    def name(self) -> str:
        return "mssql"

    @property
    def drivername(self) -> str:
        return "mssql+pyodbc"

    @property
    def default_port(self) -> int | None:
        return 1433

    @property
    def admin_database(self) -> str | None:
        return "master"

    @property
    def server_based(self) -> bool:
        return True

    def quote_identifier(self, name: str) -> str:
        return "[" + name.replace("]", "]]") + "]"

    def create_database_sql(self, database: str) -> str | None:
        literal = database.replace("'", "''")
        return (
            f"IF DB_ID(N'{literal}') IS NULL "
            f"CREATE DATABASE {self.quote_identifier(database)}"
        )

    def is_missing_database(self, exc: BaseException) -> bool:
        message = str(_driver_error(exc))
        return str(self.CANNOT_OPEN_DATABASE) in message or "Cannot open database" in message

    def is_duplicate_database(self, exc: BaseException) -> bool:
        return str(self.DATABASE_EXISTS) in str(_driver_error(exc))

    def table_exists_query(self) -> str:
        return "SELECT name FROM sys.tables WHERE name = :name"

    def ledger_table_ddl(self, table: str) -> str:
        quoted = self.quote_identifier(table)
        literal = table.replace("'", "''")
        return (
            f"IF OBJECT_ID(N'{literal}', N'U') IS NULL "
            f"CREATE TABLE {quoted} ("
            "[name] NVARCHAR(255) NOT NULL, "
            "PRIMARY KEY ([name]))"
        )


# =========================================================================
# Registry / Factory
# =========================================================================

# Dialects are stateless
_DIALECTS: dict[str, Dialect] = {
    "sqlite": SQLiteDialect(),
    "postgresql": PostgreSQLDialect(),
    "postgres": PostgreSQLDialect(),  # alias
    "mysql": MySQLDialect(),
    "mariadb": MySQLDialect(),  # alias
    "mssql": MSSQLDialect(),
}


def get_dialect(name: str) -> Dialect:
    """Get a dialect by name (``sqlite``, ``postgresql``, ``mysql``, ``mssql``).

    URL-style names with a driver suffix (``postgresql+psycopg2``) resolve to
    their base dialect.

    Raises:
        UnsupportedAdapterError: If the dialect is not recognised.
    """
    key = name.lower().split("+", 1)[0]
    if key not in _DIALECTS:
        raise UnsupportedAdapterError(
            name,
            f"Unknown SQL dialect {name!r}. "
            f"Supported: {sorted(set(_DIALECTS) - {'postgres', 'mariadb'})}",
        )
    return _DIALECTS[key]


def register_dialect(name: str, dialect: Dialect) -> None:
    """Register a custom dialect implementation."""
    _DIALECTS[name.lower()] = dialect


__all__ = [
    "Dialect",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "MySQLDialect",
    "MSSQLDialect",
    "get_dialect",
    "register_dialect",
]
