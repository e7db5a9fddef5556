"""Persistent ledger of applied migrations.

One table, one column (``name``, primary key) in the application database.
The table is provisioned lazily: ``ensure()`` checks for it with the
dialect's introspection query and creates it when absent.  Safe to call on
every invocation.
"""

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from strata.core.adapters.relational import RelationalHandle
from strata.core.errors import ErrorContext, LedgerUnavailableError
from strata.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_LEDGER_TABLE = "strata_migrations"


class MigrationLedger:
    """Read and write the applied-migrations table."""

    def __init__(self, handle: RelationalHandle, table: str = DEFAULT_LEDGER_TABLE):
        self._handle = handle
        self._table = table
        self._quoted = handle.dialect.quote_identifier(table)
        self._ready = False

    @property
    def table(self) -> str:
        return self._table

    def _context(self) -> ErrorContext:
        return ErrorContext(
            adapter="relational",
            dialect=self._handle.dialect.name,
            database=self._handle.database,
            metadata={"ledger": self._table},
        )

    def invalidate(self) -> None:
        """Forget that the table was provisioned (after it has been dropped)."""
        self._ready = False

    def exists(self) -> bool:
        query = text(self._handle.dialect.table_exists_query())
        with self._handle.engine.connect() as conn:
            return conn.execute(query, {"name": self._table}).first() is not None

    def ensure(self) -> None:
        """Create the ledger table if it does not exist."""
        if self._ready:
            return
        try:
            if not self.exists():
                with self._handle.engine.begin() as conn:
                    conn.execute(text(self._handle.dialect.ledger_table_ddl(self._table)))
                logger.info("ledger.created", table=self._table)
        except SQLAlchemyError as e:
            raise LedgerUnavailableError(
                f"Migration ledger {self._table!r} is unavailable: {e}",
                context=self._context(),
                cause=e,
            ) from e
        self._ready = True

    def applied(self) -> list[str]:
        """Names recorded as applied (unordered as stored)."""
        self.ensure()
        try:
            with self._handle.engine.connect() as conn:
                rows = conn.execute(text(f"SELECT name FROM {self._quoted}")).all()
        except SQLAlchemyError as e:
            raise LedgerUnavailableError(
                f"Cannot read migration ledger {self._table!r}: {e}",
                context=self._context(),
                cause=e,
            ) from e
        return [row[0] for row in rows]

    def record(self, conn: Connection, name: str) -> None:
        conn.execute(text(f"INSERT INTO {self._quoted} (name) VALUES (:name)"), {"name": name})

    def remove(self, conn: Connection, name: str) -> None:
        conn.execute(text(f"DELETE FROM {self._quoted} WHERE name = :name"), {"name": name})


__all__ = ["DEFAULT_LEDGER_TABLE", "MigrationLedger"]
