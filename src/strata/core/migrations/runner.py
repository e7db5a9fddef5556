"""Migration runner.

Reads migration descriptors from the migrations directory, tracks applied
migrations in the ledger table, and applies pending ones in ordering-key
order.  Each forward (or reverse) step and its ledger write share one
transaction: a failed migration leaves the ledger exactly as it was.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from strata.core.adapters.base import ConnectionHandle
from strata.core.adapters.relational import RelationalHandle
from strata.core.errors import (
    AdapterCapabilityError,
    ErrorContext,
    MigrationApplyError,
    MigrationError,
    MigrationRevertError,
    NothingToUndoError,
    StrataError,
)
from strata.core.logging import LogContext, get_logger

from .descriptor import MIGRATION_NAME, Migration, discover_migrations
from .ledger import DEFAULT_LEDGER_TABLE, MigrationLedger
from .templates import create_migration

logger = get_logger(__name__)


@dataclass
class MigrationResult:
    """Result of ``apply_all()``."""

    applied: list[str] = field(default_factory=list)
    failed: str | None = None
    error: StrataError | None = None

    @property
    def success(self) -> bool:
        return self.failed is None

    @property
    def partial(self) -> bool:
        return self.failed is not None and bool(self.applied)

    def to_dict(self) -> dict[str, Any]:
        return {
            "applied": list(self.applied),
            "failed": self.failed,
            "error": self.error.message if self.error else None,
            "success": self.success,
        }


@dataclass(frozen=True)
class MigrationStatus:
    """Snapshot of pending and applied migration names."""

    pending: list[str]
    applied: list[str]

    def to_dict(self) -> dict[str, list[str]]:
        return {"pending": list(self.pending), "applied": list(self.applied)}


def _sort_key(name: str) -> tuple[int, str]:
    match = MIGRATION_NAME.match(name)
    return (int(match.group("key")) if match else -1, name)


def compute_pending(applied: Iterable[str], universe: list[Migration]) -> list[Migration]:
    """``universe`` minus ``applied``, preserving the universe's order."""
    done = set(applied)
    return [m for m in universe if m.name not in done]


class MigrationRunner:
    """Applies and reverts migrations against a relational handle.

    Parameters
    ----------
    handle
        A live ``RelationalHandle``.
    migrations_dir
        Directory containing ``<number>_<name>.py`` migration files.

    Example::

        runner = MigrationRunner(handle, "migrations")
        result = runner.apply_all()
        print(f"Applied {len(result.applied)} migrations")
    """

    def __init__(
        self,
        handle: ConnectionHandle,
        migrations_dir: str | Path,
        *,
        ledger_table: str = DEFAULT_LEDGER_TABLE,
    ) -> None:
        if not isinstance(handle, RelationalHandle):
            raise AdapterCapabilityError(
                f"Adapter {handle.kind.value!r} does not support ledger migrations",
                context=ErrorContext(adapter=handle.kind.value),
            )
        self._handle = handle
        self._dir = Path(migrations_dir)
        self._ledger = MigrationLedger(handle, ledger_table)
        self._universe: list[Migration] | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def ledger(self) -> MigrationLedger:
        return self._ledger

    @property
    def migrations_dir(self) -> Path:
        return self._dir

    @property
    def universe(self) -> list[Migration]:
        """All discovered migrations (scanned once; see ``refresh()``)."""
        if self._universe is None:
            self._universe = discover_migrations(self._dir)
        return self._universe

    def refresh(self) -> None:
        """Rescan the migrations directory on next access."""
        self._universe = None

    def applied(self) -> list[str]:
        """Ledger rows in ascending ordering-key order."""
        return sorted(self._ledger.applied(), key=_sort_key)

    def pending(self) -> list[str]:
        return [m.name for m in self.pending_migrations()]

    def pending_migrations(self) -> list[Migration]:
        return compute_pending(self._ledger.applied(), self.universe)

    def status(self) -> MigrationStatus:
        """Pending and applied names; read-only apart from ledger provisioning."""
        applied = self._ledger.applied()
        return MigrationStatus(
            pending=[m.name for m in compute_pending(applied, self.universe)],
            applied=sorted(applied, key=_sort_key),
        )

    def apply(self, migration: Migration) -> None:
        """Record *migration* and run ``up`` in one transaction.

        The ledger row goes in first so its primary key rejects a repeat
        before ``up`` touches the schema.
        """
        self._ledger.ensure()

        with LogContext(migration=migration.name):
            logger.info("migration.applying")
            try:
                with self._handle.engine.begin() as conn:
                    try:
                        self._ledger.record(conn, migration.name)
                    except IntegrityError as e:
                        raise MigrationError(
                            f"Migration already applied: {migration.name}",
                            context=ErrorContext(migration=migration.name),
                            cause=e,
                        ) from e
                    migration.up(conn)
            except MigrationError:
                raise
            except Exception as e:
                logger.error("migration.failed", error=str(e))
                raise MigrationApplyError(
                    migration.name,
                    f"Migration {migration.name} failed: {e}",
                    context=ErrorContext(migration=migration.name, path=migration.path),
                    cause=e,
                ) from e
            logger.info("migration.applied")

    def apply_all(self) -> MigrationResult:
        """Apply pending migrations in order, stopping at the first failure."""
        result = MigrationResult()
        for migration in self.pending_migrations():
            try:
                self.apply(migration)
            except MigrationApplyError as e:
                result.failed = migration.name
                result.error = e
                break
            result.applied.append(migration.name)

        logger.info(
            "migrations.run_complete",
            applied=len(result.applied),
            failed=result.failed,
        )
        return result

    def revert_last(self) -> str:
        """
        Reverse the lexicographically greatest applied migration.

        Raises:
            NothingToUndoError: The ledger is empty.
            MigrationError: No migration file matches the ledger row.
            MigrationRevertError: The migration has no ``down`` or it failed.
        """
        applied = self._ledger.applied()
        if not applied:
            raise NothingToUndoError()
        name = max(applied)

        migration = next((m for m in self.universe if m.name == name), None)
        if migration is None:
            raise MigrationError(
                f"Applied migration {name!r} has no file in {self._dir}",
                context=ErrorContext(migration=name, path=str(self._dir)),
            )
        if migration.down is None:
            raise MigrationRevertError(
                name,
                f"Migration {name} defines no 'down' and cannot be reverted",
                context=ErrorContext(migration=name, path=migration.path),
            )

        with LogContext(migration=name):
            logger.info("migration.reverting")
            try:
                with self._handle.engine.begin() as conn:
                    migration.down(conn)
                    self._ledger.remove(conn, name)
            except Exception as e:
                logger.error("migration.revert_failed", error=str(e))
                raise MigrationRevertError(
                    name,
                    f"Revert of {name} failed: {e}",
                    context=ErrorContext(migration=name, path=migration.path),
                    cause=e,
                ) from e
            logger.info("migration.reverted")
        return name

    def revert_all(self) -> list[str]:
        """
        Drop every table in the database, the ledger included.

        This is a reset, not a replay: no ``down`` function is called.
        """
        logger.warning(
            "migrations.revert_all",
            database=self._handle.database,
            note="dropping all tables without running down migrations",
        )
        try:
            dropped = self._handle.drop_all()
        except SQLAlchemyError as e:
            raise MigrationError(
                f"Failed to drop tables: {e}",
                context=ErrorContext(database=self._handle.database),
                cause=e,
            ) from e
        self._ledger.invalidate()
        logger.info("migrations.reverted_all", tables=dropped)
        return dropped

    def create(self, name: str, table: str | None = None) -> Path:
        """Write a new migration file and rescan on next access."""
        path = create_migration(self._dir, name, table=table)
        self.refresh()
        return path


__all__ = [
    "MigrationResult",
    "MigrationStatus",
    "MigrationRunner",
    "compute_pending",
]
