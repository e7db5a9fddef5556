"""
Migration operations.

Thin wrappers around :class:`~strata.core.migrations.MigrationRunner` and
the adapters for the ``migrate*`` commands.  Each function returns an
``OperationResult`` and never raises for expected failures.
"""

from __future__ import annotations

from pathlib import Path

from strata.core.adapters.document import DocumentHandle
from strata.core.adapters.schema_first import SchemaFirstAdapter
from strata.core.adapters.types import AdapterKind
from strata.core.errors import StrataError
from strata.core.logging import get_logger
from strata.core.models.discovery import strategy_for
from strata.core.models.loader import load_models
from strata.ops.context import OperationContext
from strata.ops.responses import (
    CreatedMigration,
    MigrateRunResult,
    MigrationStatusResult,
    UndoResult,
)
from strata.ops.result import OperationResult, start_timer

logger = get_logger(__name__)

DOCUMENT_NOTICE = "Document stores create collections on first write; there is nothing to migrate."


def run_migrations(ctx: OperationContext, force: bool = False) -> OperationResult[MigrateRunResult]:
    """Apply pending migrations (``force``: drop and recreate the model tables first)."""
    timer = start_timer()
    lifecycle = ctx.lifecycle
    payload = MigrateRunResult(forced=force)

    try:
        if lifecycle.kind is AdapterKind.SCHEMA_FIRST:
            adapter: SchemaFirstAdapter = lifecycle.adapter
            if force:
                lifecycle.connect().drop_all()
            adapter.migrate()
            payload.notice = "Schema applied by external tooling"
            return OperationResult.ok(payload, elapsed_ms=timer.elapsed_ms)

        handle = lifecycle.connect()

        if isinstance(handle, DocumentHandle):
            if force:
                payload.dropped = handle.drop_all()
                registry = load_models(handle, lifecycle.settings.models_dir)
                handle.sync_models(list(registry.values()))
                payload.synced_models = sorted(registry)
            payload.notice = DOCUMENT_NOTICE
            return OperationResult.ok(payload, elapsed_ms=timer.elapsed_ms)

        runner = lifecycle.migrations()
        if force:
            # model tables only; the ledger and migration-owned tables stay
            registry = load_models(handle, lifecycle.settings.models_dir)
            tables = list(registry.values())
            logger.warning("migrate.force", tables=sorted(registry))
            payload.dropped = handle.drop_models(tables)
            handle.sync_models(tables=tables)
            payload.synced_models = sorted(registry)

        result = runner.apply_all()
        payload.applied = result.applied
        payload.failed = result.failed
        if result.error is not None:
            return OperationResult.from_error(result.error, data=payload, elapsed_ms=timer.elapsed_ms)
        return OperationResult.ok(payload, elapsed_ms=timer.elapsed_ms)
    except StrataError as exc:
        logger.error("op_failed", op="migrate", error=str(exc))
        return OperationResult.from_error(exc, data=payload, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", op="migrate", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Migration failed: {exc}", elapsed_ms=timer.elapsed_ms)


def migration_status(ctx: OperationContext) -> OperationResult[MigrationStatusResult]:
    """Pending and applied migrations (empty for adapters without a ledger)."""
    timer = start_timer()
    lifecycle = ctx.lifecycle
    try:
        if not lifecycle.adapter.supports_migrations:
            return OperationResult.ok(
                MigrationStatusResult(),
                warnings=[f"Adapter {lifecycle.kind.value!r} keeps no migration ledger"],
                elapsed_ms=timer.elapsed_ms,
            )
        lifecycle.connect()
        status = lifecycle.migrations().status()
    except StrataError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    return OperationResult.ok(
        MigrationStatusResult(pending=status.pending, applied=status.applied),
        elapsed_ms=timer.elapsed_ms,
    )


def undo_model(ctx: OperationContext, name: str) -> OperationResult[UndoResult]:
    """Drop the table/collection behind model file ``<models_dir>/<name>.py``.

    Not ledger-aware: no migration is reverted and no ledger row changes.
    """
    timer = start_timer()
    lifecycle = ctx.lifecycle
    path = Path(lifecycle.settings.models_dir) / f"{name}.py"
    if not path.is_file():
        return OperationResult.fail(
            "MODEL_NOT_FOUND",
            f"Model file not found: {path}",
            details={"model": name, "path": str(path)},
            elapsed_ms=timer.elapsed_ms,
        )

    try:
        handle = lifecycle.connect()
        strategy = strategy_for(handle.kind)
        strategy.begin(handle)
        _, model = strategy.instantiate(strategy.read(path), handle)
        dropped = handle.drop_model(model)
    except StrataError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", op="undo_model", model=name, error=str(exc))
        return OperationResult.fail(
            "INTERNAL", f"Failed to drop model {name}: {exc}", elapsed_ms=timer.elapsed_ms
        )

    logger.info("models.dropped", model=name, storage=dropped)
    return OperationResult.ok(UndoResult(dropped=[dropped]), elapsed_ms=timer.elapsed_ms)


def undo_last(ctx: OperationContext) -> OperationResult[UndoResult]:
    """Revert the most recent migration."""
    timer = start_timer()
    try:
        ctx.lifecycle.connect()
        name = ctx.lifecycle.migrations().revert_last()
    except StrataError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    return OperationResult.ok(UndoResult(reverted=name), elapsed_ms=timer.elapsed_ms)


def undo_all(ctx: OperationContext) -> OperationResult[UndoResult]:
    """Drop everything the adapter manages (no ``down`` functions are run)."""
    timer = start_timer()
    lifecycle = ctx.lifecycle
    warning = "All tables were dropped without running down migrations"
    try:
        handle = lifecycle.connect()
        if lifecycle.adapter.supports_migrations:
            dropped = lifecycle.migrations().revert_all()
        else:
            dropped = handle.drop_all()
    except StrataError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", op="undo_all", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to drop: {exc}", elapsed_ms=timer.elapsed_ms)
    return OperationResult.ok(
        UndoResult(dropped=dropped), warnings=[warning], elapsed_ms=timer.elapsed_ms
    )


def create_migration_file(
    ctx: OperationContext,
    name: str,
    table: str | None = None,
) -> OperationResult[CreatedMigration]:
    """Write a new migration file into the migrations directory."""
    from strata.core.migrations.templates import create_migration

    timer = start_timer()
    try:
        path = create_migration(ctx.lifecycle.settings.migrations_dir, name, table=table)
    except StrataError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except OSError as exc:
        return OperationResult.fail(
            "IO_ERROR", f"Cannot write migration: {exc}", elapsed_ms=timer.elapsed_ms
        )
    return OperationResult.ok(
        CreatedMigration(name=path.stem, path=str(path)), elapsed_ms=timer.elapsed_ms
    )
