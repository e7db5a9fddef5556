"""
Lifecycle operations for the CLI and SDK callers.

Every function takes an :class:`OperationContext` and returns an
:class:`OperationResult`; expected failures never raise.
"""

from strata.ops.context import OperationContext
from strata.ops.database import check_database_health
from strata.ops.migrations import (
    create_migration_file,
    migration_status,
    run_migrations,
    undo_all,
    undo_last,
    undo_model,
)
from strata.ops.result import OperationError, OperationResult

__all__ = [
    "OperationContext",
    "OperationError",
    "OperationResult",
    "check_database_health",
    "create_migration_file",
    "migration_status",
    "run_migrations",
    "undo_all",
    "undo_last",
    "undo_model",
]
