"""Schema migration ledger and runner.

Example::

    from strata.core.migrations import MigrationRunner

    runner = MigrationRunner(handle, "migrations")
    result = runner.apply_all()
"""

from .descriptor import Migration, discover_migrations
from .ledger import DEFAULT_LEDGER_TABLE, MigrationLedger
from .runner import MigrationResult, MigrationRunner, MigrationStatus, compute_pending
from .templates import create_migration

__all__ = [
    "DEFAULT_LEDGER_TABLE",
    "Migration",
    "MigrationLedger",
    "MigrationResult",
    "MigrationRunner",
    "MigrationStatus",
    "compute_pending",
    "create_migration",
    "discover_migrations",
]
