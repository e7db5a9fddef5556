"""Migration descriptors loaded from one directory scan.

A migration file is named ``<integer>_<description>.py`` and defines
``up(conn)`` and, optionally, ``down(conn)``.  ``conn`` is a SQLAlchemy
``Connection`` already inside the transaction that also updates the ledger.

Example file ``001_users.py``::

    from sqlalchemy import text

    def up(conn):
        conn.execute(text("CREATE TABLE users (id INTEGER PRIMARY KEY, email VARCHAR(255))"))

    def down(conn):
        conn.execute(text("DROP TABLE users"))
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from strata.core.errors import ErrorContext, MigrationDiscoveryError
from strata.core.logging import get_logger
from strata.core.modules import iter_source_files, load_source_module

logger = get_logger(__name__)

MIGRATION_NAME = re.compile(r"^(?P<key>\d+)[_-](?P<label>\w[\w-]*)$")

MigrationFn = Callable[[Any], Any]


@dataclass(frozen=True)
class Migration:
    """One discovered migration."""

    name: str
    key: int
    up: MigrationFn
    down: MigrationFn | None
    path: str

    @property
    def reversible(self) -> bool:
        return self.down is not None


def ordering_key(name: str) -> int:
    """Leading integer of a migration name.

    Raises:
        MigrationDiscoveryError: If *name* has no numeric prefix.
    """
    match = MIGRATION_NAME.match(name)
    if match is None:
        raise MigrationDiscoveryError(
            f"Migration {name!r} must be named '<number>_<description>'",
            context=ErrorContext(migration=name),
        )
    return int(match.group("key"))


def read_migration(path: Path) -> Migration:
    key = ordering_key(path.stem)
    context = ErrorContext(migration=path.stem, path=str(path))
    try:
        module = load_source_module(path, namespace="migrations")
    except Exception as e:
        raise MigrationDiscoveryError(
            f"Cannot import migration {path.name}: {e}", context=context, cause=e
        ) from e

    up = getattr(module, "up", None)
    if not callable(up):
        raise MigrationDiscoveryError(
            f"Migration {path.name} does not define a callable 'up'", context=context
        )
    down = getattr(module, "down", None)
    return Migration(
        name=path.stem,
        key=key,
        up=up,
        down=down if callable(down) else None,
        path=str(path),
    )


def discover_migrations(directory: str | Path) -> list[Migration]:
    """
    Scan *directory* once and return its migrations in ascending key order.

    A missing directory is an empty universe.  Duplicate ordering keys are
    rejected because they make the apply order ambiguous.
    """
    directory = Path(directory)
    if not directory.is_dir():
        logger.debug("migrations.dir_missing", path=str(directory))
        return []

    migrations = [read_migration(path) for path in iter_source_files(directory)]
    migrations.sort(key=lambda m: (m.key, m.name))

    seen: dict[int, str] = {}
    for migration in migrations:
        if migration.key in seen:
            raise MigrationDiscoveryError(
                f"Migrations {seen[migration.key]!r} and {migration.name!r} "
                f"share ordering key {migration.key}",
                context=ErrorContext(migration=migration.name, path=migration.path),
            )
        seen[migration.key] = migration.name

    logger.debug("migrations.discovered", path=str(directory), count=len(migrations))
    return migrations


__all__ = [
    "Migration",
    "MIGRATION_NAME",
    "ordering_key",
    "read_migration",
    "discover_migrations",
]
