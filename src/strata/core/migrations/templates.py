"""Migration file templates and ``create_migration``."""

from __future__ import annotations

import re
import time
from pathlib import Path
from string import Template

from strata.core.errors import ErrorContext, MigrationError
from strata.core.logging import get_logger

logger = get_logger(__name__)

GENERIC_TEMPLATE = Template('''"""Migration: $title"""

from sqlalchemy import text


def up(conn):
    """Apply the change."""
    conn.execute(text("SELECT 1"))


def down(conn):
    """Reverse the change."""
    conn.execute(text("SELECT 1"))
''')

CREATE_TABLE_TEMPLATE = Template('''"""Migration: create table $table"""

from sqlalchemy import Column, DateTime, Integer, MetaData, Table, func


def _table(metadata):
    return Table(
        "$table",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("created_at", DateTime, nullable=False, server_default=func.now()),
        Column("updated_at", DateTime, nullable=False, server_default=func.now()),
    )


def up(conn):
    _table(MetaData()).create(conn)


def down(conn):
    _table(MetaData()).drop(conn)
''')


def slugify(name: str) -> str:
    slug = re.sub(r"[^0-9a-zA-Z]+", "_", name).strip("_").lower()
    if not slug:
        raise MigrationError(f"Invalid migration name: {name!r}")
    return slug


def create_migration(
    directory: str | Path,
    name: str,
    table: str | None = None,
    now: float | None = None,
) -> Path:
    """
    Write a new migration file named ``<epoch-ms>_<slug>.py``.

    Uses the create-table template when *table* is given, otherwise the
    generic template.  The directory is created if needed; an existing file
    is never overwritten.
    """
    directory = Path(directory)
    slug = slugify(name)
    stamp = int((time.time() if now is None else now) * 1000)
    path = directory / f"{stamp}_{slug}.py"

    if table:
        content = CREATE_TABLE_TEMPLATE.substitute(table=slugify(table))
    else:
        content = GENERIC_TEMPLATE.substitute(title=name)

    directory.mkdir(parents=True, exist_ok=True)
    try:
        with path.open("x", encoding="utf-8") as fh:
            fh.write(content)
    except FileExistsError as e:
        raise MigrationError(
            f"Migration file already exists: {path.name}",
            context=ErrorContext(migration=path.stem, path=str(path)),
            cause=e,
        ) from e

    logger.info("migration.created", path=str(path), table=table)
    return path


__all__ = ["GENERIC_TEMPLATE", "CREATE_TABLE_TEMPLATE", "slugify", "create_migration"]
