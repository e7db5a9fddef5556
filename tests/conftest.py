"""
Shared pytest fixtures and configuration for strata tests.

This module provides:
- Environment isolation (no STRATA_* leakage, no stray .env files)
- SQLite-backed relational handles and adapters
- Helpers that write model and migration files into tmp directories
- Fake driver errors for the missing-database paths of server dialects
"""

import sys
import textwrap
from pathlib import Path

import pytest

# Ensure strata package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from strata.core.adapters.relational import RelationalAdapter, RelationalHandle
from strata.core.adapters.types import RelationalConfig
from strata.core.logging import configure_logging
from strata.core.settings import StrataSettings, clear_settings_cache


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark all tests without explicit markers as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _quiet_logging():
    """Configure structlog once so CLI invocations don't reconfigure it."""
    configure_logging(level="WARNING", json_format=False)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Run every test from an empty directory with no STRATA_* variables."""
    import os

    for key in list(os.environ):
        if key.startswith("STRATA_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# File Helpers
# =============================================================================


def write_file(directory: Path, filename: str, body: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    path.write_text(textwrap.dedent(body).lstrip(), encoding="utf-8")
    return path


def write_table_model(directory: Path, name: str, *, fk: str | None = None) -> Path:
    """Relational model file whose ``associate`` records the names it saw."""
    fk_column = (
        f'Column("{fk}_id", Integer, ForeignKey("{fk}.id")),' if fk else ""
    )
    return write_file(
        directory,
        f"{name}.py",
        f'''
        from sqlalchemy import Column, ForeignKey, Integer, String, Table


        def define(metadata):
            return Table(
                "{name}",
                metadata,
                Column("id", Integer, primary_key=True),
                Column("label", String(50)),
                {fk_column}
            )


        def associate(model, models):
            model.info["seen"] = sorted(models)
        ''',
    )


def write_migration(
    directory: Path,
    name: str,
    table: str,
    *,
    fail: bool = False,
    reversible: bool = True,
) -> Path:
    """Migration that creates *table* (and optionally raises afterwards)."""
    lines = [
        "from sqlalchemy import text",
        "",
        "",
        "def up(conn):",
        f'    conn.execute(text("CREATE TABLE {table} (id INTEGER PRIMARY KEY)"))',
    ]
    if fail:
        lines.append('    raise RuntimeError("boom")')
    if reversible:
        lines += [
            "",
            "",
            "def down(conn):",
            f'    conn.execute(text("DROP TABLE {table}"))',
        ]
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name}.py"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


# =============================================================================
# Fake Driver Errors
# =============================================================================


class FakeMySQLError(Exception):
    """Stand-in for ``mysql.connector.Error`` (carries ``errno``)."""

    def __init__(self, errno: int, msg: str):
        super().__init__(msg)
        self.errno = errno


class FakePsycopgError(Exception):
    """Stand-in for ``psycopg2.Error`` (carries ``pgcode``)."""

    def __init__(self, pgcode: str, msg: str):
        super().__init__(msg)
        self.pgcode = pgcode


# =============================================================================
# Relational Fixtures
# =============================================================================


@pytest.fixture()
def models_dir(tmp_path: Path) -> Path:
    d = tmp_path / "models"
    d.mkdir()
    return d


@pytest.fixture()
def migrations_dir(tmp_path: Path) -> Path:
    d = tmp_path / "migrations"
    d.mkdir()
    return d


@pytest.fixture()
def sqlite_config(tmp_path: Path) -> RelationalConfig:
    return RelationalConfig(dialect="sqlite", database=str(tmp_path / "app.db"))


@pytest.fixture()
def relational_handle(sqlite_config: RelationalConfig) -> RelationalHandle:
    handle = RelationalAdapter(sqlite_config).open()
    yield handle
    handle.close()


@pytest.fixture()
def settings(tmp_path: Path, models_dir: Path, migrations_dir: Path) -> StrataSettings:
    return StrataSettings(
        adapter="relational",
        db_dialect="sqlite",
        db_name=str(tmp_path / "data" / "app.db"),
        models_dir=str(models_dir),
        migrations_dir=str(migrations_dir),
    )
