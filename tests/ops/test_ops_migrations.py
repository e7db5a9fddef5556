"""Tests for the migration and database operations."""

import subprocess
import sys
import types
from unittest.mock import MagicMock

import pytest
from sqlalchemy import inspect, text

from conftest import write_file, write_migration, write_table_model
from strata.core.adapters import AdapterKind, DocumentAdapter, DocumentConfig
from strata.core.lifecycle import StorageLifecycle
from strata.ops import (
    OperationContext,
    check_database_health,
    create_migration_file,
    migration_status,
    run_migrations,
    undo_all,
    undo_last,
    undo_model,
)
from strata.ops.migrations import DOCUMENT_NOTICE
from strata.ops.result import OperationResult, error_code


@pytest.fixture()
def ctx(settings):
    context = OperationContext(lifecycle=StorageLifecycle(settings))
    yield context
    context.close()


# =============================================================================
# Result envelope
# =============================================================================


class TestOperationResult:

    def test_error_code(self):
        from strata.core.errors import MigrationApplyError, NothingToUndoError

        assert error_code(MigrationApplyError("x")) == "MIGRATION_APPLY"
        assert error_code(NothingToUndoError()) == "NOTHING_TO_UNDO"

    def test_to_dict(self):
        result = OperationResult.fail("X", "broken", details={"migration": "001_a"})
        d = result.to_dict()
        assert d["success"] is False
        assert d["error"] == {"code": "X", "message": "broken", "retryable": False, "details": {"migration": "001_a"}}


# =============================================================================
# migrate
# =============================================================================


class TestRunMigrations:

    def test_applies_pending(self, ctx, migrations_dir):
        write_migration(migrations_dir, "001_users", "users")
        write_migration(migrations_dir, "002_posts", "posts")

        result = run_migrations(ctx)

        assert result.success
        assert result.data.applied == ["001_users", "002_posts"]
        assert result.data.failed is None

    def test_failure_reports_partial_progress(self, ctx, migrations_dir):
        write_migration(migrations_dir, "001_users", "users")
        write_migration(migrations_dir, "002_posts", "posts", fail=True)
        write_migration(migrations_dir, "003_tags", "tags")

        result = run_migrations(ctx)

        assert not result.success
        assert result.error.code == "MIGRATION_APPLY"
        assert result.error.details["migration"] == "002_posts"
        assert result.data.applied == ["001_users"]
        assert result.data.failed == "002_posts"

    def test_force_recreates_model_tables_and_keeps_ledger(self, ctx, models_dir, migrations_dir):
        write_migration(migrations_dir, "001_audit", "audit")
        assert run_migrations(ctx).success
        write_table_model(models_dir, "users")
        write_migration(migrations_dir, "002_posts", "posts")

        result = run_migrations(ctx, force=True)

        assert result.success, result.error
        assert result.data.forced
        assert result.data.dropped == []
        assert result.data.synced_models == ["users"]
        assert result.data.applied == ["002_posts"]
        assert {"users", "audit", "posts"} <= set(ctx.lifecycle.handle.table_names())
        assert ctx.lifecycle.migrations().applied() == ["001_audit", "002_posts"]

    def test_force_when_model_and_migration_share_a_table(self, ctx, models_dir, migrations_dir):
        write_migration(migrations_dir, "001_users", "users")
        write_table_model(models_dir, "users")
        assert run_migrations(ctx).success
        engine = ctx.lifecycle.handle.engine
        with engine.begin() as conn:
            conn.execute(text("INSERT INTO users (id) VALUES (1)"))

        result = run_migrations(ctx, force=True)

        assert result.success, result.error
        assert result.data.dropped == ["users"]
        assert result.data.synced_models == ["users"]
        assert result.data.applied == []
        columns = {c["name"] for c in inspect(engine).get_columns("users")}
        assert columns == {"id", "label"}
        with engine.connect() as conn:
            assert conn.execute(text("SELECT COUNT(*) FROM users")).scalar() == 0
        assert ctx.lifecycle.migrations().applied() == ["001_users"]

    def test_document_store_has_nothing_to_migrate(self, settings):
        client = MagicMock()
        adapter = DocumentAdapter(DocumentConfig(database="app"), client_factory=MagicMock(return_value=client))
        context = OperationContext(lifecycle=StorageLifecycle(settings, adapter=adapter))

        result = run_migrations(context)

        assert result.success
        assert result.data.notice == DOCUMENT_NOTICE
        assert result.data.applied == []
        client.__getitem__.return_value.drop_collection.assert_not_called()

    def test_document_force_drops_and_syncs_indexes(self, settings, models_dir):
        write_file(
            models_dir,
            "team.py",
            """
            from strata.core.models.document import DocumentSchema

            SCHEMA = DocumentSchema(indexes=[("name", {"unique": True})])
            """,
        )
        client = MagicMock()
        db = client.__getitem__.return_value
        db.list_collection_names.return_value = ["team", "legacy"]
        adapter = DocumentAdapter(DocumentConfig(database="app"), client_factory=MagicMock(return_value=client))
        context = OperationContext(lifecycle=StorageLifecycle(settings, adapter=adapter))

        result = run_migrations(context, force=True)

        assert result.success
        assert result.data.dropped == ["legacy", "team"]
        assert result.data.synced_models == ["Team"]
        db.__getitem__.return_value.create_index.assert_called_once_with("name", unique=True)


class TestSchemaFirstMigrations:

    @pytest.fixture()
    def schema_first_settings(self, settings, monkeypatch):
        module = types.ModuleType("fake_schema_client")
        module.Client = lambda: types.SimpleNamespace(user=types.SimpleNamespace())
        monkeypatch.setitem(sys.modules, "fake_schema_client", module)
        return settings.model_copy(
            update={"adapter": AdapterKind.SCHEMA_FIRST, "client_factory": "fake_schema_client:Client"}
        )

    def _run(self, monkeypatch, returncode):
        calls = []

        def fake_run(cmd, cwd=None, check=False):
            calls.append(cmd)
            return subprocess.CompletedProcess(cmd, returncode)

        monkeypatch.setattr("strata.core.adapters.schema_first.subprocess.run", fake_run)
        return calls

    def test_delegates_to_external_tool(self, schema_first_settings, monkeypatch):
        calls = self._run(monkeypatch, 0)
        context = OperationContext(lifecycle=StorageLifecycle(schema_first_settings))

        result = run_migrations(context)

        assert result.success
        assert calls == [["prisma", "migrate", "deploy"]]

    def test_tool_failure(self, schema_first_settings, monkeypatch):
        self._run(monkeypatch, 1)
        context = OperationContext(lifecycle=StorageLifecycle(schema_first_settings))

        result = run_migrations(context)

        assert not result.success
        assert result.error.code == "EXTERNAL_TOOL"

    def test_status_is_empty_with_warning(self, schema_first_settings):
        context = OperationContext(lifecycle=StorageLifecycle(schema_first_settings))
        result = migration_status(context)
        assert result.success
        assert result.data.pending == []
        assert result.warnings


# =============================================================================
# migrate:status
# =============================================================================


class TestMigrationStatus:

    def test_pending_and_applied(self, ctx, migrations_dir):
        write_migration(migrations_dir, "001_users", "users")
        run_migrations(ctx)
        write_migration(migrations_dir, "002_posts", "posts")
        ctx.lifecycle.close()

        result = migration_status(ctx)

        assert result.success
        assert result.data.applied == ["001_users"]
        assert result.data.pending == ["002_posts"]

    def test_bad_migration_directory(self, ctx, migrations_dir):
        write_migration(migrations_dir, "users", "users")
        result = migration_status(ctx)
        assert not result.success
        assert result.error.code == "MIGRATION_DISCOVERY"


# =============================================================================
# migrate:undo*
# =============================================================================


class TestUndo:

    def test_undo_model_drops_table_only(self, ctx, models_dir, migrations_dir):
        write_migration(migrations_dir, "001_audit", "audit")
        run_migrations(ctx)
        write_table_model(models_dir, "users")
        handle = ctx.lifecycle.connect()
        ctx.lifecycle.initialize()
        handle.sync_models()

        result = undo_model(ctx, "users")

        assert result.success
        assert result.data.dropped == ["users"]
        assert "users" not in handle.table_names()
        assert ctx.lifecycle.migrations().applied() == ["001_audit"]

    def test_undo_model_missing_file(self, ctx):
        result = undo_model(ctx, "ghost")
        assert not result.success
        assert result.error.code == "MODEL_NOT_FOUND"

    def test_undo_last(self, ctx, migrations_dir):
        write_migration(migrations_dir, "001_users", "users")
        write_migration(migrations_dir, "002_posts", "posts")
        run_migrations(ctx)

        result = undo_last(ctx)

        assert result.success
        assert result.data.reverted == "002_posts"

    def test_undo_last_with_empty_ledger(self, ctx):
        result = undo_last(ctx)
        assert not result.success
        assert result.error.code == "NOTHING_TO_UNDO"

    def test_undo_all(self, ctx, migrations_dir):
        write_migration(migrations_dir, "001_users", "users")
        run_migrations(ctx)

        result = undo_all(ctx)

        assert result.success
        assert set(result.data.dropped) == {"users", "strata_migrations"}
        assert result.warnings


# =============================================================================
# migrate:create
# =============================================================================


class TestCreateMigrationFile:

    def test_creates_file(self, ctx, migrations_dir):
        result = create_migration_file(ctx, "add users", table="users")
        assert result.success
        assert result.data.name.endswith("_add_users")
        assert (migrations_dir / f"{result.data.name}.py").exists()


# =============================================================================
# db:health
# =============================================================================


class TestDatabaseHealth:

    def test_healthy(self, ctx):
        result = check_database_health(ctx)
        assert result.success
        assert result.data.status == "healthy"

    def test_degraded_is_success_with_warning(self, ctx, models_dir):
        write_file(models_dir, "broken.py", "raise RuntimeError('nope')\n")
        result = check_database_health(ctx)
        assert result.success
        assert result.data.status == "degraded"
        assert "broken" in result.warnings[0]

    def test_unreachable_database(self, settings, tmp_path):
        # a directory cannot be opened as a SQLite database file
        blocked = tmp_path / "blocked"
        blocked.mkdir()
        context = OperationContext(
            lifecycle=StorageLifecycle(settings.model_copy(update={"db_name": str(blocked)}))
        )

        result = check_database_health(context)

        assert not result.success
        assert result.error.code == "UNHEALTHY"
        assert result.data.status == "unhealthy"
