"""Tests for StorageLifecycle and the health report."""

from unittest.mock import MagicMock

import pytest

from conftest import write_file, write_migration, write_table_model
from strata.core.adapters import DocumentAdapter, DocumentConfig
from strata.core.errors import AdapterCapabilityError, SchemaStrategyConflictError
from strata.core.errors import ConnectionError as StrataConnectionError
from strata.core.health import check_handle
from strata.core.lifecycle import StorageLifecycle
from strata.core.models import ModelRegistry


class TestInitialize:

    def test_bootstraps_and_loads_models(self, settings, models_dir, tmp_path):
        write_table_model(models_dir, "users")
        lifecycle = StorageLifecycle(settings)

        registry = lifecycle.initialize()

        assert list(registry) == ["users"]
        assert lifecycle.accepting
        assert lifecycle.registry is registry
        # database directory did not exist beforehand
        assert (tmp_path / "data" / "app.db").exists()
        lifecycle.shutdown()

    def test_is_one_shot(self, settings):
        lifecycle = StorageLifecycle(settings)
        first = lifecycle.initialize()
        assert lifecycle.initialize() is first
        lifecycle.shutdown()

    def test_no_eager_sync_by_default(self, settings, models_dir):
        write_table_model(models_dir, "users")
        with StorageLifecycle(settings) as lifecycle:
            assert lifecycle.handle.table_names() == []

    def test_eager_sync_creates_loaded_tables_only(self, settings, models_dir):
        write_table_model(models_dir, "users")
        write_file(
            models_dir,
            "broken.py",
            """
            from sqlalchemy import Column, Integer, Table


            def define(metadata):
                return Table("broken", metadata, Column("id", Integer, primary_key=True))


            def associate(model, models):
                raise RuntimeError("bad wiring")
            """,
        )
        settings = settings.model_copy(update={"eager_sync": True})

        with StorageLifecycle(settings) as lifecycle:
            assert lifecycle.handle.table_names() == ["users"]
            assert lifecycle.registry.failed_names == ["broken"]

    def test_eager_sync_skipped_in_production(self, settings, models_dir):
        write_table_model(models_dir, "users")
        settings = settings.model_copy(update={"eager_sync": True, "environment": "production"})

        with StorageLifecycle(settings) as lifecycle:
            assert lifecycle.handle.table_names() == []

    def test_eager_sync_with_migrations_is_rejected(self, settings, migrations_dir):
        write_migration(migrations_dir, "001_users", "users")
        lifecycle = StorageLifecycle(settings.model_copy(update={"eager_sync": True}))

        with pytest.raises(SchemaStrategyConflictError):
            lifecycle.initialize()
        assert lifecycle.handle is None
        assert not lifecycle.accepting


class TestReload:

    def test_reload_swaps_registry(self, settings, models_dir):
        write_table_model(models_dir, "users")
        with StorageLifecycle(settings) as lifecycle:
            before = lifecycle.registry
            write_table_model(models_dir, "teams")

            after = lifecycle.reload_models()

            assert lifecycle.registry is after
            assert after is not before
            assert sorted(after) == ["teams", "users"]
            assert list(before) == ["users"]

    def test_reload_requires_connection(self, settings):
        with pytest.raises(StrataConnectionError, match="not connected"):
            StorageLifecycle(settings).reload_models()


class TestMigrations:

    def test_runner_for_relational(self, settings, migrations_dir):
        write_migration(migrations_dir, "001_users", "users")
        with StorageLifecycle(settings) as lifecycle:
            runner = lifecycle.migrations()
            assert runner.pending() == ["001_users"]

    def test_document_adapter_has_no_runner(self, settings):
        adapter = DocumentAdapter(DocumentConfig(database="app"))
        lifecycle = StorageLifecycle(settings, adapter=adapter)
        with pytest.raises(AdapterCapabilityError):
            lifecycle.migrations()


class TestHealth:

    def test_healthy(self, settings):
        with StorageLifecycle(settings) as lifecycle:
            report = lifecycle.health()
        assert report.status == "healthy"
        assert report.adapter == "relational"
        assert report.latency_ms is not None
        assert report.ok

    def test_degraded_when_models_failed(self, settings, models_dir):
        write_file(models_dir, "broken.py", "raise ImportError('missing dependency')\n")
        with StorageLifecycle(settings) as lifecycle:
            report = lifecycle.health()
        assert report.status == "degraded"
        assert report.failed_models == ["broken"]
        assert report.ok

    def test_unhealthy_before_initialize_and_after_shutdown(self, settings):
        lifecycle = StorageLifecycle(settings)
        assert lifecycle.health().status == "unhealthy"
        assert lifecycle.health().error == "not connected"

        lifecycle.initialize()
        lifecycle.shutdown()
        report = lifecycle.health()
        assert report.status == "unhealthy"
        assert not report.ok

    def test_ping_failure_is_reported_not_raised(self):
        from strata.core.adapters import AdapterKind

        handle = MagicMock(closed=False)
        handle.ping.side_effect = RuntimeError("connection reset")
        report = check_handle(AdapterKind.DOCUMENT, handle, ModelRegistry.empty(handle))

        assert report.status == "unhealthy"
        assert report.error == "connection reset"


class TestShutdown:

    def test_stops_accepting_then_closes(self, settings):
        lifecycle = StorageLifecycle(settings)
        lifecycle.initialize()
        handle = lifecycle.handle

        lifecycle.shutdown()

        assert not lifecycle.accepting
        assert handle.closed

    def test_close_is_idempotent(self, settings):
        lifecycle = StorageLifecycle(settings)
        lifecycle.close()
        lifecycle.initialize()
        lifecycle.close()
        lifecycle.close()
        assert lifecycle.handle.closed
