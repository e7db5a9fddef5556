"""Tests for the relational, document and schema-first adapters."""

import subprocess
import sys
import types
from unittest.mock import MagicMock

import pytest
from sqlalchemy import Column, Integer, Table

from strata.core.adapters import (
    DocumentAdapter,
    DocumentConfig,
    DocumentHandle,
    RelationalAdapter,
    SchemaFirstAdapter,
    SchemaFirstConfig,
    SchemaFirstHandle,
)
from strata.core.adapters.schema_first import resolve_factory, run_external
from strata.core.errors import AdapterCapabilityError, ConfigError, ExternalToolError
from strata.core.errors import ConnectionError as StrataConnectionError


# =============================================================================
# Relational
# =============================================================================


class TestRelationalHandle:

    def test_ping(self, relational_handle):
        relational_handle.ping()

    def test_sync_and_drop_all(self, relational_handle):
        Table("users", relational_handle.metadata, Column("id", Integer, primary_key=True))
        Table("teams", relational_handle.metadata, Column("id", Integer, primary_key=True))
        relational_handle.sync_models()
        assert set(relational_handle.table_names()) == {"users", "teams"}

        dropped = relational_handle.drop_all()
        assert set(dropped) == {"users", "teams"}
        assert relational_handle.table_names() == []

    def test_drop_model_by_table_or_name(self, relational_handle):
        users = Table("users", relational_handle.metadata, Column("id", Integer, primary_key=True))
        Table("teams", relational_handle.metadata, Column("id", Integer, primary_key=True))
        relational_handle.sync_models()

        assert relational_handle.drop_model(users) == "users"
        assert relational_handle.drop_model("teams") == "teams"
        assert relational_handle.table_names() == []

    def test_drop_model_missing_table_is_noop(self, relational_handle):
        assert relational_handle.drop_model("ghost") == "ghost"

    def test_reset_metadata(self, relational_handle):
        Table("users", relational_handle.metadata, Column("id", Integer, primary_key=True))
        fresh = relational_handle.reset_metadata()
        assert fresh is relational_handle.metadata
        assert len(fresh.tables) == 0


class TestRelationalAdapter:

    def test_sqlite_has_no_pool_options(self, sqlite_config):
        factory = MagicMock()
        RelationalAdapter(sqlite_config, engine_factory=factory).open()
        assert "pool_size" not in factory.call_args.kwargs

    def test_connect_timeout_reaches_the_driver(self):
        from strata.core.adapters.types import RelationalConfig

        factory = MagicMock()
        config = RelationalConfig(
            dialect="postgresql",
            database="app",
            connect_timeout=5,
            options={"connect_args": {"application_name": "strata"}},
        )
        RelationalAdapter(config, engine_factory=factory).open()

        assert factory.call_args.kwargs["connect_args"] == {
            "connect_timeout": 5,
            "application_name": "strata",
        }

    def test_sqlite_gets_no_connect_timeout(self, sqlite_config):
        factory = MagicMock()
        RelationalAdapter(sqlite_config, engine_factory=factory).open()
        assert "connect_args" not in factory.call_args.kwargs

    def test_missing_driver_is_config_error(self):
        from strata.core.adapters.types import RelationalConfig

        factory = MagicMock(side_effect=ImportError("No module named 'psycopg2'"))
        adapter = RelationalAdapter(
            RelationalConfig(dialect="postgresql", database="app"), engine_factory=factory
        )
        with pytest.raises(ConfigError, match="not installed"):
            adapter.open()

    def test_supports_migrations(self, sqlite_config):
        assert RelationalAdapter(sqlite_config).supports_migrations is True


# =============================================================================
# Document
# =============================================================================


@pytest.fixture()
def mongo_client() -> MagicMock:
    client = MagicMock(name="MongoClient")
    client.__getitem__.return_value.name = "app"
    return client


class TestDocumentAdapter:

    def test_open_pings_and_selects_database(self, mongo_client):
        factory = MagicMock(return_value=mongo_client)
        adapter = DocumentAdapter(
            DocumentConfig(uri="mongodb://db:27017", database="app"), client_factory=factory
        )

        handle = adapter.open()

        assert isinstance(handle, DocumentHandle)
        factory.assert_called_once_with("mongodb://db:27017", serverSelectionTimeoutMS=5000)
        mongo_client.admin.command.assert_called_with("ping")
        mongo_client.__getitem__.assert_called_with("app")
        assert handle.database is mongo_client.__getitem__.return_value

    def test_default_database_from_uri(self, mongo_client):
        adapter = DocumentAdapter(
            DocumentConfig(uri="mongodb://db/app"), client_factory=MagicMock(return_value=mongo_client)
        )
        handle = adapter.open()
        assert handle.database is mongo_client.get_default_database.return_value

    def test_unreachable_server(self, mongo_client):
        mongo_client.admin.command.side_effect = Exception("No servers found")
        adapter = DocumentAdapter(DocumentConfig(database="app"), client_factory=MagicMock(return_value=mongo_client))

        with pytest.raises(StrataConnectionError, match="No servers found"):
            adapter.open()
        mongo_client.close.assert_called_once()

    def test_nothing_to_create(self):
        assert DocumentAdapter(DocumentConfig(database="app")).create_database_if_missing() is False

    def test_handle_drop_all(self, mongo_client):
        db = MagicMock()
        db.list_collection_names.return_value = ["users", "teams"]
        handle = DocumentHandle(mongo_client, db)

        assert handle.drop_all() == ["teams", "users"]
        assert db.drop_collection.call_count == 2

        handle.close()
        handle.close()
        mongo_client.close.assert_called_once()


# =============================================================================
# Schema-first
# =============================================================================


class FakeClient:
    """Generated-client stand-in exposing two model delegates."""

    def __init__(self):
        self.user = types.SimpleNamespace(table="User")
        self.post = types.SimpleNamespace(table="Post")
        self._connected = False

    def connect(self):
        self._connected = True

    def disconnect(self):
        self._connected = False

    def is_connected(self):
        return self._connected


@pytest.fixture()
def fake_client_module(monkeypatch):
    module = types.ModuleType("fake_generated_client")
    module.Client = FakeClient
    module.NOT_CALLABLE = 42
    monkeypatch.setitem(sys.modules, "fake_generated_client", module)
    return module


@pytest.fixture()
def recorded_commands(monkeypatch):
    calls = []

    def fake_run(cmd, cwd=None, check=False):
        calls.append((cmd, cwd))
        return subprocess.CompletedProcess(cmd, 0)

    monkeypatch.setattr("strata.core.adapters.schema_first.subprocess.run", fake_run)
    return calls


class TestSchemaFirstAdapter:

    def test_open_connects_client(self, fake_client_module):
        adapter = SchemaFirstAdapter(SchemaFirstConfig(client_factory="fake_generated_client:Client"))
        handle = adapter.open()

        assert isinstance(handle, SchemaFirstHandle)
        assert handle.raw.is_connected()
        handle.ping()

        handle.close()
        assert not handle.raw.is_connected()
        with pytest.raises(StrataConnectionError):
            handle.ping()

    def test_resolve_factory_errors(self, fake_client_module):
        with pytest.raises(ConfigError, match="Cannot resolve"):
            resolve_factory("fake_generated_client:Missing")
        with pytest.raises(ConfigError, match="not callable"):
            resolve_factory("fake_generated_client:NOT_CALLABLE")
        with pytest.raises(ConfigError):
            resolve_factory("no_such_module_anywhere:Client")

    def test_migrate_runs_external_command(self, fake_client_module, recorded_commands):
        adapter = SchemaFirstAdapter(
            SchemaFirstConfig(client_factory="fake_generated_client:Client", working_dir="/srv/app")
        )
        assert adapter.migrate() == 0
        assert recorded_commands == [(["prisma", "migrate", "deploy"], "/srv/app")]

    def test_drop_all_runs_reset(self, fake_client_module, recorded_commands):
        handle = SchemaFirstAdapter(SchemaFirstConfig(client_factory="fake_generated_client:Client")).open()
        assert handle.drop_all() == []
        assert recorded_commands[0][0] == ["prisma", "migrate", "reset", "--force"]

    def test_drop_model_unsupported(self, fake_client_module):
        handle = SchemaFirstAdapter(SchemaFirstConfig(client_factory="fake_generated_client:Client")).open()
        with pytest.raises(AdapterCapabilityError):
            handle.drop_model("User")


class TestRunExternal:

    def test_nonzero_exit(self, monkeypatch):
        monkeypatch.setattr(
            "strata.core.adapters.schema_first.subprocess.run",
            lambda cmd, cwd=None, check=False: subprocess.CompletedProcess(cmd, 2),
        )
        with pytest.raises(ExternalToolError) as exc_info:
            run_external(["prisma", "migrate", "deploy"])
        assert exc_info.value.returncode == 2

    def test_missing_executable(self):
        with pytest.raises(ExternalToolError) as exc_info:
            run_external(["strata-no-such-executable-xyz"])
        assert exc_info.value.returncode == 127
