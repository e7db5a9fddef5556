"""Strata Core -- the storage lifecycle.

Manifesto:
    An application should get one thing from its storage layer at startup:
    a ready model registry bound to a live connection, whichever backend it
    persists to.  Selecting the adapter, creating a missing database,
    loading model definitions and evolving the schema are lifecycle
    concerns, written once here against a common adapter contract.

    - **One contract, three backends:** relational, document, schema-first
    - **Observable partial failure:** broken models are returned, not hidden
    - **Auditable schema:** a ledger table is the single source of truth
    - **No globals:** the registry is passed explicitly

Architecture::

    Layer 1 -- Errors, Logging, Settings
        errors.py          Structured error hierarchy (StrataError)
        logging.py         structlog configuration
        settings.py        pydantic-settings StrataSettings (STRATA_*)

    Layer 2 -- Adapters
        dialect.py         SQL dialects (sqlite, postgresql, mysql, mssql)
        adapters/          PersistenceAdapter + relational/document/schema-first
        bootstrap.py       connect(): create missing database, retry once

    Layer 3 -- Models & Migrations
        modules.py         Fresh-module loading of model/migration files
        models/            Two-pass loader, discovery strategies, registry
        migrations/        Descriptors, ledger, runner, templates

    Layer 4 -- Facade
        health.py          HealthReport
        lifecycle.py       StorageLifecycle (initialize / health / shutdown)

Tags:
    strata, storage, lifecycle, migrations, adapters

Doc-Types:
    package-overview, architecture-map
"""

from strata.core.adapters import (
    AdapterKind,
    ConnectionHandle,
    DocumentConfig,
    PersistenceAdapter,
    RelationalConfig,
    SchemaFirstConfig,
    describe,
    get_adapter,
)
from strata.core.bootstrap import bootstrap, connect
from strata.core.errors import (
    ConfigError,
    ConnectionError,
    LedgerUnavailableError,
    MigrationApplyError,
    MigrationError,
    NothingToUndoError,
    StrataError,
    UnsupportedAdapterError,
)
from strata.core.health import HealthReport
from strata.core.lifecycle import StorageLifecycle
from strata.core.migrations import MigrationResult, MigrationRunner, MigrationStatus
from strata.core.models import LoadFailure, ModelRegistry, load_models
from strata.core.settings import StrataSettings, get_settings

__all__ = [
    "AdapterKind",
    "ConfigError",
    "ConnectionError",
    "ConnectionHandle",
    "DocumentConfig",
    "HealthReport",
    "LedgerUnavailableError",
    "LoadFailure",
    "MigrationApplyError",
    "MigrationError",
    "MigrationResult",
    "MigrationRunner",
    "MigrationStatus",
    "ModelRegistry",
    "NothingToUndoError",
    "PersistenceAdapter",
    "RelationalConfig",
    "SchemaFirstConfig",
    "StorageLifecycle",
    "StrataError",
    "StrataSettings",
    "UnsupportedAdapterError",
    "bootstrap",
    "connect",
    "describe",
    "get_adapter",
    "get_settings",
    "load_models",
]
