"""Persistence adapters -- one lifecycle contract for three backend kinds.

Manifesto:
    An application may persist to a SQL database, a document store, or a
    generated client whose schema is managed by external tooling.  Without a
    common adapter interface, bootstrap, model loading and migrations would
    be written three times with subtly different failure behaviour.

    Each adapter is **import-guarded**: the vendor driver is only required
    at ``open()`` time, not at import time.  Install the corresponding
    extra::

        pip install strata[postgresql]   # psycopg2-binary
        pip install strata[mysql]        # mysql-connector-python
        pip install strata[mssql]        # pyodbc

Architecture::

    PersistenceAdapter (base.py)     open / create_database_if_missing / load_models
        |-- RelationalAdapter        SQLAlchemy Engine (sqlite, postgresql, mysql, mssql)
        |-- DocumentAdapter          pymongo MongoClient
        |-- SchemaFirstAdapter       generated client + external migrate command

    ConnectionHandle (base.py)       live handle: ping / drop_all / drop_model / close
    AdapterRegistry (registry.py)    Singleton: AdapterKind -> adapter class
    *Config (types.py)               Frozen connection configuration

Modules
-------
base            Abstract PersistenceAdapter and ConnectionHandle
types           AdapterKind enum, AdapterDescription, config dataclasses
registry        AdapterRegistry singleton + get_adapter() factory
relational      SQL adapter (SQLAlchemy)
document        MongoDB adapter (requires pymongo)
schema_first    Generated-client adapter

Guardrails:
    ❌ Importing optional drivers at module scope
    ✅ Import-guarded at ``open()`` time with clear ``ConfigError``
    ❌ ``adapter = RelationalAdapter(...)`` scattered through app code
    ✅ ``adapter = get_adapter(AdapterKind.RELATIONAL, config)``

Tags:
    strata, adapters, multi-backend, import-guarded, registry-pattern

Doc-Types:
    package-overview, architecture-map, module-index
"""

from strata.core.dialect import Dialect, get_dialect

from .base import ConnectionHandle, PersistenceAdapter
from .document import DocumentAdapter, DocumentHandle
from .registry import AdapterRegistry, adapter_registry, describe, get_adapter
from .relational import RelationalAdapter, RelationalHandle
from .schema_first import SchemaFirstAdapter, SchemaFirstHandle
from .types import (
    AdapterDescription,
    AdapterKind,
    ConnectionConfig,
    DocumentConfig,
    RelationalConfig,
    SchemaFirstConfig,
)

__all__ = [
    # Types
    "AdapterKind",
    "AdapterDescription",
    "ConnectionConfig",
    "RelationalConfig",
    "DocumentConfig",
    "SchemaFirstConfig",
    # Dialects
    "Dialect",
    "get_dialect",
    # Base classes
    "PersistenceAdapter",
    "ConnectionHandle",
    # Implementations
    "RelationalAdapter",
    "RelationalHandle",
    "DocumentAdapter",
    "DocumentHandle",
    "SchemaFirstAdapter",
    "SchemaFirstHandle",
    # Registry
    "AdapterRegistry",
    "adapter_registry",
    "describe",
    "get_adapter",
]
