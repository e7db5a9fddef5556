"""
Connection bootstrapper - adapter kind + config → live handle.

Manifesto:
    A fresh checkout should start against an empty database server without
    a manual ``CREATE DATABASE``.  The bootstrapper makes one direct
    attempt; only when the adapter reports *the database is missing* does
    it create the database and try exactly once more.  Every other failure
    (auth, network, driver) surfaces unchanged.

Architecture:
    ::

        connect(kind, config)
            │
            ▼
        adapter.open() ──ok──► handle
            │
            └─ MissingDatabaseError
                    │
                    ▼
            adapter.create_database_if_missing()
                    │
                    ▼
            adapter.open() ──ok──► handle
                    │
                    └─ any error ──► propagates

Examples:
    >>> from strata.core.adapters import AdapterKind, RelationalConfig
    >>> handle = connect(AdapterKind.RELATIONAL, RelationalConfig(database=":memory:"))
    >>> handle.close()

Tags:
    bootstrap, connection, retry, strata

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Any

from strata.core.adapters.base import ConnectionHandle, PersistenceAdapter
from strata.core.adapters.registry import get_adapter
from strata.core.adapters.types import AdapterKind
from strata.core.errors import MissingDatabaseError
from strata.core.logging import get_logger

logger = get_logger(__name__)


def bootstrap(adapter: PersistenceAdapter) -> ConnectionHandle:
    """Open *adapter*, creating its database and retrying once if it is missing."""
    log = logger.bind(adapter=adapter.kind.value, database=adapter.target_name)
    log.info("bootstrap.connect")
    try:
        handle = adapter.open()
    except MissingDatabaseError as e:
        log.warning("bootstrap.database_missing", error=str(e))
        adapter.create_database_if_missing()
        handle = adapter.open()
        log.info("bootstrap.connected", retried=True)
        return handle

    log.info("bootstrap.connected", retried=False)
    return handle


def connect(kind: AdapterKind | str, config: Any, **adapter_kwargs: Any) -> ConnectionHandle:
    """Build the adapter for *kind* and bootstrap a live handle."""
    return bootstrap(get_adapter(kind, config, **adapter_kwargs))


__all__ = ["bootstrap", "connect"]
