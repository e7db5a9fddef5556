"""
Storage lifecycle facade.

Manifesto:
    An application needs exactly one thing from the storage layer at
    startup: a ready model registry bound to a live connection.  The facade
    runs the blocking one-shot sequence (bootstrap → load models → optional
    eager sync), owns the single handle, and tears it down in the right
    order at shutdown: stop accepting work first, close the handle second.

Architecture:
    ::

        StorageLifecycle(settings)
            │
            ├── initialize() ─► connect() ─► bootstrap(adapter)
            │                   load_models(handle, models_dir)
            │                   eager sync (relational, non-production)
            │                   ─► ModelRegistry
            ├── reload_models() ─► new registry swapped in one assignment
            ├── migrations()    ─► MigrationRunner (relational only)
            ├── health()        ─► HealthReport (never raises)
            └── shutdown()      ─► accepting = False, then close()

Guardrails:
    ❌ DON'T: Reach models through a module-level global
    ✅ DO: Pass the ``ModelRegistry`` returned by ``initialize()``

    ❌ DON'T: Enable ``eager_sync`` and keep ledger-tracked migrations
    ✅ DO: Pick one schema strategy (startup fails otherwise)

Tags:
    lifecycle, facade, startup, shutdown, health, strata

Doc-Types:
    - API Reference
    - Architecture Guide
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from strata.core.adapters.base import ConnectionHandle, PersistenceAdapter
from strata.core.adapters.registry import get_adapter
from strata.core.adapters.relational import RelationalHandle
from strata.core.adapters.types import AdapterKind
from strata.core.bootstrap import bootstrap
from strata.core.errors import (
    AdapterCapabilityError,
    ConnectionError,
    ErrorContext,
    SchemaStrategyConflictError,
)
from strata.core.health import HealthReport, check_handle
from strata.core.logging import get_logger
from strata.core.migrations.runner import MigrationRunner
from strata.core.models.loader import load_models
from strata.core.models.registry import ModelRegistry
from strata.core.modules import iter_source_files
from strata.core.settings import StrataSettings, get_settings

logger = get_logger(__name__)


class StorageLifecycle:
    """
    Owns the process's single connection handle and model registry.

    Example:
        >>> lifecycle = StorageLifecycle()
        >>> registry = lifecycle.initialize()
        >>> lifecycle.health().status
        'healthy'
        >>> lifecycle.shutdown()
    """

    def __init__(
        self,
        settings: StrataSettings | None = None,
        *,
        adapter: PersistenceAdapter | None = None,
    ):
        self._settings = settings or get_settings()
        self._adapter = adapter
        self._handle: ConnectionHandle | None = None
        self._registry: ModelRegistry | None = None
        self._accepting = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def settings(self) -> StrataSettings:
        return self._settings

    @property
    def adapter(self) -> PersistenceAdapter:
        if self._adapter is None:
            self._adapter = get_adapter(
                self._settings.adapter, self._settings.to_connection_config()
            )
        return self._adapter

    @property
    def kind(self) -> AdapterKind:
        if self._adapter is not None:
            return self._adapter.kind
        return self._settings.adapter

    @property
    def handle(self) -> ConnectionHandle | None:
        return self._handle

    @property
    def registry(self) -> ModelRegistry | None:
        return self._registry

    @property
    def accepting(self) -> bool:
        """Whether the application boundary should accept new work."""
        return self._accepting

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def check_schema_strategy(self) -> None:
        """Reject eager sync combined with ledger-tracked migrations."""
        if not self._settings.eager_sync or self.kind is not AdapterKind.RELATIONAL:
            return
        migrations_dir = Path(self._settings.migrations_dir)
        if migrations_dir.is_dir() and any(iter_source_files(migrations_dir)):
            raise SchemaStrategyConflictError(
                "eager_sync is enabled but migrations exist in "
                f"{migrations_dir}; choose one schema strategy",
                context=ErrorContext(adapter=self.kind.value, path=str(migrations_dir)),
            )

    def connect(self) -> ConnectionHandle:
        """Bootstrap the handle (once) without loading models."""
        if self._handle is None or self._handle.closed:
            self._handle = bootstrap(self.adapter)
        return self._handle

    def initialize(self) -> ModelRegistry:
        """
        Connect, load models and optionally eager-sync.  One-shot: a second
        call returns the existing registry.

        Raises:
            SchemaStrategyConflictError: ``eager_sync`` with migrations present.
            ConnectionError: The backend cannot be reached.
        """
        if self._registry is not None and self._handle is not None and not self._handle.closed:
            return self._registry

        self.check_schema_strategy()
        handle = self.connect()
        try:
            registry = load_models(handle, self._settings.models_dir)
            self._eager_sync(handle, registry)
        except Exception:
            handle.close()
            raise

        self._registry = registry
        self._accepting = True
        logger.info(
            "lifecycle.initialized",
            adapter=self.kind.value,
            models=len(registry),
            failed=registry.failed_names,
        )
        return registry

    def _eager_sync(self, handle: ConnectionHandle, registry: ModelRegistry) -> None:
        if not self._settings.eager_sync or not isinstance(handle, RelationalHandle):
            return
        if self._settings.is_production:
            logger.warning("lifecycle.eager_sync_skipped", environment=self._settings.environment)
            return
        handle.sync_models(tables=list(registry.values()))

    def reload_models(self) -> ModelRegistry:
        """Rebuild the registry and swap it in a single assignment."""
        handle = self._require_handle()
        registry = load_models(handle, self._settings.models_dir)
        self._registry = registry
        logger.info("lifecycle.models_reloaded", models=len(registry), failed=registry.failed_names)
        return registry

    # ------------------------------------------------------------------
    # Runtime
    # ------------------------------------------------------------------

    def migrations(self) -> MigrationRunner:
        """Migration runner bound to the live handle (relational only)."""
        if not self.adapter.supports_migrations:
            raise AdapterCapabilityError(
                f"Adapter {self.kind.value!r} does not support ledger migrations",
                context=ErrorContext(adapter=self.kind.value),
            )
        return MigrationRunner(
            self._require_handle(),
            self._settings.migrations_dir,
            ledger_table=self._settings.ledger_table,
        )

    def health(self) -> HealthReport:
        """One round-trip through the handle; never raises."""
        return check_handle(self.kind, self._handle, self._registry)

    def _require_handle(self) -> ConnectionHandle:
        if self._handle is None or self._handle.closed:
            raise ConnectionError(
                "Storage lifecycle is not connected; call initialize() first",
                context=ErrorContext(adapter=self.kind.value),
            )
        return self._handle

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release the handle; safe when already closed or never opened."""
        self._accepting = False
        if self._handle is not None:
            self._handle.close()

    def shutdown(self) -> None:
        """Stop accepting work, then release the handle."""
        self._accepting = False
        logger.info("lifecycle.shutdown", adapter=self.kind.value)
        self.close()

    def __enter__(self) -> StorageLifecycle:
        self.initialize()
        return self

    def __exit__(self, *args: Any) -> None:
        self.shutdown()


__all__ = ["StorageLifecycle"]
