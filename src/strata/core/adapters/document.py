"""Document-store adapter (MongoDB via pymongo).

Databases and collections are created implicitly on first write, so there
is nothing for the bootstrapper to create and no SQL ledger to keep.
pymongo is import-guarded: it is only required when ``open()`` runs.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, ClassVar

from strata.core.errors import ConfigError, ConnectionError, ErrorContext
from strata.core.logging import get_logger

from .base import ConnectionHandle, PersistenceAdapter
from .types import AdapterDescription, AdapterKind, DocumentConfig

logger = get_logger(__name__)


class DocumentHandle(ConnectionHandle):
    """Live ``MongoClient`` plus the selected database."""

    kind = AdapterKind.DOCUMENT

    def __init__(self, client: Any, database: Any):
        super().__init__()
        self.client = client
        self.database = database

    @property
    def raw(self) -> Any:
        return self.client

    def _release(self) -> None:
        self.client.close()

    def ping(self) -> None:
        self.client.admin.command("ping")

    def collection_names(self) -> list[str]:
        return sorted(self.database.list_collection_names())

    def drop_all(self) -> list[str]:
        names = self.collection_names()
        for name in names:
            self.database.drop_collection(name)
        return names

    def drop_model(self, model: Any) -> str:
        """Drop the collection behind *model* (a ``DocumentModel`` or a name)."""
        name = getattr(model, "collection", None) or str(model)
        self.database.drop_collection(name)
        return name

    def sync_models(self, models: list[Any]) -> None:
        """Apply declared indexes for *models* (collections are implicit)."""
        for model in models:
            for keys, options in model.schema.indexes:
                self.database[model.collection].create_index(keys, **options)


class DocumentAdapter(PersistenceAdapter):
    """
    MongoDB adapter.

    ``client_factory`` defaults to ``pymongo.MongoClient``; tests inject a
    mock client.
    """

    description: ClassVar[AdapterDescription] = AdapterDescription(
        kind=AdapterKind.DOCUMENT,
        required_config_fields=("uri",),
        supports_schema_migrations=False,
        ddl_flavor="none",
    )
    config_type: ClassVar[type] = DocumentConfig

    def __init__(self, config: DocumentConfig, *, client_factory: Callable[..., Any] | None = None):
        super().__init__(config)
        self._client_factory = client_factory

    @property
    def target_name(self) -> str:
        return self._config.database

    def _factory(self) -> Callable[..., Any]:
        if self._client_factory is not None:
            return self._client_factory
        try:
            from pymongo import MongoClient
        except ImportError:
            raise ConfigError(
                "pymongo is required for the document adapter. Install with: pip install pymongo"
            ) from None
        return MongoClient

    def open(self) -> DocumentHandle:
        """Connect and ping; database selection falls back to the URI default."""
        context = ErrorContext(adapter=self.kind.value, database=self.target_name)
        client = self._factory()(
            self._config.uri,
            serverSelectionTimeoutMS=self._config.server_selection_timeout_ms,
            **self._config.options,
        )
        try:
            client.admin.command("ping")
            database = (
                client[self._config.database]
                if self._config.database
                else client.get_default_database()
            )
        except Exception as e:
            client.close()
            raise ConnectionError(
                f"Failed to connect to document store: {e}", context=context, cause=e
            ) from e

        logger.debug("document.opened", database=getattr(database, "name", self.target_name))
        return DocumentHandle(client, database)

    def create_database_if_missing(self) -> bool:
        return False


__all__ = [
    "DocumentHandle",
    "DocumentAdapter",
]
