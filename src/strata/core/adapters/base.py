"""Persistence adapter base classes.

Manifesto:
    The lifecycle (bootstrap, model loading, migrations, health) is written
    once against these two contracts.  A ``PersistenceAdapter`` knows how to
    open a handle to its backend and how to create a missing database; a
    ``ConnectionHandle`` is the live, closable result.  Nothing above this
    layer imports a vendor driver.

Features:
    - Abstract ``open()`` performing a single connection attempt
    - ``create_database_if_missing()`` hook used by the bootstrapper
    - Idempotent ``ConnectionHandle.close()``
    - ``ping()`` / ``drop_all()`` / ``drop_model()`` used by health and undo
    - Context-manager protocol on handles

Tags:
    strata, adapter-pattern, abstract-base, lifecycle

Doc-Types:
    api-reference
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from strata.core.errors import ConfigError
from strata.core.logging import get_logger

from .types import AdapterDescription, AdapterKind

if TYPE_CHECKING:
    from strata.core.models.registry import ModelRegistry

logger = get_logger(__name__)


class ConnectionHandle(ABC):
    """
    A live connection to a backend.

    ``close()`` may be called any number of times; the backend resources are
    released on the first call only.
    """

    kind: ClassVar[AdapterKind]

    def __init__(self) -> None:
        self._closed = False

    @property
    @abstractmethod
    def raw(self) -> Any:
        """Underlying driver object (``Engine``, ``MongoClient``, client)."""
        ...

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release backend resources (no-op after the first call)."""
        if self._closed:
            return
        self._closed = True
        self._release()
        logger.debug("handle.closed", adapter=self.kind.value)

    @abstractmethod
    def _release(self) -> None:
        ...

    @abstractmethod
    def ping(self) -> None:
        """Round-trip to the backend; raises on failure."""
        ...

    @abstractmethod
    def drop_all(self) -> list[str]:
        """Drop every table/collection; returns the names dropped."""
        ...

    @abstractmethod
    def drop_model(self, model: Any) -> str:
        """Drop the storage behind a single model; returns its name."""
        ...

    def __enter__(self) -> ConnectionHandle:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class PersistenceAdapter(ABC):
    """
    Abstract base class for persistence adapters.

    Subclasses declare a static ``description`` and the config dataclass they
    accept.  ``open()`` makes exactly one attempt; retry policy lives in
    :mod:`strata.core.bootstrap`.
    """

    description: ClassVar[AdapterDescription]
    config_type: ClassVar[type]

    def __init__(self, config: Any):
        if not isinstance(config, self.config_type):
            raise ConfigError(
                f"{type(self).__name__} expects {self.config_type.__name__}, "
                f"got {type(config).__name__}"
            )
        config.validate()
        self._config = config

    @property
    def config(self) -> Any:
        return self._config

    @property
    def kind(self) -> AdapterKind:
        return self.description.kind

    @property
    def supports_migrations(self) -> bool:
        return self.description.supports_schema_migrations

    @property
    def target_name(self) -> str:
        """Human-readable name of the target database (for logs)."""
        return ""

    @abstractmethod
    def open(self) -> ConnectionHandle:
        """
        Attempt one connection.

        Raises:
            MissingDatabaseError: Server reachable, target database absent.
            ConnectionError: Any other connection failure.
        """
        ...

    @abstractmethod
    def create_database_if_missing(self) -> bool:
        """Create the target database; returns whether DDL was issued."""
        ...

    def load_models(self, handle: ConnectionHandle, model_dir: str | Path) -> ModelRegistry:
        """Run the two-pass model loader for this adapter's kind."""
        from strata.core.models.loader import load_models

        return load_models(handle, model_dir)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r})"


__all__ = [
    "ConnectionHandle",
    "PersistenceAdapter",
]
