"""Schema-first adapter (generated client + external migration tooling).

The schema is owned by an external tool (e.g. ``prisma migrate``); this
adapter only resolves the generated client, connects it, and shells out to
the tool.  Success of the tool is decided by its exit status alone.
"""

from __future__ import annotations

import importlib
import subprocess
from collections.abc import Callable, Sequence
from typing import Any, ClassVar

from strata.core.errors import (
    AdapterCapabilityError,
    ConfigError,
    ConnectionError,
    ErrorContext,
    ExternalToolError,
)
from strata.core.logging import get_logger

from .base import ConnectionHandle, PersistenceAdapter
from .types import AdapterDescription, AdapterKind, SchemaFirstConfig

logger = get_logger(__name__)


def run_external(command: Sequence[str], cwd: str | None = None) -> int:
    """Run an external schema tool, raising ``ExternalToolError`` on failure."""
    cmd = list(command)
    logger.info("external.run", command=" ".join(cmd), cwd=cwd)
    try:
        result = subprocess.run(cmd, cwd=cwd, check=False)  # noqa: S603
    except FileNotFoundError as e:
        raise ExternalToolError(cmd, 127, cause=e) from e
    if result.returncode != 0:
        raise ExternalToolError(cmd, result.returncode)
    return result.returncode


def resolve_factory(path: str) -> Callable[..., Any]:
    """Resolve ``"package.module:attribute"`` to a callable."""
    module_name, _, attr = path.partition(":")
    try:
        module = importlib.import_module(module_name)
        factory = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise ConfigError(f"Cannot resolve client factory {path!r}: {e}", cause=e) from e
    if not callable(factory):
        raise ConfigError(f"Client factory {path!r} is not callable")
    return factory


class SchemaFirstHandle(ConnectionHandle):
    """Live generated client."""

    kind = AdapterKind.SCHEMA_FIRST

    def __init__(self, client: Any, config: SchemaFirstConfig):
        super().__init__()
        self.client = client
        self._config = config

    @property
    def raw(self) -> Any:
        return self.client

    def _release(self) -> None:
        disconnect = getattr(self.client, "disconnect", None)
        if callable(disconnect):
            disconnect()

    def ping(self) -> None:
        is_connected = getattr(self.client, "is_connected", None)
        if callable(is_connected) and not is_connected():
            raise ConnectionError("Generated client is not connected")

    def drop_all(self) -> list[str]:
        run_external(self._config.reset_command, self._config.working_dir)
        return []

    def drop_model(self, model: Any) -> str:
        raise AdapterCapabilityError(
            "Schema-first models are dropped through the external schema tool",
            context=ErrorContext(adapter=self.kind.value, model=str(model)),
        )


class SchemaFirstAdapter(PersistenceAdapter):
    """Adapter for generated clients whose schema lives outside the application."""

    description: ClassVar[AdapterDescription] = AdapterDescription(
        kind=AdapterKind.SCHEMA_FIRST,
        required_config_fields=("client_factory",),
        supports_schema_migrations=False,
        ddl_flavor="external",
    )
    config_type: ClassVar[type] = SchemaFirstConfig

    def open(self) -> SchemaFirstHandle:
        factory = resolve_factory(self._config.client_factory)
        try:
            client = factory()
            connect = getattr(client, "connect", None)
            if callable(connect):
                connect()
        except Exception as e:
            raise ConnectionError(
                f"Generated client failed to connect: {e}",
                context=ErrorContext(adapter=self.kind.value),
                cause=e,
            ) from e
        logger.debug("schema_first.opened", factory=self._config.client_factory)
        return SchemaFirstHandle(client, self._config)

    def create_database_if_missing(self) -> bool:
        return False

    def migrate(self) -> int:
        """Apply schema changes with the external migrate command."""
        return run_external(self._config.migrate_command, self._config.working_dir)


__all__ = [
    "run_external",
    "resolve_factory",
    "SchemaFirstHandle",
    "SchemaFirstAdapter",
]
