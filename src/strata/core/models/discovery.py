"""
Model discovery strategies, one per adapter kind.

A strategy turns a model directory (or a generated client) into
``ModelDefinition`` objects and instantiates them against a live handle.
The loader owns the two passes and the failure bookkeeping; strategies only
know what a definition looks like for their backend.

Relational model file::

    from sqlalchemy import Column, Integer, String, Table

    def define(metadata):
        return Table("users", metadata,
                     Column("id", Integer, primary_key=True),
                     Column("email", String(255), nullable=False))

    def associate(users, models):
        ...

Document model file::

    from strata.core.models.document import DocumentSchema

    SCHEMA = DocumentSchema(
        validator={"required": ["email"]},
        refs={"team_id": "Team"},
    )
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sqlalchemy import Table

from strata.core.adapters.base import ConnectionHandle
from strata.core.adapters.types import AdapterKind
from strata.core.errors import ModelLoadError
from strata.core.modules import load_source_module

from .document import DocumentModel, DocumentSchema

Associate = Callable[[Any, Mapping[str, Any]], None]


@dataclass(frozen=True)
class ModelDefinition:
    """A discovered, not yet instantiated, model."""

    name: str
    define: Callable[[Any], Any]
    associate: Associate | None = None
    source: str | None = None


def capitalize(stem: str) -> str:
    return stem[:1].upper() + stem[1:]


class DiscoveryStrategy(ABC):
    """How one adapter kind finds and instantiates its models."""

    uses_files: bool = True

    def begin(self, handle: ConnectionHandle) -> None:  # noqa: B027
        """Reset per-scan state on *handle* before pass 1."""

    def read(self, path: Path) -> ModelDefinition:
        """Build a definition from a model file."""
        raise NotImplementedError

    def introspect(self, handle: ConnectionHandle) -> list[ModelDefinition]:
        """Build definitions without a model directory."""
        raise NotImplementedError

    @abstractmethod
    def instantiate(self, definition: ModelDefinition, handle: ConnectionHandle) -> tuple[str, Any]:
        """Run the definer; returns ``(registry name, model)``."""
        ...


class DefinerFileDiscovery(DiscoveryStrategy):
    """Relational: ``define(metadata) -> Table`` plus optional ``associate``."""

    def begin(self, handle: ConnectionHandle) -> None:
        handle.reset_metadata()

    def read(self, path: Path) -> ModelDefinition:
        module = load_source_module(path, namespace="models")
        define = getattr(module, "define", None)
        if not callable(define):
            raise ModelLoadError(f"{path.name} does not define a callable 'define'")
        associate = getattr(module, "associate", None)
        return ModelDefinition(
            name=path.stem,
            define=define,
            associate=associate if callable(associate) else None,
            source=str(path),
        )

    def instantiate(self, definition: ModelDefinition, handle: ConnectionHandle) -> tuple[str, Any]:
        table = definition.define(handle.metadata)
        if not isinstance(table, Table):
            raise ModelLoadError(
                f"define() in {definition.name} returned {type(table).__name__}, expected Table"
            )
        return table.name, table


class DocumentDiscovery(DiscoveryStrategy):
    """Document: ``define(db) -> DocumentModel`` or a module-level ``SCHEMA``."""

    def read(self, path: Path) -> ModelDefinition:
        module = load_source_module(path, namespace="models")
        name = capitalize(path.stem)
        define = getattr(module, "define", None)
        schema = getattr(module, "SCHEMA", None)
        associate = getattr(module, "associate", None)

        if not callable(define):
            if not isinstance(schema, DocumentSchema):
                raise ModelLoadError(
                    f"{path.name} defines neither 'define' nor a DocumentSchema 'SCHEMA'"
                )
            collection = schema.collection or path.stem.lower()

            def define(db: Any, _schema: DocumentSchema = schema) -> DocumentModel:
                return DocumentModel(name=name, collection=collection, schema=_schema, database=db)

        if not callable(associate):
            associate = _wire_refs
        return ModelDefinition(name=name, define=define, associate=associate, source=str(path))

    def instantiate(self, definition: ModelDefinition, handle: ConnectionHandle) -> tuple[str, Any]:
        model = definition.define(handle.database)
        if not isinstance(model, DocumentModel):
            raise ModelLoadError(
                f"define() in {definition.name} returned {type(model).__name__}, "
                "expected DocumentModel"
            )
        return model.name, model


def _wire_refs(model: DocumentModel, models: Mapping[str, Any]) -> None:
    """Default association pass for document models: resolve ``schema.refs``."""
    for field_name, target in model.schema.refs.items():
        if target not in models:
            raise KeyError(f"{model.name}.{field_name} references unknown model {target!r}")
        model.references(field_name, models[target])


def _raiser(exc: Exception) -> Callable[[Any], Any]:
    def define(_handle: Any) -> Any:
        raise exc

    return define


class ClientIntrospectionDiscovery(DiscoveryStrategy):
    """Schema-first: public, non-callable attributes of the generated client."""

    uses_files = False

    def introspect(self, handle: ConnectionHandle) -> list[ModelDefinition]:
        client = handle.raw
        definitions = []
        for attr in sorted(dir(client)):
            if attr.startswith(("_", "$")):
                continue
            try:
                value = getattr(client, attr)
            except Exception as e:
                # surfaces as a per-model load failure when instantiated
                definitions.append(
                    ModelDefinition(name=capitalize(attr), define=_raiser(e))
                )
                continue
            if callable(value):
                continue
            definitions.append(
                ModelDefinition(name=capitalize(attr), define=lambda _handle, v=value: v)
            )
        return definitions

    def instantiate(self, definition: ModelDefinition, handle: ConnectionHandle) -> tuple[str, Any]:
        return definition.name, definition.define(handle)


STRATEGIES: dict[AdapterKind, type[DiscoveryStrategy]] = {
    AdapterKind.RELATIONAL: DefinerFileDiscovery,
    AdapterKind.DOCUMENT: DocumentDiscovery,
    AdapterKind.SCHEMA_FIRST: ClientIntrospectionDiscovery,
}


def strategy_for(kind: AdapterKind) -> DiscoveryStrategy:
    return STRATEGIES[kind]()


__all__ = [
    "ModelDefinition",
    "DiscoveryStrategy",
    "DefinerFileDiscovery",
    "DocumentDiscovery",
    "ClientIntrospectionDiscovery",
    "STRATEGIES",
    "strategy_for",
]
