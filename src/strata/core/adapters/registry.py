"""Persistence adapter registry and factory.

Manifesto:
    The lifecycle never hard-codes adapter classes.  The registry maps an
    ``AdapterKind`` to its adapter class and static description, and the
    ``get_adapter()`` factory builds a configured instance from a frozen
    config.

Features:
    - ``AdapterRegistry`` singleton with the three built-in kinds
    - ``describe()`` for the static capability description
    - ``register()`` for additional kinds

Tags:
    strata, adapters, registry, factory, singleton

Doc-Types:
    api-reference
"""

from __future__ import annotations

from typing import Any

from strata.core.errors import UnsupportedAdapterError

from .base import PersistenceAdapter
from .document import DocumentAdapter
from .relational import RelationalAdapter
from .schema_first import SchemaFirstAdapter
from .types import AdapterDescription, AdapterKind


class AdapterRegistry:
    """
    Registry for persistence adapter classes.

    Pre-registered adapters:
    - ``relational`` — :class:`RelationalAdapter`
    - ``document`` — :class:`DocumentAdapter`
    - ``schema_first`` — :class:`SchemaFirstAdapter`
    """

    def __init__(self):
        self._adapters: dict[str, type[PersistenceAdapter]] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        self._adapters[AdapterKind.RELATIONAL.value] = RelationalAdapter
        self._adapters[AdapterKind.DOCUMENT.value] = DocumentAdapter
        self._adapters[AdapterKind.SCHEMA_FIRST.value] = SchemaFirstAdapter

    def register(self, name: str, adapter_class: type[PersistenceAdapter]) -> None:
        """Register an adapter class under *name*."""
        self._adapters[name.lower()] = adapter_class

    def _lookup(self, kind: AdapterKind | str) -> type[PersistenceAdapter]:
        name = kind.value if isinstance(kind, AdapterKind) else str(kind).lower()
        if name not in self._adapters:
            name = AdapterKind.parse(name).value
        if name not in self._adapters:
            raise UnsupportedAdapterError(name)
        return self._adapters[name]

    def describe(self, kind: AdapterKind | str) -> AdapterDescription:
        """Static description for *kind*."""
        return self._lookup(kind).description

    def create(self, kind: AdapterKind | str, config: Any, **kwargs: Any) -> PersistenceAdapter:
        """Create an adapter of *kind* for *config*."""
        return self._lookup(kind)(config, **kwargs)

    def list_adapters(self) -> list[str]:
        """List registered adapter names."""
        return sorted(self._adapters.keys())


# Global registry
adapter_registry = AdapterRegistry()


def describe(kind: AdapterKind | str) -> AdapterDescription:
    """Describe an adapter kind (``UnsupportedAdapterError`` when unknown)."""
    return adapter_registry.describe(kind)


def get_adapter(kind: AdapterKind | str, config: Any, **kwargs: Any) -> PersistenceAdapter:
    """
    Get a configured adapter by kind.

    Usage:
        adapter = get_adapter(AdapterKind.RELATIONAL, RelationalConfig(database="app.db"))
        adapter = get_adapter("document", DocumentConfig(uri="mongodb://localhost/app"))
    """
    return adapter_registry.create(kind, config, **kwargs)


__all__ = [
    "AdapterRegistry",
    "adapter_registry",
    "describe",
    "get_adapter",
]
