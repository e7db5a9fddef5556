"""
Two-pass model loader.

Manifesto:
    One broken model file must not take the application down, and it must
    not disappear silently either.  Pass 1 instantiates every definition in
    isolation; pass 2 hands each association callback the complete map.
    Every model that fails either pass is excluded and returned as a
    ``LoadFailure`` next to the healthy registry.

Architecture:
    ::

        load_models(handle, model_dir)
            │
            ├── strategy.begin(handle)             fresh MetaData per scan
            ├── pass 1: read + instantiate         sorted file order
            │       failure / duplicate → LoadFailure(stage="load")
            └── pass 2: associate(model, models)   full pass-1 map
                    failure → LoadFailure(stage="associate")
            ▼
        ModelRegistry(models, handle, failures)

Tags:
    models, loader, discovery, associations, strata

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Any

from strata.core.adapters.base import ConnectionHandle
from strata.core.errors import (
    AssociationWiringError,
    ErrorContext,
    ModelError,
    ModelLoadError,
)
from strata.core.logging import get_logger
from strata.core.modules import iter_source_files

from .discovery import ModelDefinition, strategy_for
from .registry import LoadFailure, ModelRegistry

logger = get_logger(__name__)


def _wrap(exc: Exception, error_type: type[ModelError], name: str, source: str | None) -> ModelError:
    if isinstance(exc, error_type):
        err = exc
    else:
        err = error_type(f"{name}: {exc}", cause=exc)
    err.with_context(model=name, path=source)
    return err


def load_models(handle: ConnectionHandle, model_dir: str | Path | None) -> ModelRegistry:
    """Discover, instantiate and associate the models for *handle*."""
    strategy = strategy_for(handle.kind)
    strategy.begin(handle)
    failures: list[LoadFailure] = []
    definitions: list[ModelDefinition] = []

    if strategy.uses_files:
        directory = Path(model_dir) if model_dir else None
        if directory is None or not directory.is_dir():
            logger.warning("models.dir_missing", path=str(model_dir))
            return ModelRegistry.empty(handle)
        for path in iter_source_files(directory):
            try:
                definitions.append(strategy.read(path))
            except Exception as e:
                err = _wrap(e, ModelLoadError, path.stem, str(path))
                failures.append(LoadFailure(path.stem, "load", err, str(path)))
                logger.error("models.load_failed", model=path.stem, error=str(e))
    else:
        definitions = strategy.introspect(handle)

    # Pass 1
    loaded: dict[str, Any] = {}
    callbacks: dict[str, ModelDefinition] = {}
    for definition in definitions:
        try:
            name, model = strategy.instantiate(definition, handle)
        except Exception as e:
            err = _wrap(e, ModelLoadError, definition.name, definition.source)
            failures.append(LoadFailure(definition.name, "load", err, definition.source))
            logger.error("models.load_failed", model=definition.name, error=str(e))
            continue
        if name in loaded:
            err = ModelLoadError(
                f"Duplicate model name {name!r}",
                context=ErrorContext(model=name, path=definition.source),
            )
            failures.append(LoadFailure(name, "load", err, definition.source))
            logger.error("models.duplicate", model=name, source=definition.source)
            continue
        loaded[name] = model
        if definition.associate is not None:
            callbacks[name] = definition

    # Pass 2
    complete = MappingProxyType(dict(loaded))
    for name, definition in callbacks.items():
        try:
            definition.associate(loaded[name], complete)
        except Exception as e:
            err = _wrap(e, AssociationWiringError, name, definition.source)
            failures.append(LoadFailure(name, "associate", err, definition.source))
            logger.error("models.associate_failed", model=name, error=str(e))
            del loaded[name]

    registry = ModelRegistry(loaded, handle, failures)
    logger.info(
        "models.loaded",
        adapter=handle.kind.value,
        loaded=len(registry),
        failed=len(failures),
    )
    return registry


__all__ = ["load_models"]
