"""Immutable model registry returned by the loader."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Literal

from strata.core.adapters.base import ConnectionHandle
from strata.core.errors import StrataError

LoadStage = Literal["load", "associate"]


@dataclass(frozen=True)
class LoadFailure:
    """A model that was excluded from the registry, and why."""

    name: str
    stage: LoadStage
    error: StrataError
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "stage": self.stage,
            "error": self.error.message,
            "source": self.source,
        }


class ModelRegistry(Mapping[str, Any]):
    """
    Read-only ``name → model`` mapping plus the handle and load failures.

    Passed explicitly to whatever needs models; there is no process-wide
    lookup.

    Example:
        >>> registry = lifecycle.initialize()
        >>> users = registry["users"]
        >>> registry.degraded
        False
    """

    def __init__(
        self,
        models: Mapping[str, Any],
        handle: ConnectionHandle | None,
        failures: tuple[LoadFailure, ...] | list[LoadFailure] = (),
    ):
        self._models = MappingProxyType(dict(models))
        self._handle = handle
        self._failures = tuple(failures)

    @classmethod
    def empty(cls, handle: ConnectionHandle | None = None) -> ModelRegistry:
        return cls({}, handle)

    def __getitem__(self, name: str) -> Any:
        return self._models[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._models)

    def __len__(self) -> int:
        return len(self._models)

    @property
    def handle(self) -> ConnectionHandle | None:
        return self._handle

    @property
    def models(self) -> Mapping[str, Any]:
        return self._models

    @property
    def failures(self) -> tuple[LoadFailure, ...]:
        return self._failures

    @property
    def failed_names(self) -> list[str]:
        return [f.name for f in self._failures]

    @property
    def degraded(self) -> bool:
        return bool(self._failures)

    def get_model(self, name: str) -> Any:
        """Look up a model, listing the available names when it is absent."""
        try:
            return self._models[name]
        except KeyError:
            raise KeyError(
                f"Model {name!r} not found. Available: {sorted(self._models)}"
            ) from None

    def __repr__(self) -> str:
        return f"ModelRegistry(models={sorted(self._models)}, failures={self.failed_names})"


__all__ = ["LoadFailure", "LoadStage", "ModelRegistry"]
