"""Typed payloads returned inside ``OperationResult.data``."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class MigrateRunResult:
    applied: list[str] = field(default_factory=list)
    failed: str | None = None
    forced: bool = False
    dropped: list[str] = field(default_factory=list)
    synced_models: list[str] = field(default_factory=list)
    notice: str | None = None


@dataclass
class MigrationStatusResult:
    pending: list[str] = field(default_factory=list)
    applied: list[str] = field(default_factory=list)


@dataclass
class UndoResult:
    """What an undo command removed."""

    reverted: str | None = None
    dropped: list[str] = field(default_factory=list)


@dataclass
class CreatedMigration:
    name: str
    path: str
