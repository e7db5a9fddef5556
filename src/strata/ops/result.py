"""
Operation result envelope.

Provides :class:`OperationResult` — a typed success/failure envelope that
every lifecycle command returns.  Domain code raises ``StrataError``
subclasses; the ops layer converts them into results the CLI can render and
turn into an exit code.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import Any, TypeVar

from strata.core.errors import ErrorCategory, StrataError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class OperationError:
    """Structured error detail for failed operations.

    Attributes:
        code: Machine-readable code (``NOTHING_TO_UNDO``, ``MIGRATION_APPLY``, …).
        message: Human-readable description of the error.
        category: Optional :class:`ErrorCategory` for routing/alerting.
        details: Extra key/value context (migration name, path, …).
        retryable: Whether the caller should retry the operation.
    """

    code: str
    message: str
    category: ErrorCategory | None = None
    details: dict[str, Any] = field(default_factory=dict)
    retryable: bool = False


@dataclass
class OperationResult[T]:
    """Envelope returned by every operation function.

    Factory methods :meth:`ok`, :meth:`fail` and :meth:`from_error` should
    be used instead of the constructor directly.
    """

    success: bool
    data: T | None = None
    error: OperationError | None = None
    warnings: list[str] = field(default_factory=list)
    elapsed_ms: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)

    # ------------------------------------------------------------------ #
    # Factory helpers
    # ------------------------------------------------------------------ #

    @classmethod
    def ok(
        cls,
        data: T,
        *,
        warnings: list[str] | None = None,
        elapsed_ms: float = 0.0,
        metadata: dict[str, Any] | None = None,
    ) -> OperationResult[T]:
        """Create a successful result."""
        return cls(
            success=True,
            data=data,
            warnings=warnings or [],
            elapsed_ms=elapsed_ms,
            metadata=metadata or {},
        )

    @classmethod
    def fail(
        cls,
        code: str,
        message: str,
        *,
        category: ErrorCategory | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
        data: T | None = None,
        warnings: list[str] | None = None,
        elapsed_ms: float = 0.0,
    ) -> OperationResult[T]:
        """Create a failed result (``data`` may carry partial progress)."""
        return cls(
            success=False,
            data=data,
            error=OperationError(
                code=code,
                message=message,
                category=category,
                details=details or {},
                retryable=retryable,
            ),
            warnings=warnings or [],
            elapsed_ms=elapsed_ms,
        )

    @classmethod
    def from_error(
        cls,
        exc: StrataError,
        *,
        data: T | None = None,
        elapsed_ms: float = 0.0,
    ) -> OperationResult[T]:
        """Create a failed result from a ``StrataError``."""
        return cls.fail(
            error_code(exc),
            exc.message,
            category=exc.category,
            details=exc.context.to_dict(),
            retryable=exc.retryable,
            data=data,
            elapsed_ms=elapsed_ms,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a plain dict (for JSON output)."""
        d: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            d["data"] = self.data
        if self.error is not None:
            d["error"] = {
                "code": self.error.code,
                "message": self.error.message,
                "retryable": self.error.retryable,
            }
            if self.error.details:
                d["error"]["details"] = self.error.details
        if self.warnings:
            d["warnings"] = self.warnings
        if self.elapsed_ms:
            d["elapsed_ms"] = round(self.elapsed_ms, 2)
        if self.metadata:
            d["metadata"] = self.metadata
        return d


def error_code(exc: StrataError) -> str:
    """``MigrationApplyError`` → ``MIGRATION_APPLY``."""
    name = type(exc).__name__.removesuffix("Error") or "STRATA"
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).upper()


# ------------------------------------------------------------------ #
# Timing helper
# ------------------------------------------------------------------ #


class _Timer:
    """Minimal stopwatch for timing operations."""

    __slots__ = ("_start",)

    def __init__(self) -> None:
        self._start = time.perf_counter()

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._start) * 1000


def start_timer() -> _Timer:
    """Return a lightweight timer.  Use ``timer.elapsed_ms`` when done."""
    return _Timer()
