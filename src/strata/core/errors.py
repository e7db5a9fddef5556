"""
Structured error types for the strata storage layer.

Every failure the orchestration layer can surface is a ``StrataError``
subclass carrying a category, a retry flag, structured context and the
chained root cause.  Callers decide what to do from the *type*: configuration
mistakes abort startup, per-model problems are recorded and skipped, ledger
problems stop the migration subsystem.

Manifesto:
    - **Typed Error Hierarchy:** One class per failure mode in the lifecycle
    - **Explicit Retry Semantics:** Only the missing-database case is retried
    - **Rich Context:** Errors carry adapter, model and migration names
    - **Error Chaining:** The driver exception is always preserved as ``cause``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                         StrataError                           │
        │          (category, retryable, context, cause)                │
        ├──────────────────────────────────────────────────────────────┤
        │  ConfigError              ConnectionError      ModelError     │
        │  (CONFIG)                 (DATABASE)           (MODEL)        │
        │     │                        │                    │           │
        │  UnsupportedAdapterError  MissingDatabaseError ModelLoadError │
        │  AdapterCapabilityError   DatabaseCreationError AssociationW. │
        │  SchemaStrategyConflict                                       │
        │                                                               │
        │  MigrationError (MIGRATION)              ExternalToolError    │
        │     │                                                         │
        │  MigrationDiscoveryError  MigrationApplyError                 │
        │  MigrationRevertError     NothingToUndoError                  │
        │  LedgerUnavailableError                                       │
        └──────────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Raise bare ``Exception`` from adapter code
    ✅ DO: Wrap driver errors with the matching subclass and ``cause=``

    ❌ DON'T: Catch ``MigrationApplyError`` and keep applying
    ✅ DO: Stop the run; later migrations may depend on the failed one

Tags:
    error-handling, exception-hierarchy, strata, migrations, adapters

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    CONFIG = "CONFIG"
    DATABASE = "DATABASE"
    MODEL = "MODEL"
    MIGRATION = "MIGRATION"
    EXTERNAL = "EXTERNAL"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """Structured metadata attached to an error for logging."""

    adapter: str | None = None
    dialect: str | None = None
    database: str | None = None
    model: str | None = None
    migration: str | None = None
    path: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["adapter", "dialect", "database", "model", "migration", "path"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class StrataError(Exception):
    """
    Base exception for all strata errors.

    Subclasses set ``default_category`` and ``default_retryable``; instances
    may override either.  The ``cause`` is chained to ``__cause__`` so
    tracebacks show the original driver error.

    Examples:
        >>> err = StrataError("boom").with_context(adapter="relational")
        >>> err.context.adapter
        'relational'
        >>> err.to_dict()["category"]
        'INTERNAL'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> StrataError:
        """Add context to this error (fluent API)."""
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(StrataError):
    """
    Configuration error.
    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class UnsupportedAdapterError(ConfigError):
    """Adapter kind (or SQL dialect) is not known to the registry."""

    def __init__(self, kind: str, message: str | None = None, **kwargs: Any):
        self.kind = kind
        super().__init__(message or f"Unsupported adapter: {kind!r}", **kwargs)


class AdapterCapabilityError(ConfigError):
    """Operation requested from an adapter kind that does not provide it."""


class SchemaStrategyConflictError(ConfigError):
    """Eager schema sync configured alongside ledger-tracked migrations."""


# =============================================================================
# CONNECTION ERRORS
# =============================================================================


class ConnectionError(StrataError):  # noqa: A001
    """Network, authentication or driver failure while connecting."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False


class MissingDatabaseError(ConnectionError):
    """The server is reachable but the target database does not exist.

    The bootstrapper creates the database and retries exactly once.
    """

    default_retryable = True

    def __init__(self, database: str, message: str | None = None, **kwargs: Any):
        self.database = database
        super().__init__(message or f"Database does not exist: {database}", **kwargs)


class DatabaseCreationError(ConnectionError):
    """``CREATE DATABASE`` on the administrative connection failed."""


# =============================================================================
# MODEL ERRORS (recovered per model)
# =============================================================================


class ModelError(StrataError):
    """Problem isolated to a single model definition."""

    default_category = ErrorCategory.MODEL
    default_retryable = False


class ModelLoadError(ModelError):
    """A model definition failed to import or instantiate."""


class AssociationWiringError(ModelError):
    """A model's association callback raised."""


# =============================================================================
# MIGRATION ERRORS
# =============================================================================


class MigrationError(StrataError):
    """Migration subsystem error."""

    default_category = ErrorCategory.MIGRATION
    default_retryable = False


class MigrationDiscoveryError(MigrationError):
    """The migrations directory does not describe an unambiguous ordering."""


class MigrationApplyError(MigrationError):
    """A migration's forward operation failed; nothing was recorded."""

    def __init__(self, name: str, message: str | None = None, **kwargs: Any):
        self.name = name
        super().__init__(message or f"Migration failed: {name}", **kwargs)


class MigrationRevertError(MigrationError):
    """A migration's reverse operation failed; the ledger row was kept."""

    def __init__(self, name: str, message: str | None = None, **kwargs: Any):
        self.name = name
        super().__init__(message or f"Revert failed: {name}", **kwargs)


class NothingToUndoError(MigrationError):
    """``revert_last()`` called against an empty ledger."""

    def __init__(self, message: str = "No applied migrations to undo", **kwargs: Any):
        super().__init__(message, **kwargs)


class LedgerUnavailableError(MigrationError):
    """The ledger table cannot be read or provisioned."""


# =============================================================================
# EXTERNAL TOOLING
# =============================================================================


class ExternalToolError(StrataError):
    """External schema tooling exited with a non-zero status."""

    default_category = ErrorCategory.EXTERNAL
    default_retryable = False

    def __init__(self, command: list[str], returncode: int, **kwargs: Any):
        self.command = command
        self.returncode = returncode
        super().__init__(
            f"Command {' '.join(command)!r} exited with status {returncode}",
            **kwargs,
        )


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "StrataError",
    "ConfigError",
    "UnsupportedAdapterError",
    "AdapterCapabilityError",
    "SchemaStrategyConflictError",
    "ConnectionError",
    "MissingDatabaseError",
    "DatabaseCreationError",
    "ModelError",
    "ModelLoadError",
    "AssociationWiringError",
    "MigrationError",
    "MigrationDiscoveryError",
    "MigrationApplyError",
    "MigrationRevertError",
    "NothingToUndoError",
    "LedgerUnavailableError",
    "ExternalToolError",
]
