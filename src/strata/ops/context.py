"""
Invocation context for lifecycle operations.

Every operation function receives an :class:`OperationContext` as its first
argument.  The context carries the storage lifecycle (settings, adapter and
the lazily-opened handle) and caller identity.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

from strata.core.lifecycle import StorageLifecycle


@dataclass
class OperationContext:
    """Context passed to every operation function.

    Attributes:
        lifecycle: The process's :class:`StorageLifecycle`.
        request_id: Unique ID for this invocation (auto-generated).
        caller: Origin of the request — ``"cli"`` or ``"sdk"``.
        metadata: Arbitrary key/value pairs forwarded to logging.
    """

    lifecycle: StorageLifecycle
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    caller: str = "sdk"
    metadata: dict[str, Any] = field(default_factory=dict)

    def close(self) -> None:
        self.lifecycle.close()
