"""Health report for the storage layer.

``check_handle()`` performs exactly one round-trip through the handle and
never raises: any failure becomes ``status="unhealthy"`` with the error
message.  A successful round-trip with model load failures reports
``degraded``.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

from strata.core.adapters.base import ConnectionHandle
from strata.core.adapters.types import AdapterKind
from strata.core.models.registry import ModelRegistry

HealthStatus = Literal["healthy", "degraded", "unhealthy"]


class HealthReport(BaseModel):
    """Composite health value for process supervisors.

    Fields
    ──────
    status        : ``healthy`` | ``degraded`` | ``unhealthy``
    adapter       : Adapter kind (``relational`` / ``document`` / ``schema_first``)
    latency_ms    : Round-trip latency, when the ping succeeded
    error         : Failure message, when it did not
    failed_models : Names excluded from the registry at load time
    checked_at    : ISO-8601 UTC
    """

    status: HealthStatus = "healthy"
    adapter: str
    latency_ms: float | None = None
    error: str | None = None
    failed_models: list[str] = Field(default_factory=list)
    checked_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())

    @property
    def ok(self) -> bool:
        return self.status != "unhealthy"


def check_handle(
    kind: AdapterKind,
    handle: ConnectionHandle | None,
    registry: ModelRegistry | None = None,
) -> HealthReport:
    """Ping *handle* once and summarise the result."""
    failed = registry.failed_names if registry is not None else []
    if handle is None or handle.closed:
        return HealthReport(
            status="unhealthy",
            adapter=kind.value,
            error="not connected",
            failed_models=failed,
        )

    start = time.monotonic()
    try:
        handle.ping()
    except Exception as exc:
        return HealthReport(
            status="unhealthy",
            adapter=kind.value,
            error=str(exc) or type(exc).__name__,
            failed_models=failed,
        )

    latency = round((time.monotonic() - start) * 1000, 2)
    return HealthReport(
        status="degraded" if failed else "healthy",
        adapter=kind.value,
        latency_ms=latency,
        failed_models=failed,
    )


__all__ = ["HealthReport", "HealthStatus", "check_handle"]
