"""
Database operations.

Health check for the configured adapter, used by ``strata db:health``.
"""

from __future__ import annotations

from strata.core.errors import StrataError
from strata.core.health import HealthReport
from strata.core.logging import get_logger
from strata.ops.context import OperationContext
from strata.ops.result import OperationResult, start_timer

logger = get_logger(__name__)


def check_database_health(ctx: OperationContext) -> OperationResult[HealthReport]:
    """Initialize the lifecycle and report its health.

    An unhealthy report is a failed result carrying the report as data.
    """
    timer = start_timer()
    lifecycle = ctx.lifecycle
    try:
        lifecycle.initialize()
        report = lifecycle.health()
    except StrataError as exc:
        logger.warning("health.initialize_failed", error=exc.message)
        report = HealthReport(status="unhealthy", adapter=lifecycle.kind.value, error=exc.message)

    if report.status == "unhealthy":
        return OperationResult.fail(
            "UNHEALTHY",
            report.error or "unhealthy",
            details=report.model_dump(),
            data=report,
            elapsed_ms=timer.elapsed_ms,
        )
    warnings = [f"Models failed to load: {', '.join(report.failed_models)}"] if report.failed_models else []
    return OperationResult.ok(report, warnings=warnings, elapsed_ms=timer.elapsed_ms)
