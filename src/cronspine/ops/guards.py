"""Shared guards for operation functions.

Turns the ``cronspine.core.errors`` hierarchy into ``OperationResult``
failures so each operation maps errors the same way.
"""

from __future__ import annotations

import re
from typing import Any

from cronspine.core.errors import (
    CronSpineError,
    ExternalRuntimeError,
    NotFoundError,
    RunAlreadyCompletedError,
    RunStateError,
    RuntimeNotConfiguredError,
    RuntimeRejectedError,
    ValidationError,
)
from cronspine.core.logging import get_logger
from cronspine.ops.context import OperationContext
from cronspine.ops.result import OperationResult, _Timer
from cronspine.runtime.protocol import CronRuntime

logger = get_logger(__name__)

JOB_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def check_job_id(job_id: Any) -> None:
    """Raise ``ValidationError`` unless *job_id* is a safe runtime identifier."""
    if not isinstance(job_id, str) or not job_id:
        raise ValidationError("job_id is required", field="job_id", value=job_id)
    if not JOB_ID_PATTERN.match(job_id):
        raise ValidationError(
            f"Invalid job id '{job_id}'",
            field="job_id",
            value=job_id,
            constraint="[A-Za-z0-9_-]+",
        )


def require_runtime(ctx: OperationContext) -> CronRuntime:
    """Return the context's runtime or raise ``RuntimeNotConfiguredError``."""
    if ctx.runtime is None:
        raise RuntimeNotConfiguredError()
    return ctx.runtime


def error_code(exc: CronSpineError) -> str:
    """Operation error code for a cronspine exception."""
    if isinstance(exc, RuntimeNotConfiguredError):
        return "UNAVAILABLE"
    if isinstance(exc, ValidationError):
        return "VALIDATION_FAILED"
    if isinstance(exc, NotFoundError):
        return "NOT_FOUND"
    if isinstance(exc, RunAlreadyCompletedError):
        return "ALREADY_COMPLETE"
    if isinstance(exc, RunStateError):
        return "CONFLICT"
    if isinstance(exc, ExternalRuntimeError):
        return "RUNTIME_ERROR"
    return "INTERNAL"


def error_details(exc: CronSpineError) -> dict[str, Any]:
    details: dict[str, Any] = exc.context.to_dict()
    if isinstance(exc, ValidationError):
        if exc.field is not None:
            details["field"] = exc.field
        if exc.constraint is not None:
            details["constraint"] = exc.constraint
    if isinstance(exc, RuntimeRejectedError) and exc.stderr:
        details["stderr"] = exc.stderr
    return details


def fail_from(
    exc: CronSpineError,
    timer: _Timer,
    *,
    code: str | None = None,
    details: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> OperationResult[Any]:
    """Build a failed result from a cronspine exception."""
    merged = error_details(exc)
    if details:
        merged.update(details)
    return OperationResult.fail(
        code or error_code(exc),
        exc.message,
        category=exc.category,
        details=merged,
        retryable=exc.retryable,
        warnings=warnings,
        elapsed_ms=timer.elapsed_ms,
    )


def fail_internal(exc: Exception, timer: _Timer, action: str) -> OperationResult[Any]:
    """Log an unexpected exception and build an ``INTERNAL`` failure."""
    logger.exception("op_failed", action=action, error=str(exc))
    return OperationResult.fail(
        "INTERNAL", f"Failed to {action}: {exc}", elapsed_ms=timer.elapsed_ms
    )
