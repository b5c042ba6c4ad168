"""
Timeline and schedule preview operations.

``get_timeline`` projects the runtime's enabled jobs onto a calendar week.
``preview_schedule`` validates a schedule the way ``create_job`` would and
returns its description and next firings without touching the runtime.
"""

from __future__ import annotations

from cronspine.core.errors import CronSpineError, ValidationError
from cronspine.core.logging import get_logger
from cronspine.core.models.timeline import Timeline
from cronspine.core.scheduling.calculator import next_runs
from cronspine.core.scheduling.expression import describe_schedule, validate_schedule, validate_timezone
from cronspine.core.scheduling.timeline import build_timeline
from cronspine.core.scheduling.wire import schedule_from_input, timezone_of
from cronspine.ops.context import OperationContext
from cronspine.ops.guards import fail_from, fail_internal, require_runtime
from cronspine.ops.requests import PreviewScheduleRequest, TimelineRequest
from cronspine.ops.responses import SchedulePreview
from cronspine.ops.result import OperationResult, start_timer

logger = get_logger(__name__)

MAX_HORIZON_DAYS = 31
MAX_PREVIEW_COUNT = 50


def get_timeline(ctx: OperationContext, request: TimelineRequest | None = None) -> OperationResult[Timeline]:
    """Build the weekly timeline from the runtime's current jobs."""
    timer = start_timer()
    request = request or TimelineRequest()

    try:
        if not 1 <= request.horizon_days <= MAX_HORIZON_DAYS:
            raise ValidationError(
                f"horizon_days must be between 1 and {MAX_HORIZON_DAYS}",
                field="horizon_days",
                value=request.horizon_days,
                constraint=f"1..{MAX_HORIZON_DAYS}",
            )
        if request.max_occurrences < 1:
            raise ValidationError(
                "max_occurrences must be positive",
                field="max_occurrences",
                value=request.max_occurrences,
                constraint=">= 1",
            )
        validate_timezone(request.timezone)
    except ValidationError as exc:
        return fail_from(exc, timer)

    try:
        jobs = require_runtime(ctx).list_jobs()
        timeline = build_timeline(
            jobs,
            ctx.now(),
            request.horizon_days,
            timezone=request.timezone,
            max_occurrences=request.max_occurrences,
            include_elapsed=request.include_elapsed,
        )
        logger.debug("timeline_built", jobs=len(timeline.legend), events=timeline.total_events)
        return OperationResult.ok(timeline, elapsed_ms=timer.elapsed_ms)
    except CronSpineError as exc:
        return fail_from(exc, timer)
    except Exception as exc:
        return fail_internal(exc, timer, "build timeline")


def preview_schedule(
    ctx: OperationContext, request: PreviewScheduleRequest
) -> OperationResult[SchedulePreview]:
    """Describe a candidate schedule and list its next ``count`` runs.

    An invalid schedule is not a failure: the result is ``ok`` with
    ``valid=False`` and the validation message, so editors can render it
    inline. Only a bad ``count`` fails.
    """
    timer = start_timer()

    if not 1 <= request.count <= MAX_PREVIEW_COUNT:
        return fail_from(
            ValidationError(
                f"count must be between 1 and {MAX_PREVIEW_COUNT}",
                field="count",
                value=request.count,
                constraint=f"1..{MAX_PREVIEW_COUNT}",
            ),
            timer,
        )

    try:
        spec = schedule_from_input(request.schedule, request.timezone)
        validate_schedule(spec)
    except ValidationError as exc:
        return OperationResult.ok(
            SchedulePreview(valid=False, error=exc.message, timezone=request.timezone or "UTC"),
            elapsed_ms=timer.elapsed_ms,
        )

    try:
        return OperationResult.ok(
            SchedulePreview(
                valid=True,
                kind=spec.kind.value,
                display=describe_schedule(spec),
                timezone=timezone_of(spec),
                next_runs=next_runs(spec, ctx.now(), request.count),
            ),
            elapsed_ms=timer.elapsed_ms,
        )
    except Exception as exc:
        return fail_internal(exc, timer, "preview schedule")
