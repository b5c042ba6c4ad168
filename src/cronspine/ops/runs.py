"""
Run tracking operations.

Record run starts and completions, and list run history. History is local
(SQLite ``cron_runs``) and outlives the jobs it refers to, so reads never
need the runtime.
"""

from __future__ import annotations

from datetime import timedelta

from cronspine.core.errors import CronSpineError, RunNotFoundError, ValidationError
from cronspine.core.logging import get_logger
from cronspine.core.models.scheduler import RunRecord, RunStatus, RunTrigger
from cronspine.core.scheduling.repository import RunRepository
from cronspine.core.timestamps import generate_ulid
from cronspine.ops.context import OperationContext
from cronspine.ops.guards import check_job_id, fail_from, fail_internal, require_runtime
from cronspine.ops.jobs import find_job
from cronspine.ops.requests import (
    GetRunRequest,
    ListRunsRequest,
    ListRuntimeRunsRequest,
    PruneRunsRequest,
    RecordRunCompletionRequest,
    RecordRunStartRequest,
)
from cronspine.ops.responses import PruneResult, RunSummary
from cronspine.ops.result import OperationResult, PagedResult, start_timer

logger = get_logger(__name__)

MAX_PAGE_SIZE = 100

_STATUS_FILTERS: dict[str, tuple[RunStatus, ...] | None] = {
    "all": None,
    "success": (RunStatus.SUCCESS,),
    "error": (RunStatus.ERROR,),
}

_WINDOWS: dict[str, timedelta | None] = {
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "all": None,
}


def _parse_trigger(value: str) -> RunTrigger:
    try:
        return RunTrigger(value)
    except ValueError:
        raise ValidationError(
            f"Unknown trigger '{value}'",
            field="trigger",
            value=value,
            constraint="manual | schedule",
        ) from None


def _parse_completion_status(value: str) -> RunStatus:
    try:
        status = RunStatus(value)
    except ValueError:
        status = None
    if status is None or not status.is_terminal:
        raise ValidationError(
            f"Completion status must be success or error, got '{value}'",
            field="status",
            value=value,
            constraint="success | error",
        )
    return status


# ------------------------------------------------------------------ #
# Writes
# ------------------------------------------------------------------ #


def record_run_start(
    ctx: OperationContext, request: RecordRunStartRequest
) -> OperationResult[RunRecord]:
    """Open a ``pending`` run for a job, timestamped with the context clock.

    When a runtime is configured the job must exist there; its name is
    copied onto the run so history stays readable after the job is deleted.
    """
    timer = start_timer()

    try:
        check_job_id(request.job_id)
        trigger = _parse_trigger(request.trigger)
    except ValidationError as exc:
        return fail_from(exc, timer)

    try:
        job_name = request.job_name
        if ctx.runtime is not None:
            job = find_job(ctx.runtime, request.job_id)
            job_name = job_name or job.name

        now = ctx.now()
        run = RunRecord(
            id=generate_ulid(now),
            job_id=request.job_id,
            job_name=job_name,
            started_at=now,
            status=RunStatus.PENDING,
            trigger=trigger,
        )
        if ctx.dry_run:
            return OperationResult.ok(run, elapsed_ms=timer.elapsed_ms, metadata={"dry_run": True})

        run = RunRepository(ctx.conn).create(run)
        logger.info("run_started", run_id=run.id, job_id=run.job_id, trigger=trigger.value)
        return OperationResult.ok(run, elapsed_ms=timer.elapsed_ms)
    except CronSpineError as exc:
        return fail_from(exc, timer)
    except Exception as exc:
        return fail_internal(exc, timer, "record run start")


def record_run_completion(
    ctx: OperationContext, request: RecordRunCompletionRequest
) -> OperationResult[RunRecord]:
    """Close a run with ``success`` or ``error``.

    A run completes at most once: a second call fails with
    ``ALREADY_COMPLETE`` and leaves the stored record untouched. A run
    whose trigger failed cannot complete (``CONFLICT``).
    """
    timer = start_timer()

    try:
        if not request.run_id:
            raise ValidationError("run_id is required", field="run_id", value=request.run_id)
        status = _parse_completion_status(request.status)
    except ValidationError as exc:
        return fail_from(exc, timer)

    try:
        repo = RunRepository(ctx.conn)
        if ctx.dry_run:
            current = repo.get(request.run_id)
            if current is None:
                raise RunNotFoundError(request.run_id)
            return OperationResult.ok(current, elapsed_ms=timer.elapsed_ms, metadata={"dry_run": True})

        run = repo.complete(
            request.run_id,
            status,
            ctx.now(),
            output=request.output,
            error=request.error,
        )
        logger.info(
            "run_completed",
            run_id=run.id,
            job_id=run.job_id,
            status=run.status.value,
            duration_ms=run.duration_ms,
        )
        return OperationResult.ok(run, elapsed_ms=timer.elapsed_ms)
    except CronSpineError as exc:
        return fail_from(exc, timer)
    except Exception as exc:
        return fail_internal(exc, timer, "record run completion")


def prune_runs(ctx: OperationContext, request: PruneRunsRequest) -> OperationResult[PruneResult]:
    """Delete finished runs and failed triggers started before the retention cutoff."""
    timer = start_timer()

    if request.older_than_days < 1:
        return fail_from(
            ValidationError(
                "older_than_days must be at least 1",
                field="older_than_days",
                value=request.older_than_days,
                constraint=">= 1",
            ),
            timer,
        )

    cutoff = ctx.now() - timedelta(days=request.older_than_days)
    try:
        repo = RunRepository(ctx.conn)
        if ctx.dry_run:
            return OperationResult.ok(
                PruneResult(deleted=repo.count_finished_before(cutoff), cutoff=cutoff, dry_run=True),
                elapsed_ms=timer.elapsed_ms,
            )

        deleted = repo.purge_finished_before(cutoff)
        logger.info("runs_pruned", deleted=deleted, cutoff=cutoff.isoformat())
        return OperationResult.ok(PruneResult(deleted=deleted, cutoff=cutoff), elapsed_ms=timer.elapsed_ms)
    except CronSpineError as exc:
        return fail_from(exc, timer)
    except Exception as exc:
        return fail_internal(exc, timer, "prune runs")


# ------------------------------------------------------------------ #
# Reads
# ------------------------------------------------------------------ #


def list_runs(ctx: OperationContext, request: ListRunsRequest) -> PagedResult[RunSummary]:
    """Newest-first run history, optionally for one job.

    ``status`` filters to ``success`` or ``error`` runs; ``window`` limits to
    runs started in the last 7 or 30 days. Pages hold at most 100 runs.
    """
    timer = start_timer()

    try:
        if request.job_id is not None:
            check_job_id(request.job_id)
        if request.status not in _STATUS_FILTERS:
            raise ValidationError(
                f"Unknown status filter '{request.status}'",
                field="status",
                value=request.status,
                constraint="all | success | error",
            )
        if request.window not in _WINDOWS:
            raise ValidationError(
                f"Unknown window '{request.window}'",
                field="window",
                value=request.window,
                constraint="7d | 30d | all",
            )
        if request.limit < 1 or request.offset < 0:
            raise ValidationError(
                "limit must be positive and offset non-negative",
                field="limit" if request.limit < 1 else "offset",
                value=request.limit if request.limit < 1 else request.offset,
            )
    except ValidationError as exc:
        return fail_from(exc, timer)

    limit = min(request.limit, MAX_PAGE_SIZE)
    now = ctx.now()
    statuses = _STATUS_FILTERS[request.status]
    window = _WINDOWS[request.window]
    since = now - window if window is not None else None

    try:
        repo = RunRepository(ctx.conn)
        runs = repo.list_for_job(
            request.job_id, statuses=statuses, since=since, limit=limit, offset=request.offset
        )
        total = repo.count_for_job(request.job_id, statuses=statuses, since=since)
        summaries = [
            RunSummary.from_record(run, now=now, hung_after_seconds=request.hung_after_seconds)
            for run in runs
        ]
        return PagedResult.from_items(
            summaries,
            total=total,
            limit=limit,
            offset=request.offset,
            elapsed_ms=timer.elapsed_ms,
        )
    except CronSpineError as exc:
        return fail_from(exc, timer)
    except Exception as exc:
        return fail_internal(exc, timer, "list runs")


def get_run(ctx: OperationContext, request: GetRunRequest) -> OperationResult[RunSummary]:
    """Get one run by id."""
    timer = start_timer()

    try:
        run = RunRepository(ctx.conn).get(request.run_id)
        if run is None:
            raise RunNotFoundError(request.run_id)
        return OperationResult.ok(
            RunSummary.from_record(run, now=ctx.now(), hung_after_seconds=request.hung_after_seconds),
            elapsed_ms=timer.elapsed_ms,
        )
    except CronSpineError as exc:
        return fail_from(exc, timer)
    except Exception as exc:
        return fail_internal(exc, timer, "get run")


def list_runtime_runs(
    ctx: OperationContext, request: ListRuntimeRunsRequest
) -> OperationResult[list[RunRecord]]:
    """History as reported by the runtime itself, newest first."""
    timer = start_timer()

    try:
        check_job_id(request.job_id)
        runs = require_runtime(ctx).run_history(request.job_id)
        runs.sort(key=lambda r: r.started_at, reverse=True)
        return OperationResult.ok(runs, elapsed_ms=timer.elapsed_ms)
    except CronSpineError as exc:
        return fail_from(exc, timer)
    except Exception as exc:
        return fail_internal(exc, timer, "list runtime runs")
