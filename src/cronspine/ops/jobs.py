"""
Job lifecycle operations.

Create, edit, enable/disable, delete and trigger cron jobs. Jobs are owned
by the external runtime; these operations validate input locally, delegate
the mutation to ``ctx.runtime`` and re-derive ``next_run_at`` on every read.

Ordering guarantees:
    - Malformed ids, names, schedules and timezones fail with
      ``VALIDATION_FAILED`` before the runtime is contacted.
    - Unknown ids fail with ``NOT_FOUND`` before any mutation is sent.
    - ``trigger_job`` persists a ``pending`` run before asking the runtime to
      start it, so a runtime failure is always recorded against a run.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime

from cronspine.core.errors import CronSpineError, ExternalRuntimeError, JobNotFoundError, ValidationError
from cronspine.core.logging import get_logger
from cronspine.core.models.scheduler import CronJob, CronSchedule, RunRecord, RunStatus, RunTrigger
from cronspine.core.scheduling.calculator import next_run
from cronspine.core.scheduling.expression import (
    describe_schedule,
    is_valid_schedule,
    validate_schedule,
    validate_timezone,
)
from cronspine.core.scheduling.repository import RunRepository
from cronspine.core.scheduling.wire import schedule_from_input
from cronspine.core.timestamps import generate_ulid
from cronspine.ops.context import OperationContext
from cronspine.ops.guards import check_job_id, fail_from, fail_internal, require_runtime
from cronspine.ops.requests import (
    CreateJobRequest,
    DeleteJobRequest,
    EditJobRequest,
    GetJobRequest,
    ListJobsRequest,
    SetJobEnabledRequest,
    TriggerJobRequest,
)
from cronspine.ops.responses import DeletedJob, EditResult
from cronspine.ops.result import OperationResult, PagedResult, start_timer
from cronspine.runtime.protocol import CronRuntime, JobChanges, JobDraft

logger = get_logger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def _run_repo(ctx: OperationContext) -> RunRepository:
    return RunRepository(ctx.conn)


def with_next_run(job: CronJob, now: datetime) -> CronJob:
    """Recompute ``next_run_at`` from the schedule; ``None`` when disabled or invalid."""
    if job.enabled and is_valid_schedule(job.schedule):
        job.next_run_at = next_run(job.schedule, now)
    else:
        job.next_run_at = None
    return job


def find_job(runtime: CronRuntime, job_id: str) -> CronJob:
    for job in runtime.list_jobs():
        if job.id == job_id:
            return job
    raise JobNotFoundError(job_id)


def _check_name(name: object) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Job name is required", field="name", value=name)
    return name.strip()


# ------------------------------------------------------------------ #
# Reads
# ------------------------------------------------------------------ #


def list_jobs(
    ctx: OperationContext,
    request: ListJobsRequest | None = None,
) -> PagedResult[CronJob]:
    """List jobs known to the runtime with freshly computed next runs."""
    timer = start_timer()
    request = request or ListJobsRequest()

    try:
        runtime = require_runtime(ctx)
        now = ctx.now()
        jobs = [with_next_run(job, now) for job in runtime.list_jobs()]
        if not request.include_disabled:
            jobs = [job for job in jobs if job.enabled]
        return PagedResult.from_items(
            jobs, total=len(jobs), limit=max(len(jobs), 1), elapsed_ms=timer.elapsed_ms
        )
    except CronSpineError as exc:
        return fail_from(exc, timer)
    except Exception as exc:
        return fail_internal(exc, timer, "list jobs")


def get_job(ctx: OperationContext, request: GetJobRequest) -> OperationResult[CronJob]:
    """Get one job by id."""
    timer = start_timer()

    try:
        check_job_id(request.job_id)
        job = find_job(require_runtime(ctx), request.job_id)
        return OperationResult.ok(with_next_run(job, ctx.now()), elapsed_ms=timer.elapsed_ms)
    except CronSpineError as exc:
        return fail_from(exc, timer)
    except Exception as exc:
        return fail_internal(exc, timer, "get job")


# ------------------------------------------------------------------ #
# Mutations
# ------------------------------------------------------------------ #


def create_job(ctx: OperationContext, request: CreateJobRequest) -> OperationResult[CronJob]:
    """Validate and create a job in the runtime."""
    timer = start_timer()

    try:
        name = _check_name(request.name)
        spec = schedule_from_input(request.schedule, request.timezone)
        validate_schedule(spec)
    except ValidationError as exc:
        return fail_from(exc, timer)
    except Exception as exc:
        return fail_internal(exc, timer, "validate job")

    draft = JobDraft(
        name=name,
        schedule=spec,
        description=(request.description or "").strip(),
        session_target=request.session_target or "main",
        enabled=request.enabled,
    )

    if ctx.dry_run:
        preview = CronJob(
            id="",
            name=draft.name,
            schedule=spec,
            enabled=draft.enabled,
            description=draft.description,
            session_target=draft.session_target,
        )
        return OperationResult.ok(
            with_next_run(preview, ctx.now()),
            elapsed_ms=timer.elapsed_ms,
            metadata={"dry_run": True},
        )

    try:
        runtime = require_runtime(ctx)
        job = runtime.create_job(draft)
        if job is None:
            # runtime did not echo the job; pick the newest one with this name
            matches = [j for j in runtime.list_jobs() if j.name == draft.name]
            if not matches:
                raise ExternalRuntimeError("Runtime accepted the job but does not list it")
            job = max(matches, key=lambda j: j.created_at or _EPOCH)
        logger.info("job_created", job_id=job.id, kind=spec.kind.value, caller=ctx.caller)
        return OperationResult.ok(with_next_run(job, ctx.now()), elapsed_ms=timer.elapsed_ms)
    except CronSpineError as exc:
        logger.warning("job_create_failed", name=draft.name, error=exc.message)
        return fail_from(exc, timer)
    except Exception as exc:
        return fail_internal(exc, timer, "create job")


def edit_job(ctx: OperationContext, request: EditJobRequest) -> OperationResult[EditResult]:
    """Apply the provided fields to a job.

    Fields the runtime refuses are reported in ``EditResult.ignored`` and as
    warnings; the remaining fields are still applied.
    """
    timer = start_timer()
    schedule_field = "schedule" if request.schedule is not None else "timezone"

    try:
        check_job_id(request.job_id)
        name = _check_name(request.name) if request.name is not None else None
        if request.schedule is not None:
            validate_schedule(schedule_from_input(request.schedule, request.timezone))
        elif request.timezone is not None:
            validate_timezone(request.timezone)
        if (
            request.name is None
            and request.schedule is None
            and request.timezone is None
            and request.description is None
            and request.enabled is None
        ):
            raise ValidationError("Nothing to edit", field="job_id", value=request.job_id)
    except ValidationError as exc:
        return fail_from(exc, timer)
    except Exception as exc:
        return fail_internal(exc, timer, "validate edit")

    try:
        runtime = require_runtime(ctx)
        current = find_job(runtime, request.job_id)

        spec = None
        if request.schedule is not None:
            # a bare cron string keeps the job's current timezone
            inherited = current.schedule.timezone if isinstance(current.schedule, CronSchedule) else None
            spec = schedule_from_input(request.schedule, request.timezone or inherited)
        elif request.timezone is not None:
            if not isinstance(current.schedule, CronSchedule):
                raise ValidationError(
                    "Timezone applies only to cron schedules",
                    field="timezone",
                    value=request.timezone,
                )
            spec = replace(current.schedule, timezone=request.timezone.strip())

        changes = JobChanges(
            name=name,
            schedule=spec,
            description=request.description.strip() if request.description is not None else None,
        )
        toggle = request.enabled is not None and request.enabled != current.enabled

        if ctx.dry_run:
            preview = replace(
                current,
                name=changes.name or current.name,
                schedule=changes.schedule or current.schedule,
                description=changes.description if changes.description is not None else current.description,
                enabled=request.enabled if request.enabled is not None else current.enabled,
            )
            applied = [schedule_field if f == "schedule" else f for f in changes.fields()]
            return OperationResult.ok(
                EditResult(job=with_next_run(preview, ctx.now()), applied=applied + (["enabled"] if toggle else [])),
                elapsed_ms=timer.elapsed_ms,
                metadata={"dry_run": True},
            )

        applied: list[str] = []
        ignored: dict[str, str] = {}
        if not changes.is_empty:
            outcome = runtime.edit_job(current.id, changes)
            applied = [schedule_field if f == "schedule" else f for f in outcome.applied]
            ignored = {schedule_field if f == "schedule" else f: r for f, r in outcome.ignored.items()}

        if toggle:
            runtime.set_enabled(current.id, bool(request.enabled))
            applied.append("enabled")

        warnings = [f"Runtime ignored '{field}': {reason}" for field, reason in ignored.items()]
        job = with_next_run(find_job(runtime, current.id), ctx.now())
        logger.info("job_edited", job_id=job.id, applied=applied, ignored=list(ignored))
        return OperationResult.ok(
            EditResult(job=job, applied=applied, ignored=ignored),
            warnings=warnings,
            elapsed_ms=timer.elapsed_ms,
        )
    except CronSpineError as exc:
        return fail_from(exc, timer)
    except Exception as exc:
        return fail_internal(exc, timer, "edit job")


def set_job_enabled(ctx: OperationContext, request: SetJobEnabledRequest) -> OperationResult[CronJob]:
    """Enable or disable a job. Disabled jobs have no next run and leave the timeline."""
    timer = start_timer()

    try:
        check_job_id(request.job_id)
        runtime = require_runtime(ctx)
        current = find_job(runtime, request.job_id)

        if ctx.dry_run:
            preview = replace(current, enabled=request.enabled)
            return OperationResult.ok(
                with_next_run(preview, ctx.now()),
                elapsed_ms=timer.elapsed_ms,
                metadata={"dry_run": True},
            )

        runtime.set_enabled(current.id, request.enabled)
        job = with_next_run(find_job(runtime, current.id), ctx.now())
        logger.info("job_enabled" if request.enabled else "job_disabled", job_id=job.id)
        return OperationResult.ok(job, elapsed_ms=timer.elapsed_ms)
    except CronSpineError as exc:
        return fail_from(exc, timer)
    except Exception as exc:
        return fail_internal(exc, timer, "toggle job")


def delete_job(ctx: OperationContext, request: DeleteJobRequest) -> OperationResult[DeletedJob]:
    """Remove a job from the runtime. Its run history is kept."""
    timer = start_timer()

    try:
        check_job_id(request.job_id)
        runtime = require_runtime(ctx)
        current = find_job(runtime, request.job_id)

        if ctx.dry_run:
            return OperationResult.ok(
                DeletedJob(job_id=current.id, name=current.name, dry_run=True),
                elapsed_ms=timer.elapsed_ms,
            )

        runtime.delete_job(current.id)
        logger.info("job_deleted", job_id=current.id)
        return OperationResult.ok(
            DeletedJob(job_id=current.id, name=current.name), elapsed_ms=timer.elapsed_ms
        )
    except CronSpineError as exc:
        return fail_from(exc, timer)
    except Exception as exc:
        return fail_internal(exc, timer, "delete job")


def trigger_job(ctx: OperationContext, request: TriggerJobRequest) -> OperationResult[RunRecord]:
    """Run a job now, outside its schedule.

    A ``pending`` run is stored first. If the runtime cannot be reached or
    refuses, the run keeps ``trigger_error`` and the result fails with
    ``TRIGGER_FAILED`` (``details.run_id`` names the run). If the runtime
    finishes synchronously the run is completed immediately. The job's
    ``next_run_at`` is unaffected.
    """
    timer = start_timer()

    try:
        check_job_id(request.job_id)
        runtime = require_runtime(ctx)
        job = find_job(runtime, request.job_id)
    except CronSpineError as exc:
        return fail_from(exc, timer)
    except Exception as exc:
        return fail_internal(exc, timer, "trigger job")

    now = ctx.now()
    run = RunRecord(
        id=generate_ulid(now),
        job_id=job.id,
        job_name=job.name,
        started_at=now,
        status=RunStatus.PENDING,
        trigger=RunTrigger.MANUAL,
    )
    if ctx.dry_run:
        return OperationResult.ok(run, elapsed_ms=timer.elapsed_ms, metadata={"dry_run": True})

    try:
        repo = _run_repo(ctx)
        run = repo.create(run)
    except Exception as exc:
        return fail_internal(exc, timer, "record run start")

    try:
        dispatch = runtime.run_job(job.id)
    except CronSpineError as exc:
        logger.warning("trigger_failed", job_id=job.id, run_id=run.id, error=exc.message)
        try:
            repo.mark_trigger_failed(run.id, exc.message)
        except Exception as store_exc:
            return fail_internal(store_exc, timer, "record trigger failure")
        return fail_from(exc, timer, code="TRIGGER_FAILED", details={"run_id": run.id})
    except Exception as exc:
        return fail_internal(exc, timer, "trigger job")

    try:
        if dispatch.status is not None and dispatch.status.is_terminal:
            run = repo.complete(
                run.id,
                dispatch.status,
                ctx.now(),
                output=dispatch.output,
                error=dispatch.error,
            )
        logger.info(
            "job_triggered",
            job_id=job.id,
            run_id=run.id,
            status=run.status.value,
            schedule=describe_schedule(job.schedule),
        )
        return OperationResult.ok(run, elapsed_ms=timer.elapsed_ms)
    except CronSpineError as exc:
        return fail_from(exc, timer)
    except Exception as exc:
        return fail_internal(exc, timer, "record run completion")
