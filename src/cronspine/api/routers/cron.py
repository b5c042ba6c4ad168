"""
Cron router: jobs, run history, timeline and schedule preview.

GET    /cron/jobs
POST   /cron/jobs
GET    /cron/jobs/{job_id}
PATCH  /cron/jobs/{job_id}
DELETE /cron/jobs/{job_id}
PUT    /cron/jobs/{job_id}/enabled
POST   /cron/jobs/{job_id}/run
GET    /cron/jobs/{job_id}/runs
POST   /cron/runs
DELETE /cron/runs
GET    /cron/runs/{run_id}
POST   /cron/runs/{run_id}/complete
GET    /cron/timeline
POST   /cron/schedules/preview
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Path, Query

from cronspine.api.deps import OpContext, Settings
from cronspine.api.schemas.common import PagedResponse, PageMeta, SuccessResponse
from cronspine.api.schemas.cron import (
    CamelModel,
    EditResultSchema,
    JobSchema,
    PruneResultSchema,
    RunSchema,
    SchedulePreviewSchema,
    TimelineSchema,
)
from cronspine.api.utils import _handle_error
from cronspine.ops import jobs as job_ops
from cronspine.ops import runs as run_ops
from cronspine.ops import timeline as timeline_ops
from cronspine.ops.requests import (
    CreateJobRequest,
    DeleteJobRequest,
    EditJobRequest,
    GetJobRequest,
    GetRunRequest,
    ListJobsRequest,
    ListRunsRequest,
    PreviewScheduleRequest,
    PruneRunsRequest,
    RecordRunCompletionRequest,
    RecordRunStartRequest,
    SetJobEnabledRequest,
    TimelineRequest,
    TriggerJobRequest,
)

router = APIRouter(prefix="/cron")


# ── Request bodies ───────────────────────────────────────────────────────


class CreateJobBody(CamelModel):
    name: str = ""
    schedule: str | dict[str, Any] = ""
    timezone: str | None = None
    description: str = ""
    session_target: str = "main"
    enabled: bool = True


class EditJobBody(CamelModel):
    name: str | None = None
    schedule: str | dict[str, Any] | None = None
    timezone: str | None = None
    description: str | None = None
    enabled: bool | None = None


class EnabledBody(CamelModel):
    enabled: bool


class RecordRunBody(CamelModel):
    job_id: str
    trigger: str = "schedule"
    job_name: str | None = None


class CompleteRunBody(CamelModel):
    status: str = "success"
    output: str | None = None
    error: str | None = None


class PreviewBody(CamelModel):
    schedule: str | dict[str, Any] = ""
    timezone: str | None = None
    count: int = 5


# ── Jobs ─────────────────────────────────────────────────────────────────


@router.get("/jobs", response_model=PagedResponse[JobSchema])
def list_jobs(
    ctx: OpContext,
    include_disabled: bool = Query(True, description="Include disabled jobs"),
):
    """List jobs known to the agent runtime.

    ``nextRun`` is recomputed on every call and is ``null`` for disabled
    jobs.

    Example:
        GET /api/v1/cron/jobs?include_disabled=false
    """
    result = job_ops.list_jobs(ctx, ListJobsRequest(include_disabled=include_disabled))
    if not result.success:
        return _handle_error(result)
    items = [JobSchema.from_job(job) for job in (result.data or [])]
    return PagedResponse(
        data=items,
        page=PageMeta(
            total=result.total,
            limit=result.limit,
            offset=result.offset,
            has_more=result.has_more,
        ),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )


@router.post("/jobs", response_model=SuccessResponse[JobSchema], status_code=201)
def create_job(ctx: OpContext, body: CreateJobBody, dry_run: bool = Query(False)):
    """Create a job.

    ``schedule`` is a cron string or a wire object
    ``{"kind": "every", "everyMs": 900000}``.

    Raises:
        400 VALIDATION_FAILED: Empty name, invalid cron or unknown timezone.
        502 RUNTIME_ERROR: The runtime refused the job.

    Example:
        POST /api/v1/cron/jobs
        {"name": "Morning report", "schedule": "0 9 * * 1-5", "timezone": "Europe/Berlin"}
    """
    ctx.dry_run = dry_run
    request = CreateJobRequest(
        name=body.name,
        schedule=body.schedule,
        timezone=body.timezone,
        description=body.description,
        session_target=body.session_target,
        enabled=body.enabled,
    )
    result = job_ops.create_job(ctx, request)
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(
        data=JobSchema.from_job(result.data),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )


@router.get("/jobs/{job_id}", response_model=SuccessResponse[JobSchema])
def get_job(ctx: OpContext, job_id: str = Path(..., description="Job ID")):
    """Get one job.

    Raises:
        400 VALIDATION_FAILED: Malformed job id.
        404 NOT_FOUND: Unknown job.
    """
    result = job_ops.get_job(ctx, GetJobRequest(job_id=job_id))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=JobSchema.from_job(result.data), elapsed_ms=result.elapsed_ms)


@router.patch("/jobs/{job_id}", response_model=SuccessResponse[EditResultSchema])
def edit_job(
    ctx: OpContext,
    body: EditJobBody,
    job_id: str = Path(..., description="Job ID"),
    dry_run: bool = Query(False),
):
    """Edit a job. Only provided fields change.

    Fields the runtime refuses are listed in ``data.ignored`` and repeated
    in ``warnings``; the response is still 200.

    Example:
        PATCH /api/v1/cron/jobs/nightly
        {"schedule": "30 2 * * *", "enabled": false}
    """
    ctx.dry_run = dry_run
    request = EditJobRequest(
        job_id=job_id,
        name=body.name,
        schedule=body.schedule,
        timezone=body.timezone,
        description=body.description,
        enabled=body.enabled,
    )
    result = job_ops.edit_job(ctx, request)
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(
        data=EditResultSchema.from_result(result.data),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )


@router.delete("/jobs/{job_id}", status_code=204)
def delete_job(ctx: OpContext, job_id: str = Path(..., description="Job ID")):
    """Delete a job. Its run history is kept.

    Returns:
        No content (204) on success.
    """
    result = job_ops.delete_job(ctx, DeleteJobRequest(job_id=job_id))
    if not result.success:
        return _handle_error(result)
    return None


@router.put("/jobs/{job_id}/enabled", response_model=SuccessResponse[JobSchema])
def set_job_enabled(
    ctx: OpContext,
    body: EnabledBody,
    job_id: str = Path(..., description="Job ID"),
):
    """Enable or disable a job.

    Example:
        PUT /api/v1/cron/jobs/nightly/enabled
        {"enabled": false}
    """
    result = job_ops.set_job_enabled(ctx, SetJobEnabledRequest(job_id=job_id, enabled=body.enabled))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=JobSchema.from_job(result.data), elapsed_ms=result.elapsed_ms)


@router.post("/jobs/{job_id}/run", response_model=SuccessResponse[RunSchema], status_code=202)
def trigger_job(ctx: OpContext, job_id: str = Path(..., description="Job ID")):
    """Run a job now.

    A pending run is recorded before the runtime is asked to start it.

    Raises:
        404 NOT_FOUND: Unknown job; nothing recorded.
        502 TRIGGER_FAILED: Runtime did not start the run;
            ``extensions.run_id`` names the recorded run.
    """
    result = job_ops.trigger_job(ctx, TriggerJobRequest(job_id=job_id))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=RunSchema.from_record(result.data), elapsed_ms=result.elapsed_ms)


@router.get("/jobs/{job_id}/runs", response_model=PagedResponse[RunSchema])
def list_job_runs(
    ctx: OpContext,
    settings: Settings,
    job_id: str = Path(..., description="Job ID"),
    status: str = Query("all", pattern="^(all|success|error)$"),
    window: str = Query("all", pattern="^(7d|30d|all)$"),
    limit: int = Query(100, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """Run history for one job, newest first.

    Works for deleted jobs too: history is kept locally.

    Example:
        GET /api/v1/cron/jobs/nightly/runs?status=error&window=7d
    """
    request = ListRunsRequest(
        job_id=job_id,
        status=status,
        window=window,
        limit=min(limit, settings.run_page_size),
        offset=offset,
        hung_after_seconds=settings.hung_run_after_seconds,
    )
    result = run_ops.list_runs(ctx, request)
    if not result.success:
        return _handle_error(result)
    items = [RunSchema.from_summary(run) for run in (result.data or [])]
    return PagedResponse(
        data=items,
        page=PageMeta(
            total=result.total,
            limit=result.limit,
            offset=result.offset,
            has_more=result.has_more,
        ),
        elapsed_ms=result.elapsed_ms,
    )


# ── Runs ─────────────────────────────────────────────────────────────────


@router.post("/runs", response_model=SuccessResponse[RunSchema], status_code=201)
def record_run_start(ctx: OpContext, body: RecordRunBody):
    """Record that a job run has started (called by the runtime's hooks)."""
    request = RecordRunStartRequest(job_id=body.job_id, trigger=body.trigger, job_name=body.job_name)
    result = run_ops.record_run_start(ctx, request)
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=RunSchema.from_record(result.data), elapsed_ms=result.elapsed_ms)


@router.delete("/runs", response_model=SuccessResponse[PruneResultSchema])
def prune_runs(
    ctx: OpContext,
    settings: Settings,
    older_than_days: int | None = Query(None, ge=1, description="Defaults to run_retention_days"),
    dry_run: bool = Query(False, description="Count only"),
):
    """Delete finished runs older than the retention window.

    Pending runs are kept regardless of age.
    """
    days = older_than_days if older_than_days is not None else settings.run_retention_days
    ctx.dry_run = dry_run
    result = run_ops.prune_runs(ctx, PruneRunsRequest(older_than_days=days))
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=PruneResultSchema.from_result(result.data), elapsed_ms=result.elapsed_ms)


@router.get("/runs/{run_id}", response_model=SuccessResponse[RunSchema])
def get_run(ctx: OpContext, settings: Settings, run_id: str = Path(..., description="Run ID")):
    """Get one run record."""
    result = run_ops.get_run(
        ctx, GetRunRequest(run_id=run_id, hung_after_seconds=settings.hung_run_after_seconds)
    )
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=RunSchema.from_summary(result.data), elapsed_ms=result.elapsed_ms)


@router.post("/runs/{run_id}/complete", response_model=SuccessResponse[RunSchema])
def complete_run(
    ctx: OpContext,
    body: CompleteRunBody,
    run_id: str = Path(..., description="Run ID"),
):
    """Record the outcome of a run.

    Raises:
        400 VALIDATION_FAILED: Status is not success or error.
        404 NOT_FOUND: Unknown run.
        409 ALREADY_COMPLETE: Completion was already recorded.
        409 CONFLICT: The run never started (trigger failed).
    """
    request = RecordRunCompletionRequest(
        run_id=run_id, status=body.status, output=body.output, error=body.error
    )
    result = run_ops.record_run_completion(ctx, request)
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=RunSchema.from_record(result.data), elapsed_ms=result.elapsed_ms)


# ── Timeline / preview ───────────────────────────────────────────────────


@router.get("/timeline", response_model=SuccessResponse[TimelineSchema])
def get_timeline(
    ctx: OpContext,
    settings: Settings,
    days: int | None = Query(None, ge=1, le=31, description="Number of day columns"),
    timezone: str | None = Query(None, description="IANA timezone for day boundaries"),
    include_elapsed: bool = Query(False, description="Keep today's past occurrences"),
):
    """Weekly calendar of upcoming runs for enabled jobs.

    Example:
        GET /api/v1/cron/timeline?timezone=America/New_York
    """
    request = TimelineRequest(
        horizon_days=days or settings.timeline_horizon_days,
        timezone=timezone or settings.display_timezone,
        max_occurrences=settings.timeline_max_occurrences,
        include_elapsed=include_elapsed,
    )
    result = timeline_ops.get_timeline(ctx, request)
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(data=TimelineSchema.from_timeline(result.data), elapsed_ms=result.elapsed_ms)


@router.post("/schedules/preview", response_model=SuccessResponse[SchedulePreviewSchema])
def preview_schedule(ctx: OpContext, body: PreviewBody):
    """Validate a schedule and list its next runs.

    An invalid schedule still returns 200 with ``valid: false``.

    Example:
        POST /api/v1/cron/schedules/preview
        {"schedule": "*/15 * * * *", "count": 3}
    """
    request = PreviewScheduleRequest(schedule=body.schedule, timezone=body.timezone, count=body.count)
    result = timeline_ops.preview_schedule(ctx, request)
    if not result.success:
        return _handle_error(result)
    return SuccessResponse(
        data=SchedulePreviewSchema.from_preview(result.data), elapsed_ms=result.elapsed_ms
    )
