"""
CLI: ``cronspine jobs``: job lifecycle commands.
"""

from __future__ import annotations

from typing import Any

import typer

from cronspine.cli.utils import make_context, output_paged, output_result, schedule_input
from cronspine.core.models.scheduler import CronJob, RunRecord
from cronspine.core.scheduling.expression import describe_schedule
from cronspine.core.scheduling.wire import preview, timezone_of
from cronspine.ops import jobs as job_ops
from cronspine.ops.requests import (
    CreateJobRequest,
    DeleteJobRequest,
    EditJobRequest,
    GetJobRequest,
    ListJobsRequest,
    SetJobEnabledRequest,
    TriggerJobRequest,
)
from cronspine.ops.responses import EditResult

app = typer.Typer(no_args_is_help=True)


def job_row(job: CronJob) -> dict[str, Any]:
    return {
        "id": job.id,
        "name": job.name,
        "schedule": describe_schedule(job.schedule),
        "timezone": timezone_of(job.schedule),
        "enabled": job.enabled,
        "next_run": job.next_run_at,
        "last_run": job.last_run_at,
        "description": preview(job.description, 40),
    }


def _job_detail(job: CronJob) -> dict[str, Any]:
    detail = job_row(job)
    detail["description"] = job.description
    detail["session_target"] = job.session_target
    detail["agent_id"] = job.agent_id
    return detail


def _edit_row(result: EditResult) -> dict[str, Any]:
    detail = _job_detail(result.job)
    detail["applied"] = ", ".join(result.applied) or "-"
    if result.ignored:
        detail["ignored"] = ", ".join(result.ignored)
    return detail


def run_row(run: RunRecord) -> dict[str, Any]:
    return {
        "id": run.id,
        "job_id": run.job_id,
        "status": run.status,
        "trigger": run.trigger,
        "started_at": run.started_at,
        "completed_at": run.completed_at,
        "duration_ms": run.duration_ms,
        "error": run.error or run.trigger_error,
    }


@app.command("list")
def list_jobs(
    include_disabled: bool = typer.Option(True, "--all/--enabled-only", help="Include disabled jobs"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List cron jobs known to the agent runtime."""
    ctx, _ = make_context(database)
    result = job_ops.list_jobs(ctx, ListJobsRequest(include_disabled=include_disabled))
    output_paged(result, as_json=json_out, title="Cron Jobs", row=job_row)


@app.command("show")
def show_job(
    job_id: str = typer.Argument(..., help="Job ID"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show job details."""
    ctx, _ = make_context(database)
    result = job_ops.get_job(ctx, GetJobRequest(job_id=job_id))
    output_result(result, as_json=json_out, title=f"Job: {job_id}", row=_job_detail)


@app.command("create")
def create_job(
    name: str = typer.Argument(..., help="Job name"),
    cron: str | None = typer.Option(None, "--cron", help="Cron expression, e.g. '0 9 * * 1-5'"),
    every: str | None = typer.Option(None, "--every", help="Interval, e.g. 15m"),
    at: str | None = typer.Option(None, "--at", help="One-shot ISO-8601 time"),
    tz: str | None = typer.Option(None, "--tz", help="IANA timezone for --cron"),
    description: str = typer.Option("", "--description", "-m", help="Agent prompt / payload"),
    session_target: str = typer.Option("main", "--session", help="Session target"),
    enabled: bool = typer.Option(True, "--enabled/--disabled"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate and preview only"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Create a new cron job."""
    schedule = schedule_input(cron, every, at)
    if schedule is None:
        raise typer.BadParameter("One of --cron, --every or --at is required")

    ctx, _ = make_context(database, dry_run=dry_run)
    request = CreateJobRequest(
        name=name,
        schedule=schedule,
        timezone=tz,
        description=description,
        session_target=session_target,
        enabled=enabled,
    )
    result = job_ops.create_job(ctx, request)
    title = "Job Preview (dry run)" if dry_run else "Job Created"
    output_result(result, as_json=json_out, title=title, row=_job_detail)


@app.command("edit")
def edit_job(
    job_id: str = typer.Argument(..., help="Job ID"),
    name: str | None = typer.Option(None, "--name"),
    cron: str | None = typer.Option(None, "--cron"),
    every: str | None = typer.Option(None, "--every"),
    at: str | None = typer.Option(None, "--at"),
    tz: str | None = typer.Option(None, "--tz"),
    description: str | None = typer.Option(None, "--description", "-m"),
    enabled: bool | None = typer.Option(None, "--enable/--disable"),
    dry_run: bool = typer.Option(False, "--dry-run"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Edit a job. Only the given options change."""
    ctx, _ = make_context(database, dry_run=dry_run)
    request = EditJobRequest(
        job_id=job_id,
        name=name,
        schedule=schedule_input(cron, every, at),
        timezone=tz,
        description=description,
        enabled=enabled,
    )
    result = job_ops.edit_job(ctx, request)
    output_result(result, as_json=json_out, title="Job Updated", row=_edit_row)


@app.command("enable")
def enable_job(
    job_id: str = typer.Argument(..., help="Job ID"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Enable a job."""
    ctx, _ = make_context(database)
    result = job_ops.set_job_enabled(ctx, SetJobEnabledRequest(job_id=job_id, enabled=True))
    output_result(result, as_json=json_out, title="Job Enabled", row=_job_detail)


@app.command("disable")
def disable_job(
    job_id: str = typer.Argument(..., help="Job ID"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Disable a job. It stays listed but never fires."""
    ctx, _ = make_context(database)
    result = job_ops.set_job_enabled(ctx, SetJobEnabledRequest(job_id=job_id, enabled=False))
    output_result(result, as_json=json_out, title="Job Disabled", row=_job_detail)


@app.command("delete")
def delete_job(
    job_id: str = typer.Argument(..., help="Job ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    dry_run: bool = typer.Option(False, "--dry-run"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Delete a job. Its run history is kept."""
    if not yes and not dry_run:
        typer.confirm(f"Delete job '{job_id}'?", abort=True)
    ctx, _ = make_context(database, dry_run=dry_run)
    result = job_ops.delete_job(ctx, DeleteJobRequest(job_id=job_id))
    output_result(result, as_json=json_out, title="Job Deleted")


@app.command("run")
def run_job(
    job_id: str = typer.Argument(..., help="Job ID"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Run a job now, outside its schedule."""
    ctx, _ = make_context(database)
    result = job_ops.trigger_job(ctx, TriggerJobRequest(job_id=job_id))
    output_result(result, as_json=json_out, title="Run Started", row=run_row)
