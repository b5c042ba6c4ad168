"""
CLI: ``cronspine runs``: run history commands.
"""

from __future__ import annotations

from typing import Any

import typer

from cronspine.cli.jobs import run_row
from cronspine.cli.utils import load_settings, make_context, output_paged, output_result
from cronspine.ops import runs as run_ops
from cronspine.ops.requests import (
    GetRunRequest,
    ListRunsRequest,
    ListRuntimeRunsRequest,
    PruneRunsRequest,
    RecordRunCompletionRequest,
    RecordRunStartRequest,
)
from cronspine.ops.responses import RunSummary

app = typer.Typer(no_args_is_help=True)


def summary_row(run: RunSummary) -> dict[str, Any]:
    flag = "hung" if run.hung else ("trigger failed" if run.trigger_failed else "")
    return {
        "id": run.id,
        "job": run.job_name or run.job_id,
        "status": run.status,
        "trigger": run.trigger,
        "started_at": run.started_at,
        "duration_ms": run.duration_ms,
        "error": run.error or run.trigger_error,
        "flag": flag,
    }


@app.command("list")
def list_runs(
    job_id: str | None = typer.Argument(None, help="Only runs of this job"),
    status: str = typer.Option("all", "--status", "-s", help="all | success | error"),
    window: str = typer.Option("all", "--window", "-w", help="7d | 30d | all"),
    limit: int = typer.Option(20, "--limit", "-n"),
    offset: int = typer.Option(0, "--offset"),
    remote: bool = typer.Option(False, "--remote", help="Ask the runtime for its own history"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List run history, newest first."""
    if remote:
        if job_id is None:
            raise typer.BadParameter("--remote needs a JOB_ID")
        ctx, _ = make_context(database)
        result = run_ops.list_runtime_runs(ctx, ListRuntimeRunsRequest(job_id=job_id))
        output_result(result, as_json=json_out, title=f"Runtime history: {job_id}", row=run_row)
        return

    settings = load_settings()
    ctx, _ = make_context(database, with_runtime=False)
    request = ListRunsRequest(
        job_id=job_id,
        status=status,
        window=window,
        limit=min(limit, settings.run_page_size),
        offset=offset,
        hung_after_seconds=settings.hung_run_after_seconds,
    )
    result = run_ops.list_runs(ctx, request)
    output_paged(result, as_json=json_out, title="Runs", row=summary_row)


@app.command("show")
def show_run(
    run_id: str = typer.Argument(..., help="Run ID"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show one run, including its output."""
    settings = load_settings()
    ctx, _ = make_context(database, with_runtime=False)
    result = run_ops.get_run(
        ctx, GetRunRequest(run_id=run_id, hung_after_seconds=settings.hung_run_after_seconds)
    )
    output_result(result, as_json=json_out, title=f"Run: {run_id}")


@app.command("start")
def start_run(
    job_id: str = typer.Argument(..., help="Job ID"),
    trigger: str = typer.Option("schedule", "--trigger", help="manual | schedule"),
    job_name: str | None = typer.Option(None, "--job-name"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Record that a run has started."""
    ctx, _ = make_context(database)
    request = RecordRunStartRequest(job_id=job_id, trigger=trigger, job_name=job_name)
    result = run_ops.record_run_start(ctx, request)
    output_result(result, as_json=json_out, title="Run Recorded", row=run_row)


@app.command("complete")
def complete_run(
    run_id: str = typer.Argument(..., help="Run ID"),
    status: str = typer.Option("success", "--status", "-s", help="success | error"),
    output: str | None = typer.Option(None, "--output", "-o"),
    error: str | None = typer.Option(None, "--error", "-e"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Record the outcome of a run."""
    ctx, _ = make_context(database, with_runtime=False)
    request = RecordRunCompletionRequest(run_id=run_id, status=status, output=output, error=error)
    result = run_ops.record_run_completion(ctx, request)
    output_result(result, as_json=json_out, title="Run Completed", row=run_row)


@app.command("prune")
def prune_runs(
    older_than_days: int | None = typer.Option(
        None, "--older-than-days", help="Defaults to CRONSPINE_RUN_RETENTION_DAYS"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Count only"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Delete finished runs older than the retention window."""
    days = older_than_days if older_than_days is not None else load_settings().run_retention_days
    ctx, _ = make_context(database, dry_run=dry_run, with_runtime=False)
    result = run_ops.prune_runs(ctx, PruneRunsRequest(older_than_days=days))
    output_result(result, as_json=json_out, title="Runs Pruned")
