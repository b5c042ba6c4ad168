"""
CLI: ``cronspine schedule``: offline schedule tools.

None of these commands contact the agent runtime.
"""

from __future__ import annotations

from typing import Any

import typer

from cronspine.cli.utils import console, err_console, make_context, output_result, schedule_input
from cronspine.core.errors import ValidationError
from cronspine.core.scheduling.expression import CRON_TEMPLATES, FREQUENCY_MODES, build_cron
from cronspine.ops.requests import PreviewScheduleRequest
from cronspine.ops.responses import SchedulePreview
from cronspine.ops.timeline import preview_schedule

app = typer.Typer(no_args_is_help=True)


def _preview(cron: str | None, every: str | None, at: str | None, tz: str | None, count: int):
    schedule = schedule_input(cron, every, at)
    if schedule is None:
        raise typer.BadParameter("One of EXPR, --every or --at is required")
    ctx, _ = make_context(":memory:", with_runtime=False)
    return preview_schedule(ctx, PreviewScheduleRequest(schedule=schedule, timezone=tz, count=count))


def _preview_row(preview: SchedulePreview) -> dict[str, Any]:
    return {
        "valid": preview.valid,
        "kind": preview.kind,
        "display": preview.display,
        "timezone": preview.timezone,
        "next_runs": [t.isoformat() for t in preview.next_runs],
        "error": preview.error,
    }


@app.command("validate")
def validate_schedule(
    expr: str | None = typer.Argument(None, help="Cron expression"),
    every: str | None = typer.Option(None, "--every"),
    at: str | None = typer.Option(None, "--at"),
    tz: str | None = typer.Option(None, "--tz"),
) -> None:
    """Check a schedule; exits 1 when it is invalid."""
    result = _preview(expr, every, at, tz, 1)
    if not result.success:
        output_result(result)
    if not result.data.valid:
        err_console.print(f"[bold red]Invalid[/bold red]: {result.data.error}")
        raise typer.Exit(code=1)
    console.print(f"[green]Valid[/green]: {result.data.display}")


@app.command("describe")
def describe_schedule(
    expr: str | None = typer.Argument(None, help="Cron expression"),
    every: str | None = typer.Option(None, "--every"),
    at: str | None = typer.Option(None, "--at"),
    tz: str | None = typer.Option(None, "--tz"),
) -> None:
    """Print the human-readable form of a schedule."""
    result = _preview(expr, every, at, tz, 1)
    if not result.success:
        output_result(result)
    if not result.data.valid:
        err_console.print(f"[bold red]Invalid[/bold red]: {result.data.error}")
        raise typer.Exit(code=1)
    console.print(result.data.display)


@app.command("next")
def next_runs(
    expr: str | None = typer.Argument(None, help="Cron expression"),
    every: str | None = typer.Option(None, "--every"),
    at: str | None = typer.Option(None, "--at"),
    tz: str | None = typer.Option(None, "--tz"),
    count: int = typer.Option(5, "--count", "-n", min=1, max=50),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List the next runs of a schedule."""
    result = _preview(expr, every, at, tz, count)
    if result.success and not result.data.valid and not json_out:
        err_console.print(f"[bold red]Invalid[/bold red]: {result.data.error}")
        raise typer.Exit(code=1)
    output_result(result, as_json=json_out, title="Schedule Preview", row=_preview_row)


@app.command("templates")
def templates() -> None:
    """List common cron templates."""
    for label, expr in CRON_TEMPLATES:
        console.print(f"  [cyan]{expr:<16}[/cyan] {label}")


@app.command("build")
def build(
    mode: str = typer.Argument(..., help=" | ".join(FREQUENCY_MODES)),
    minutes: int = typer.Option(5, "--minutes", help="Step for every-minutes"),
    minute: int = typer.Option(0, "--minute"),
    hour: int = typer.Option(9, "--hour"),
    days: list[int] = typer.Option([1], "--day-of-week", help="Repeat for weekly (0=Sunday)"),
    day: int = typer.Option(1, "--day-of-month"),
) -> None:
    """Build a cron expression from a frequency mode."""
    try:
        expr = build_cron(mode, minutes=minutes, minute=minute, hour=hour, days=days, day=day)
    except ValidationError as exc:
        err_console.print(f"[bold red]Error[/bold red] (VALIDATION_FAILED): {exc.message}")
        raise typer.Exit(code=1) from exc
    console.print(expr)
