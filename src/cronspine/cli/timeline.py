"""
CLI: ``cronspine timeline``: upcoming runs as a day-by-day calendar.
"""

from __future__ import annotations

from zoneinfo import ZoneInfo

import typer
from rich.table import Table

from cronspine.cli.utils import console, load_settings, make_context, output_result
from cronspine.core.models.timeline import Timeline
from cronspine.ops.requests import TimelineRequest
from cronspine.ops.timeline import get_timeline


def render_timeline(timeline: Timeline) -> Table:
    """One column per day: recurring badges first, then timed events."""
    zone = ZoneInfo(timeline.timezone)
    names = {entry.job_id: entry.name for entry in timeline.legend}
    table = Table(title=f"Upcoming runs ({timeline.timezone})", show_lines=False)

    cells: list[str] = []
    for day in timeline.days:
        header = f"{day.label}\n{day.sub_label}"
        table.add_column(header, style="bold" if day.is_today else None, overflow="fold")
        lines = [f"[{b.color}]↻ {names.get(b.job_id, b.job_id)} ({b.label})[/]" for b in day.recurring_badges]
        lines += [
            f"[{e.color}]{e.time.astimezone(zone):%H:%M} {names.get(e.job_id, e.job_id)}[/]"
            for e in day.events
        ]
        cells.append("\n".join(lines) or "[dim]-[/dim]")
    table.add_row(*cells)
    return table


def timeline(
    days: int | None = typer.Option(None, "--days", min=1, max=31, help="Number of day columns"),
    tz: str | None = typer.Option(None, "--tz", help="IANA timezone for day boundaries"),
    include_elapsed: bool = typer.Option(False, "--include-elapsed", help="Keep today's past runs"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show the upcoming week of scheduled runs."""
    settings = load_settings()
    ctx, _ = make_context(database)
    request = TimelineRequest(
        horizon_days=days or settings.timeline_horizon_days,
        timezone=tz or settings.display_timezone,
        max_occurrences=settings.timeline_max_occurrences,
        include_elapsed=include_elapsed,
    )
    result = get_timeline(ctx, request)
    if json_out or not result.success:
        output_result(result, as_json=json_out)
        return

    console.print(render_timeline(result.data))
    if result.data.legend:
        legend = "  ".join(f"[{entry.color}]■[/] {entry.name}" for entry in result.data.legend)
        console.print(legend)
    console.print(f"[dim]{result.data.total_events} scheduled runs[/dim]")
