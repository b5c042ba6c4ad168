"""
Weekly timeline projection of enabled jobs.

Manifesto:
    The timeline is a read-only view. It is rebuilt from the current job
    list on every request and never stored, so disabling or deleting a
    job removes it from the next projection without any cleanup.

Rules:
    - Only enabled jobs with valid schedules are placed.
    - Colours cycle ``JOB_COLORS`` by position among enabled jobs.
    - Interval jobs shorter than a day become one badge per day column.
    - Everything else is enumerated (bounded by ``max_occurrences``) and
      bucketed by calendar day in the display timezone.
    - Events in a day are sorted by time.

Example:
    ::

        Today      Thu 17     Fri 18   ...
        ────────   ────────   ────────
        [15m]      [15m]      [15m]        <- recurring badge
        09:00 ●    09:00 ●    09:00 ●      <- cron "0 9 * * 1-5"
        14:30 ◆                            <- one-shot

Tags:
    timeline, calendar, projection, scheduling, cronspine
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, time, timedelta

from cronspine.core.logging import get_logger
from cronspine.core.models.scheduler import CronJob, IntervalSchedule
from cronspine.core.models.timeline import (
    DayColumn,
    LegendEntry,
    RecurringBadge,
    Timeline,
    TimelineEvent,
)
from cronspine.core.scheduling.calculator import next_runs
from cronspine.core.scheduling.expression import (
    DAY_MS,
    humanize_interval,
    is_valid_schedule,
    validate_timezone,
)
from cronspine.core.timestamps import ensure_utc

logger = get_logger(__name__)

JOB_COLORS: tuple[str, ...] = (
    "#FF6B6B",
    "#4FC3F7",
    "#81C784",
    "#FFB74D",
    "#CE93D8",
    "#F48FB1",
    "#80DEEA",
    "#FFCC02",
    "#A5D6A7",
    "#FF8A65",
)


def job_color(index: int) -> str:
    """Colour for the job at *index* among enabled jobs."""
    return JOB_COLORS[index % len(JOB_COLORS)]


def build_timeline(
    jobs: Iterable[CronJob],
    now: datetime,
    horizon_days: int = 7,
    *,
    timezone: str = "UTC",
    max_occurrences: int = 50,
    include_elapsed: bool = False,
) -> Timeline:
    """Project *jobs* onto ``horizon_days`` day columns starting today.

    Args:
        jobs: Jobs in display order; disabled ones are ignored.
        now: Reference instant.
        horizon_days: Number of day columns; events later than
            ``now + horizon_days`` are dropped.
        timezone: IANA zone that defines calendar days.
        max_occurrences: Per-job enumeration bound.
        include_elapsed: Also place today's occurrences that are already past.

    Raises:
        ValidationError: *timezone* is unknown.
    """
    zone = validate_timezone(timezone)
    now = ensure_utc(now)
    today = now.astimezone(zone).date()
    start_of_today = datetime.combine(today, time.min, tzinfo=zone)
    horizon_end = now + timedelta(days=horizon_days)
    search_from = start_of_today - timedelta(microseconds=1) if include_elapsed else now

    days: list[DayColumn] = []
    for offset in range(horizon_days):
        day = today + timedelta(days=offset)
        is_today = offset == 0
        short = f"{day:%a} {day.day}"
        days.append(
            DayColumn(
                date=day,
                label="Today" if is_today else short,
                sub_label=short if is_today else f"{day:%b}",
                is_today=is_today,
            )
        )
    by_date = {d.date: d for d in days}

    legend: list[LegendEntry] = []
    enabled = [job for job in jobs if job.enabled]
    for index, job in enumerate(enabled):
        if not is_valid_schedule(job.schedule):
            logger.debug("timeline_job_skipped", job_id=job.id, reason="invalid_schedule")
            continue
        color = job_color(index)
        legend.append(LegendEntry(job_id=job.id, name=job.name, color=color))

        spec = job.schedule
        if isinstance(spec, IntervalSchedule) and spec.every_ms < DAY_MS:
            badge = RecurringBadge(job_id=job.id, label=humanize_interval(spec.every_ms), color=color)
            for column in days:
                column.recurring_badges.append(badge)
            continue

        for instant in next_runs(spec, search_from, max_occurrences):
            if instant > horizon_end:
                break
            if instant < start_of_today:
                continue
            column = by_date.get(instant.astimezone(zone).date())
            if column is not None:
                column.events.append(TimelineEvent(job_id=job.id, time=instant, color=color))

    for column in days:
        column.events.sort(key=lambda e: e.time)

    return Timeline(
        days=days,
        legend=legend,
        generated_at=now,
        horizon_days=horizon_days,
        timezone=timezone,
    )
