"""
Next-run calculation for every schedule kind.

Manifesto:
    Upcoming fire times are a pure function of (schedule, start instant).
    No clocks are read here and nothing is cached, so the same inputs
    always give the same strictly increasing list of UTC instants.

Semantics:
    - **cron:** evaluated in the job's own timezone with croniter. When both
      day-of-month and day-of-week are restricted a day matches if EITHER
      does; when only one is restricted only that one is checked. Searches
      stop after five years so impossible dates (``0 0 31 2 *``) yield ``[]``.
    - **every:** ``start + k * every_ms`` for k >= 1, or the anchored grid
      ``anchor + k * every_ms`` when an anchor is set, within the same
      five-year horizon.
    - **at:** the instant itself if it lies after ``start``.

Examples:
    >>> from datetime import datetime, UTC
    >>> from cronspine.core.models import CronSchedule
    >>> start = datetime(2024, 1, 1, tzinfo=UTC)
    >>> [d.strftime("%H:%M") for d in next_runs(CronSchedule("*/15 * * * *"), start, 4)]
    ['00:15', '00:30', '00:45', '01:00']

Tags:
    cron, croniter, scheduling, next-run, cronspine
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from croniter import CroniterError, croniter

from cronspine.core.errors import ValidationError
from cronspine.core.logging import get_logger
from cronspine.core.models.scheduler import (
    CronSchedule,
    IntervalSchedule,
    OneShotSchedule,
    ScheduleSpec,
)
from cronspine.core.scheduling.expression import (
    CronExpression,
    parse_cron,
    validate_schedule,
    validate_timezone,
)
from cronspine.core.timestamps import ensure_utc

logger = get_logger(__name__)

SEARCH_HORIZON_YEARS = 5
_SEARCH_HORIZON = timedelta(days=366 * SEARCH_HORIZON_YEARS)


def next_runs(spec: ScheduleSpec, start: datetime, count: int) -> list[datetime]:
    """Return up to *count* fire instants strictly after *start*, ascending, in UTC.

    Raises:
        ValidationError: *spec* is malformed.
    """
    if count <= 0:
        return []
    validate_schedule(spec)
    start = ensure_utc(start)

    match spec:
        case CronSchedule(expr=expr, timezone=tz):
            return _cron_runs(parse_cron(expr), tz, start, count)
        case IntervalSchedule(every_ms=every_ms, anchor=anchor):
            return _interval_runs(every_ms, anchor, start, count)
        case OneShotSchedule(at=at):
            at = ensure_utc(at)
            return [at] if at > start else []
    raise ValidationError(f"Unknown schedule type {type(spec).__name__}", field="schedule")


def next_run(spec: ScheduleSpec, start: datetime) -> datetime | None:
    """First fire instant after *start*, or ``None`` when the schedule is exhausted."""
    runs = next_runs(spec, start, 1)
    return runs[0] if runs else None


# ---------------------------------------------------------------------------
# cron
# ---------------------------------------------------------------------------


def _croniter_expression(cron: CronExpression) -> str:
    """Expression handed to croniter.

    croniter folds full-range day fields (``1-31``, ``*/1``) into ``*``, which
    would drop the OR between two restricted day fields. A full-range day
    field ORed with anything matches every day, so both become ``*``.
    """
    dom, dow = cron.day_of_month, cron.day_of_week
    if dom.restricted and dow.restricted and (len(dom.values) == 31 or len(dow.values) == 7):
        return " ".join((cron.minute.raw, cron.hour.raw, "*", cron.month.raw, "*"))
    return cron.normalized()


def _cron_runs(cron: CronExpression, tz: str, start: datetime, count: int) -> list[datetime]:
    zone = validate_timezone(tz)
    horizon = start + _SEARCH_HORIZON
    try:
        it = croniter(
            _croniter_expression(cron),
            start.astimezone(zone),
            day_or=True,
            max_years_between_matches=SEARCH_HORIZON_YEARS,
        )
    except CroniterError:
        # croniter rejects some impossible dates (Feb 30) up front
        logger.debug("cron_never_matches", expr=cron.source, timezone=tz)
        return []

    out: list[datetime] = []
    # DST folds can make croniter repeat a wall-clock time; skipped values
    # count against this budget so the loop always terminates.
    budget = count * 2 + 8
    while len(out) < count and budget > 0:
        budget -= 1
        try:
            candidate = it.get_next(datetime)
        except CroniterError:
            logger.debug("cron_search_exhausted", expr=cron.source, timezone=tz)
            break
        candidate = candidate.astimezone(UTC)
        if candidate > horizon:
            break
        if candidate <= start or (out and candidate <= out[-1]):
            continue
        out.append(candidate)
    return out


# ---------------------------------------------------------------------------
# every
# ---------------------------------------------------------------------------


def _interval_runs(
    every_ms: int, anchor: datetime | None, start: datetime, count: int
) -> list[datetime]:
    step = timedelta(milliseconds=every_ms)
    if anchor is None:
        first = start + step
    else:
        anchor = ensure_utc(anchor)
        if anchor > start:
            first = anchor
        else:
            elapsed_ms = (start - anchor) // timedelta(milliseconds=1)
            first = anchor + timedelta(milliseconds=(elapsed_ms // every_ms + 1) * every_ms)

    horizon = start + _SEARCH_HORIZON
    out: list[datetime] = []
    candidate = first
    while len(out) < count and candidate <= horizon:
        out.append(candidate)
        candidate += step
    return out
