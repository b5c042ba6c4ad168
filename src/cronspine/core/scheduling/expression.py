"""
Schedule expression parsing, validation and human-readable descriptions.

Manifesto:
    A cron string is accepted only if every one of its five fields is
    well-formed and inside its domain. There is no partial acceptance:
    ``70 * * * *`` is rejected outright rather than clamped. Descriptions
    are cosmetic and never fail; anything unparseable is echoed back.

Architecture:
    ::

        "*/15 9-17 * * 1-5"
              │ split on whitespace (exactly 5)
              ▼
        ┌──────────┬────────┬──────────────┬────────┬─────────────┐
        │ minute   │ hour   │ day-of-month │ month  │ day-of-week │
        │ 0-59     │ 0-23   │ 1-31         │ 1-12   │ 0-6 (Sun=0) │
        └──────────┴────────┴──────────────┴────────┴─────────────┘
              │ each field: *  N  N-M  N,M,...  */N
              ▼
        CronExpression(fields=(ParsedField, ...))

Features:
    - **parse_cron():** strict parse, raises ``ValidationError`` naming the field
    - **validate():** boolean form of the same check
    - **describe():** "At 09:00, Monday through Friday"
    - **validate_schedule():** checks any ``ScheduleSpec`` including timezone
    - **humanize_interval():** "Every 15m", "Every 2h", "Every 1d"
    - **build_cron():** frequency-mode builder plus ready-made templates

Tags:
    cron, parser, validation, scheduling, cronspine
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from cronspine.core.errors import ValidationError
from cronspine.core.models.scheduler import (
    CronSchedule,
    IntervalSchedule,
    OneShotSchedule,
    ScheduleSpec,
)
from cronspine.core.timestamps import ensure_utc

_FIELD_RE = re.compile(r"^(?:\*|\d+|\d+-\d+|\d+(?:,\d+)+|\*/\d+)$")

# (name, low, high)
FIELD_DOMAINS: tuple[tuple[str, int, int], ...] = (
    ("minute", 0, 59),
    ("hour", 0, 23),
    ("day_of_month", 1, 31),
    ("month", 1, 12),
    ("day_of_week", 0, 6),
)

SECOND_MS = 1_000
MINUTE_MS = 60 * SECOND_MS
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS
# Longest interval accepted; matches the next-run search horizon.
MAX_INTERVAL_MS = 5 * 366 * DAY_MS

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


@dataclass(frozen=True, slots=True)
class ParsedField:
    """One cron field after parsing.

    Attributes:
        name: Field name (``minute``, ``hour``, ...)
        raw: Source text of the field
        values: Expanded set of matching integers
    """

    name: str
    raw: str
    values: frozenset[int]

    @property
    def restricted(self) -> bool:
        """``False`` only for a literal ``*``."""
        return self.raw != "*"


@dataclass(frozen=True, slots=True)
class CronExpression:
    """A validated five-field cron expression."""

    source: str
    minute: ParsedField
    hour: ParsedField
    day_of_month: ParsedField
    month: ParsedField
    day_of_week: ParsedField

    @property
    def fields(self) -> tuple[ParsedField, ...]:
        return (self.minute, self.hour, self.day_of_month, self.month, self.day_of_week)

    def normalized(self) -> str:
        """Fields joined by single spaces."""
        return " ".join(f.raw for f in self.fields)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _parse_field(raw: str, name: str, low: int, high: int) -> ParsedField:
    if not _FIELD_RE.match(raw):
        raise ValidationError(
            f"Invalid {name} field '{raw}'",
            field=name,
            value=raw,
            constraint="one of *, N, N-M, N,M,... or */N",
        )

    def _in_domain(n: int) -> int:
        if n < low or n > high:
            raise ValidationError(
                f"{name} value {n} outside {low}-{high}",
                field=name,
                value=raw,
                constraint=f"{low}-{high}",
            )
        return n

    if raw == "*":
        values = frozenset(range(low, high + 1))
    elif raw.startswith("*/"):
        step = int(raw[2:])
        if step < 1 or step > high:
            raise ValidationError(
                f"{name} step {step} outside 1-{high}",
                field=name,
                value=raw,
                constraint=f"step 1-{high}",
            )
        values = frozenset(range(low, high + 1, step))
    elif "-" in raw:
        start_s, end_s = raw.split("-", 1)
        start, end = _in_domain(int(start_s)), _in_domain(int(end_s))
        if start > end:
            raise ValidationError(
                f"{name} range {raw} is descending",
                field=name,
                value=raw,
                constraint="N <= M",
            )
        values = frozenset(range(start, end + 1))
    else:
        values = frozenset(_in_domain(int(part)) for part in raw.split(","))

    return ParsedField(name=name, raw=raw, values=values)


def parse_cron(expr: str) -> CronExpression:
    """Parse a five-field cron expression.

    Raises:
        ValidationError: wrong field count or any malformed/out-of-domain field.
    """
    if not isinstance(expr, str):
        raise ValidationError("Cron expression must be a string", field="expr", value=expr)
    parts = expr.split()
    if len(parts) != 5:
        raise ValidationError(
            f"Cron expression must have exactly 5 fields, got {len(parts)}",
            field="expr",
            value=expr,
            constraint="5 fields",
        )
    parsed = [
        _parse_field(raw, name, low, high)
        for raw, (name, low, high) in zip(parts, FIELD_DOMAINS, strict=True)
    ]
    return CronExpression(expr, *parsed)


def validate(expr: str) -> bool:
    """``True`` iff *expr* is a well-formed five-field cron expression."""
    try:
        parse_cron(expr)
    except ValidationError:
        return False
    return True


def validate_timezone(name: str) -> ZoneInfo:
    """Resolve an IANA timezone name or raise ``ValidationError``."""
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Timezone is required", field="timezone", value=name)
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(
            f"Unknown timezone '{name}'", field="timezone", value=name, cause=exc
        ) from exc


def validate_schedule(spec: ScheduleSpec) -> None:
    """Raise ``ValidationError`` unless *spec* can be evaluated."""
    match spec:
        case CronSchedule(expr=expr, timezone=tz):
            parse_cron(expr)
            validate_timezone(tz)
        case IntervalSchedule(every_ms=every_ms, anchor=anchor):
            if isinstance(every_ms, bool) or not isinstance(every_ms, int) or every_ms <= 0:
                raise ValidationError(
                    "Interval must be a positive number of milliseconds",
                    field="every_ms",
                    value=every_ms,
                    constraint="> 0",
                )
            if every_ms > MAX_INTERVAL_MS:
                raise ValidationError(
                    "Interval must not exceed five years",
                    field="every_ms",
                    value=every_ms,
                    constraint=f"<= {MAX_INTERVAL_MS}",
                )
            if anchor is not None and not isinstance(anchor, datetime):
                raise ValidationError("Interval anchor must be a datetime", field="anchor", value=anchor)
        case OneShotSchedule(at=at):
            if not isinstance(at, datetime):
                raise ValidationError("One-shot time must be a datetime", field="at", value=at)
        case _:
            raise ValidationError(f"Unknown schedule type {type(spec).__name__}", field="schedule")


def is_valid_schedule(spec: ScheduleSpec) -> bool:
    try:
        validate_schedule(spec)
    except ValidationError:
        return False
    return True


# ---------------------------------------------------------------------------
# Descriptions
# ---------------------------------------------------------------------------


def _join(items: list[str]) -> str:
    if len(items) == 1:
        return items[0]
    return ", ".join(items[:-1]) + " and " + items[-1]


def _ints(f: ParsedField) -> list[int]:
    return [int(p) for p in f.raw.split(",")]


def _is_list_or_int(f: ParsedField) -> bool:
    return f.raw[0].isdigit() and "-" not in f.raw


def _time_phrase(minute: ParsedField, hour: ParsedField) -> str:
    if _is_list_or_int(minute) and _is_list_or_int(hour):
        times = [f"{h:02d}:{m:02d}" for h in _ints(hour) for m in _ints(minute)]
        return f"At {_join(times)}"

    if minute.raw == "*":
        phrase = "Every minute"
    elif minute.raw.startswith("*/"):
        step = int(minute.raw[2:])
        phrase = "Every minute" if step == 1 else f"Every {step} minutes"
    elif "-" in minute.raw:
        lo, hi = minute.raw.split("-")
        phrase = f"Every minute from {lo} through {hi}"
    else:
        mins = _ints(minute)
        phrase = f"At minute {_join([str(m) for m in mins])}"

    if hour.raw == "*":
        if _is_list_or_int(minute):
            phrase += " past every hour"
        return phrase
    if hour.raw.startswith("*/"):
        step = int(hour.raw[2:])
        return phrase + (" past every hour" if step == 1 else f" past every {step} hours")
    if "-" in hour.raw:
        lo, hi = hour.raw.split("-")
        return phrase + f", between {int(lo):02d}:00 and {int(hi):02d}:59"
    return phrase + f", during hour {_join([f'{h:02d}' for h in _ints(hour)])}"


def _dow_phrase(f: ParsedField) -> str:
    if f.raw.startswith("*/"):
        return f"every {int(f.raw[2:])} days of the week"
    if "-" in f.raw:
        lo, hi = (int(p) for p in f.raw.split("-"))
        if (lo, hi) == (1, 5):
            return "Monday through Friday"
        return f"{DAY_NAMES[lo]} through {DAY_NAMES[hi]}"
    return "on " + _join([DAY_NAMES[d] for d in _ints(f)])


def _dom_phrase(f: ParsedField) -> str:
    if f.raw.startswith("*/"):
        return f"every {int(f.raw[2:])} days"
    if "-" in f.raw:
        lo, hi = f.raw.split("-")
        return f"on days {lo} through {hi} of the month"
    days = _ints(f)
    noun = "day" if len(days) == 1 else "days"
    return f"on {noun} {_join([str(d) for d in days])} of the month"


def _month_phrase(f: ParsedField) -> str:
    if f.raw.startswith("*/"):
        return f"every {int(f.raw[2:])} months"
    if "-" in f.raw:
        lo, hi = (int(p) for p in f.raw.split("-"))
        return f"{MONTH_NAMES[lo - 1]} through {MONTH_NAMES[hi - 1]}"
    return "in " + _join([MONTH_NAMES[m - 1] for m in _ints(f)])


def describe(expr: str) -> str:
    """Best-effort English description of a cron expression.

    Invalid input is returned unchanged.

    >>> describe("0 9 * * 1-5")
    'At 09:00, Monday through Friday'
    >>> describe("*/15 * * * *")
    'Every 15 minutes'
    """
    try:
        cron = parse_cron(expr)
    except ValidationError:
        return expr

    parts = [_time_phrase(cron.minute, cron.hour)]

    dom, dow = cron.day_of_month, cron.day_of_week
    if dom.restricted and dow.restricted:
        parts.append(f"{_dom_phrase(dom)} or {_dow_phrase(dow)}")
    elif dow.restricted:
        parts.append(_dow_phrase(dow))
    elif dom.restricted:
        parts.append(_dom_phrase(dom))

    if cron.month.restricted:
        parts.append(_month_phrase(cron.month))

    return ", ".join(parts)


def humanize_interval(every_ms: int) -> str:
    """Compact label for a fixed period using the largest whole unit.

    >>> humanize_interval(900_000)
    'Every 15m'
    >>> humanize_interval(2 * 86_400_000)
    'Every 2d'
    """
    if every_ms >= DAY_MS:
        return f"Every {round(every_ms / DAY_MS)}d"
    if every_ms >= HOUR_MS:
        return f"Every {round(every_ms / HOUR_MS)}h"
    if every_ms >= MINUTE_MS:
        return f"Every {round(every_ms / MINUTE_MS)}m"
    return f"Every {round(every_ms / SECOND_MS)}s"


def describe_schedule(spec: ScheduleSpec) -> str:
    """Display string for any schedule kind."""
    match spec:
        case CronSchedule(expr=expr, timezone=tz):
            text = describe(expr)
            return text if tz == "UTC" else f"{text} ({tz})"
        case IntervalSchedule(every_ms=every_ms):
            if isinstance(every_ms, int) and every_ms > 0:
                return humanize_interval(every_ms)
            return f"Every {every_ms}ms"
        case OneShotSchedule(at=at):
            if isinstance(at, datetime):
                return f"Once at {ensure_utc(at):%Y-%m-%d %H:%M} UTC"
            return f"Once at {at}"
    return str(spec)


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

FREQUENCY_MODES = ("every-minutes", "hourly", "daily", "weekly", "monthly")

CRON_TEMPLATES: tuple[tuple[str, str], ...] = (
    ("Daily backup at 3 AM", "0 3 * * *"),
    ("Weekday morning report (9 AM)", "0 9 * * 1-5"),
    ("Hourly health check", "0 * * * *"),
    ("Every 15 minutes", "*/15 * * * *"),
    ("Weekly cleanup (Sunday midnight)", "0 0 * * 0"),
    ("First of month report", "0 8 1 * *"),
    ("Every 5 minutes", "*/5 * * * *"),
    ("Twice daily (9 AM & 9 PM)", "0 9,21 * * *"),
)


def build_cron(
    mode: str,
    *,
    minutes: int = 5,
    minute: int = 0,
    hour: int = 9,
    days: list[int] | tuple[int, ...] = (1,),
    day: int = 1,
) -> str:
    """Build a cron expression from a frequency mode.

    Raises:
        ValidationError: unknown mode, or the built expression is invalid.
    """
    match mode:
        case "every-minutes":
            expr = f"*/{minutes} * * * *"
        case "hourly":
            expr = f"{minute} * * * *"
        case "daily":
            expr = f"{minute} {hour} * * *"
        case "weekly":
            day_list = ",".join(str(d) for d in sorted(set(days))) or "1"
            expr = f"{minute} {hour} * * {day_list}"
        case "monthly":
            expr = f"{minute} {hour} {day} * *"
        case _:
            raise ValidationError(
                f"Unknown frequency mode '{mode}'",
                field="mode",
                value=mode,
                constraint=", ".join(FREQUENCY_MODES),
            )
    parse_cron(expr)
    return expr
