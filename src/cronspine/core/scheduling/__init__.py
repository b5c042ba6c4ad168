"""Scheduling maths and run persistence for cronspine.

- expression: cron parsing, validation and descriptions
- calculator: next-run computation for every schedule kind
- timeline: weekly calendar projection
- repository / schema: SQLite run history
- wire: runtime JSON codec

Tags:
    cronspine, scheduling, cron
"""

from cronspine.core.scheduling.calculator import next_run, next_runs
from cronspine.core.scheduling.expression import (
    describe,
    describe_schedule,
    humanize_interval,
    is_valid_schedule,
    parse_cron,
    validate,
    validate_schedule,
)
from cronspine.core.scheduling.repository import RunRepository
from cronspine.core.scheduling.schema import ensure_schema
from cronspine.core.scheduling.timeline import JOB_COLORS, build_timeline, job_color

__all__ = [
    "JOB_COLORS",
    "RunRepository",
    "build_timeline",
    "describe",
    "describe_schedule",
    "ensure_schema",
    "humanize_interval",
    "is_valid_schedule",
    "job_color",
    "next_run",
    "next_runs",
    "parse_cron",
    "validate",
    "validate_schedule",
]
