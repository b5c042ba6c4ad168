"""Dataclass models for cron jobs, schedules, run records and timeline projections.

Modules
-------
scheduler
    Schedule specifications (cron / interval / one-shot), cron jobs and
    run records.
timeline
    Derived weekly calendar shapes. Never persisted.

Tags:
    cronspine, models, dataclasses, stdlib
"""

from cronspine.core.models.scheduler import (
    CronJob,
    CronSchedule,
    IntervalSchedule,
    OneShotSchedule,
    RunRecord,
    RunStatus,
    RunTrigger,
    ScheduleKind,
    ScheduleSpec,
)
from cronspine.core.models.timeline import (
    DayColumn,
    LegendEntry,
    RecurringBadge,
    Timeline,
    TimelineEvent,
)

__all__ = [
    "CronJob",
    "CronSchedule",
    "DayColumn",
    "IntervalSchedule",
    "LegendEntry",
    "OneShotSchedule",
    "RecurringBadge",
    "RunRecord",
    "RunStatus",
    "RunTrigger",
    "ScheduleKind",
    "ScheduleSpec",
    "Timeline",
    "TimelineEvent",
]
