"""
Cron schemas for the API layer.

Thin Pydantic mirrors of ``cronspine.core.models`` and
``cronspine.ops.responses`` with camelCase JSON names, which is the shape
the dashboard frontend consumes. Schedules are passed through in the
runtime's wire form ``{kind, expr?, tz?, everyMs?, anchorMs?, at?}``.

Tags:
    cronspine, api, schemas, camelCase

Doc-Types: API_REFERENCE
"""

from __future__ import annotations

import datetime as dt
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from cronspine.core.models.scheduler import CronJob, RunRecord
from cronspine.core.models.timeline import Timeline
from cronspine.core.scheduling.expression import describe_schedule
from cronspine.core.scheduling.wire import preview, schedule_to_wire, timezone_of
from cronspine.ops.responses import EditResult, PruneResult, RunSummary, SchedulePreview

RunStatusName = Literal["pending", "running", "success", "error"]
"""
Run status values:

- ``pending``: recorded, not yet reported complete
- ``running``: reported by the runtime's own history only
- ``success``: finished without error
- ``error``: finished with an error (message in ``error``)
"""


class CamelModel(BaseModel):
    """Base for camelCase JSON models that also accept snake_case input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Jobs ─────────────────────────────────────────────────────────────────


class JobSchema(CamelModel):
    """A cron job as shown in the job list and editor.

    UI Hints:
        Show ``scheduleDisplay`` instead of the raw expression.
        ``nextRun`` is ``null`` for disabled jobs and exhausted one-shots.
    """

    id: str
    name: str
    description: str = ""
    description_preview: str = ""
    enabled: bool = True
    schedule: dict[str, Any] = Field(default_factory=dict)
    schedule_display: str = ""
    timezone: str = "UTC"
    session_target: str = "main"
    agent_id: str = "main"
    next_run: datetime | None = None
    last_run: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_job(cls, job: CronJob) -> JobSchema:
        return cls(
            id=job.id,
            name=job.name,
            description=job.description,
            description_preview=preview(job.description),
            enabled=job.enabled,
            schedule=schedule_to_wire(job.schedule),
            schedule_display=describe_schedule(job.schedule),
            timezone=timezone_of(job.schedule),
            session_target=job.session_target,
            agent_id=job.agent_id,
            next_run=job.next_run_at,
            last_run=job.last_run_at,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )


class EditResultSchema(CamelModel):
    """Outcome of a job edit: the job after the edit plus per-field status."""

    job: JobSchema
    applied: list[str] = Field(default_factory=list)
    ignored: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_result(cls, result: EditResult) -> EditResultSchema:
        return cls(
            job=JobSchema.from_job(result.job),
            applied=list(result.applied),
            ignored=dict(result.ignored),
        )


# ── Runs ─────────────────────────────────────────────────────────────────


class RunSchema(CamelModel):
    """One run in a job's history.

    UI Hints:
        Badge ``hung`` runs; show ``triggerError`` distinctly from ``error``.
    """

    id: str
    job_id: str
    job_name: str | None = None
    status: RunStatusName
    trigger: str
    started_at: datetime
    completed_at: datetime | None = None
    duration_ms: int | None = None
    error: str | None = None
    output: str | None = None
    trigger_error: str | None = None
    trigger_failed: bool = False
    hung: bool = False

    @classmethod
    def from_summary(cls, summary: RunSummary) -> RunSchema:
        return cls(
            id=summary.id,
            job_id=summary.job_id,
            job_name=summary.job_name,
            status=summary.status,
            trigger=summary.trigger,
            started_at=summary.started_at,
            completed_at=summary.completed_at,
            duration_ms=summary.duration_ms,
            error=summary.error,
            output=summary.output,
            trigger_error=summary.trigger_error,
            trigger_failed=summary.trigger_failed,
            hung=summary.hung,
        )

    @classmethod
    def from_record(cls, run: RunRecord) -> RunSchema:
        return cls(
            id=run.id,
            job_id=run.job_id,
            job_name=run.job_name,
            status=run.status.value,
            trigger=run.trigger.value,
            started_at=run.started_at,
            completed_at=run.completed_at,
            duration_ms=run.duration_ms,
            error=run.error,
            output=run.output,
            trigger_error=run.trigger_error,
            trigger_failed=run.trigger_failed,
        )


class PruneResultSchema(CamelModel):
    deleted: int
    cutoff: datetime
    dry_run: bool = False

    @classmethod
    def from_result(cls, result: PruneResult) -> PruneResultSchema:
        return cls(deleted=result.deleted, cutoff=result.cutoff, dry_run=result.dry_run)


# ── Timeline ─────────────────────────────────────────────────────────────


class TimelineEventSchema(CamelModel):
    job_id: str
    time: datetime
    color: str


class RecurringBadgeSchema(CamelModel):
    job_id: str
    label: str
    color: str


class DayColumnSchema(CamelModel):
    date: dt.date
    label: str
    sub_label: str
    is_today: bool = False
    events: list[TimelineEventSchema] = Field(default_factory=list)
    recurring_badges: list[RecurringBadgeSchema] = Field(default_factory=list)


class LegendEntrySchema(CamelModel):
    job_id: str
    name: str
    color: str


class TimelineSchema(CamelModel):
    """Seven-day (by default) projection of enabled jobs.

    UI Hints:
        Render ``days`` as columns; ``recurringBadges`` once per column
        for sub-daily interval jobs, ``events`` as time-ordered chips.
    """

    days: list[DayColumnSchema]
    legend: list[LegendEntrySchema]
    generated_at: datetime
    horizon_days: int
    timezone: str
    total_events: int = 0

    @classmethod
    def from_timeline(cls, timeline: Timeline) -> TimelineSchema:
        return cls(
            days=[
                DayColumnSchema(
                    date=day.date,
                    label=day.label,
                    sub_label=day.sub_label,
                    is_today=day.is_today,
                    events=[
                        TimelineEventSchema(job_id=e.job_id, time=e.time, color=e.color)
                        for e in day.events
                    ],
                    recurring_badges=[
                        RecurringBadgeSchema(job_id=b.job_id, label=b.label, color=b.color)
                        for b in day.recurring_badges
                    ],
                )
                for day in timeline.days
            ],
            legend=[
                LegendEntrySchema(job_id=entry.job_id, name=entry.name, color=entry.color)
                for entry in timeline.legend
            ],
            generated_at=timeline.generated_at,
            horizon_days=timeline.horizon_days,
            timezone=timeline.timezone,
            total_events=timeline.total_events,
        )


# ── Schedule preview ─────────────────────────────────────────────────────


class SchedulePreviewSchema(CamelModel):
    """Validation result and upcoming runs for a candidate schedule.

    UI Hints:
        When ``valid`` is false show ``error`` under the schedule input.
    """

    valid: bool
    kind: str | None = None
    display: str = ""
    timezone: str = "UTC"
    next_runs: list[datetime] = Field(default_factory=list)
    error: str | None = None

    @classmethod
    def from_preview(cls, result: SchedulePreview) -> SchedulePreviewSchema:
        return cls(
            valid=result.valid,
            kind=result.kind,
            display=result.display,
            timezone=result.timezone,
            next_runs=list(result.next_runs),
            error=result.error,
        )
