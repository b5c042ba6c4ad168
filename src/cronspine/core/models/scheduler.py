"""Scheduling models: schedule specs, cron jobs and run records.

Manifesto:
    A job's schedule is one of three shapes, never a bag of optional
    fields. Each shape is its own frozen dataclass and code dispatches on
    it with ``match``, so adding a kind is a type error everywhere it is
    not handled.

Constructors never validate; runtime payloads may be malformed and must
still be representable. Use ``cronspine.core.scheduling.expression
.validate_schedule`` before acting on a spec.

Tags:
    cronspine, models, scheduling, dataclasses, cron

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ScheduleKind(str, Enum):
    """Discriminator for :data:`ScheduleSpec`."""

    CRON = "cron"
    EVERY = "every"
    AT = "at"


@dataclass(frozen=True, slots=True)
class CronSchedule:
    """Five-field cron expression evaluated in an IANA timezone."""

    expr: str
    timezone: str = "UTC"

    @property
    def kind(self) -> ScheduleKind:
        return ScheduleKind.CRON


@dataclass(frozen=True, slots=True)
class IntervalSchedule:
    """Fixed period in milliseconds.

    With an ``anchor`` occurrences sit on ``anchor + k * every_ms``;
    without one they are counted from the evaluation instant.
    """

    every_ms: int
    anchor: datetime | None = None

    @property
    def kind(self) -> ScheduleKind:
        return ScheduleKind.EVERY


@dataclass(frozen=True, slots=True)
class OneShotSchedule:
    """Single absolute instant."""

    at: datetime

    @property
    def kind(self) -> ScheduleKind:
        return ScheduleKind.AT


ScheduleSpec = CronSchedule | IntervalSchedule | OneShotSchedule


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


@dataclass
class CronJob:
    """A named schedule plus payload, owned by the external runtime.

    ``next_run_at`` is derived on every read and is ``None`` when the job is
    disabled or its schedule cannot fire again.
    """

    id: str
    name: str
    schedule: ScheduleSpec
    enabled: bool = True
    description: str = ""
    session_target: str = "main"
    agent_id: str = "main"
    last_run_at: datetime | None = None
    next_run_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------


class RunStatus(str, Enum):
    """Run record status.

    Local records go ``pending`` -> ``success`` | ``error``. ``running`` only
    appears in history reported by the runtime.
    """

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (RunStatus.SUCCESS, RunStatus.ERROR)


class RunTrigger(str, Enum):
    """What caused a run to start."""

    MANUAL = "manual"
    SCHEDULE = "schedule"


@dataclass
class RunRecord:
    """One execution attempt of a job (``cron_runs`` row)."""

    id: str
    job_id: str
    started_at: datetime
    status: RunStatus = RunStatus.PENDING
    completed_at: datetime | None = None
    duration_ms: int | None = None
    error: str | None = None
    output: str | None = None
    trigger: RunTrigger = RunTrigger.MANUAL
    trigger_error: str | None = None
    job_name: str | None = None

    @property
    def is_complete(self) -> bool:
        return self.completed_at is not None

    @property
    def trigger_failed(self) -> bool:
        return self.trigger_error is not None
