"""
Typed request objects for operations.

Each dataclass is the *input* contract of one operation function. Requests
carry transport-agnostic data only; schedules may arrive as a cron string
or as the wire dict ``{kind, expr?, tz?, everyMs?, anchorMs?, at?}``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# ------------------------------------------------------------------ #
# Job operations
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class ListJobsRequest:
    """Request for :func:`cronspine.ops.jobs.list_jobs`."""

    include_disabled: bool = True


@dataclass(frozen=True, slots=True)
class GetJobRequest:
    job_id: str = ""


@dataclass(frozen=True, slots=True)
class CreateJobRequest:
    """Request for :func:`cronspine.ops.jobs.create_job`."""

    name: str = ""
    schedule: Any = None  # cron string or wire dict
    timezone: str | None = None
    description: str = ""
    session_target: str = "main"
    enabled: bool = True


@dataclass(frozen=True, slots=True)
class EditJobRequest:
    """Request for :func:`cronspine.ops.jobs.edit_job`. ``None`` fields are unchanged."""

    job_id: str = ""
    name: str | None = None
    schedule: Any = None
    timezone: str | None = None
    description: str | None = None
    enabled: bool | None = None


@dataclass(frozen=True, slots=True)
class SetJobEnabledRequest:
    job_id: str = ""
    enabled: bool = True


@dataclass(frozen=True, slots=True)
class DeleteJobRequest:
    job_id: str = ""


@dataclass(frozen=True, slots=True)
class TriggerJobRequest:
    job_id: str = ""


# ------------------------------------------------------------------ #
# Run operations
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class RecordRunStartRequest:
    """Request for :func:`cronspine.ops.runs.record_run_start`."""

    job_id: str = ""
    trigger: str = "schedule"  # manual | schedule
    job_name: str | None = None


@dataclass(frozen=True, slots=True)
class RecordRunCompletionRequest:
    """Request for :func:`cronspine.ops.runs.record_run_completion`."""

    run_id: str = ""
    status: str = "success"  # success | error
    output: str | None = None
    error: str | None = None


@dataclass(frozen=True, slots=True)
class ListRunsRequest:
    """Request for :func:`cronspine.ops.runs.list_runs`.

    ``job_id=None`` lists runs across all jobs.
    """

    job_id: str | None = None
    status: str = "all"  # all | success | error
    window: str = "all"  # 7d | 30d | all
    limit: int = 100
    offset: int = 0
    hung_after_seconds: int = 3600


@dataclass(frozen=True, slots=True)
class GetRunRequest:
    run_id: str = ""
    hung_after_seconds: int = 3600


@dataclass(frozen=True, slots=True)
class ListRuntimeRunsRequest:
    """Request for :func:`cronspine.ops.runs.list_runtime_runs`."""

    job_id: str = ""


@dataclass(frozen=True, slots=True)
class PruneRunsRequest:
    """Request for :func:`cronspine.ops.runs.prune_runs`."""

    older_than_days: int = 90


# ------------------------------------------------------------------ #
# Timeline / preview
# ------------------------------------------------------------------ #


@dataclass(frozen=True, slots=True)
class TimelineRequest:
    """Request for :func:`cronspine.ops.timeline.get_timeline`."""

    horizon_days: int = 7
    timezone: str = "UTC"
    max_occurrences: int = 50
    include_elapsed: bool = False


@dataclass(frozen=True, slots=True)
class PreviewScheduleRequest:
    """Request for :func:`cronspine.ops.timeline.preview_schedule`."""

    schedule: Any = None
    timezone: str | None = None
    count: int = 5
