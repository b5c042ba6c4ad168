"""
Typed response objects for operations.

Each dataclass is the *output* of one operation beyond the generic
:class:`OperationResult` envelope. Responses carry domain data only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from cronspine.core.models.scheduler import CronJob, RunRecord, RunStatus

# ------------------------------------------------------------------ #
# Job responses
# ------------------------------------------------------------------ #


@dataclass(slots=True)
class EditResult:
    """Result payload for :func:`cronspine.ops.jobs.edit_job`.

    ``ignored`` maps each field the runtime refused to the reason it gave.
    """

    job: CronJob
    applied: list[str] = field(default_factory=list)
    ignored: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class DeletedJob:
    """Result payload for :func:`cronspine.ops.jobs.delete_job`."""

    job_id: str
    name: str
    dry_run: bool = False


# ------------------------------------------------------------------ #
# Run responses
# ------------------------------------------------------------------ #


@dataclass(slots=True)
class RunSummary:
    """Flattened run record plus derived flags for history views.

    ``hung`` marks a pending run older than the configured threshold;
    ``trigger_failed`` marks a run the runtime never started.
    """

    id: str
    job_id: str
    status: str
    trigger: str
    started_at: datetime
    completed_at: datetime | None = None
    duration_ms: int | None = None
    error: str | None = None
    output: str | None = None
    trigger_error: str | None = None
    job_name: str | None = None
    hung: bool = False
    trigger_failed: bool = False

    @classmethod
    def from_record(
        cls, run: RunRecord, *, now: datetime, hung_after_seconds: int = 3600
    ) -> RunSummary:
        hung = (
            run.status is RunStatus.PENDING
            and run.trigger_error is None
            and now - run.started_at > timedelta(seconds=hung_after_seconds)
        )
        return cls(
            id=run.id,
            job_id=run.job_id,
            status=RunStatus(run.status).value,
            trigger=str(getattr(run.trigger, "value", run.trigger)),
            started_at=run.started_at,
            completed_at=run.completed_at,
            duration_ms=run.duration_ms,
            error=run.error,
            output=run.output,
            trigger_error=run.trigger_error,
            job_name=run.job_name,
            hung=hung,
            trigger_failed=run.trigger_error is not None,
        )


@dataclass(frozen=True, slots=True)
class PruneResult:
    """Result payload for :func:`cronspine.ops.runs.prune_runs`."""

    deleted: int
    cutoff: datetime
    dry_run: bool = False


# ------------------------------------------------------------------ #
# Schedule preview
# ------------------------------------------------------------------ #


@dataclass(slots=True)
class SchedulePreview:
    """Result payload for :func:`cronspine.ops.timeline.preview_schedule`."""

    valid: bool
    kind: str | None = None
    display: str = ""
    timezone: str = "UTC"
    next_runs: list[datetime] = field(default_factory=list)
    error: str | None = None
