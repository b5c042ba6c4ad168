"""
Port to the external agent runtime that owns and executes cron jobs.

cronspine never persists jobs or runs payloads itself. Everything that
changes a job, and the act of starting a run, goes through a
:class:`CronRuntime`. Adapters live beside this module:

- ``cli.OpenClawCliRuntime``: shells out to ``openclaw cron ...``
- ``memory.InMemoryRuntime``: process-local store for development and tests

Adapters raise ``ExternalRuntimeError`` subclasses; the operations layer
turns those into ``RUNTIME_ERROR`` / ``TRIGGER_FAILED`` results.

Tags:
    runtime, port, protocol, adapter, cronspine
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from cronspine.core.models.scheduler import CronJob, RunRecord, RunStatus, ScheduleSpec

# Field names used in JobChanges and EditOutcome
EDITABLE_FIELDS = ("name", "schedule", "description")


@dataclass(frozen=True, slots=True)
class JobDraft:
    """Everything needed to create a job."""

    name: str
    schedule: ScheduleSpec
    description: str = ""
    session_target: str = "main"
    enabled: bool = True


@dataclass(frozen=True, slots=True)
class JobChanges:
    """Partial edit; ``None`` means unchanged."""

    name: str | None = None
    schedule: ScheduleSpec | None = None
    description: str | None = None

    def fields(self) -> dict[str, Any]:
        """Changed fields only, in ``EDITABLE_FIELDS`` order."""
        return {
            name: getattr(self, name)
            for name in EDITABLE_FIELDS
            if getattr(self, name) is not None
        }

    @property
    def is_empty(self) -> bool:
        return not self.fields()


@dataclass
class EditOutcome:
    """Which fields of an edit the runtime applied or ignored (with a reason)."""

    applied: list[str] = field(default_factory=list)
    ignored: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RunDispatch:
    """Runtime's answer to a run request.

    ``status`` is set only when the runtime finished the run synchronously.
    """

    status: RunStatus | None = None
    output: str | None = None
    error: str | None = None


@runtime_checkable
class CronRuntime(Protocol):
    """Operations the external runtime must support."""

    def list_jobs(self) -> list[CronJob]: ...

    def create_job(self, draft: JobDraft) -> CronJob | None:
        """Create a job; may return ``None`` if the runtime does not echo it back."""
        ...

    def edit_job(self, job_id: str, changes: JobChanges) -> EditOutcome: ...

    def set_enabled(self, job_id: str, enabled: bool) -> None: ...

    def delete_job(self, job_id: str) -> None: ...

    def run_job(self, job_id: str) -> RunDispatch: ...

    def run_history(self, job_id: str) -> list[RunRecord]: ...
