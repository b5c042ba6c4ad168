"""In-memory runtime adapter.

Keeps jobs in the same raw JSON shape the ``openclaw`` CLI reports, so the
codec in ``cronspine.core.scheduling.wire`` is exercised exactly as in
production. Used by ``CRONSPINE_RUNTIME=memory`` and throughout the tests.

Knobs for simulating a real runtime:

- ``rejected_fields``: edit fields the runtime refuses
- ``available``: ``False`` makes every call raise ``RuntimeUnavailableError``
- ``executor``: callable deciding how a triggered run ends; without one,
  runs are accepted and left to finish asynchronously
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Any

from cronspine.core.errors import JobNotFoundError, RuntimeUnavailableError
from cronspine.core.models.scheduler import CronJob, RunRecord
from cronspine.core.scheduling.wire import job_from_runtime, job_to_runtime, schedule_to_wire
from cronspine.core.timestamps import to_epoch_ms, utc_now
from cronspine.runtime.protocol import EditOutcome, JobChanges, JobDraft, RunDispatch


class InMemoryRuntime:
    """Thread-safe, process-local ``CronRuntime``."""

    def __init__(
        self,
        jobs: list[CronJob] | None = None,
        *,
        rejected_fields: set[str] | None = None,
        executor: Callable[[CronJob], RunDispatch] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._lock = threading.Lock()
        self._jobs: dict[str, dict[str, Any]] = {}
        self._history: dict[str, list[RunRecord]] = {}
        self.rejected_fields = set(rejected_fields or ())
        self.executor = executor
        self.clock = clock
        self.available = True
        self.run_requests: list[str] = []
        for job in jobs or []:
            self._jobs[job.id] = job_to_runtime(job)

    # ------------------------------------------------------------------
    # CronRuntime
    # ------------------------------------------------------------------

    def list_jobs(self) -> list[CronJob]:
        self._check_available()
        with self._lock:
            return [job_from_runtime(dict(raw)) for raw in self._jobs.values()]

    def create_job(self, draft: JobDraft) -> CronJob:
        self._check_available()
        now_ms = to_epoch_ms(self.clock())
        raw = {
            "id": uuid.uuid4().hex[:12],
            "agentId": "main",
            "name": draft.name,
            "enabled": draft.enabled,
            "createdAtMs": now_ms,
            "updatedAtMs": now_ms,
            "schedule": schedule_to_wire(draft.schedule),
            "sessionTarget": draft.session_target,
            "payload": {"kind": "agentTurn", "message": draft.description},
            "state": {},
        }
        with self._lock:
            self._jobs[raw["id"]] = raw
        return job_from_runtime(raw)

    def edit_job(self, job_id: str, changes: JobChanges) -> EditOutcome:
        self._check_available()
        outcome = EditOutcome()
        with self._lock:
            raw = self._require(job_id)
            for name, value in changes.fields().items():
                if name in self.rejected_fields:
                    outcome.ignored[name] = f"runtime does not support editing '{name}'"
                    continue
                match name:
                    case "name":
                        raw["name"] = value
                    case "schedule":
                        raw["schedule"] = schedule_to_wire(value)
                    case "description":
                        raw["payload"] = {"kind": "agentTurn", "message": value}
                outcome.applied.append(name)
            if outcome.applied:
                raw["updatedAtMs"] = to_epoch_ms(self.clock())
        return outcome

    def set_enabled(self, job_id: str, enabled: bool) -> None:
        self._check_available()
        with self._lock:
            raw = self._require(job_id)
            raw["enabled"] = enabled
            raw["updatedAtMs"] = to_epoch_ms(self.clock())

    def delete_job(self, job_id: str) -> None:
        self._check_available()
        with self._lock:
            self._require(job_id)
            del self._jobs[job_id]

    def run_job(self, job_id: str) -> RunDispatch:
        self._check_available()
        with self._lock:
            raw = self._require(job_id)
            raw.setdefault("state", {})["lastRunAtMs"] = to_epoch_ms(self.clock())
            job = job_from_runtime(dict(raw))
            self.run_requests.append(job_id)
        if self.executor is None:
            return RunDispatch()
        return self.executor(job)

    def run_history(self, job_id: str) -> list[RunRecord]:
        self._check_available()
        with self._lock:
            self._require(job_id)
            return list(self._history.get(job_id, []))

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def seed(self, job: CronJob) -> None:
        """Store *job* as-is, keeping its id."""
        with self._lock:
            self._jobs[job.id] = job_to_runtime(job)

    def seed_raw(self, raw: dict[str, Any]) -> None:
        """Store a runtime job document verbatim, malformed fields included."""
        with self._lock:
            self._jobs[str(raw["id"])] = dict(raw)

    def record_history(self, run: RunRecord) -> None:
        """Seed runtime-side history for ``run_history``."""
        with self._lock:
            self._history.setdefault(run.job_id, []).append(run)

    def raw_job(self, job_id: str) -> dict[str, Any]:
        with self._lock:
            return dict(self._require(job_id))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _require(self, job_id: str) -> dict[str, Any]:
        raw = self._jobs.get(job_id)
        if raw is None:
            raise JobNotFoundError(job_id)
        return raw

    def _check_available(self) -> None:
        if not self.available:
            raise RuntimeUnavailableError("in-memory runtime marked unavailable")

    def __repr__(self) -> str:
        return f"InMemoryRuntime(jobs={len(self._jobs)})"
