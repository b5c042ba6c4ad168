"""Run repository - persistence for cron run records.

Manifesto:
    A run record is written once as ``pending`` and finalised exactly once.
    The finalising UPDATE is conditional on the record still being open,
    so two racing completions cannot both succeed; the loser sees
    ``RunAlreadyCompletedError`` and the stored record is untouched.

Tags:
    cronspine, scheduling, repository, sqlite, run-history

Doc-Types:
    api-reference


┌──────────────────────────────────────────────────────────────────────┐
│  RunRepository                                                        │
│                                                                       │
│   create(run)                         → RunRecord   (pending)         │
│   get(run_id)                         → RunRecord | None              │
│   complete(run_id, status, at, ...)   → RunRecord   (exactly once)    │
│   mark_trigger_failed(run_id, msg)    → RunRecord   (stays pending)   │
│   list_for_job(job_id, ...)           → list[RunRecord] newest first  │
│   count_for_job(job_id, ...)          → int                           │
│   purge_finished_before(cutoff)       → int                           │
└──────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

from cronspine.core.errors import (
    RunAlreadyCompletedError,
    RunNotFoundError,
    RunStateError,
    ValidationError,
)
from cronspine.core.logging import get_logger
from cronspine.core.models.scheduler import RunRecord, RunStatus, RunTrigger
from cronspine.core.protocols import Connection
from cronspine.core.timestamps import ensure_utc, from_db, to_db, utc_now

logger = get_logger(__name__)

_COLUMNS = (
    "id",
    "job_id",
    "job_name",
    "trigger",
    "status",
    "started_at",
    "completed_at",
    "duration_ms",
    "error",
    "output",
    "trigger_error",
)
_SELECT = f"SELECT {', '.join(_COLUMNS)} FROM cron_runs"


class RunRepository:
    """Data access for the ``cron_runs`` table."""

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    # === Writes ===

    def create(self, run: RunRecord) -> RunRecord:
        """Insert a new run record.

        Raises:
            RunNotFoundError: the inserted row cannot be read back.
        """
        self.conn.execute(
            """
            INSERT INTO cron_runs (
                id, job_id, job_name, trigger, status, started_at,
                completed_at, duration_ms, error, output, trigger_error, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                run.id,
                run.job_id,
                run.job_name,
                RunTrigger(run.trigger).value,
                RunStatus(run.status).value,
                to_db(run.started_at),
                to_db(run.completed_at),
                run.duration_ms,
                run.error,
                run.output,
                run.trigger_error,
                to_db(utc_now()),
            ),
        )
        self.conn.commit()
        stored = self.get(run.id)
        if stored is None:
            raise RunNotFoundError(run.id)
        return stored

    def complete(
        self,
        run_id: str,
        status: RunStatus,
        completed_at: datetime,
        *,
        output: str | None = None,
        error: str | None = None,
    ) -> RunRecord:
        """Finalise an open run.

        ``duration_ms`` is ``completed_at - started_at`` in whole milliseconds,
        clamped at zero.

        Raises:
            ValidationError: *status* is not terminal.
            RunNotFoundError: unknown *run_id*.
            RunAlreadyCompletedError: the run was already finalised.
            RunStateError: the run's trigger failed, so it can never complete.
        """
        status = RunStatus(status)
        if not status.is_terminal:
            raise ValidationError(
                f"Completion status must be success or error, got '{status.value}'",
                field="status",
                value=status.value,
                constraint="success | error",
            )

        current = self.get(run_id)
        if current is None:
            raise RunNotFoundError(run_id)

        completed_at = ensure_utc(completed_at)
        duration_ms = max(0, (completed_at - current.started_at) // timedelta(milliseconds=1))

        cursor = self.conn.execute(
            """
            UPDATE cron_runs
            SET status = ?, completed_at = ?, duration_ms = ?, output = ?, error = ?
            WHERE id = ? AND completed_at IS NULL AND trigger_error IS NULL
            """,
            (status.value, to_db(completed_at), duration_ms, output, error, run_id),
        )
        updated = cursor.rowcount
        self.conn.commit()

        if updated == 0:
            latest = self.get(run_id)
            if latest is not None and latest.trigger_error is not None:
                raise RunStateError(
                    f"Run '{run_id}' failed to trigger and cannot be completed"
                ).with_context(run_id=run_id)
            raise RunAlreadyCompletedError(run_id)

        logger.debug("run_row_completed", run_id=run_id, status=status.value, duration_ms=duration_ms)
        result = self.get(run_id)
        if result is None:
            raise RunNotFoundError(run_id)
        return result

    def mark_trigger_failed(self, run_id: str, message: str) -> RunRecord:
        """Record that the runtime could not be told to start this run."""
        self.conn.execute(
            "UPDATE cron_runs SET trigger_error = ? WHERE id = ? AND completed_at IS NULL",
            (message, run_id),
        )
        self.conn.commit()
        run = self.get(run_id)
        if run is None:
            raise RunNotFoundError(run_id)
        return run

    def purge_finished_before(self, cutoff: datetime) -> int:
        """Delete completed runs and failed triggers started before *cutoff*.

        Open (pending, triggered) runs are never purged.
        """
        cursor = self.conn.execute(
            """
            DELETE FROM cron_runs
            WHERE started_at < ?
              AND (completed_at IS NOT NULL OR trigger_error IS NOT NULL)
            """,
            (to_db(cutoff),),
        )
        deleted = cursor.rowcount
        self.conn.commit()
        return deleted

    def count_finished_before(self, cutoff: datetime) -> int:
        """Number of rows ``purge_finished_before`` would delete."""
        cursor = self.conn.execute(
            """
            SELECT COUNT(*) FROM cron_runs
            WHERE started_at < ?
              AND (completed_at IS NOT NULL OR trigger_error IS NOT NULL)
            """,
            (to_db(cutoff),),
        )
        row = cursor.fetchone()
        return int(row[0]) if row is not None else 0

    # === Reads ===

    def get(self, run_id: str) -> RunRecord | None:
        cursor = self.conn.execute(f"{_SELECT} WHERE id = ?", (run_id,))
        row = cursor.fetchone()
        return self._row_to_run(row) if row is not None else None

    def list_for_job(
        self,
        job_id: str | None,
        *,
        statuses: Sequence[RunStatus] | None = None,
        since: datetime | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[RunRecord]:
        """Runs newest first. ``job_id=None`` lists across all jobs."""
        where, params = self._filters(job_id, statuses, since)
        cursor = self.conn.execute(
            f"{_SELECT}{where} ORDER BY started_at DESC, id DESC LIMIT ? OFFSET ?",
            (*params, limit, offset),
        )
        return [self._row_to_run(row) for row in cursor.fetchall()]

    def count_for_job(
        self,
        job_id: str | None,
        *,
        statuses: Sequence[RunStatus] | None = None,
        since: datetime | None = None,
    ) -> int:
        where, params = self._filters(job_id, statuses, since)
        cursor = self.conn.execute(f"SELECT COUNT(*) FROM cron_runs{where}", params)
        row = cursor.fetchone()
        return int(row[0]) if row is not None else 0

    # === Private Helpers ===

    @staticmethod
    def _filters(
        job_id: str | None,
        statuses: Sequence[RunStatus] | None,
        since: datetime | None,
    ) -> tuple[str, tuple]:
        clauses: list[str] = []
        params: list = []
        if job_id is not None:
            clauses.append("job_id = ?")
            params.append(job_id)
        if statuses:
            clauses.append(f"status IN ({', '.join('?' for _ in statuses)})")
            params.extend(RunStatus(s).value for s in statuses)
        if since is not None:
            clauses.append("started_at >= ?")
            params.append(to_db(since))
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, tuple(params)

    @staticmethod
    def _row_to_run(row: Sequence) -> RunRecord:
        """Convert database row to RunRecord model."""
        data = dict(zip(_COLUMNS, row, strict=False))
        return RunRecord(
            id=data["id"],
            job_id=data["job_id"],
            job_name=data["job_name"],
            trigger=RunTrigger(data["trigger"]),
            status=RunStatus(data["status"]),
            started_at=from_db(data["started_at"]),
            completed_at=from_db(data["completed_at"]),
            duration_ms=data["duration_ms"],
            error=data["error"],
            output=data["output"],
            trigger_error=data["trigger_error"],
        )
