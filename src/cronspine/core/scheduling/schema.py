"""Run history schema (SQLite).

``cron_runs`` has no foreign key into the job store: jobs live in the
external runtime and deleting one must leave its history intact.

Tags:
    cronspine, schema, sqlite, ddl
"""

from __future__ import annotations

from cronspine.core.protocols import Connection

RUNS_TABLE = "cron_runs"

RUNS_DDL = """
CREATE TABLE IF NOT EXISTS cron_runs (
    id              TEXT PRIMARY KEY,
    job_id          TEXT NOT NULL,
    job_name        TEXT,
    trigger         TEXT NOT NULL DEFAULT 'manual',
    status          TEXT NOT NULL DEFAULT 'pending',
    started_at      TEXT NOT NULL,
    completed_at    TEXT,
    duration_ms     INTEGER,
    error           TEXT,
    output          TEXT,
    trigger_error   TEXT,
    created_at      TEXT NOT NULL
)
"""

RUNS_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_cron_runs_job_started ON cron_runs (job_id, started_at)",
    "CREATE INDEX IF NOT EXISTS idx_cron_runs_status ON cron_runs (status)",
)


def ensure_schema(conn: Connection) -> None:
    """Create the run history table and its indexes if missing (idempotent)."""
    conn.execute(RUNS_DDL)
    for ddl in RUNS_INDEXES:
        conn.execute(ddl)
    conn.commit()
