"""
Shared pytest fixtures for cronspine tests.

This module provides:
- An in-memory SQLite connection with the ``cron_runs`` schema
- A pinned clock (Monday 2024-01-01 00:00 UTC) so schedules are deterministic
- An in-memory runtime seeded per test
- ``ctx`` / ``dry_ctx`` operation contexts wired to all of the above
"""

from __future__ import annotations

from collections.abc import Generator
from datetime import UTC, datetime

import pytest
import structlog

from cronspine.core.models.scheduler import CronJob, CronSchedule, IntervalSchedule
from cronspine.core.scheduling.schema import ensure_schema
from cronspine.ops.context import OperationContext
from cronspine.ops.sqlite_conn import SqliteConnection
from cronspine.runtime.memory import InMemoryRuntime

NOW = datetime(2024, 1, 1, 0, 0, tzinfo=UTC)


class FrozenClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now


@pytest.fixture(autouse=True)
def _reset_structlog() -> Generator[None, None, None]:
    """Undo any ``configure_logging`` done by a CLI or API test."""
    yield
    structlog.reset_defaults()


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture()
def conn() -> Generator[SqliteConnection, None, None]:
    """In-memory SQLite connection with the run-history schema."""
    connection = SqliteConnection(":memory:")
    ensure_schema(connection)
    yield connection
    connection.close()


@pytest.fixture()
def runtime(clock: FrozenClock) -> InMemoryRuntime:
    """Empty in-memory runtime sharing the test clock."""
    return InMemoryRuntime(clock=clock)


@pytest.fixture()
def ctx(conn: SqliteConnection, runtime: InMemoryRuntime, clock: FrozenClock) -> OperationContext:
    return OperationContext(conn=conn, runtime=runtime, caller="test", clock=clock)


@pytest.fixture()
def dry_ctx(conn: SqliteConnection, runtime: InMemoryRuntime, clock: FrozenClock) -> OperationContext:
    return OperationContext(conn=conn, runtime=runtime, caller="test", clock=clock, dry_run=True)


def make_job(
    job_id: str = "nightly",
    *,
    name: str | None = None,
    expr: str = "0 9 * * *",
    timezone: str = "UTC",
    enabled: bool = True,
    every_ms: int | None = None,
    description: str = "",
) -> CronJob:
    """Build a ``CronJob`` with a cron schedule (or an interval when *every_ms* is set)."""
    schedule = (
        IntervalSchedule(every_ms=every_ms)
        if every_ms is not None
        else CronSchedule(expr=expr, timezone=timezone)
    )
    return CronJob(
        id=job_id,
        name=name or job_id.replace("-", " ").title(),
        schedule=schedule,
        enabled=enabled,
        description=description,
        created_at=NOW,
        updated_at=NOW,
    )
