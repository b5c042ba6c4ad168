"""Tests for the SQLite run history repository."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from cronspine.core.errors import (
    RunAlreadyCompletedError,
    RunNotFoundError,
    RunStateError,
    ValidationError,
)
from cronspine.core.models.scheduler import RunRecord, RunStatus, RunTrigger
from cronspine.core.scheduling.repository import RunRepository
from cronspine.core.scheduling.schema import ensure_schema

T0 = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)


def _run(run_id: str, job_id: str = "nightly", started_at: datetime = T0, **kwargs) -> RunRecord:
    return RunRecord(id=run_id, job_id=job_id, started_at=started_at, **kwargs)


@pytest.fixture()
def repo(conn) -> RunRepository:
    return RunRepository(conn)


class TestSchema:
    def test_ensure_schema_is_idempotent(self, conn):
        ensure_schema(conn)
        ensure_schema(conn)
        assert RunRepository(conn).count_for_job(None) == 0


class TestCreate:
    def test_round_trips_fields(self, repo):
        stored = repo.create(_run("r1", job_name="Nightly", trigger=RunTrigger.MANUAL))
        assert stored.id == "r1"
        assert stored.status is RunStatus.PENDING
        assert stored.trigger is RunTrigger.MANUAL
        assert stored.job_name == "Nightly"
        assert stored.started_at == T0
        assert stored.completed_at is None

    def test_millisecond_precision(self, repo):
        started = T0.replace(microsecond=123_456)
        assert repo.create(_run("r1", started_at=started)).started_at == T0.replace(microsecond=123_000)

    def test_row_missing_after_insert(self, repo, monkeypatch):
        monkeypatch.setattr(repo, "get", lambda run_id: None)
        with pytest.raises(RunNotFoundError):
            repo.create(_run("r1"))


class TestComplete:
    def test_sets_duration(self, repo):
        repo.create(_run("r1"))
        run = repo.complete("r1", RunStatus.SUCCESS, T0 + timedelta(seconds=42), output="done")
        assert run.status is RunStatus.SUCCESS
        assert run.duration_ms == 42_000
        assert run.output == "done"
        assert run.is_complete

    def test_duration_clamped_at_zero(self, repo):
        repo.create(_run("r1"))
        run = repo.complete("r1", RunStatus.ERROR, T0 - timedelta(seconds=5), error="clock skew")
        assert run.duration_ms == 0
        assert run.error == "clock skew"

    def test_second_completion_rejected(self, repo):
        repo.create(_run("r1"))
        repo.complete("r1", RunStatus.SUCCESS, T0 + timedelta(seconds=1), output="first")
        with pytest.raises(RunAlreadyCompletedError):
            repo.complete("r1", RunStatus.ERROR, T0 + timedelta(seconds=2), error="second")
        stored = repo.get("r1")
        assert stored.status is RunStatus.SUCCESS
        assert stored.output == "first"
        assert stored.error is None

    def test_unknown_run(self, repo):
        with pytest.raises(RunNotFoundError):
            repo.complete("missing", RunStatus.SUCCESS, T0)

    def test_row_deleted_before_read_back(self, repo, conn, monkeypatch):
        repo.create(_run("r1"))
        original_get = repo.get
        calls = []

        def get_then_vanish(run_id):
            calls.append(run_id)
            if len(calls) == 1:
                return original_get(run_id)
            conn.execute("DELETE FROM cron_runs WHERE id = ?", (run_id,))
            conn.commit()
            return original_get(run_id)

        monkeypatch.setattr(repo, "get", get_then_vanish)
        with pytest.raises(RunNotFoundError):
            repo.complete("r1", RunStatus.SUCCESS, T0 + timedelta(seconds=1))

    def test_non_terminal_status(self, repo):
        repo.create(_run("r1"))
        with pytest.raises(ValidationError):
            repo.complete("r1", RunStatus.RUNNING, T0)

    def test_trigger_failed_run_cannot_complete(self, repo):
        repo.create(_run("r1"))
        repo.mark_trigger_failed("r1", "runtime unreachable")
        with pytest.raises(RunStateError) as exc_info:
            repo.complete("r1", RunStatus.SUCCESS, T0)
        assert not isinstance(exc_info.value, RunAlreadyCompletedError)


class TestTriggerFailure:
    def test_marks_pending_run(self, repo):
        repo.create(_run("r1"))
        run = repo.mark_trigger_failed("r1", "openclaw not found")
        assert run.status is RunStatus.PENDING
        assert run.trigger_error == "openclaw not found"
        assert run.trigger_failed

    def test_unknown_run(self, repo):
        with pytest.raises(RunNotFoundError):
            repo.mark_trigger_failed("missing", "boom")


class TestListing:
    @pytest.fixture()
    def seeded(self, repo):
        for i in range(5):
            repo.create(_run(f"a{i}", "alpha", T0 + timedelta(hours=i)))
        repo.create(_run("b0", "beta", T0 + timedelta(hours=10)))
        repo.complete("a0", RunStatus.SUCCESS, T0 + timedelta(minutes=1))
        repo.complete("a1", RunStatus.ERROR, T0 + timedelta(hours=1, minutes=1))
        return repo

    def test_newest_first(self, seeded):
        ids = [r.id for r in seeded.list_for_job("alpha")]
        assert ids == ["a4", "a3", "a2", "a1", "a0"]

    def test_across_jobs(self, seeded):
        assert [r.id for r in seeded.list_for_job(None, limit=2)] == ["b0", "a4"]
        assert seeded.count_for_job(None) == 6

    def test_offset(self, seeded):
        assert [r.id for r in seeded.list_for_job("alpha", limit=2, offset=2)] == ["a2", "a1"]

    def test_status_filter(self, seeded):
        assert [r.id for r in seeded.list_for_job("alpha", statuses=[RunStatus.ERROR])] == ["a1"]
        assert seeded.count_for_job("alpha", statuses=[RunStatus.SUCCESS]) == 1

    def test_since_filter(self, seeded):
        since = T0 + timedelta(hours=3)
        assert [r.id for r in seeded.list_for_job("alpha", since=since)] == ["a4", "a3"]


class TestPurge:
    def test_keeps_open_runs(self, repo):
        old = T0 - timedelta(days=100)
        repo.create(_run("done", started_at=old))
        repo.complete("done", RunStatus.SUCCESS, old + timedelta(seconds=1))
        repo.create(_run("failed-trigger", started_at=old))
        repo.mark_trigger_failed("failed-trigger", "boom")
        repo.create(_run("still-pending", started_at=old))
        repo.create(_run("recent", started_at=T0))
        repo.complete("recent", RunStatus.SUCCESS, T0 + timedelta(seconds=1))

        cutoff = T0 - timedelta(days=90)
        assert repo.count_finished_before(cutoff) == 2
        assert repo.purge_finished_before(cutoff) == 2
        remaining = {r.id for r in repo.list_for_job(None)}
        assert remaining == {"still-pending", "recent"}
