"""Tests for run tracking operations."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from conftest import NOW, make_job

from cronspine.core.models.scheduler import RunRecord, RunStatus, RunTrigger
from cronspine.core.scheduling.repository import RunRepository
from cronspine.ops.context import OperationContext
from cronspine.ops.requests import (
    GetRunRequest,
    ListRunsRequest,
    ListRuntimeRunsRequest,
    PruneRunsRequest,
    RecordRunCompletionRequest,
    RecordRunStartRequest,
)
from cronspine.ops.runs import (
    get_run,
    list_runs,
    list_runtime_runs,
    prune_runs,
    record_run_completion,
    record_run_start,
)


@pytest.fixture()
def seeded(runtime):
    runtime.seed(make_job("nightly", name="Nightly report"))
    return runtime


def _start(ctx, job_id: str = "nightly", **kwargs) -> RunRecord:
    result = record_run_start(ctx, RecordRunStartRequest(job_id=job_id, **kwargs))
    assert result.success, result.error
    return result.data


class TestRecordRunStart:
    def test_opens_pending_run(self, ctx, seeded):
        run = _start(ctx)
        assert run.status is RunStatus.PENDING
        assert run.trigger is RunTrigger.SCHEDULE
        assert run.started_at == NOW
        assert run.job_name == "Nightly report"

    def test_manual_trigger(self, ctx, seeded):
        assert _start(ctx, trigger="manual").trigger is RunTrigger.MANUAL

    def test_unknown_trigger(self, ctx, seeded):
        result = record_run_start(ctx, RecordRunStartRequest(job_id="nightly", trigger="cron"))
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.details["field"] == "trigger"

    def test_unknown_job_with_runtime(self, ctx, seeded):
        result = record_run_start(ctx, RecordRunStartRequest(job_id="ghost"))
        assert result.error.code == "NOT_FOUND"

    def test_without_runtime_any_job(self, conn, clock):
        ctx = OperationContext(conn=conn, clock=clock)
        run = _start(ctx, job_id="external", job_name="External")
        assert run.job_name == "External"

    def test_ids_sort_by_start(self, ctx, seeded, clock):
        first = _start(ctx)
        clock.set(NOW + timedelta(seconds=1))
        second = _start(ctx)
        assert first.id < second.id

    def test_dry_run(self, dry_ctx, seeded, conn):
        result = record_run_start(dry_ctx, RecordRunStartRequest(job_id="nightly"))
        assert result.success
        assert RunRepository(conn).get(result.data.id) is None


class TestRecordRunCompletion:
    def test_success(self, ctx, seeded, clock):
        run = _start(ctx)
        clock.set(NOW + timedelta(seconds=90))
        result = record_run_completion(
            ctx, RecordRunCompletionRequest(run_id=run.id, status="success", output="report sent")
        )
        assert result.success
        assert result.data.status is RunStatus.SUCCESS
        assert result.data.duration_ms == 90_000
        assert result.data.completed_at == NOW + timedelta(seconds=90)

    def test_error(self, ctx, seeded):
        run = _start(ctx)
        result = record_run_completion(
            ctx, RecordRunCompletionRequest(run_id=run.id, status="error", error="timeout")
        )
        assert result.data.status is RunStatus.ERROR
        assert result.data.error == "timeout"

    def test_second_completion_rejected(self, ctx, seeded, conn):
        run = _start(ctx)
        record_run_completion(ctx, RecordRunCompletionRequest(run_id=run.id, status="success"))
        result = record_run_completion(
            ctx, RecordRunCompletionRequest(run_id=run.id, status="error", error="late")
        )
        assert result.error.code == "ALREADY_COMPLETE"
        stored = RunRepository(conn).get(run.id)
        assert stored.status is RunStatus.SUCCESS
        assert stored.error is None

    def test_trigger_failed_run_conflicts(self, ctx, seeded, conn):
        run = _start(ctx)
        RunRepository(conn).mark_trigger_failed(run.id, "refused")
        result = record_run_completion(ctx, RecordRunCompletionRequest(run_id=run.id))
        assert result.error.code == "CONFLICT"

    @pytest.mark.parametrize("status", ["pending", "running", "done"])
    def test_non_terminal_status(self, ctx, seeded, status):
        run = _start(ctx)
        result = record_run_completion(ctx, RecordRunCompletionRequest(run_id=run.id, status=status))
        assert result.error.code == "VALIDATION_FAILED"

    def test_unknown_run(self, ctx):
        result = record_run_completion(ctx, RecordRunCompletionRequest(run_id="missing"))
        assert result.error.code == "NOT_FOUND"

    def test_dry_run_leaves_run_open(self, ctx, dry_ctx, seeded, conn):
        run = _start(ctx)
        result = record_run_completion(dry_ctx, RecordRunCompletionRequest(run_id=run.id))
        assert result.success
        assert RunRepository(conn).get(run.id).status is RunStatus.PENDING


class TestListRuns:
    @pytest.fixture()
    def history(self, ctx, seeded, runtime, clock):
        runtime.seed(make_job("hourly", expr="0 * * * *"))
        outcomes = []
        for day in range(40):
            clock.set(NOW - timedelta(days=day))
            run = _start(ctx, job_id="nightly" if day % 2 == 0 else "hourly")
            status = "success" if day % 3 else "error"
            record_run_completion(ctx, RecordRunCompletionRequest(run_id=run.id, status=status))
            outcomes.append((run.id, status))
        clock.set(NOW)
        return outcomes

    def test_all_runs_newest_first(self, ctx, history):
        result = list_runs(ctx, ListRunsRequest(limit=5))
        assert result.total == 40
        assert result.has_more
        assert [r.id for r in result.data] == [run_id for run_id, _ in history[:5]]

    def test_per_job(self, ctx, history):
        result = list_runs(ctx, ListRunsRequest(job_id="nightly"))
        assert result.total == 20
        assert {r.job_id for r in result.data} == {"nightly"}

    def test_status_filter(self, ctx, history):
        result = list_runs(ctx, ListRunsRequest(status="error"))
        expected = sum(1 for _, status in history if status == "error")
        assert result.total == expected
        assert {r.status for r in result.data} == {"error"}

    @pytest.mark.parametrize(("window", "expected"), [("7d", 8), ("30d", 31), ("all", 40)])
    def test_window(self, ctx, history, window, expected):
        assert list_runs(ctx, ListRunsRequest(window=window)).total == expected

    def test_limit_clamped(self, ctx, history):
        result = list_runs(ctx, ListRunsRequest(limit=500))
        assert result.limit == 100
        assert len(result.data) == 40

    def test_offset_paging(self, ctx, history):
        page = list_runs(ctx, ListRunsRequest(limit=15, offset=30))
        assert len(page.data) == 10
        assert not page.has_more

    @pytest.mark.parametrize(
        "request_kwargs",
        [{"status": "running"}, {"window": "1y"}, {"limit": 0}, {"offset": -1}, {"job_id": "bad id"}],
    )
    def test_invalid_filters(self, ctx, request_kwargs):
        assert list_runs(ctx, ListRunsRequest(**request_kwargs)).error.code == "VALIDATION_FAILED"

    def test_works_without_runtime(self, conn, clock, ctx, seeded):
        _start(ctx)
        bare = OperationContext(conn=conn, clock=clock)
        assert list_runs(bare, ListRunsRequest()).total == 1


class TestRunFlags:
    def test_hung_run(self, ctx, seeded, clock):
        run = _start(ctx)
        clock.set(NOW + timedelta(hours=2))
        summary = get_run(ctx, GetRunRequest(run_id=run.id, hung_after_seconds=3600)).data
        assert summary.hung
        assert summary.status == "pending"

    def test_fresh_run_not_hung(self, ctx, seeded):
        run = _start(ctx)
        assert not get_run(ctx, GetRunRequest(run_id=run.id)).data.hung

    def test_trigger_failed_not_hung(self, ctx, seeded, conn, clock):
        run = _start(ctx)
        RunRepository(conn).mark_trigger_failed(run.id, "refused")
        clock.set(NOW + timedelta(days=1))
        summary = get_run(ctx, GetRunRequest(run_id=run.id)).data
        assert summary.trigger_failed
        assert not summary.hung

    def test_get_unknown(self, ctx):
        assert get_run(ctx, GetRunRequest(run_id="missing")).error.code == "NOT_FOUND"


class TestPruneRuns:
    @pytest.fixture()
    def aged(self, ctx, seeded, clock):
        clock.set(NOW - timedelta(days=120))
        old_done = _start(ctx)
        record_run_completion(ctx, RecordRunCompletionRequest(run_id=old_done.id))
        old_open = _start(ctx)
        clock.set(NOW)
        fresh = _start(ctx)
        record_run_completion(ctx, RecordRunCompletionRequest(run_id=fresh.id))
        return old_done, old_open, fresh

    def test_deletes_old_finished_only(self, ctx, conn, aged):
        old_done, old_open, fresh = aged
        result = prune_runs(ctx, PruneRunsRequest(older_than_days=90))
        assert result.data.deleted == 1
        assert result.data.cutoff == NOW - timedelta(days=90)
        repo = RunRepository(conn)
        assert repo.get(old_done.id) is None
        assert repo.get(old_open.id) is not None
        assert repo.get(fresh.id) is not None

    def test_dry_run_counts(self, dry_ctx, conn, aged):
        result = prune_runs(dry_ctx, PruneRunsRequest(older_than_days=90))
        assert result.data.deleted == 1
        assert result.data.dry_run
        assert RunRepository(conn).count_for_job(None) == 3

    def test_invalid_days(self, ctx):
        assert prune_runs(ctx, PruneRunsRequest(older_than_days=0)).error.code == "VALIDATION_FAILED"


class TestRuntimeHistory:
    def test_newest_first(self, ctx, seeded):
        for hour in (1, 3, 2):
            seeded.record_history(
                RunRecord(
                    id=f"r{hour}",
                    job_id="nightly",
                    started_at=datetime(2024, 1, 1, hour, tzinfo=UTC),
                    status=RunStatus.SUCCESS,
                )
            )
        result = list_runtime_runs(ctx, ListRuntimeRunsRequest(job_id="nightly"))
        assert [r.id for r in result.data] == ["r3", "r2", "r1"]

    def test_requires_runtime(self, conn):
        result = list_runtime_runs(OperationContext(conn=conn), ListRuntimeRunsRequest(job_id="nightly"))
        assert result.error.code == "UNAVAILABLE"
