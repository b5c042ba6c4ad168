"""Tests for timeline and schedule preview operations."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from conftest import make_job

from cronspine.core.scheduling.expression import DAY_MS
from cronspine.ops.context import OperationContext
from cronspine.ops.requests import PreviewScheduleRequest, TimelineRequest
from cronspine.ops.timeline import get_timeline, preview_schedule


class TestGetTimeline:
    def test_projects_runtime_jobs(self, ctx, runtime):
        runtime.seed(make_job("weekday", expr="0 9 * * 1-5"))
        runtime.seed(make_job("poll", every_ms=900_000))
        result = get_timeline(ctx)
        assert result.success
        timeline = result.data
        assert len(timeline.days) == 7
        assert timeline.total_events == 5
        assert all(len(d.recurring_badges) == 1 for d in timeline.days)
        assert [entry.job_id for entry in timeline.legend] == ["weekday", "poll"]

    def test_custom_horizon_and_timezone(self, ctx, runtime):
        runtime.seed(make_job("daily", expr="0 9 * * *"))
        result = get_timeline(ctx, TimelineRequest(horizon_days=3, timezone="Asia/Tokyo"))
        assert len(result.data.days) == 3
        assert result.data.timezone == "Asia/Tokyo"

    @pytest.mark.parametrize(
        "request_kwargs",
        [{"horizon_days": 0}, {"horizon_days": 32}, {"max_occurrences": 0}, {"timezone": "Moon/Base"}],
    )
    def test_invalid_request(self, ctx, request_kwargs):
        result = get_timeline(ctx, TimelineRequest(**request_kwargs))
        assert result.error.code == "VALIDATION_FAILED"

    def test_unusable_runtime_jobs_do_not_break_timeline(self, ctx, runtime):
        runtime.seed(make_job("daily", expr="0 9 * * *"))
        runtime.seed(make_job("quadrennial", every_ms=4 * 365 * DAY_MS))
        runtime.seed_raw(
            {"id": "glacial", "name": "Glacial", "schedule": {"kind": "every", "everyMs": 200 * 365 * DAY_MS}}
        )
        runtime.seed_raw(
            {
                "id": "odd",
                "name": "Odd",
                "schedule": {"kind": "cron", "expr": "0 12 * * *", "tz": "UTC"},
                "state": {"lastRunAtMs": "yesterday", "nextRunAtMs": [1]},
            }
        )
        result = get_timeline(ctx)
        assert result.success
        assert result.data.total_events == 14
        assert [entry.job_id for entry in result.data.legend] == ["daily", "quadrennial", "odd"]

    def test_requires_runtime(self, conn):
        assert get_timeline(OperationContext(conn=conn)).error.code == "UNAVAILABLE"


class TestPreviewSchedule:
    def test_valid_cron(self, ctx):
        result = preview_schedule(ctx, PreviewScheduleRequest(schedule="*/15 * * * *", count=4))
        preview = result.data
        assert preview.valid
        assert preview.kind == "cron"
        assert preview.display == "Every 15 minutes"
        assert preview.next_runs == [
            datetime(2024, 1, 1, 0, 15, tzinfo=UTC),
            datetime(2024, 1, 1, 0, 30, tzinfo=UTC),
            datetime(2024, 1, 1, 0, 45, tzinfo=UTC),
            datetime(2024, 1, 1, 1, 0, tzinfo=UTC),
        ]

    def test_interval(self, ctx):
        preview = preview_schedule(
            ctx, PreviewScheduleRequest(schedule={"kind": "every", "everyMs": 3_600_000}, count=2)
        ).data
        assert preview.kind == "every"
        assert preview.display == "Every 1h"
        assert len(preview.next_runs) == 2

    def test_timezone(self, ctx):
        preview = preview_schedule(
            ctx, PreviewScheduleRequest(schedule="0 9 * * *", timezone="America/New_York", count=1)
        ).data
        assert preview.timezone == "America/New_York"
        assert preview.next_runs == [datetime(2024, 1, 1, 14, tzinfo=UTC)]

    def test_invalid_schedule_is_not_a_failure(self, ctx):
        result = preview_schedule(ctx, PreviewScheduleRequest(schedule="70 * * * *"))
        assert result.success
        assert not result.data.valid
        assert "outside 0-59" in result.data.error
        assert result.data.next_runs == []

    def test_never_firing_schedule(self, ctx):
        preview = preview_schedule(ctx, PreviewScheduleRequest(schedule="0 0 31 2 *")).data
        assert preview.valid
        assert preview.next_runs == []

    @pytest.mark.parametrize("count", [0, 51])
    def test_count_bounds(self, ctx, count):
        result = preview_schedule(ctx, PreviewScheduleRequest(schedule="* * * * *", count=count))
        assert result.error.code == "VALIDATION_FAILED"

    def test_no_runtime_needed(self, conn, clock):
        result = preview_schedule(OperationContext(conn=conn, clock=clock), PreviewScheduleRequest(schedule="0 9 * * *"))
        assert result.data.valid
        assert len(result.data.next_runs) == 5
