"""Tests for the runtime JSON codec."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from cronspine.core.errors import ValidationError
from cronspine.core.models.scheduler import (
    CronSchedule,
    IntervalSchedule,
    OneShotSchedule,
    RunStatus,
)
from cronspine.core.scheduling.expression import is_valid_schedule
from cronspine.core.scheduling.wire import (
    job_from_runtime,
    job_to_runtime,
    jobs_from_runtime,
    preview,
    run_from_runtime,
    runtime_status,
    schedule_from_input,
    schedule_from_runtime,
    schedule_to_wire,
)

RAW_JOB = {
    "id": "nightly",
    "agentId": "main",
    "name": "Nightly report",
    "enabled": True,
    "createdAtMs": 1_700_000_000_000,
    "schedule": {"kind": "cron", "expr": "0 3 * * *", "tz": "Europe/Madrid"},
    "sessionTarget": "isolated",
    "payload": {"kind": "agentTurn", "message": "Summarise yesterday"},
    "state": {"nextRunAtMs": 1_700_010_800_000, "lastRunAtMs": 1_699_924_400_000},
}


class TestScheduleFromInput:
    def test_cron_string(self):
        assert schedule_from_input("0 9 * * 1-5") == CronSchedule("0 9 * * 1-5", "UTC")

    def test_cron_string_with_timezone(self):
        assert schedule_from_input(" 0 9 * * * ", "Asia/Tokyo") == CronSchedule("0 9 * * *", "Asia/Tokyo")

    def test_cron_dict_tz_overridden_by_argument(self):
        spec = schedule_from_input({"kind": "cron", "expr": "0 9 * * *", "tz": "Europe/Madrid"}, "UTC")
        assert spec.timezone == "UTC"

    def test_every(self):
        spec = schedule_from_input({"kind": "every", "everyMs": 900_000, "anchorMs": 0})
        assert spec == IntervalSchedule(every_ms=900_000, anchor=datetime(1970, 1, 1, tzinfo=UTC))

    def test_at_iso(self):
        spec = schedule_from_input({"kind": "at", "at": "2024-06-01T14:30:00Z"})
        assert spec == OneShotSchedule(at=datetime(2024, 6, 1, 14, 30, tzinfo=UTC))

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "   ",
            42,
            {"kind": "weekly"},
            {"kind": "cron"},
            {"kind": "every", "everyMs": "15m"},
            {"kind": "every", "everyMs": 1.5},
            {"kind": "at"},
            {"kind": "at", "at": "tomorrow"},
        ],
    )
    def test_rejects_malformed(self, raw):
        with pytest.raises(ValidationError):
            schedule_from_input(raw)

    @pytest.mark.parametrize(
        ("raw", "field"),
        [
            ({"kind": "at", "at": 1e20}, "schedule.at"),
            ({"kind": "at", "atMs": float("inf")}, "schedule.at"),
            ({"kind": "every", "everyMs": 60_000, "anchorMs": -(10**18)}, "schedule.anchorMs"),
        ],
    )
    def test_out_of_range_epoch_names_field(self, raw, field):
        with pytest.raises(ValidationError) as exc_info:
            schedule_from_input(raw)
        assert exc_info.value.field == field


class TestScheduleFromRuntime:
    def test_malformed_becomes_invalid_spec(self):
        spec = schedule_from_runtime({"kind": "every", "everyMs": "soon"})
        assert not is_valid_schedule(spec)

    def test_missing_schedule(self):
        spec = schedule_from_runtime(None)
        assert isinstance(spec, CronSchedule)
        assert not is_valid_schedule(spec)

    def test_out_of_range_anchor_becomes_invalid_spec(self):
        spec = schedule_from_runtime({"kind": "every", "everyMs": 60_000, "anchorMs": 10**20})
        assert not is_valid_schedule(spec)


class TestScheduleToWire:
    def test_shapes(self):
        assert schedule_to_wire(CronSchedule("0 9 * * *", "Europe/Madrid")) == {
            "kind": "cron",
            "expr": "0 9 * * *",
            "tz": "Europe/Madrid",
        }
        assert schedule_to_wire(IntervalSchedule(every_ms=60_000)) == {"kind": "every", "everyMs": 60_000}
        assert schedule_to_wire(OneShotSchedule(at=datetime(2024, 6, 1, tzinfo=UTC))) == {
            "kind": "at",
            "at": "2024-06-01T00:00:00.000Z",
        }


class TestJobs:
    def test_job_from_runtime(self):
        job = job_from_runtime(RAW_JOB)
        assert job.id == "nightly"
        assert job.name == "Nightly report"
        assert job.schedule == CronSchedule("0 3 * * *", "Europe/Madrid")
        assert job.description == "Summarise yesterday"
        assert job.session_target == "isolated"
        assert job.created_at == datetime.fromtimestamp(1_700_000_000, UTC)
        assert job.last_run_at == datetime.fromtimestamp(1_699_924_400, UTC)

    def test_defaults_for_sparse_job(self):
        job = job_from_runtime({"id": "x"})
        assert job.name == "Unnamed"
        assert job.enabled is True
        assert job.description == ""
        assert job.next_run_at is None

    @pytest.mark.parametrize("bad", ["yesterday", "", [1], {"ms": 1}, 1e20])
    def test_unusable_state_instants_become_none(self, bad):
        raw = {**RAW_JOB, "createdAtMs": bad, "state": {"lastRunAtMs": bad, "nextRunAtMs": bad}}
        job = job_from_runtime(raw)
        assert job.last_run_at is None
        assert job.next_run_at is None
        assert job.created_at is None
        assert job.schedule == CronSchedule("0 3 * * *", "Europe/Madrid")

    def test_system_event_payload(self):
        job = job_from_runtime({"id": "x", "payload": {"kind": "systemEvent", "text": "ping"}})
        assert job.description == "ping"

    def test_jobs_document_shapes(self):
        assert [j.id for j in jobs_from_runtime({"jobs": [RAW_JOB]})] == ["nightly"]
        assert [j.id for j in jobs_from_runtime([RAW_JOB, "junk"])] == ["nightly"]
        assert jobs_from_runtime({"jobs": "nope"}) == []

    def test_job_to_runtime_inverts(self):
        job = job_from_runtime(RAW_JOB)
        again = job_from_runtime(job_to_runtime(job))
        assert again == job


class TestRuns:
    @pytest.mark.parametrize(
        ("word", "status"),
        [("ok", RunStatus.SUCCESS), ("FAILED", RunStatus.ERROR), ("running", RunStatus.RUNNING), ("?", None)],
    )
    def test_runtime_status(self, word, status):
        assert runtime_status(word) is status

    def test_run_from_runtime(self):
        run = run_from_runtime(
            {
                "id": "r1",
                "status": "completed",
                "startedAt": "2024-01-01T09:00:00Z",
                "finishedAt": "2024-01-01T09:00:05Z",
                "log": "all good",
            },
            "nightly",
        )
        assert run.status is RunStatus.SUCCESS
        assert run.duration_ms == 5000
        assert run.output == "all good"

    def test_run_without_start_skipped(self):
        assert run_from_runtime({"id": "r1", "status": "ok"}, "nightly") is None


def test_preview_truncates():
    assert preview("x" * 200).endswith("...")
    assert len(preview("x" * 200)) == 123
    assert preview("short") == "short"
