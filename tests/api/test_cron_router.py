"""Tests for the cron API router (jobs, runs, timeline, preview)."""

from __future__ import annotations

from datetime import timedelta

import pytest
import structlog
from conftest import NOW, FrozenClock, make_job
from fastapi.testclient import TestClient

from cronspine.api.app import create_app
from cronspine.core.errors import RuntimeRejectedError
from cronspine.core.settings import CronSpineSettings
from cronspine.runtime.memory import InMemoryRuntime

PREFIX = "/api/v1/cron"


@pytest.fixture()
def clock():
    return FrozenClock()


@pytest.fixture()
def runtime(clock):
    runtime = InMemoryRuntime(clock=clock)
    runtime.seed(make_job("weekday", name="Weekday report", expr="0 9 * * 1-5"))
    runtime.seed(make_job("poll", every_ms=900_000))
    return runtime


@pytest.fixture()
def client(tmp_path, runtime, clock):
    settings = CronSpineSettings(
        database_path=tmp_path / "runs.db",
        runtime="memory",
        json_logs=True,
        log_cache_loggers=False,
    )
    app = create_app(settings=settings, runtime=runtime, clock=clock)
    with TestClient(app) as c:
        yield c


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    def test_request_id_echoed(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert resp.headers["X-Request-ID"] == "req-123"

    def test_lifespan_applies_logger_cache_setting(self, client):
        assert structlog.get_config()["cache_logger_on_first_use"] is False
        assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)


class TestJobsEndpoints:
    def test_list(self, client):
        resp = client.get(f"{PREFIX}/jobs")
        assert resp.status_code == 200
        body = resp.json()
        assert body["page"]["total"] == 2
        jobs = {j["id"]: j for j in body["data"]}
        assert jobs["weekday"]["scheduleDisplay"] == "At 09:00, Monday through Friday"
        assert jobs["weekday"]["schedule"] == {"kind": "cron", "expr": "0 9 * * 1-5", "tz": "UTC"}
        assert jobs["weekday"]["nextRun"].startswith("2024-01-01T09:00:00")
        assert jobs["poll"]["scheduleDisplay"] == "Every 15m"

    def test_create(self, client, runtime):
        resp = client.post(
            f"{PREFIX}/jobs",
            json={"name": "Morning", "schedule": "30 7 * * *", "timezone": "Europe/Berlin"},
        )
        assert resp.status_code == 201
        job = resp.json()["data"]
        assert job["timezone"] == "Europe/Berlin"
        assert job["scheduleDisplay"] == "At 07:30 (Europe/Berlin)"
        assert len(runtime.list_jobs()) == 3

    def test_create_wire_schedule(self, client):
        resp = client.post(
            f"{PREFIX}/jobs",
            json={"name": "Heartbeat", "schedule": {"kind": "every", "everyMs": 300_000}},
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["schedule"] == {"kind": "every", "everyMs": 300_000}

    def test_create_invalid_cron(self, client, runtime):
        resp = client.post(f"{PREFIX}/jobs", json={"name": "Bad", "schedule": "70 * * * *"})
        assert resp.status_code == 400
        assert resp.headers["content-type"].startswith("application/problem+json")
        problem = resp.json()
        assert problem["code"] == "VALIDATION_FAILED"
        assert problem["errors"][0]["field"] == "minute"
        assert len(runtime.list_jobs()) == 2

    def test_create_dry_run(self, client, runtime):
        resp = client.post(f"{PREFIX}/jobs?dry_run=true", json={"name": "Preview", "schedule": "0 9 * * *"})
        assert resp.status_code == 201
        assert len(runtime.list_jobs()) == 2

    def test_get_unknown(self, client):
        resp = client.get(f"{PREFIX}/jobs/ghost")
        assert resp.status_code == 404
        assert resp.json()["code"] == "NOT_FOUND"

    def test_edit_with_ignored_field(self, client, runtime):
        runtime.rejected_fields = {"description"}
        resp = client.patch(
            f"{PREFIX}/jobs/weekday",
            json={"name": "Renamed", "description": "new prompt"},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["data"]["applied"] == ["name"]
        assert "description" in body["data"]["ignored"]
        assert body["warnings"]
        assert body["data"]["job"]["name"] == "Renamed"

    def test_disable(self, client):
        resp = client.put(f"{PREFIX}/jobs/weekday/enabled", json={"enabled": False})
        assert resp.status_code == 200
        assert resp.json()["data"]["enabled"] is False
        assert resp.json()["data"]["nextRun"] is None

    def test_delete(self, client, runtime):
        resp = client.delete(f"{PREFIX}/jobs/weekday")
        assert resp.status_code == 204
        assert [j.id for j in runtime.list_jobs()] == ["poll"]
        assert client.delete(f"{PREFIX}/jobs/weekday").status_code == 404


class TestTrigger:
    def test_trigger_records_pending_run(self, client):
        resp = client.post(f"{PREFIX}/jobs/weekday/run")
        assert resp.status_code == 202
        run = resp.json()["data"]
        assert run["status"] == "pending"
        assert run["trigger"] == "manual"
        assert run["jobName"] == "Weekday report"

        history = client.get(f"{PREFIX}/jobs/weekday/runs").json()
        assert [r["id"] for r in history["data"]] == [run["id"]]

    def test_trigger_failure(self, client, runtime):
        def refuse(job):
            raise RuntimeRejectedError("runtime refused", stderr="busy")

        runtime.executor = refuse
        resp = client.post(f"{PREFIX}/jobs/weekday/run")
        assert resp.status_code == 502
        problem = resp.json()
        assert problem["code"] == "TRIGGER_FAILED"
        run_id = problem["extensions"]["run_id"]

        run = client.get(f"{PREFIX}/runs/{run_id}").json()["data"]
        assert run["status"] == "pending"
        assert run["triggerFailed"] is True
        assert run["triggerError"] == "runtime refused"

    def test_trigger_unknown(self, client):
        assert client.post(f"{PREFIX}/jobs/ghost/run").status_code == 404


class TestRuns:
    def test_start_and_complete(self, client, clock):
        started = client.post(f"{PREFIX}/runs", json={"jobId": "weekday"})
        assert started.status_code == 201
        run_id = started.json()["data"]["id"]

        clock.set(NOW + timedelta(seconds=30))
        done = client.post(f"{PREFIX}/runs/{run_id}/complete", json={"status": "success", "output": "ok"})
        assert done.status_code == 200
        assert done.json()["data"]["durationMs"] == 30_000

        again = client.post(f"{PREFIX}/runs/{run_id}/complete", json={"status": "error"})
        assert again.status_code == 409
        assert again.json()["code"] == "ALREADY_COMPLETE"

    def test_invalid_completion_status(self, client):
        run_id = client.post(f"{PREFIX}/runs", json={"jobId": "weekday"}).json()["data"]["id"]
        resp = client.post(f"{PREFIX}/runs/{run_id}/complete", json={"status": "running"})
        assert resp.status_code == 400

    def test_history_filters(self, client):
        for status in ("success", "error", "success"):
            run_id = client.post(f"{PREFIX}/runs", json={"jobId": "weekday"}).json()["data"]["id"]
            client.post(f"{PREFIX}/runs/{run_id}/complete", json={"status": status})
        body = client.get(f"{PREFIX}/jobs/weekday/runs?status=error").json()
        assert body["page"]["total"] == 1
        assert body["data"][0]["status"] == "error"

    def test_history_survives_delete(self, client):
        client.post(f"{PREFIX}/runs", json={"jobId": "weekday"})
        client.delete(f"{PREFIX}/jobs/weekday")
        body = client.get(f"{PREFIX}/jobs/weekday/runs").json()
        assert body["page"]["total"] == 1

    def test_limit_above_max_rejected(self, client):
        assert client.get(f"{PREFIX}/jobs/weekday/runs?limit=101").status_code == 422

    def test_prune(self, client, clock):
        clock.set(NOW - timedelta(days=120))
        old_id = client.post(f"{PREFIX}/runs", json={"jobId": "weekday"}).json()["data"]["id"]
        client.post(f"{PREFIX}/runs/{old_id}/complete", json={"status": "success"})
        clock.set(NOW)

        preview = client.delete(f"{PREFIX}/runs?older_than_days=90&dry_run=true").json()["data"]
        assert preview == {"deleted": 1, "cutoff": preview["cutoff"], "dryRun": True}
        assert client.get(f"{PREFIX}/runs/{old_id}").status_code == 200

        assert client.delete(f"{PREFIX}/runs?older_than_days=90").json()["data"]["deleted"] == 1
        assert client.get(f"{PREFIX}/runs/{old_id}").status_code == 404

    def test_get_unknown_run(self, client):
        assert client.get(f"{PREFIX}/runs/nope").status_code == 404


class TestTimeline:
    def test_week(self, client):
        resp = client.get(f"{PREFIX}/timeline")
        assert resp.status_code == 200
        timeline = resp.json()["data"]
        assert len(timeline["days"]) == 7
        assert timeline["days"][0]["label"] == "Today"
        assert timeline["totalEvents"] == 5
        assert all(len(d["recurringBadges"]) == 1 for d in timeline["days"])
        assert {entry["jobId"] for entry in timeline["legend"]} == {"weekday", "poll"}

    def test_disabled_job_leaves_timeline(self, client):
        client.put(f"{PREFIX}/jobs/weekday/enabled", json={"enabled": False})
        timeline = client.get(f"{PREFIX}/timeline").json()["data"]
        assert timeline["totalEvents"] == 0
        assert [entry["jobId"] for entry in timeline["legend"]] == ["poll"]

    def test_unknown_timezone(self, client):
        resp = client.get(f"{PREFIX}/timeline?timezone=Nowhere/Land")
        assert resp.status_code == 400


class TestPreview:
    def test_valid(self, client):
        resp = client.post(f"{PREFIX}/schedules/preview", json={"schedule": "*/15 * * * *", "count": 3})
        data = resp.json()["data"]
        assert data["valid"] is True
        assert data["display"] == "Every 15 minutes"
        assert len(data["nextRuns"]) == 3

    def test_invalid_still_200(self, client):
        resp = client.post(f"{PREFIX}/schedules/preview", json={"schedule": "* * * *"})
        assert resp.status_code == 200
        assert resp.json()["data"]["valid"] is False
