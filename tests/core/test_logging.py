"""Tests for structlog configuration and logger lookup."""

from __future__ import annotations

import io
import json

import structlog

from cronspine.core.logging import LogContext, configure_logging, get_logger


def _records(stream: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


class TestGetLogger:
    def test_named_logger_renders_json(self):
        stream = io.StringIO()
        configure_logging(json_format=True, stream=stream, cache_loggers=False)

        get_logger("cronspine.jobs").info("job_created", job_id="nightly")

        (record,) = _records(stream)
        assert record["event"] == "job_created"
        assert record["job_id"] == "nightly"
        assert record["log.level"] == "info"
        assert record["service.name"] == "cronspine"
        assert "@timestamp" in record

    def test_unnamed_logger(self):
        stream = io.StringIO()
        configure_logging(json_format=True, stream=stream, cache_loggers=False)

        get_logger().warning("runtime_slow", seconds=3)

        assert _records(stream)[0]["event"] == "runtime_slow"

    def test_module_logger_follows_reconfiguration(self):
        log = get_logger("cronspine.module")
        first, second = io.StringIO(), io.StringIO()

        configure_logging(json_format=True, stream=first, cache_loggers=False)
        log.info("before")
        configure_logging(json_format=True, stream=second, cache_loggers=False)
        log.info("after")

        assert [r["event"] for r in _records(first)] == ["before"]
        assert [r["event"] for r in _records(second)] == ["after"]

    def test_level_filters_lower_records(self):
        stream = io.StringIO()
        configure_logging(level="WARNING", json_format=True, stream=stream, cache_loggers=False)

        log = get_logger("cronspine.filter")
        log.info("dropped")
        log.error("kept")

        assert [r["event"] for r in _records(stream)] == ["kept"]


class TestConfigureLogging:
    def test_service_name_override(self):
        stream = io.StringIO()
        configure_logging(json_format=True, service="cronspine-api", stream=stream, cache_loggers=False)

        get_logger("cronspine.api").info("api_starting")

        assert _records(stream)[0]["service.name"] == "cronspine-api"
        configure_logging(json_format=True, stream=io.StringIO(), cache_loggers=False)

    def test_cache_flag(self):
        configure_logging(json_format=True, stream=io.StringIO(), cache_loggers=False)
        assert structlog.get_config()["cache_logger_on_first_use"] is False

        configure_logging(json_format=True, stream=io.StringIO())
        assert structlog.get_config()["cache_logger_on_first_use"] is True

    def test_console_output(self):
        stream = io.StringIO()
        configure_logging(json_format=False, stream=stream, cache_loggers=False)

        get_logger("cronspine.console").info("run_completed", run_id="r1")

        assert "run_completed" in stream.getvalue()
        assert "run_id" in stream.getvalue()


class TestLogContext:
    def test_binds_only_inside_block(self):
        stream = io.StringIO()
        configure_logging(json_format=True, stream=stream, cache_loggers=False)
        log = get_logger("cronspine.ctx")

        with LogContext(request_id="req-1"):
            log.info("inside")
        log.info("outside")

        inside, outside = _records(stream)
        assert inside["request_id"] == "req-1"
        assert "request_id" not in outside
