"""
Codec between agent-runtime JSON and cronspine models.

The runtime reports jobs as::

    {
      "id": "nightly", "agentId": "main", "name": "Nightly report",
      "enabled": true, "createdAtMs": 1700000000000,
      "schedule": {"kind": "cron", "expr": "0 3 * * *", "tz": "Europe/Madrid"},
      "sessionTarget": "main",
      "payload": {"kind": "agentTurn", "message": "Summarise yesterday"},
      "state": {"nextRunAtMs": 1700010800000, "lastRunAtMs": 1699924400000}
    }

Parsing runtime data is lenient: a malformed job still becomes a ``CronJob``
(with a schedule that fails validation) so it can be listed and repaired.
Parsing user input via :func:`schedule_from_input` is strict.

Tags:
    codec, wire-format, runtime, cronspine
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any

from cronspine.core.errors import ValidationError
from cronspine.core.models.scheduler import (
    CronJob,
    CronSchedule,
    IntervalSchedule,
    OneShotSchedule,
    RunRecord,
    RunStatus,
    RunTrigger,
    ScheduleKind,
    ScheduleSpec,
)
from cronspine.core.timestamps import (
    ensure_utc,
    from_epoch_ms,
    from_iso8601,
    to_epoch_ms,
    to_iso8601,
)

DESCRIPTION_PREVIEW_CHARS = 120


def preview(text: str, limit: int = DESCRIPTION_PREVIEW_CHARS) -> str:
    """Truncate *text* to *limit* characters, marking the cut with ``...``."""
    return text if len(text) <= limit else text[:limit] + "..."


# ---------------------------------------------------------------------------
# Schedules
# ---------------------------------------------------------------------------


def _parse_instant(value: Any, field: str) -> datetime:
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return from_epoch_ms(value)
        except (OverflowError, OSError, ValueError) as exc:
            raise ValidationError(
                f"{field} is out of range", field=field, value=value, cause=exc
            ) from exc
    if isinstance(value, str) and value.strip():
        try:
            parsed = from_iso8601(value.strip())
        except ValueError as exc:
            raise ValidationError(
                f"'{value}' is not an ISO-8601 instant", field=field, value=value, cause=exc
            ) from exc
        if parsed is not None:
            return parsed
    raise ValidationError(f"{field} is required", field=field, value=value)


def _runtime_instant(value: Any) -> datetime | None:
    """Lenient instant for runtime state fields; anything unusable is ``None``."""
    if value is None:
        return None
    try:
        return _parse_instant(value, "instant")
    except ValidationError:
        return None


def _parse_every_ms(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError("everyMs must be a number", field="everyMs", value=value)
    if not math.isfinite(value) or value != int(value):
        raise ValidationError("everyMs must be a whole number", field="everyMs", value=value)
    return int(value)


def schedule_from_input(raw: Any, timezone: str | None = None) -> ScheduleSpec:
    """Strictly decode a user-supplied schedule.

    *raw* is a cron string or a dict ``{kind, expr?, tz?, everyMs?, anchorMs?,
    at?}``. An explicit *timezone* overrides the dict's ``tz``. Only the shape
    is checked here; use ``validate_schedule`` for domain checks.
    """
    tz = timezone.strip() if isinstance(timezone, str) and timezone.strip() else None

    if isinstance(raw, str):
        expr = raw.strip()
        if not expr:
            raise ValidationError("Schedule is required", field="schedule", value=raw)
        return CronSchedule(expr=expr, timezone=tz or "UTC")

    if not isinstance(raw, dict):
        raise ValidationError("Schedule must be a cron string or an object", field="schedule", value=raw)

    try:
        kind = ScheduleKind(raw.get("kind", "cron"))
    except ValueError as exc:
        raise ValidationError(
            f"Unknown schedule kind '{raw.get('kind')}'",
            field="schedule.kind",
            value=raw.get("kind"),
            constraint="cron | every | at",
            cause=exc,
        ) from exc

    match kind:
        case ScheduleKind.CRON:
            expr = raw.get("expr")
            if not isinstance(expr, str) or not expr.strip():
                raise ValidationError("Cron schedule is required", field="schedule.expr", value=expr)
            return CronSchedule(expr=expr.strip(), timezone=tz or raw.get("tz") or "UTC")
        case ScheduleKind.EVERY:
            anchor = raw.get("anchorMs", raw.get("anchor"))
            return IntervalSchedule(
                every_ms=_parse_every_ms(raw.get("everyMs")),
                anchor=_parse_instant(anchor, "schedule.anchorMs") if anchor is not None else None,
            )
        case ScheduleKind.AT:
            return OneShotSchedule(at=_parse_instant(raw.get("at", raw.get("atMs")), "schedule.at"))
    raise ValidationError(f"Unknown schedule kind '{kind}'", field="schedule.kind")


def schedule_from_runtime(raw: Any) -> ScheduleSpec:
    """Leniently decode a runtime schedule; malformed input yields an invalid spec."""
    try:
        return schedule_from_input(raw)
    except ValidationError:
        if isinstance(raw, dict) and raw.get("kind") == "every":
            return IntervalSchedule(every_ms=0)
        expr = raw.get("expr", "") if isinstance(raw, dict) else ""
        return CronSchedule(expr=str(expr or ""), timezone="UTC")


def schedule_to_wire(spec: ScheduleSpec) -> dict[str, Any]:
    match spec:
        case CronSchedule(expr=expr, timezone=tz):
            return {"kind": "cron", "expr": expr, "tz": tz}
        case IntervalSchedule(every_ms=every_ms, anchor=anchor):
            out: dict[str, Any] = {"kind": "every", "everyMs": every_ms}
            if anchor is not None:
                out["anchorMs"] = to_epoch_ms(anchor)
            return out
        case OneShotSchedule(at=at):
            return {"kind": "at", "at": to_iso8601(at)}
    return {"kind": "unknown"}


def timezone_of(spec: ScheduleSpec) -> str:
    return spec.timezone if isinstance(spec, CronSchedule) else "UTC"


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


def _payload_text(payload: Any) -> str:
    if not isinstance(payload, dict):
        return ""
    match payload.get("kind"):
        case "agentTurn":
            return str(payload.get("message") or "")
        case "systemEvent":
            return str(payload.get("text") or "")
    return ""


def job_from_runtime(raw: dict[str, Any]) -> CronJob:
    """Build a ``CronJob`` from one runtime job object."""
    state = raw.get("state") if isinstance(raw.get("state"), dict) else {}
    enabled = raw.get("enabled")
    return CronJob(
        id=str(raw.get("id", "")),
        name=str(raw.get("name") or "Unnamed"),
        schedule=schedule_from_runtime(raw.get("schedule")),
        enabled=True if enabled is None else bool(enabled),
        description=_payload_text(raw.get("payload")),
        session_target=str(raw.get("sessionTarget") or "main"),
        agent_id=str(raw.get("agentId") or "main"),
        last_run_at=_runtime_instant(state.get("lastRunAtMs")),
        next_run_at=_runtime_instant(state.get("nextRunAtMs")),
        created_at=_runtime_instant(raw.get("createdAtMs")),
        updated_at=_runtime_instant(raw.get("updatedAtMs")),
    )


def jobs_from_runtime(document: Any) -> list[CronJob]:
    """Decode ``cron list --json`` output (``{"jobs": [...]}`` or a bare list)."""
    items = document.get("jobs", []) if isinstance(document, dict) else document
    if not isinstance(items, list):
        return []
    return [job_from_runtime(item) for item in items if isinstance(item, dict)]


def job_to_runtime(job: CronJob) -> dict[str, Any]:
    """Inverse of :func:`job_from_runtime` (used by the in-memory runtime)."""
    state: dict[str, Any] = {}
    if job.next_run_at is not None:
        state["nextRunAtMs"] = to_epoch_ms(job.next_run_at)
    if job.last_run_at is not None:
        state["lastRunAtMs"] = to_epoch_ms(job.last_run_at)
    raw: dict[str, Any] = {
        "id": job.id,
        "agentId": job.agent_id,
        "name": job.name,
        "enabled": job.enabled,
        "schedule": schedule_to_wire(job.schedule),
        "sessionTarget": job.session_target,
        "payload": {"kind": "agentTurn", "message": job.description},
        "state": state,
    }
    if job.created_at is not None:
        raw["createdAtMs"] = to_epoch_ms(job.created_at)
    if job.updated_at is not None:
        raw["updatedAtMs"] = to_epoch_ms(job.updated_at)
    return raw


# ---------------------------------------------------------------------------
# Runs reported by the runtime
# ---------------------------------------------------------------------------

_RUNTIME_STATUS = {
    "success": RunStatus.SUCCESS,
    "ok": RunStatus.SUCCESS,
    "completed": RunStatus.SUCCESS,
    "error": RunStatus.ERROR,
    "failed": RunStatus.ERROR,
    "running": RunStatus.RUNNING,
    "pending": RunStatus.PENDING,
}


def runtime_status(value: Any) -> RunStatus | None:
    """Map a runtime status word to ``RunStatus`` (``None`` if unrecognised)."""
    if not isinstance(value, str):
        return None
    return _RUNTIME_STATUS.get(value.strip().lower())


def run_from_runtime(raw: dict[str, Any], job_id: str) -> RunRecord | None:
    """Decode one entry of ``cron runs <id> --json``; ``None`` if it has no start time."""
    started = raw.get("startedAt") or raw.get("createdAt")
    completed = raw.get("completedAt") or raw.get("finishedAt")
    try:
        started_at = _parse_instant(started, "startedAt")
        completed_at = _parse_instant(completed, "completedAt") if completed else None
    except ValidationError:
        return None

    duration = raw.get("durationMs")
    if not isinstance(duration, (int, float)) or isinstance(duration, bool):
        duration = None
    if duration is None and completed_at is not None:
        duration = max(0, int((completed_at - started_at).total_seconds() * 1000))

    output = raw.get("output")
    if output is None and raw.get("log") is not None:
        output = str(raw["log"])

    return RunRecord(
        id=str(raw.get("id") or f"{job_id}-{to_iso8601(started_at)}"),
        job_id=job_id,
        started_at=started_at,
        completed_at=completed_at,
        status=runtime_status(raw.get("status")) or RunStatus.PENDING,
        duration_ms=int(duration) if duration is not None else None,
        error=raw.get("error") or None,
        output=output,
        trigger=RunTrigger.SCHEDULE,
    )
