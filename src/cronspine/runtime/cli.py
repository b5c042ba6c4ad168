"""Runtime adapter for the ``openclaw`` command-line interface.

Every call is one ``subprocess.run`` with an argument vector (no shell), a
timeout and captured output. Nothing is retried implicitly except the two
documented degradations:

- ``edit``: if a combined edit is rejected, each field is retried alone and
  the ones still rejected are reported as ignored.
- ``enable``/``disable``: if rejected, ``update --enabled=<bool>`` is tried.

Command map::

    list_jobs     openclaw cron list --json --all
    create_job    openclaw cron add --name N (--cron E --tz Z | --every D | --at T)
                                    --session S [--message M] --json
    edit_job      openclaw cron edit ID [--name N] [--cron E --tz Z] [--message M]
    set_enabled   openclaw cron enable|disable ID --json
                  (fallback: openclaw cron update ID --enabled=true|false --json)
    delete_job    openclaw cron remove ID
    run_job       openclaw cron run ID --json
    run_history   openclaw cron runs ID --json

Tags:
    runtime, subprocess, openclaw, adapter, cronspine
"""

from __future__ import annotations

import json
import subprocess
from typing import Any

from cronspine.core.errors import (
    RuntimeRejectedError,
    RuntimeTimeoutError,
    RuntimeUnavailableError,
)
from cronspine.core.logging import get_logger
from cronspine.core.models.scheduler import (
    CronJob,
    CronSchedule,
    IntervalSchedule,
    OneShotSchedule,
    RunRecord,
    ScheduleSpec,
)
from cronspine.core.scheduling.wire import (
    job_from_runtime,
    jobs_from_runtime,
    run_from_runtime,
    runtime_status,
)
from cronspine.core.timestamps import to_iso8601
from cronspine.runtime.protocol import EditOutcome, JobChanges, JobDraft, RunDispatch

logger = get_logger(__name__)

_UNITS = (("d", 86_400_000), ("h", 3_600_000), ("m", 60_000), ("s", 1_000))


def duration_flag(every_ms: int) -> str:
    """Compact duration for ``--every``: the largest unit dividing *every_ms* exactly."""
    for suffix, size in _UNITS:
        if every_ms % size == 0:
            return f"{every_ms // size}{suffix}"
    return f"{every_ms}ms"


def schedule_flags(spec: ScheduleSpec) -> list[str]:
    match spec:
        case CronSchedule(expr=expr, timezone=tz):
            return ["--cron", expr, "--tz", tz]
        case IntervalSchedule(every_ms=every_ms):
            return ["--every", duration_flag(every_ms)]
        case OneShotSchedule(at=at):
            return ["--at", to_iso8601(at) or ""]
    return []


def _field_flags(name: str, value: Any) -> list[str]:
    match name:
        case "name":
            return ["--name", value]
        case "schedule":
            return schedule_flags(value)
        case "description":
            return ["--message", value]
    return []


class OpenClawCliRuntime:
    """``CronRuntime`` backed by the ``openclaw`` executable.

    Parameters
    ----------
    command
        Executable name or path.
    timeout
        Seconds allowed per invocation.
    """

    def __init__(self, command: str = "openclaw", timeout: float = 10.0) -> None:
        self.command = command
        self.timeout = timeout

    # ------------------------------------------------------------------
    # CronRuntime
    # ------------------------------------------------------------------

    def list_jobs(self) -> list[CronJob]:
        return jobs_from_runtime(self._run_json(["list", "--json", "--all"]))

    def create_job(self, draft: JobDraft) -> CronJob | None:
        args = ["add", "--name", draft.name, *schedule_flags(draft.schedule)]
        args += ["--session", draft.session_target]
        if draft.description:
            args += ["--message", draft.description]
        args.append("--json")
        document = self._run_json(args, allow_empty=True)

        job = None
        if isinstance(document, dict):
            raw = document.get("job", document)
            if isinstance(raw, dict) and raw.get("id"):
                job = job_from_runtime(raw)
        if job is not None and not draft.enabled:
            self.set_enabled(job.id, False)
            job.enabled = False
        return job

    def edit_job(self, job_id: str, changes: JobChanges) -> EditOutcome:
        fields = changes.fields()
        outcome = EditOutcome()
        if not fields:
            return outcome

        combined = [flag for name, value in fields.items() for flag in _field_flags(name, value)]
        try:
            self._run(["edit", job_id, *combined])
            outcome.applied = list(fields)
            return outcome
        except RuntimeRejectedError as exc:
            if len(fields) == 1:
                outcome.ignored = {name: exc.stderr or exc.message for name in fields}
                return outcome
            logger.warning("runtime_edit_degraded", job_id=job_id, fields=list(fields))

        for name, value in fields.items():
            try:
                self._run(["edit", job_id, *_field_flags(name, value)])
                outcome.applied.append(name)
            except RuntimeRejectedError as exc:
                outcome.ignored[name] = exc.stderr or exc.message
        return outcome

    def set_enabled(self, job_id: str, enabled: bool) -> None:
        action = "enable" if enabled else "disable"
        try:
            self._run([action, job_id, "--json"])
        except RuntimeRejectedError:
            logger.info("runtime_enable_fallback", job_id=job_id, enabled=enabled)
            self._run(["update", job_id, f"--enabled={'true' if enabled else 'false'}", "--json"])

    def delete_job(self, job_id: str) -> None:
        self._run(["remove", job_id])

    def run_job(self, job_id: str) -> RunDispatch:
        document = self._run_json(["run", job_id, "--json"], allow_empty=True)
        if not isinstance(document, dict):
            return RunDispatch()
        output = document.get("output")
        if output is None and document.get("log") is not None:
            output = str(document["log"])
        return RunDispatch(
            status=runtime_status(document.get("status")),
            output=output,
            error=document.get("error") or None,
        )

    def run_history(self, job_id: str) -> list[RunRecord]:
        document = self._run_json(["runs", job_id, "--json"], allow_empty=True)
        items = document.get("runs", []) if isinstance(document, dict) else document
        if not isinstance(items, list):
            return []
        runs = (run_from_runtime(item, job_id) for item in items if isinstance(item, dict))
        return [run for run in runs if run is not None]

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _run(self, args: list[str]) -> str:
        """Run ``<command> cron <args>`` and return stdout."""
        cmd = [self.command, "cron", *args]
        logger.debug("runtime_exec", cmd=cmd[:3])
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise RuntimeUnavailableError(
                f"'{self.command}' not found on PATH", cause=exc
            ).with_context(command=args[0]) from exc
        except subprocess.TimeoutExpired as exc:
            raise RuntimeTimeoutError(
                f"'{self.command} cron {args[0]}' timed out after {self.timeout}s", cause=exc
            ).with_context(command=args[0]) from exc

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise RuntimeRejectedError(
                f"'{self.command} cron {args[0]}' failed (exit {result.returncode})",
                stderr=stderr,
            ).with_context(command=args[0], exit_code=result.returncode)
        return result.stdout

    def _run_json(self, args: list[str], *, allow_empty: bool = False) -> Any:
        stdout = self._run(args).strip()
        if not stdout and allow_empty:
            return None
        try:
            return json.loads(stdout)
        except json.JSONDecodeError as exc:
            if allow_empty:
                logger.debug("runtime_non_json_output", command=args[0])
                return None
            raise RuntimeRejectedError(
                f"'{self.command} cron {args[0]}' returned invalid JSON", cause=exc
            ).with_context(command=args[0]) from exc

    def __repr__(self) -> str:
        return f"OpenClawCliRuntime(command={self.command!r}, timeout={self.timeout})"
