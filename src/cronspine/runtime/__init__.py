"""Ports and adapters for the external agent runtime.

Usage::

    from cronspine.core.settings import CronSpineSettings
    from cronspine.runtime import create_runtime

    runtime = create_runtime(CronSpineSettings(runtime="memory"))
    runtime.list_jobs()
"""

from __future__ import annotations

from cronspine.core.errors import ConfigError
from cronspine.core.settings import CronSpineSettings
from cronspine.runtime.cli import OpenClawCliRuntime
from cronspine.runtime.memory import InMemoryRuntime
from cronspine.runtime.protocol import (
    CronRuntime,
    EditOutcome,
    JobChanges,
    JobDraft,
    RunDispatch,
)


def create_runtime(settings: CronSpineSettings) -> CronRuntime:
    """Build the runtime adapter selected by ``settings.runtime``."""
    match settings.runtime:
        case "cli":
            return OpenClawCliRuntime(
                command=settings.runtime_command,
                timeout=settings.runtime_timeout_seconds,
            )
        case "memory":
            return InMemoryRuntime()
    raise ConfigError(f"Unknown runtime '{settings.runtime}'")


__all__ = [
    "CronRuntime",
    "EditOutcome",
    "InMemoryRuntime",
    "JobChanges",
    "JobDraft",
    "OpenClawCliRuntime",
    "RunDispatch",
    "create_runtime",
]
