"""Settings for cronspine.

All configuration is environment driven (prefix ``CRONSPINE_``) with optional
``.env`` support, validated once at startup by pydantic-settings.

Examples:
    >>> from cronspine.core.settings import CronSpineSettings
    >>> s = CronSpineSettings(runtime="memory", display_timezone="Europe/Berlin")
    >>> s.timeline_horizon_days
    7

Environment:
    CRONSPINE_DATABASE_PATH            run history SQLite file
    CRONSPINE_RUNTIME                  ``cli`` (openclaw subprocess) or ``memory``
    CRONSPINE_RUNTIME_COMMAND          executable for the cli runtime
    CRONSPINE_RUNTIME_TIMEOUT_SECONDS  per-command timeout
    CRONSPINE_DISPLAY_TIMEZONE         timezone used to bucket timeline days

Tags:
    settings, configuration, pydantic, environment, cronspine
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CronSpineSettings(BaseSettings):
    """Process-wide configuration.

    Fields
    ──────
    database_path            : SQLite file holding run history
    runtime                  : Which runtime adapter to build
    runtime_command          : Executable invoked by the cli adapter
    runtime_timeout_seconds  : Upper bound for one runtime call
    display_timezone         : IANA zone for timeline day columns
    timeline_horizon_days    : Days shown on the timeline
    timeline_max_occurrences : Occurrences enumerated per job
    run_page_size            : Hard cap on runs returned per page
    hung_run_after_seconds   : Pending runs older than this are flagged hung
    run_retention_days       : Default cutoff for ``runs prune``
    """

    model_config = SettingsConfigDict(
        env_prefix="CRONSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Network ──────────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 8420
    api_prefix: str = "/api/v1"
    api_title: str = "cronspine"
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # ── Observability ────────────────────────────────────────────
    debug: bool = False
    log_level: str = "INFO"
    json_logs: bool | None = None
    log_cache_loggers: bool = Field(
        default=True,
        description="Freeze loggers on first use; disable when logging is reconfigured in-process",
    )

    # ── Storage ──────────────────────────────────────────────────
    database_path: Path = Field(
        default_factory=lambda: Path.home() / ".cronspine" / "runs.db",
        description="SQLite file holding run history",
    )
    run_retention_days: int = Field(default=90, ge=1)

    # ── Runtime ──────────────────────────────────────────────────
    runtime: Literal["cli", "memory"] = "cli"
    runtime_command: str = "openclaw"
    runtime_timeout_seconds: float = Field(default=10.0, gt=0)

    # ── Scheduling / display ─────────────────────────────────────
    display_timezone: str = "UTC"
    timeline_horizon_days: int = Field(default=7, ge=1, le=31)
    timeline_max_occurrences: int = Field(default=50, ge=1)
    run_page_size: int = Field(default=100, ge=1, le=100)
    hung_run_after_seconds: int = Field(default=3600, ge=1)

    @field_validator("display_timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone: {value}") from exc
        return value
