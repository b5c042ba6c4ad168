"""
CLI utility helpers: context construction and output formatting.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from dataclasses import asdict
from datetime import datetime
from enum import Enum
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from cronspine.core.scheduling.expression import DAY_MS, HOUR_MS, MINUTE_MS, SECOND_MS
from cronspine.core.scheduling.schema import ensure_schema
from cronspine.core.settings import CronSpineSettings
from cronspine.core.timestamps import to_iso8601
from cronspine.ops.context import OperationContext
from cronspine.ops.result import OperationResult, PagedResult
from cronspine.ops.sqlite_conn import SqliteConnection
from cronspine.runtime import create_runtime

console = Console()
err_console = Console(stderr=True)

_DURATION_RE = re.compile(r"^(\d+)(ms|s|m|h|d)$")
_UNIT_MS = {"ms": 1, "s": SECOND_MS, "m": MINUTE_MS, "h": HOUR_MS, "d": DAY_MS}


# ── Context helper ───────────────────────────────────────────────────────


def load_settings() -> CronSpineSettings:
    """Settings from ``CRONSPINE_*`` environment variables and ``.env``."""
    return CronSpineSettings()


def make_context(
    database: str | None = None,
    *,
    dry_run: bool = False,
    with_runtime: bool = True,
) -> tuple[OperationContext, SqliteConnection]:
    """Create an ``OperationContext`` + connection pair for CLI commands.

    The run-history schema is created on first use. ``with_runtime=False``
    skips building the runtime adapter for commands that never need it.
    """
    settings = load_settings()
    conn = SqliteConnection(database or settings.database_path)
    ensure_schema(conn)
    runtime = create_runtime(settings) if with_runtime else None
    ctx = OperationContext(conn=conn, runtime=runtime, caller="cli", dry_run=dry_run)
    return ctx, conn


# ── Input helpers ────────────────────────────────────────────────────────


def parse_duration(text: str) -> int:
    """``"15m"`` -> ``900000``. Accepts ms, s, m, h and d suffixes."""
    match = _DURATION_RE.match(text.strip().lower())
    if match is None:
        raise typer.BadParameter(f"Invalid duration '{text}' (expected e.g. 30s, 15m, 2h, 1d)")
    return int(match.group(1)) * _UNIT_MS[match.group(2)]


def schedule_input(
    cron: str | None,
    every: str | None,
    at: str | None,
) -> str | dict[str, Any] | None:
    """Build the schedule value for a request from mutually exclusive options."""
    given = [name for name, value in (("--cron", cron), ("--every", every), ("--at", at)) if value]
    if len(given) > 1:
        raise typer.BadParameter(f"Use only one of {', '.join(given)}")
    if cron:
        return cron
    if every:
        return {"kind": "every", "everyMs": parse_duration(every)}
    if at:
        return {"kind": "at", "at": at}
    return None


# ── Output helpers ───────────────────────────────────────────────────────


def _plain(value: Any) -> Any:
    if isinstance(value, datetime):
        return to_iso8601(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_plain(v) for v in value]
    return value


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / pydantic model / dict to plain dict."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if hasattr(obj, "__dataclass_fields__"):
        return _plain(asdict(obj))
    if isinstance(obj, dict):
        return _plain(obj)
    return {"value": str(obj)}


def _fail(result: OperationResult) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    code = err.code if err else "ERROR"
    err_console.print(f"[bold red]Error[/bold red] ({code}): {msg}")
    if err is not None and "run_id" in err.details:
        err_console.print(f"  [dim]run_id: {err.details['run_id']}[/dim]")
    if err is not None and err.details.get("stderr"):
        err_console.print(f"  [dim]{err.details['stderr']}[/dim]")
    raise typer.Exit(code=1)


def _warn(result: OperationResult) -> None:
    for warning in result.warnings:
        err_console.print(f"[yellow]Warning[/yellow]: {warning}")


def output_result(
    result: OperationResult,
    *,
    as_json: bool = False,
    title: str = "",
    row: Callable[[Any], dict[str, Any]] | None = None,
) -> None:
    """Render an ``OperationResult`` to the terminal.

    *row* maps the payload (or each list item) to the dict that is shown.
    """
    if not result.success:
        _fail(result)
    _warn(result)

    data = result.data
    convert = row or _to_dict

    if as_json:
        payload = [convert(d) for d in data] if isinstance(data, list | tuple) else convert(data)
        console.print_json(json.dumps(_plain(payload), default=str))
        return

    if isinstance(data, list):
        if not data:
            console.print("[dim]No items.[/dim]")
            return
        _print_table([convert(d) for d in data], title=title)
    else:
        _print_dict(convert(data), title=title)


def output_paged(
    result: PagedResult,
    *,
    as_json: bool = False,
    title: str = "",
    row: Callable[[Any], dict[str, Any]] | None = None,
) -> None:
    """Render a ``PagedResult`` to the terminal with pagination info."""
    if not result.success:
        _fail(result)
    _warn(result)

    items = result.data or []
    convert = row or _to_dict

    if as_json:
        payload = {
            "items": [convert(d) for d in items],
            "total": result.total,
            "limit": result.limit,
            "offset": result.offset,
            "has_more": result.has_more,
        }
        console.print_json(json.dumps(_plain(payload), default=str))
        return

    if not items:
        console.print("[dim]No items.[/dim]")
        return

    _print_table([convert(d) for d in items], title=title)
    console.print(
        f"\n[dim]Showing {len(items)} of {result.total}"
        f" (offset {result.offset})[/dim]"
    )


# ── Private helpers ──────────────────────────────────────────────────────


def _cell(value: Any) -> str:
    value = _plain(value)
    return "" if value is None else str(value)


def _print_table(rows: list[dict[str, Any]], *, title: str = "") -> None:
    """Render a list of dicts as a Rich table."""
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for item in rows:
        table.add_row(*(_cell(v) for v in item.values()))
    console.print(table)


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {_cell(v)}")
