"""
FastAPI dependency injection: shared singletons and per-request factories.

Usage in routers::

    from cronspine.api.deps import OpContext, Settings

    @router.get("/things")
    def list_things(ctx: OpContext, settings: Settings):
        ...

Singletons (settings, runtime adapter) are created once; per-request
objects (connection, OperationContext) carry request-scoped state through
the call chain.

Tags:
    cronspine, api, dependency-injection, OpContext

Doc-Types:
    api-reference
"""

from __future__ import annotations

import uuid
from collections.abc import Generator
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request

from cronspine.core.settings import CronSpineSettings
from cronspine.core.timestamps import utc_now
from cronspine.ops.context import OperationContext
from cronspine.ops.sqlite_conn import SqliteConnection
from cronspine.runtime.protocol import CronRuntime

# ── Settings (singleton) ─────────────────────────────────────────────────


@lru_cache(maxsize=1)
def get_settings() -> CronSpineSettings:
    """Cached settings, loaded once per process."""
    return CronSpineSettings()


# ── Database connection (per-request) ────────────────────────────────────


def get_connection(
    settings: Annotated[CronSpineSettings, Depends(get_settings)],
) -> Generator[SqliteConnection, None, None]:
    """Yield a run-history connection for the request lifespan."""
    conn = SqliteConnection(settings.database_path)
    try:
        yield conn
    finally:
        conn.close()


# ── Runtime (app singleton) ──────────────────────────────────────────────


def get_runtime(request: Request) -> CronRuntime | None:
    """The runtime adapter built by :func:`cronspine.api.app.create_app`."""
    return getattr(request.app.state, "runtime", None)


# ── Operation context (per-request) ──────────────────────────────────────


def get_operation_context(
    request: Request,
    conn: Annotated[SqliteConnection, Depends(get_connection)],
    runtime: Annotated[CronRuntime | None, Depends(get_runtime)],
) -> OperationContext:
    """Build an :class:`OperationContext` from the current request."""
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    return OperationContext(
        conn=conn,
        runtime=runtime,
        request_id=request_id,
        caller="api",
        clock=getattr(request.app.state, "clock", utc_now),
    )


# ── Convenience type aliases ─────────────────────────────────────────────

Settings = Annotated[CronSpineSettings, Depends(get_settings)]
Conn = Annotated[SqliteConnection, Depends(get_connection)]
Runtime = Annotated[CronRuntime | None, Depends(get_runtime)]
OpContext = Annotated[OperationContext, Depends(get_operation_context)]
