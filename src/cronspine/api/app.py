"""
FastAPI application factory.

``create_app()`` wires middleware, routers, error handlers, the runtime
adapter and lifespan events into a single ``FastAPI`` instance.

Manifesto:
    The app factory is the single composition root: middleware, routers,
    the runtime port and lifecycle hooks are wired here so the rest of the
    codebase never touches ``FastAPI`` directly.

Tags:
    cronspine, api, app-factory, composition-root, FastAPI

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cronspine import __version__
from cronspine.api.deps import get_settings
from cronspine.api.middleware.errors import unhandled_exception_handler
from cronspine.api.middleware.request_id import RequestIDMiddleware
from cronspine.core.logging import configure_logging, get_logger
from cronspine.core.scheduling.schema import ensure_schema
from cronspine.core.settings import CronSpineSettings
from cronspine.ops.sqlite_conn import SqliteConnection
from cronspine.runtime import create_runtime
from cronspine.runtime.protocol import CronRuntime


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: logging setup and run-history schema."""
    settings: CronSpineSettings = app.state.settings
    configure_logging(
        level=settings.log_level,
        json_format=settings.json_logs,
        cache_loggers=settings.log_cache_loggers,
    )

    log = get_logger("cronspine.api")
    log.info("api_starting", version=app.version, runtime=type(app.state.runtime).__name__)

    conn = SqliteConnection(settings.database_path)
    try:
        ensure_schema(conn)
    finally:
        conn.close()
    log.info("database_initialized", path=str(settings.database_path))

    yield
    log.info("api_stopping")


def create_app(
    *,
    settings: CronSpineSettings | None = None,
    runtime: CronRuntime | None = None,
    clock: Callable[[], datetime] | None = None,
) -> FastAPI:
    """Build and return a fully-configured FastAPI application.

    Parameters
    ----------
    settings : CronSpineSettings | None
        Override settings (useful for testing). When ``None`` the cached
        singleton from :func:`get_settings` is used.
    runtime : CronRuntime | None
        Runtime adapter to use instead of the one ``settings.runtime`` selects.
    clock : callable | None
        Source of "now" for every request (tests pin it).
    """

    settings = settings or get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=__version__,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    # Stash settings and the runtime on app state for dependencies
    app.state.settings = settings
    app.state.runtime = runtime if runtime is not None else create_runtime(settings)
    if clock is not None:
        app.state.clock = clock

    # Override DI so endpoints use the provided settings
    app.dependency_overrides[get_settings] = lambda: settings

    # ── Middleware (outermost → innermost) ────────────────────────────
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Exception handlers ───────────────────────────────────────────
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ── Routers ──────────────────────────────────────────────────────
    from cronspine.api.routers import cron

    app.include_router(cron.router, prefix=settings.api_prefix, tags=["cron"])

    @app.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        """Liveness probe for container healthchecks."""
        return {"status": "ok", "version": __version__}

    return app
