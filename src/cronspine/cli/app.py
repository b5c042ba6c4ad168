"""
Root Typer application for the cronspine CLI.
"""

from __future__ import annotations

import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version

import typer
from typer import Typer

from cronspine import __version__
from cronspine.core.logging import configure_logging

app = Typer(
    name="cronspine",
    help="cronspine: cron jobs, run history and the weekly timeline for your agents.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        try:
            v = pkg_version("cronspine")
        except PackageNotFoundError:
            v = __version__
        typer.echo(f"cronspine {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs."),
) -> None:
    """cronspine CLI: manage cron jobs, runs and schedules."""
    configure_logging(
        level="DEBUG" if verbose else "WARNING",
        json_format=False,
        stream=sys.stderr,
        cache_loggers=False,
    )


# ── Sub-command registration ─────────────────────────────────────────────

from cronspine.cli.jobs import app as jobs_app  # noqa: E402
from cronspine.cli.runs import app as runs_app  # noqa: E402
from cronspine.cli.schedule import app as sched_app  # noqa: E402
from cronspine.cli.serve import serve  # noqa: E402
from cronspine.cli.timeline import timeline  # noqa: E402

app.add_typer(jobs_app, name="jobs", help="Cron job management.")
app.add_typer(runs_app, name="runs", help="Run history.")
app.add_typer(sched_app, name="schedule", help="Validate, describe and preview schedules.")
app.command("timeline")(timeline)
app.command("serve")(serve)
