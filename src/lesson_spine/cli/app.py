"""
Root Typer application for the lesson-spine CLI.
"""

from __future__ import annotations

import sys

import typer
from typer import Typer

app = Typer(
    name="lesson-spine",
    help="lesson-spine: lesson publishing state machine and scheduled-publish worker.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from lesson_spine import __version__

        typer.echo(f"lesson-spine {__version__}")
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
) -> None:
    """lesson-spine CLI: author lessons, drive their status, run the publish worker."""
    from lesson_spine.core.config import get_settings
    from lesson_spine.core.logging import configure_logging

    settings = get_settings()
    configure_logging(
        level=settings.log_level,
        json_format=settings.log_format == "json",
        service=settings.service_name,
        stream=sys.stderr,
    )


# ── Sub-command registration ─────────────────────────────────────────────

from lesson_spine.cli.asset import app as asset_app  # noqa: E402
from lesson_spine.cli.db import app as db_app  # noqa: E402
from lesson_spine.cli.lesson import app as lesson_app  # noqa: E402
from lesson_spine.cli.program import app as program_app  # noqa: E402
from lesson_spine.cli.term import app as term_app  # noqa: E402
from lesson_spine.cli.worker import app as worker_app  # noqa: E402

app.add_typer(db_app, name="db", help="Database operations.")
app.add_typer(program_app, name="program", help="Program authoring.")
app.add_typer(term_app, name="term", help="Term authoring.")
app.add_typer(lesson_app, name="lesson", help="Lesson authoring and status actions.")
app.add_typer(asset_app, name="asset", help="Lesson thumbnails/subtitles and program posters.")
app.add_typer(worker_app, name="worker", help="Scheduled-publish worker.")
