"""
CLI: ``lesson-spine worker`` -- run the scheduled-publish coordinator.
"""

from __future__ import annotations

import typer

from lesson_spine.cli.utils import cli_errors, console, open_store, output_record
from lesson_spine.core.config import LessonSpineSettings, create_coordinator, get_settings

app = typer.Typer(no_args_is_help=True)


@app.command("start")
def start(
    interval: float | None = typer.Option(
        None, "--interval", "-i", help="Seconds between ticks (default from settings)"
    ),
    batch_size: int | None = typer.Option(
        None, "--batch-size", help="Max due lessons claimed per tick"
    ),
    once: bool = typer.Option(False, "--once", help="Run a single tick and exit"),
) -> None:
    """Start the publish worker.

    Example::

        lesson-spine worker start --interval 60
        lesson-spine worker start --once
    """
    settings = get_settings()
    overrides: dict[str, object] = {}
    if interval is not None:
        overrides["publish_interval_seconds"] = interval
    if batch_size is not None:
        overrides["publish_batch_size"] = batch_size
    if overrides:
        settings = settings.model_copy(update=overrides)

    if once:
        _tick(settings, json_out=False)
        return

    from lesson_spine.worker import run_worker

    console.print(
        f"[bold green]Starting lesson-spine publish worker[/bold green] "
        f"(interval={settings.publish_interval_seconds}s, store={settings.store_backend.value})"
    )
    with cli_errors():
        run_worker(settings)
    console.print("[yellow]Worker stopped[/yellow]")


@app.command("tick")
def tick(
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Run one coordinator tick and print its summary."""
    _tick(get_settings(), json_out=json_out)


def _tick(settings: LessonSpineSettings, *, json_out: bool) -> None:
    with cli_errors(), open_store(settings) as store:
        summary = create_coordinator(settings, store).tick()
    output_record(summary, as_json=json_out, title="Publish tick")
