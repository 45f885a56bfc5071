"""
CLI: ``lesson-spine db`` -- database management commands.
"""

from __future__ import annotations

import typer

from lesson_spine.cli.utils import cli_errors, console, open_store
from lesson_spine.core.config import get_settings

app = typer.Typer(no_args_is_help=True)


@app.command()
def init() -> None:
    """Create all tables (idempotent)."""
    settings = get_settings()
    with cli_errors(), open_store(settings) as store:
        store.create_schema()
    console.print(f"[green]Schema ready[/green] ({settings.store_backend.value} store)")
