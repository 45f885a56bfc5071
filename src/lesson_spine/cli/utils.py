"""
CLI utility helpers: store access, error reporting and output formatting.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from lesson_spine.core.config import LessonSpineSettings, create_store, get_settings
from lesson_spine.core.errors import LessonSpineError
from lesson_spine.store.protocol import PublicationStore

console = Console()
err_console = Console(stderr=True)


# ── Store helper ─────────────────────────────────────────────────────────


@contextmanager
def open_store(settings: LessonSpineSettings | None = None) -> Iterator[PublicationStore]:
    """Yield the configured store and dispose it afterwards."""
    store = create_store(settings or get_settings())
    try:
        yield store
    finally:
        store.dispose()


@contextmanager
def cli_errors() -> Iterator[None]:
    """Report lesson-spine errors as a red one-liner and exit with code 1."""
    try:
        yield
    except LessonSpineError as exc:
        err_console.print(f"[bold red]Error[/bold red] ({exc.code}): {exc.message}")
        raise typer.Exit(code=1) from exc


def split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def output_record(record: Any, *, as_json: bool = False, title: str = "") -> None:
    """Render one record as JSON or key/value lines."""
    data = _to_dict(record)
    if as_json:
        console.print_json(json.dumps(data, default=str))
        return
    if title:
        console.print(f"[bold]{title}[/bold]")
    for key, value in data.items():
        console.print(f"  [cyan]{key}[/cyan]: {value}")


def output_records(records: list[Any], *, as_json: bool = False, title: str = "") -> None:
    """Render a list of records as JSON or a Rich table."""
    rows = [_to_dict(r) for r in records]
    if as_json:
        console.print_json(json.dumps(rows, default=str))
        return
    if not rows:
        console.print("[dim]No items.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for column in rows[0]:
        table.add_column(column, overflow="fold")
    for row in rows:
        table.add_row(*(str(v) for v in row.values()))
    console.print(table)


__all__ = [
    "cli_errors",
    "console",
    "err_console",
    "open_store",
    "output_record",
    "output_records",
    "split_csv",
]
