"""
CLI: ``lesson-spine lesson`` -- author lessons and drive their status.

Example::

    lesson-spine lesson create TERM_ID -n 1 -t "Welcome" --type video \
        --duration-ms 60000 -l en --content-url https://cdn.example/welcome.mp4
    lesson-spine lesson schedule LESSON_ID --at 2030-01-01T09:00:00Z
    lesson-spine lesson publish LESSON_ID
    lesson-spine lesson archive LESSON_ID
"""

from __future__ import annotations

from typing import Any

import typer

from lesson_spine.authoring import AuthoringService
from lesson_spine.cli.utils import (
    cli_errors,
    console,
    open_store,
    output_record,
    output_records,
    split_csv,
)
from lesson_spine.core.config import create_status_service, get_settings
from lesson_spine.core.enums import ContentType

app = typer.Typer(no_args_is_help=True)


def _apply(lesson_id: str, payload: dict[str, Any], json_out: bool) -> None:
    settings = get_settings()
    with cli_errors(), open_store(settings) as store:
        lesson = create_status_service(settings, store).apply(lesson_id, payload)
    if not json_out:
        console.print(
            f"[green]Lesson {lesson.id}[/green] is now [bold]{lesson.status.value}[/bold]"
        )
    output_record(lesson, as_json=json_out)


@app.command("create")
def create(
    term_id: str = typer.Argument(..., help="Owning term id"),
    number: int = typer.Option(..., "--number", "-n", help="Lesson number within the term"),
    title: str = typer.Option(..., "--title", "-t"),
    content_type: ContentType = typer.Option(..., "--type", help="video or article"),
    language: str = typer.Option(..., "--language", "-l", help="Primary content language"),
    content_url: str = typer.Option(..., "--content-url", help="Primary-language content URL"),
    languages: str | None = typer.Option(None, "--languages", help="Comma-separated languages"),
    duration_ms: int | None = typer.Option(None, "--duration-ms", help="Required for video"),
    paid: bool = typer.Option(False, "--paid", help="Mark the lesson as paid"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Create a draft lesson."""
    with cli_errors(), open_store() as store:
        lesson = AuthoringService(store).create_lesson(
            {
                "term_id": term_id,
                "lesson_number": number,
                "title": title,
                "content_type": content_type,
                "duration_ms": duration_ms,
                "is_paid": paid,
                "content_language_primary": language,
                "content_languages_available": split_csv(languages),
                "content_url_primary": content_url,
            }
        )
    if not json_out:
        console.print(f"[green]Created lesson[/green] {lesson.id}")
    output_record(lesson, as_json=json_out)


@app.command("show")
def show(
    lesson_id: str = typer.Argument(..., help="Lesson id"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Show one lesson."""
    with cli_errors(), open_store() as store:
        lesson = AuthoringService(store).get_lesson(lesson_id)
    output_record(lesson, as_json=json_out, title="Lesson")


@app.command("list")
def list_lessons(
    term_id: str = typer.Argument(..., help="Term id"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """List the lessons of a term."""
    with cli_errors(), open_store() as store:
        lessons = AuthoringService(store).list_lessons(term_id)
    rows = [
        {
            "id": lesson.id,
            "lesson_number": lesson.lesson_number,
            "title": lesson.title,
            "status": lesson.status.value,
            "publish_at": lesson.publish_at,
            "published_at": lesson.published_at,
        }
        for lesson in lessons
    ]
    output_records(rows, as_json=json_out, title="Lessons")


@app.command("schedule")
def schedule(
    lesson_id: str = typer.Argument(..., help="Lesson id"),
    at: str = typer.Option(..., "--at", help="ISO 8601 publish time, strictly in the future"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Schedule a draft lesson for publishing."""
    _apply(lesson_id, {"action": "schedule", "publish_at": at}, json_out)


@app.command("publish")
def publish(
    lesson_id: str = typer.Argument(..., help="Lesson id"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Publish a draft lesson now."""
    _apply(lesson_id, {"action": "publish_now"}, json_out)


@app.command("archive")
def archive(
    lesson_id: str = typer.Argument(..., help="Lesson id"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Archive a lesson."""
    _apply(lesson_id, {"action": "archive"}, json_out)
