"""
CLI: ``lesson-spine program`` -- create and inspect programs.
"""

from __future__ import annotations

import typer

from lesson_spine.authoring import AuthoringService
from lesson_spine.cli.utils import cli_errors, console, open_store, output_record, split_csv

app = typer.Typer(no_args_is_help=True)


@app.command("create")
def create(
    title: str = typer.Option(..., "--title", "-t", help="Program title"),
    language: str = typer.Option(..., "--language", "-l", help="Primary language"),
    languages: str | None = typer.Option(
        None, "--languages", help="Comma-separated available languages (default: primary)"
    ),
    description: str | None = typer.Option(None, "--description"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Create a draft program."""
    with cli_errors(), open_store() as store:
        program = AuthoringService(store).create_program(
            {
                "title": title,
                "description": description,
                "language_primary": language,
                "languages_available": split_csv(languages),
            }
        )
    if not json_out:
        console.print(f"[green]Created program[/green] {program.id}")
    output_record(program, as_json=json_out)


@app.command("show")
def show(
    program_id: str = typer.Argument(..., help="Program id"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Show one program."""
    with cli_errors(), open_store() as store:
        program = AuthoringService(store).get_program(program_id)
    output_record(program, as_json=json_out, title="Program")
