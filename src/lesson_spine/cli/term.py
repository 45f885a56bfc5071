"""
CLI: ``lesson-spine term`` -- create terms.
"""

from __future__ import annotations

import typer

from lesson_spine.authoring import AuthoringService
from lesson_spine.cli.utils import cli_errors, console, open_store, output_record

app = typer.Typer(no_args_is_help=True)


@app.command("create")
def create(
    program_id: str = typer.Argument(..., help="Owning program id"),
    number: int = typer.Option(..., "--number", "-n", help="Term number within the program"),
    title: str | None = typer.Option(None, "--title", "-t"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Create a term under a program."""
    with cli_errors(), open_store() as store:
        term = AuthoringService(store).create_term(
            {"program_id": program_id, "term_number": number, "title": title}
        )
    if not json_out:
        console.print(f"[green]Created term[/green] {term.id}")
    output_record(term, as_json=json_out)
