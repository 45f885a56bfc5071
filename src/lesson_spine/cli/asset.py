"""
CLI: ``lesson-spine asset`` -- upsert and remove lesson/program assets.
"""

from __future__ import annotations

import typer

from lesson_spine.authoring import AuthoringService
from lesson_spine.cli.utils import cli_errors, console, open_store, output_record
from lesson_spine.core.enums import AssetOwner, AssetType, AssetVariant

app = typer.Typer(no_args_is_help=True)


@app.command("set")
def set_asset(
    owner: AssetOwner = typer.Argument(..., help="lesson or program"),
    owner_id: str = typer.Argument(..., help="Lesson or program id"),
    language: str = typer.Option(..., "--language", "-l"),
    variant: AssetVariant = typer.Option(..., "--variant", "-v"),
    url: str = typer.Option(..., "--url"),
    asset_type: AssetType | None = typer.Option(
        None, "--type", help="Lesson: thumbnail (default) or subtitle. Program: poster."
    ),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Create or replace the asset for (owner, language, variant, type)."""
    with cli_errors(), open_store() as store:
        authoring = AuthoringService(store)
        if owner is AssetOwner.LESSON:
            asset = authoring.set_lesson_asset(
                owner_id, language, variant, url, asset_type or AssetType.THUMBNAIL
            )
        else:
            if asset_type not in (None, AssetType.POSTER):
                console.print("[red]Programs only carry poster assets[/red]")
                raise typer.Exit(code=1)
            asset = authoring.set_program_asset(owner_id, language, variant, url)
    output_record(asset, as_json=json_out, title="Asset")


@app.command("remove")
def remove_asset(
    lesson_id: str = typer.Argument(..., help="Lesson id"),
    language: str = typer.Option(..., "--language", "-l"),
    variant: AssetVariant = typer.Option(..., "--variant", "-v"),
    asset_type: AssetType = typer.Option(AssetType.THUMBNAIL, "--type"),
) -> None:
    """Remove a lesson asset."""
    with cli_errors(), open_store() as store:
        removed = AuthoringService(store).remove_lesson_asset(
            lesson_id, language, variant, asset_type
        )
    if removed:
        console.print(f"[green]Removed[/green] {asset_type.value}/{variant.value} ({language})")
    else:
        console.print("[yellow]No such asset[/yellow]")
