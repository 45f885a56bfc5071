"""lesson-spine command-line interface (typer + rich)."""
