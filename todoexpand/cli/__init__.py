"""CLI entry point for todo-expand.

This module provides the Typer application behind the `todo-expand` command.
"""

import typer

from todoexpand.cli.main import main_command

# Main application
app = typer.Typer(
    name="todo-expand",
    help="todo-expand: rewrite TODOs into structured task briefs",
    add_completion=False,
)

app.command()(main_command)


__all__ = [
    "app",
    "main_command",
]
