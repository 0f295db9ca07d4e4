"""Shared utility functions for the CLI."""

import logging
import os
from typing import Optional

import typer

from todoexpand.config import DRY_RUN_ENV_VAR, BriefStyle, split_list

LOGGER_NAME = "todoexpand"

LEVEL_COLORS = {
    logging.DEBUG: typer.colors.BRIGHT_BLACK,
    logging.INFO: typer.colors.BRIGHT_BLACK,
    logging.WARNING: typer.colors.YELLOW,
    logging.ERROR: typer.colors.RED,
    logging.CRITICAL: typer.colors.RED,
}


class EchoHandler(logging.Handler):
    """Logging handler that writes records through typer.echo with colours.

    Warnings and errors go to stderr, everything else to stdout.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
        except (TypeError, ValueError):
            self.handleError(record)
            return
        color = LEVEL_COLORS.get(record.levelno, typer.colors.BRIGHT_BLACK)
        typer.echo(typer.style(message, fg=color), err=record.levelno >= logging.WARNING)


def setup_logging(verbose: bool) -> logging.Logger:
    """Route the package's log records to the terminal.

    Args:
        verbose: Show per-file and per-TODO debug messages.

    Returns:
        The package logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, EchoHandler):
            logger.removeHandler(handler)
    logger.addHandler(EchoHandler())
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False
    return logger


def gray(message: str) -> str:
    """Dim a progress message."""
    return typer.style(message, fg=typer.colors.BRIGHT_BLACK)


def is_dry_run(flag: bool) -> bool:
    """Dry-run when the flag is given or TODO_EXPAND_DRY=1."""
    return flag or os.environ.get(DRY_RUN_ENV_VAR) == "1"


def parse_style(style: Optional[str]) -> Optional[BriefStyle]:
    """Validate a --style value.

    Raises:
        typer.Exit: If the style is not succinct or verbose.
    """
    if style is None:
        return None
    try:
        return BriefStyle(style.lower())
    except ValueError:
        typer.echo(f"Invalid style: {style}", err=True)
        typer.echo("Valid styles: succinct, verbose")
        raise typer.Exit(1)


def parse_list_option(value: Optional[str]) -> Optional[list[str]]:
    """Split a comma-separated option, keeping None for unset options."""
    if value is None:
        return None
    return split_list(value)
