"""Best-effort formatting of rewritten files.

Python files go through `ruff format` (or `black`); everything else through
Prettier via `npx`. Missing tools and formatter failures are ignored.
"""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

PYTHON_SUFFIXES = {".py", ".pyi"}


def _python_formatter() -> Optional[list[str]]:
    if shutil.which("ruff"):
        return ["ruff", "format", "--quiet"]
    if shutil.which("black"):
        return ["black", "--quiet"]
    return None


def _prettier() -> Optional[list[str]]:
    if shutil.which("npx"):
        return ["npx", "--no-install", "prettier", "--write", "--log-level", "warn"]
    return None


def _run(command: list[str], files: list[Path]) -> None:
    try:
        result = subprocess.run(
            command + [str(f) for f in files],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        logger.debug("Formatter %s could not run: %s", command[0], e)
        return
    if result.returncode != 0:
        logger.debug("Formatter %s exited with code %d: %s", command[0], result.returncode, result.stderr.strip())


def format_files(files: Sequence[Path]) -> None:
    """Format files in place with whichever formatter is available.

    Args:
        files: Absolute paths of the files to format.
    """
    python_files = [f for f in files if f.suffix in PYTHON_SUFFIXES]
    other_files = [f for f in files if f.suffix not in PYTHON_SUFFIXES]

    if python_files:
        command = _python_formatter()
        if command:
            _run(command, python_files)

    if other_files:
        command = _prettier()
        if command:
            _run(command, other_files)
