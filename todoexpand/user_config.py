"""Project configuration lookup for todo-expand.

A project config is a `.todoexpandrc.yaml` (or `.yml`, `.json`) file in the
working directory or any of its parents. The nearest one wins.
"""

from pathlib import Path
from typing import Optional

PROJECT_CONFIG_NAMES = (
    ".todoexpandrc.yaml",
    ".todoexpandrc.yml",
    ".todoexpandrc.json",
)


def find_project_config(start_dir: Path) -> Optional[Path]:
    """Find the nearest project config file by walking up the tree.

    Args:
        start_dir: Directory to start from.

    Returns:
        Path to the config file, or None if none is found before the root.
    """
    for directory in [start_dir, *start_dir.parents]:
        for name in PROJECT_CONFIG_NAMES:
            candidate = directory / name
            if candidate.is_file():
                return candidate
    return None
