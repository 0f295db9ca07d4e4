"""Cache file location for todo-expand.

The cache lives inside the nearest enclosing `.git` directory so it is
never committed. Outside a repository it falls back to the working
directory.
"""

from pathlib import Path

CACHE_FILE_NAME = ".todoexpand-cache.json"


def find_cache_path(cwd: Path) -> Path:
    """Return the cache file path for the project containing `cwd`.

    Args:
        cwd: Directory to start searching from.

    Returns:
        `<repo>/.git/.todoexpand-cache.json` for the nearest repository,
        otherwise `<cwd>/.todoexpand-cache.json`.
    """
    for directory in [cwd, *cwd.parents]:
        git_dir = directory / ".git"
        if git_dir.is_dir():
            return git_dir / CACHE_FILE_NAME
    return cwd / CACHE_FILE_NAME
