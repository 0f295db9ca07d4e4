"""Target file discovery for todo-expand.

Files come either from the git index (`--staged`) or from path arguments,
where directories are walked recursively. Both are filtered by extension,
excluded path segments and size.
"""

from pathlib import Path
from typing import Iterable, Sequence

from todoexpand.git import get_staged_files


def is_included(path: Path, include: Sequence[str], exclude: Sequence[str]) -> bool:
    """Check a path against the extension and excluded-segment filters.

    Args:
        path: Absolute path to test.
        include: Allowed extensions (lowercase, no leading dot).
        exclude: Directory segments; a path containing `/<segment>/` is skipped.
    """
    ext = path.suffix[1:].lower()
    if ext not in include:
        return False
    posix = path.as_posix()
    return not any(f"/{segment}/" in posix for segment in exclude)


def _accept(path: Path, include: Sequence[str], exclude: Sequence[str], max_file_kb: int) -> bool:
    if not is_included(path, include, exclude):
        return False
    try:
        return path.stat().st_size <= max_file_kb * 1024
    except OSError:
        return False


def _walk(paths: Iterable[Path]) -> Iterable[Path]:
    for path in paths:
        if path.is_file():
            yield path
        elif path.is_dir():
            yield from sorted(p for p in path.rglob("*") if p.is_file())


def discover_targets(
    cwd: Path,
    staged: bool,
    paths: Sequence[str],
    include: Sequence[str],
    exclude: Sequence[str],
    max_file_kb: int,
) -> list[Path]:
    """Discover the files to process.

    Args:
        cwd: Project root directory.
        staged: Read files from the git index instead of `paths`.
        paths: File or directory arguments, relative to `cwd` or absolute.
        include: Allowed file extensions.
        exclude: Directory segments to skip.
        max_file_kb: Skip files larger than this.

    Returns:
        Absolute file paths, without duplicates, in discovery order.

    Raises:
        GitError: If `staged` is set and git fails.
    """
    if staged:
        candidates = [cwd / name for name in get_staged_files(cwd)]
        files = [p for p in candidates if p.is_file()]
    else:
        files = list(_walk(cwd / p for p in paths))

    results: list[Path] = []
    seen = set()
    for path in files:
        path = path.resolve()
        if path in seen:
            continue
        seen.add(path)
        if _accept(path, include, exclude, max_file_kb):
            results.append(path)
    return results
