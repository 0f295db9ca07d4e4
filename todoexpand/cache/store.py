"""Cache store operations for todo-expand.

Contains:
- read_cache: Load the JSON cache map, empty on any failure
- write_cache: Persist the JSON cache map
- CacheStore: Run-scoped, lock-guarded owner of the cache map
"""

import json
import logging
import threading
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def read_cache(path: Path) -> dict[str, str]:
    """Read the JSON cache from disk.

    Args:
        path: Path to the cache file.

    Returns:
        The cached mapping, or an empty dict if the file is missing,
        unreadable, or not a JSON object.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    if not isinstance(data, dict):
        return {}
    return {str(k): v for k, v in data.items() if isinstance(v, str)}


def write_cache(path: Path, data: dict[str, str]) -> None:
    """Persist the cache map as pretty JSON.

    Creating the parent directory is best-effort; a failure to write the
    file itself propagates.

    Args:
        path: Path to the cache file.
        data: Key-value mapping of cache entries.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        pass
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


class CacheStore:
    """Owner of the in-memory cache map for one run.

    All reads and writes go through a lock so files processed in parallel
    can share the map. A disabled store never touches disk and always misses.
    """

    def __init__(self, path: Optional[Path], enabled: bool = True):
        self.path = path
        self.enabled = enabled and path is not None
        self._entries: dict[str, str] = {}
        self._loaded = False
        self._lock = threading.Lock()

    def load(self) -> None:
        """Load the cache file once; later calls are no-ops."""
        if not self.enabled:
            return
        with self._lock:
            if not self._loaded:
                self._entries = read_cache(self.path)
                self._loaded = True
                logger.debug("Loaded %d cache entries from %s", len(self._entries), self.path)

    def lookup(self, file_key: str, text_key: str) -> Optional[str]:
        """Find a cached rewrite for a TODO.

        The file-scoped key wins. A hit on the global key alone is copied
        to the file-scoped key so the next flush persists it.

        Args:
            file_key: Key scoped to (file path, TODO text).
            text_key: Key scoped to the TODO text.

        Returns:
            The cached comment, or None on a miss.
        """
        if not self.enabled:
            return None
        self.load()
        with self._lock:
            cached = self._entries.get(file_key)
            if cached:
                return cached
            cached = self._entries.get(text_key)
            if cached:
                self._entries[file_key] = cached
                return cached
        return None

    def store(self, file_key: str, text_key: str, comment: str) -> None:
        """Record a rewritten comment under both keys."""
        if not self.enabled:
            return
        self.load()
        with self._lock:
            self._entries[file_key] = comment
            self._entries[text_key] = comment

    def flush(self) -> None:
        """Write the current map to disk.

        Raises:
            OSError: If the cache file cannot be written.
        """
        if not self.enabled:
            return
        self.load()
        with self._lock:
            write_cache(self.path, dict(self._entries))

    def snapshot(self) -> dict[str, str]:
        """Return a copy of the in-memory map (entry counts, inspection)."""
        with self._lock:
            return dict(self._entries)
