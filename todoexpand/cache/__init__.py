"""Cache module for todo-expand.

This package keeps rewritten comments on disk to prevent repeat LLM calls:
- paths: Locate the project cache file
- keys: FNV-1a based cache keys
- store: JSON read/write and the run-scoped CacheStore
"""

# Path utilities
from todoexpand.cache.paths import (
    CACHE_FILE_NAME,
    find_cache_path,
)

# Key utilities
from todoexpand.cache.keys import (
    file_cache_key,
    fnv1a_hex,
    todo_cache_key,
)

# Store operations
from todoexpand.cache.store import (
    CacheStore,
    read_cache,
    write_cache,
)


__all__ = [
    # Path utilities
    "CACHE_FILE_NAME",
    "find_cache_path",
    # Key utilities
    "file_cache_key",
    "fnv1a_hex",
    "todo_cache_key",
    # Store operations
    "CacheStore",
    "read_cache",
    "write_cache",
]
