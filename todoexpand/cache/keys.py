"""Cache key computation for todo-expand.

Contains:
- fnv1a_hex: 32-bit FNV-1a hash rendered as 8 hex digits
- file_cache_key: Key scoped to a (file path, TODO text) pair
- todo_cache_key: Key scoped to the TODO text alone
"""

FNV_OFFSET_BASIS = 0x811C9DC5
FNV_PRIME = 0x01000193


def fnv1a_hex(text: str) -> str:
    """Compute the FNV-1a 32-bit hash of a string.

    The hash runs over UTF-16 code units so keys stay compatible with
    existing cache files.

    Args:
        text: Input string.

    Returns:
        Lowercase 8-hex-digit digest.
    """
    data = text.encode("utf-16-le")
    h = FNV_OFFSET_BASIS
    for i in range(0, len(data), 2):
        h ^= data[i] | (data[i + 1] << 8)
        h = (h * FNV_PRIME) & 0xFFFFFFFF
    return f"{h:08x}"


def file_cache_key(path: str, raw: str) -> str:
    """Build the file-scoped cache key for a TODO."""
    return "f:" + fnv1a_hex(path + "::" + raw)


def todo_cache_key(raw: str) -> str:
    """Build the global cache key shared by identical TODO text."""
    return "t:" + fnv1a_hex(raw)
