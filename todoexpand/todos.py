"""TODO comment detection.

Contains:
- CommentStyle: Line (// or #) vs block (/* */) comments
- TodoMatch: A detected, not yet structured TODO comment
- detect_todos: Find unstructured TODO comments in file content
- is_structured: Check whether a comment is already an expanded brief
- extract_context: Slice the lines surrounding a TODO
"""

import re
from dataclasses import dataclass
from enum import Enum


class CommentStyle(Enum):
    """Comment styles recognised by the detector."""

    LINE = "line"
    BLOCK = "block"


BLOCK_MARKER = "/*"

# `// TODO: ...` or `# TODO ...`, the marker preceded by line start or whitespace
TODO_SINGLE = re.compile(r"(^|\s)(//|#)\s*TODO[:\s](.*)$", re.IGNORECASE)
TODO_BLOCK_START = re.compile(r"/\*\s*TODO[:\s]", re.IGNORECASE)
BLOCK_END = "*/"

# Section markers of an already expanded brief (case-sensitive)
STRUCTURED_MARKERS = re.compile(
    r"AI TASK:|\bContext\b|\bGoal\b|\bSteps\b|\bConstraints\b|\bAcceptance\b"
)


@dataclass(frozen=True)
class TodoMatch:
    """A TODO comment occurrence within a file.

    Attributes:
        start_line: Zero-based index of the first line of the comment.
        end_line: Zero-based index of the last line (inclusive).
        raw_text: The original text of the lines spanned by the comment.
        style: Line or block comment.
        marker: `//` or `#` for line comments, `/*` for blocks.
    """

    start_line: int
    end_line: int
    raw_text: str
    style: CommentStyle
    marker: str


def is_structured(text: str) -> bool:
    """Check whether a comment already looks like an expanded brief.

    Args:
        text: Raw comment text.

    Returns:
        True if the text carries any of the brief section markers.
    """
    return STRUCTURED_MARKERS.search(text) is not None


def _detect_line_todos(lines: list[str]) -> list[TodoMatch]:
    matches = []
    for index, line in enumerate(lines):
        m = TODO_SINGLE.search(line)
        if m:
            marker = "#" if m.group(2) == "#" else "//"
            matches.append(TodoMatch(index, index, line, CommentStyle.LINE, marker))
    return matches


def _detect_block_todos(lines: list[str]) -> list[TodoMatch]:
    matches = []
    i = 0
    while i < len(lines):
        if TODO_BLOCK_START.search(lines[i]):
            start = i
            while i < len(lines) and BLOCK_END not in lines[i]:
                i += 1
            end = min(i, len(lines) - 1)
            raw = "\n".join(lines[start:end + 1])
            matches.append(TodoMatch(start, end, raw, CommentStyle.BLOCK, BLOCK_MARKER))
        i += 1
    return matches


def detect_todos(content: str) -> list[TodoMatch]:
    """Detect unstructured TODO comments (single-line and block) in file content.

    Single-line comments that sit inside a detected block are dropped so the
    returned matches never overlap. Comments that already carry brief
    sections (Context, Goal, ...) are skipped, which makes a second pass over
    rewritten content a no-op.

    Args:
        content: Entire file contents.

    Returns:
        Matches ordered by ascending start line.

    Example:
        >>> [m.start_line for m in detect_todos("// TODO: refactor\\nx = 1\\n")]
        [0]
    """
    lines = content.split("\n")

    blocks = _detect_block_todos(lines)
    covered = set()
    for block in blocks:
        covered.update(range(block.start_line, block.end_line + 1))

    singles = [m for m in _detect_line_todos(lines) if m.start_line not in covered]

    todos = sorted(singles + blocks, key=lambda m: m.start_line)
    return [t for t in todos if not is_structured(t.raw_text)]


def extract_context(content: str, todo: TodoMatch, radius: int) -> str:
    """Extract the code surrounding a TODO to ground the rewrite.

    Args:
        content: Entire file contents.
        todo: The TODO match.
        radius: Number of lines to include on each side.

    Returns:
        The lines around (and including) the TODO joined with newlines.
    """
    lines = content.split("\n")
    start = max(0, todo.start_line - radius)
    end = min(len(lines), todo.end_line + radius + 1)
    return "\n".join(lines[start:end])
