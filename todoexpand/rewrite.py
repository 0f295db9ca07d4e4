"""In-place TODO replacement that keeps the original comment style."""

from todoexpand.todos import BLOCK_MARKER, CommentStyle, TodoMatch


def normalize_comment(todo: TodoMatch, new_comment: str) -> str:
    """Re-wrap rewritten text in the comment style of the original TODO.

    Line comments get the original marker prepended to every line that does
    not already start with it. Block comments are wrapped in `/* ... */`
    unless the text already opens a block.

    Args:
        todo: The TODO being replaced.
        new_comment: Rewritten comment, with or without comment markers.

    Returns:
        The comment text ready to be spliced into the file.
    """
    if todo.style is CommentStyle.LINE:
        marker = todo.marker
        return "\n".join(
            line if line.lstrip().startswith(marker) else f"{marker} {line}"
            for line in new_comment.split("\n")
        )

    trimmed = new_comment.strip()
    if not trimmed.startswith(BLOCK_MARKER):
        return f"/*\n{trimmed}\n*/"
    return new_comment


def apply_rewrite(content: str, todo: TodoMatch, new_comment: str) -> str:
    """Replace the lines of a TODO with its rewritten comment.

    Callers applying several rewrites to one file must go from the highest
    start line to the lowest so the indices of the remaining matches stay
    valid.

    Args:
        content: Full file contents.
        todo: The TODO to replace.
        new_comment: Rewritten comment (may be multi-line, markers optional).

    Returns:
        Updated file contents.
    """
    lines = content.split("\n")
    replacement = normalize_comment(todo, new_comment).split("\n")
    lines[todo.start_line:todo.end_line + 1] = replacement
    return "\n".join(lines)
