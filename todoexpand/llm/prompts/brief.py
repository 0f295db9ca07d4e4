"""Batch prompt for rewriting the TODOs of one file.

Contains:
- PromptTodo: A TODO's raw text and surrounding code
- build_batch_prompt: Render one prompt covering every pending TODO in a file
- load_template: Read the project's prompt template, if any
- language_from_path: Language hint from a file extension
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from todoexpand.config import DEFAULT_SECTIONS, BriefStyle
from todoexpand.llm.prompts.system import BATCH_SEPARATOR

TEMPLATE_PATH = Path("prompts") / "todo_expander.prompt.md"

INSTRUCTIONS = """You are a senior prompt engineer. Rewrite each TODO below into a Codex-ready task brief.
Always preserve current runtime behavior and visible UI. Keep diffs minimal.
Steps must be re-runnable and idempotent.
Use the same comment style as the original (// vs /* */ vs #).
Output ONLY the rewritten comments, no code outside the comments."""

DEFAULT_SECTIONS_LINE = "Each brief has these sections, in order: " + ", ".join(DEFAULT_SECTIONS) + "."


@dataclass(frozen=True)
class PromptTodo:
    """One TODO in a batch prompt."""

    raw_text: str
    context: str


def language_from_path(path: str) -> str:
    """Infer a language hint from a file extension.

    Returns:
        Lowercased extension without the dot (e.g. `ts`, `py`), or "".
    """
    name = Path(path).name
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1].lower()


def load_template(cwd: Path) -> Optional[str]:
    """Load `prompts/todo_expander.prompt.md` from the project, if present."""
    try:
        return (cwd / TEMPLATE_PATH).read_text(encoding="utf-8")
    except OSError:
        return None


def fill_template(template: str, values: dict[str, str]) -> str:
    """Replace `{{name}}` placeholders with values; unknown names are kept."""
    return re.sub(
        r"\{\{(\w+)\}\}",
        lambda m: values.get(m.group(1), m.group(0)),
        template,
    )


def _render_todos(todos: Sequence[PromptTodo]) -> str:
    blocks = []
    total = len(todos)
    for index, todo in enumerate(todos, start=1):
        blocks.append(
            f"[TODO {index} of {total}]\n"
            f"Original TODO:\n{todo.raw_text}\n\n"
            f"Nearby code context:\n{todo.context}"
        )
    return "\n\n".join(blocks)


def build_batch_prompt(
    file_path: str,
    language: str,
    todos: Sequence[PromptTodo],
    style: BriefStyle = BriefStyle.SUCCINCT,
    sections: Sequence[str] = DEFAULT_SECTIONS,
    template: Optional[str] = None,
) -> str:
    """Build the prompt that rewrites every pending TODO of a file at once.

    The output is deterministic for identical inputs. The model is asked for
    one rewritten comment per TODO, in input order, separated by a line
    containing exactly `---`.

    Args:
        file_path: Path of the file relative to the project root.
        language: Language hint, usually the file extension.
        todos: Pending TODOs with their context, in batch order.
        style: Brief verbosity. Only mentioned when not succinct.
        sections: Section names. Only listed when not the defaults.
        template: Optional project template with `{{var}}` placeholders.

    Returns:
        The rendered prompt.
    """
    style = BriefStyle(style)
    sections = list(sections)
    count = len(todos)
    rendered_todos = _render_todos(todos)

    if template is not None:
        return fill_template(template, {
            "file_path": file_path,
            "language": language or "",
            "style": style.value,
            "sections": ", ".join(sections),
            "count": str(count),
            "separator": BATCH_SEPARATOR,
            "todos": rendered_todos,
        })

    parts = [INSTRUCTIONS]
    if sections == list(DEFAULT_SECTIONS):
        parts.append(DEFAULT_SECTIONS_LINE)
    parts.append(
        f"Return exactly {count} rewritten comment(s) in the order given, "
        f"separated by a line containing exactly {BATCH_SEPARATOR}"
    )

    header = [f"File: {file_path}", f"Language: {language}"]
    if style is not BriefStyle.SUCCINCT:
        header.append(f"Style: {style.value}")
    if sections != list(DEFAULT_SECTIONS):
        header.append(f"Sections: {', '.join(sections)}")

    return "\n".join(parts) + "\n\n" + "\n".join(header) + "\n\n" + rendered_todos + "\n"
