"""LLM prompt templates for TODO rewriting.

- system: The system prompt sent with every request
- brief: The per-file batch prompt
"""

from todoexpand.llm.prompts.system import BATCH_SEPARATOR, SYSTEM_PROMPT
from todoexpand.llm.prompts.brief import (
    PromptTodo,
    build_batch_prompt,
    fill_template,
    language_from_path,
    load_template,
)


__all__ = [
    "BATCH_SEPARATOR",
    "SYSTEM_PROMPT",
    "PromptTodo",
    "build_batch_prompt",
    "fill_template",
    "language_from_path",
    "load_template",
]
