"""Shared types and response handling for the completion service.

Contains:
- Success, RetryableFailure, TerminalFailure: Outcomes of one request attempt
- extract_text: Pull the generated text out of a response payload
- split_batch: Split a batched response into one part per TODO
"""

from dataclasses import dataclass
from typing import Any, Optional, Union

from todoexpand.llm.prompts.system import BATCH_SEPARATOR


@dataclass(frozen=True)
class Success:
    """The service answered with a 2xx status. `text` is None when empty."""

    text: Optional[str]


@dataclass(frozen=True)
class RetryableFailure:
    """A timeout, 408, 429 or 5xx. Worth another attempt."""

    detail: str


@dataclass(frozen=True)
class TerminalFailure:
    """Any other failure. No further attempts are made."""

    detail: str


AttemptOutcome = Union[Success, RetryableFailure, TerminalFailure]


def extract_text(payload: Any) -> Optional[str]:
    """Extract the generated text from a response payload.

    Looks at `output_text` first (Responses API), then `content[0].text`.

    Args:
        payload: The decoded JSON response.

    Returns:
        The text stripped of surrounding whitespace, or None if absent or empty.
    """
    if not isinstance(payload, dict):
        return None

    text = payload.get("output_text")
    if not text:
        content = payload.get("content")
        if isinstance(content, list) and content and isinstance(content[0], dict):
            text = content[0].get("text")

    if not isinstance(text, str) or not text.strip():
        return None
    return text.strip()


def split_batch(text: str) -> list[str]:
    """Split a batched response on separator lines.

    A separator is a line that is exactly `---` (trailing whitespace and
    carriage returns are tolerated). Parts are stripped.

    Args:
        text: The full response text.

    Returns:
        One part per rewritten comment.
    """
    parts: list[str] = []
    current: list[str] = []
    for line in text.split("\n"):
        if line.rstrip() == BATCH_SEPARATOR:
            parts.append("\n".join(current).strip())
            current = []
        else:
            current.append(line)
    parts.append("\n".join(current).strip())
    return parts
