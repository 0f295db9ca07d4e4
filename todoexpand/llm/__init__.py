"""Completion service module for todo-expand.

This module wraps the external LLM endpoint that rewrites TODO comments:
- client: CompletionClient and complete()
- retry: RetryPolicy and status classification
- base: Attempt outcomes and response helpers
- prompts: System and batch prompts
"""

from dotenv import load_dotenv

from todoexpand.llm.base import (
    AttemptOutcome,
    RetryableFailure,
    Success,
    TerminalFailure,
    extract_text,
    split_batch,
)
from todoexpand.llm.client import CompletionClient, complete
from todoexpand.llm.exceptions import LLMError, MissingAPIKeyError
from todoexpand.llm.retry import RetryPolicy, is_retryable_status

# Load environment variables from .env files (existing variables win)
load_dotenv(".env.local")
load_dotenv(".env")


__all__ = [
    "AttemptOutcome",
    "CompletionClient",
    "LLMError",
    "MissingAPIKeyError",
    "RetryPolicy",
    "RetryableFailure",
    "Success",
    "TerminalFailure",
    "complete",
    "extract_text",
    "is_retryable_status",
    "split_batch",
]
