"""LLM-related exception classes.

Contains all exception classes for completion operations:
- LLMError: Base exception for LLM-related errors
- MissingAPIKeyError: Raised when the API key is not set
"""


class LLMError(Exception):
    """Base exception for LLM-related errors."""

    pass


class MissingAPIKeyError(LLMError):
    """Raised when the required API key is not set."""

    pass
