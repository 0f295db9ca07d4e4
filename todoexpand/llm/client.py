"""HTTP client for the completion service.

Requests go to a configurable endpoint speaking the OpenAI Responses API
shape: a JSON body with the model and a system + user message pair, and a
bearer token. Each attempt is bounded by the configured timeout; failed
attempts are retried according to a RetryPolicy.
"""

import json
import logging
import random
import time
from typing import Callable, Optional

import httpx

from todoexpand.config import ResolvedConfig
from todoexpand.llm.base import (
    AttemptOutcome,
    RetryableFailure,
    Success,
    TerminalFailure,
    extract_text,
)
from todoexpand.llm.exceptions import LLMError, MissingAPIKeyError
from todoexpand.llm.prompts.system import SYSTEM_PROMPT
from todoexpand.llm.retry import RetryPolicy, is_retryable_status

logger = logging.getLogger(__name__)


class CompletionClient:
    """Completion service client with timeout and retry handling."""

    def __init__(
        self,
        endpoint: str,
        model: str,
        api_key: str,
        timeout_ms: int = 45000,
        policy: Optional[RetryPolicy] = None,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the client.

        Args:
            endpoint: URL the request is POSTed to.
            model: Model identifier sent in the request body.
            api_key: Bearer credential.
            timeout_ms: Timeout for each attempt, in milliseconds.
            policy: Retry policy. Defaults to 2 retries from a 500 ms base.
            transport: Optional httpx transport (tests pass a MockTransport).
            sleep: Function used to wait between attempts, in seconds.
            rng: Random source for jitter.
            clock: Monotonic clock in seconds, used for the attempt deadline.

        Raises:
            MissingAPIKeyError: If `api_key` is empty.
            LLMError: If `endpoint` is not a valid URL.
        """
        if not api_key:
            raise MissingAPIKeyError("An API key is required to call the completion service.")
        try:
            httpx.URL(endpoint)
        except httpx.InvalidURL as e:
            raise LLMError(f"Invalid completion endpoint {endpoint!r}: {e}")
        self.endpoint = endpoint
        self.model = model
        self.api_key = api_key
        self.timeout_ms = timeout_ms
        self.policy = policy or RetryPolicy()
        self.transport = transport
        self._sleep = sleep
        self._rng = rng
        self._clock = clock

    @classmethod
    def from_config(
        cls,
        config: ResolvedConfig,
        api_key: str,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "CompletionClient":
        """Build a client from the resolved configuration."""
        return cls(
            endpoint=config.endpoint,
            model=config.model,
            api_key=api_key,
            timeout_ms=config.timeout,
            policy=RetryPolicy(retries=config.retries, backoff_ms=config.retry_backoff_ms),
            transport=transport,
        )

    def build_request_body(self, prompt: str) -> dict:
        """Build the JSON body for a prompt."""
        return {
            "model": self.model,
            "input": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }

    def _attempt(self, http: httpx.Client, body: dict) -> AttemptOutcome:
        """Run one request, bounded by `timeout_ms` from start to last byte.

        The body is streamed and the deadline checked after every chunk;
        the httpx timeout alone only bounds each network phase.
        """
        deadline = self._clock() + self.timeout_ms / 1000
        timed_out = RetryableFailure(f"timed out after {self.timeout_ms}ms")
        try:
            with http.stream(
                "POST",
                self.endpoint,
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}"},
            ) as response:
                chunks = []
                for chunk in response.iter_bytes():
                    chunks.append(chunk)
                    if self._clock() > deadline:
                        return timed_out
                if self._clock() > deadline:
                    return timed_out
        except httpx.TimeoutException:
            return timed_out
        except httpx.HTTPError as e:
            return TerminalFailure(f"request failed: {e}")

        content = b"".join(chunks)
        if response.is_success:
            try:
                payload = json.loads(content)
            except ValueError:
                return Success(None)
            return Success(extract_text(payload))

        text = content.decode("utf-8", errors="replace")
        detail = f"HTTP {response.status_code}: {text[:500]}"
        if is_retryable_status(response.status_code):
            return RetryableFailure(detail)
        return TerminalFailure(detail)

    def complete(self, prompt: str) -> Optional[str]:
        """Send a prompt and return the generated text.

        Args:
            prompt: The rendered user prompt.

        Returns:
            The generated text stripped of surrounding whitespace, or None
            when the service returned no text, failed terminally, or kept
            failing until the retries ran out.
        """
        body = self.build_request_body(prompt)
        attempts = self.policy.attempts

        with httpx.Client(timeout=self.timeout_ms / 1000, transport=self.transport) as http:
            for attempt in range(1, attempts + 1):
                outcome = self._attempt(http, body)

                match outcome:
                    case Success(text=text):
                        if text is None:
                            logger.debug("Completion returned no text")
                        return text
                    case TerminalFailure(detail=detail):
                        logger.error("LLM error: %s", detail)
                        return None
                    case RetryableFailure(detail=detail):
                        if attempt >= attempts:
                            logger.error("LLM error after %d attempt(s): %s", attempt, detail)
                            return None
                        wait_ms = self.policy.delay_ms(attempt, self._rng)
                        logger.warning(
                            "[retry] attempt %d/%d failed (%s); retrying in %dms",
                            attempt,
                            self.policy.retries,
                            detail,
                            wait_ms,
                        )
                        self._sleep(wait_ms / 1000)

        return None


def complete(
    prompt: str,
    api_key: str,
    config: ResolvedConfig,
    transport: Optional[httpx.BaseTransport] = None,
) -> Optional[str]:
    """Run one completion using the endpoint, model and retry settings of `config`.

    Args:
        prompt: The rendered user prompt.
        api_key: Bearer credential.
        config: Resolved configuration.
        transport: Optional httpx transport.

    Returns:
        The generated text, or None (see CompletionClient.complete).
    """
    return CompletionClient.from_config(config, api_key, transport=transport).complete(prompt)
