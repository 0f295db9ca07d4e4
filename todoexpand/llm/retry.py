"""Retry policy for completion requests.

An attempt is retried only after a timeout or a 408, 429 or 5xx response.
Waits grow exponentially from a base, capped at 5 s, plus a little jitter.
"""

import random
from dataclasses import dataclass

MAX_DELAY_MS = 5000
MAX_JITTER_MS = 200
RETRYABLE_STATUS_CODES = frozenset({408, 429})


def is_retryable_status(status_code: int) -> bool:
    """Check whether an HTTP status warrants another attempt."""
    return status_code in RETRYABLE_STATUS_CODES or 500 <= status_code <= 599


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt count and backoff schedule.

    Attributes:
        retries: Attempts allowed after the first one.
        backoff_ms: Base delay before the first retry.
    """

    retries: int = 2
    backoff_ms: int = 500

    @property
    def attempts(self) -> int:
        """Total number of attempts, including the first."""
        return 1 + max(0, self.retries)

    def base_delay_ms(self, attempt: int) -> float:
        """Delay after a failed `attempt` (1-based), before jitter."""
        return min(MAX_DELAY_MS, self.backoff_ms * 2 ** (attempt - 1))

    def delay_ms(self, attempt: int, rng: random.Random | None = None) -> float:
        """Delay after a failed `attempt`, with jitter in [0, min(200, delay/2))."""
        rng = rng or random
        delay = self.base_delay_ms(attempt)
        return delay + rng.random() * min(MAX_JITTER_MS, delay / 2)
