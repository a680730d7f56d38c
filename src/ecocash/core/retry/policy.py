"""
Retry policy configuration for API calls.

Defines how many times a call is attempted, how long to wait between
attempts, and which remote status codes count as transient.
"""

import asyncio
import random
from collections.abc import Iterator
from dataclasses import dataclass, field

from ecocash.exceptions import RemoteError, TransportError

# Request timeout, rate limiting and gateway errors.
DEFAULT_RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


@dataclass(frozen=True)
class RetryPolicy:
    """
    Configuration for retry behavior around a single API call.

    Delays start at ``initial_delay``. With ``exponential`` enabled each
    following delay is the previous one multiplied by ``backoff_multiplier``
    and capped at ``max_delay``; otherwise every delay is ``initial_delay``.

    Examples:
        >>> policy = RetryPolicy(max_attempts=5, initial_delay=0.5, backoff_multiplier=1.5)
        >>> list(policy.delays())
        [0.5, 0.75, 1.125, 1.6875]
    """

    # Total executions, including the first one
    max_attempts: int = 3

    # Delay before the first retry (seconds)
    initial_delay: float = 1.0

    # Upper bound for any single delay (seconds)
    max_delay: float = 30.0

    backoff_multiplier: float = 2.0

    exponential: bool = True

    # Remote status codes treated as transient
    retryable_status_codes: frozenset[int] = field(default_factory=lambda: DEFAULT_RETRYABLE_STATUS_CODES)

    # Randomize each wait by +/-25%; the progression itself stays deterministic
    jitter: bool = False

    def __post_init__(self):
        """Validate configuration."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must be >= 0")
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay must be >= initial_delay")
        if self.backoff_multiplier < 1.0:
            raise ValueError("backoff_multiplier must be >= 1.0")
        if not isinstance(self.retryable_status_codes, frozenset):
            object.__setattr__(self, "retryable_status_codes", frozenset(self.retryable_status_codes))

    def is_retryable(self, exception: BaseException) -> bool:
        """
        Decide whether a failure is transient.

        Network-level failures are always transient. Remote errors are
        transient only when their status code is in ``retryable_status_codes``.
        """
        if isinstance(exception, RemoteError):
            return exception.status_code in self.retryable_status_codes
        return isinstance(exception, (TransportError, ConnectionError, TimeoutError, asyncio.TimeoutError))

    def delays(self) -> Iterator[float]:
        """Yield the waits between consecutive attempts (``max_attempts - 1`` values)."""
        delay = self.initial_delay
        for _ in range(self.max_attempts - 1):
            yield delay
            if self.exponential:
                delay = min(delay * self.backoff_multiplier, self.max_delay)

    def apply_jitter(self, delay: float) -> float:
        """Return ``delay`` randomized when jitter is enabled, capped at ``max_delay``."""
        if not self.jitter:
            return delay
        return min(delay * random.uniform(0.75, 1.25), self.max_delay)


DEFAULT_RETRY_POLICY = RetryPolicy()

# More attempts with a gentler curve, for interactive flows
AGGRESSIVE_RETRY_POLICY = RetryPolicy(
    max_attempts=5,
    initial_delay=0.5,
    max_delay=30.0,
    backoff_multiplier=1.5,
)

# Few attempts spaced far apart, for load-sensitive periods
CONSERVATIVE_RETRY_POLICY = RetryPolicy(
    max_attempts=2,
    initial_delay=2.0,
    max_delay=30.0,
    backoff_multiplier=3.0,
)

NO_RETRY_POLICY = RetryPolicy(max_attempts=1)
