"""
Retry executor for async API calls with backoff.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from ecocash.core.retry.policy import DEFAULT_RETRY_POLICY, RetryPolicy

T = TypeVar("T")

RetryHook = Callable[[int, BaseException, float], None]


class RetryExecutor:
    """
    Runs a zero-argument coroutine function under a RetryPolicy.

    The executor keeps no state between calls, so one instance can serve
    any number of concurrent callers. It never logs; pass ``on_retry`` to
    observe each retry before the executor sleeps.

    Examples:
        >>> executor = RetryExecutor(AGGRESSIVE_RETRY_POLICY)
        >>> result = await executor.execute(lambda: transport.post_json(url, headers, body))
    """

    def __init__(self, policy: RetryPolicy | None = None, on_retry: RetryHook | None = None):
        """
        Initialize RetryExecutor.

        Args:
            policy: Retry policy (defaults to DEFAULT_RETRY_POLICY)
            on_retry: Called as ``on_retry(attempt, error, delay)`` before each wait,
                where ``attempt`` is the 1-based number of the attempt that failed
        """
        self.policy = policy or DEFAULT_RETRY_POLICY
        self.on_retry = on_retry

    async def execute(self, operation: Callable[[], Awaitable[T]], on_retry: RetryHook | None = None) -> T:
        """
        Execute ``operation`` until it succeeds, fails permanently, or attempts run out.

        Args:
            operation: Zero-argument async callable, invoked once per attempt
            on_retry: Per-call hook overriding the executor's own

        Returns:
            Result of the first successful attempt

        Raises:
            Exception: A non-retryable failure immediately, or the last
                retryable failure once ``max_attempts`` is reached
        """
        hook = on_retry or self.on_retry
        delays = self.policy.delays()
        attempt = 0

        while True:
            attempt += 1
            try:
                return await operation()
            except Exception as e:
                if not self.policy.is_retryable(e):
                    raise

                delay = next(delays, None)
                if delay is None:
                    raise

                delay = self.policy.apply_jitter(delay)
                if hook is not None:
                    hook(attempt, e, delay)

                await asyncio.sleep(delay)
