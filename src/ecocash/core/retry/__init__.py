"""
Retry and circuit breaker primitives wrapped around every API call.
"""

from ecocash.core.retry.circuit_breaker import CircuitBreaker, CircuitState
from ecocash.core.retry.executor import RetryExecutor
from ecocash.core.retry.policy import (
    AGGRESSIVE_RETRY_POLICY,
    CONSERVATIVE_RETRY_POLICY,
    DEFAULT_RETRY_POLICY,
    DEFAULT_RETRYABLE_STATUS_CODES,
    NO_RETRY_POLICY,
    RetryPolicy,
)

__all__ = [
    # Policy
    "RetryPolicy",
    "DEFAULT_RETRY_POLICY",
    "DEFAULT_RETRYABLE_STATUS_CODES",
    "AGGRESSIVE_RETRY_POLICY",
    "CONSERVATIVE_RETRY_POLICY",
    "NO_RETRY_POLICY",
    # Executor
    "RetryExecutor",
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitState",
]
