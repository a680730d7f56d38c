"""
Circuit breaker for fail-fast behavior against the EcoCash API.

Stops sending requests to an endpoint that keeps failing and lets a single
probe through once the open period has elapsed.

Based on Martin Fowler's Circuit Breaker pattern:
https://martinfowler.com/bliki/CircuitBreaker.html
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any, TypeVar

from ecocash.exceptions import CircuitBreakerOpenError, TransportError
from ecocash.utils.logging import get_logger

logger = get_logger("ecocash.core.circuit_breaker")

T = TypeVar("T")


class CircuitState(StrEnum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation, requests allowed
    OPEN = "open"  # Failure threshold reached, requests rejected
    HALF_OPEN = "half_open"  # One probe request allowed


class CircuitBreaker:
    """
    Circuit breaker wrapping async calls.

    States:
    - CLOSED: every call goes through; consecutive failures are counted
    - OPEN: calls are rejected with CircuitBreakerOpenError until
      ``open_duration`` has passed since the last failure
    - HALF_OPEN: a single probe call goes through, bounded by
      ``half_open_timeout``; success closes the circuit, failure reopens it

    Examples:
        >>> breaker = CircuitBreaker(failure_threshold=5, open_duration=60.0)
        >>> result = await breaker.execute(lambda: transport.post_json(url, headers, body))
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        open_duration: float = 60.0,
        half_open_timeout: float = 30.0,
    ):
        """
        Initialize circuit breaker.

        Args:
            failure_threshold: Consecutive failures before opening the circuit
            open_duration: Seconds the circuit stays open before allowing a probe
            half_open_timeout: Seconds the half-open probe may run before it counts as failed
        """
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if open_duration < 0:
            raise ValueError("open_duration must be >= 0")
        if half_open_timeout <= 0:
            raise ValueError("half_open_timeout must be > 0")

        self.failure_threshold = failure_threshold
        self.open_duration = open_duration
        self.half_open_timeout = half_open_timeout

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: float | None = None
        self._probe_in_flight = False

    @property
    def state(self) -> CircuitState:
        """Current circuit breaker state."""
        self._update_state()
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``operation`` if the circuit allows it.

        Args:
            operation: Zero-argument async callable

        Returns:
            The operation's result

        Raises:
            CircuitBreakerOpenError: The circuit is open, or a half-open probe
                is already in flight
            TransportError: The half-open probe exceeded ``half_open_timeout``
            Exception: Whatever the operation raised, after it is recorded
        """
        self._update_state()

        if self._state == CircuitState.OPEN:
            raise CircuitBreakerOpenError(retry_after=self._time_until_half_open())

        if self._state == CircuitState.HALF_OPEN:
            if self._probe_in_flight:
                raise CircuitBreakerOpenError("Circuit breaker is half-open; probe already in flight")
            return await self._probe(operation)

        try:
            result = await operation()
        except Exception:
            self._record_failure()
            raise

        self._failure_count = 0
        return result

    async def _probe(self, operation: Callable[[], Awaitable[T]]) -> T:
        self._probe_in_flight = True
        try:
            result = await asyncio.wait_for(operation(), timeout=self.half_open_timeout)
        except (TimeoutError, asyncio.TimeoutError) as e:
            self._open_circuit()
            logger.warning("Circuit breaker re-opened after half-open probe timed out")
            raise TransportError(f"Half-open probe timed out after {self.half_open_timeout}s") from e
        except Exception:
            self._open_circuit()
            logger.warning("Circuit breaker re-opened after failure during recovery")
            raise
        finally:
            self._probe_in_flight = False

        self._close_circuit()
        logger.info("Circuit breaker closed after successful recovery")
        return result

    def _record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.monotonic()

        if self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(f"Circuit breaker opened after {self._failure_count} consecutive failures")

    def _update_state(self) -> None:
        """Move OPEN to HALF_OPEN once the open period has elapsed."""
        if self._state == CircuitState.OPEN and self._time_until_half_open() == 0:
            self._state = CircuitState.HALF_OPEN
            logger.info("Circuit breaker entering half-open state")

    def _time_until_half_open(self) -> float:
        if self._last_failure_time is None:
            return 0.0
        return max(0.0, self.open_duration - (time.monotonic() - self._last_failure_time))

    def _open_circuit(self) -> None:
        """Transition to OPEN state."""
        self._state = CircuitState.OPEN
        self._last_failure_time = time.monotonic()

    def _close_circuit(self) -> None:
        """Transition to CLOSED state."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time = None

    def reset(self) -> None:
        """Manually reset circuit breaker to CLOSED state."""
        self._close_circuit()
        self._probe_in_flight = False
        logger.info("Circuit breaker manually reset")

    def get_stats(self) -> dict[str, Any]:
        """
        Get circuit breaker statistics.

        Returns:
            Dictionary with current state and metrics
        """
        state = self.state
        return {
            "state": state.value,
            "failure_count": self._failure_count,
            "failure_threshold": self.failure_threshold,
            "probe_in_flight": self._probe_in_flight,
            "time_until_half_open": self._time_until_half_open() if state == CircuitState.OPEN else None,
        }
