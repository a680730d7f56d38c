"""
EcoCash SDK exception hierarchy.

Every error raised by the SDK inherits from EcocashError, so callers can catch
anything the SDK produces with one base class and still branch on the
specific failure when they need to.

Hierarchy::

    EcocashError
    ├── ConfigurationError        - settings loading, disabled features
    ├── ValidationError           - request input rejected before dispatch
    ├── TransportError            - connection failures, DNS, timeouts
    ├── RemoteError               - non-2xx or unusable 2xx response
    ├── ResponseFormatError       - response body missing required fields
    ├── CircuitBreakerOpenError   - call rejected while the circuit is open
    └── OfflineQueueError         - offline queue outcomes
        ├── QueuedError           - request deferred to the offline queue
        └── QueueExhaustedError   - queued item dropped after max attempts
"""

from __future__ import annotations

from typing import Any


class EcocashError(Exception):
    """Base exception for all EcoCash SDK errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(EcocashError):
    """Raised when settings are invalid or a disabled feature is used."""


# --- Validation --------------------------------------------------------------


class ValidationError(EcocashError):
    """Raised when a request argument fails validation."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message, details={"field": field})
        self.field = field


# --- Network -----------------------------------------------------------------


class TransportError(EcocashError):
    """Raised when the request could not reach the server or timed out."""


class RemoteError(EcocashError):
    """Raised when the server answers with an error or an unusable body."""

    def __init__(self, message: str, *, status_code: int, body: Any = None) -> None:
        super().__init__(message, details={"status_code": status_code})
        self.status_code = status_code
        self.body = body


class ResponseFormatError(EcocashError):
    """Raised when a response body lacks the fields a model needs."""


# --- Resilience --------------------------------------------------------------


class CircuitBreakerOpenError(EcocashError):
    """Raised when the circuit breaker rejects a call without attempting it."""

    def __init__(self, message: str = "Circuit breaker is open", *, retry_after: float | None = None) -> None:
        super().__init__(message, details={"retry_after": retry_after})
        self.retry_after = retry_after


# --- Offline queue -----------------------------------------------------------


class OfflineQueueError(EcocashError):
    """Base class for offline queue outcomes."""


class QueuedError(OfflineQueueError):
    """Raised when a request was deferred to the offline queue.

    The request has not been sent. It will be replayed by the queue's
    processor once connectivity returns.
    """

    def __init__(self, item_id: str, *, operation: str | None = None) -> None:
        super().__init__(
            f"No network connection; request queued as {item_id}",
            details={"item_id": item_id, "operation": operation},
        )
        self.item_id = item_id
        self.operation = operation


class QueueExhaustedError(OfflineQueueError):
    """Emitted on the queue's failed stream when an item runs out of attempts."""

    def __init__(self, item: Any, last_error: BaseException | None = None) -> None:
        super().__init__(
            f"Queued item {item.id} dropped after {item.attempts} attempts",
            details={"item_id": item.id, "attempts": item.attempts, "last_error": str(last_error)},
        )
        self.item = item
        self.last_error = last_error
