"""
Tests for the exception hierarchy.
"""

import pytest

from ecocash.core.queue import QueueItem, QueueItemKind
from ecocash.exceptions import (
    CircuitBreakerOpenError,
    ConfigurationError,
    EcocashError,
    OfflineQueueError,
    QueuedError,
    QueueExhaustedError,
    RemoteError,
    ResponseFormatError,
    TransportError,
    ValidationError,
)


class TestHierarchy:
    """All SDK errors share one base class."""

    @pytest.mark.parametrize(
        "error",
        [
            ConfigurationError("x"),
            ValidationError("x", field="amount"),
            TransportError("x"),
            RemoteError("x", status_code=500),
            ResponseFormatError("x"),
            CircuitBreakerOpenError(),
            QueuedError("id"),
        ],
    )
    def test_base_class(self, error):
        assert isinstance(error, EcocashError)

    def test_queue_errors(self):
        assert issubclass(QueuedError, OfflineQueueError)
        assert issubclass(QueueExhaustedError, OfflineQueueError)


class TestDetails:
    """Tests for error attributes."""

    def test_message_and_details(self):
        error = EcocashError("boom", details={"a": 1})
        assert str(error) == "boom"
        assert error.message == "boom"
        assert error.details == {"a": 1}
        assert EcocashError("plain").details == {}

    def test_validation_field(self):
        error = ValidationError("Invalid amount", field="amount")
        assert error.field == "amount"
        assert error.details == {"field": "amount"}

    def test_remote_error(self):
        error = RemoteError("Not found", status_code=404, body={"message": "Not found"})
        assert error.status_code == 404
        assert error.body == {"message": "Not found"}

    def test_circuit_breaker_open(self):
        error = CircuitBreakerOpenError(retry_after=12.5)
        assert error.message == "Circuit breaker is open"
        assert error.retry_after == 12.5

    def test_queued(self):
        error = QueuedError("abc123", operation="payment")
        assert error.item_id == "abc123"
        assert "queued as abc123" in error.message
        assert error.details == {"item_id": "abc123", "operation": "payment"}

    def test_queue_exhausted(self):
        item = QueueItem(kind=QueueItemKind.REFUND, payload={}, attempts=3)
        cause = TransportError("offline")
        error = QueueExhaustedError(item, cause)

        assert error.item is item
        assert error.last_error is cause
        assert "after 3 attempts" in error.message
        assert error.details["last_error"] == "offline"
