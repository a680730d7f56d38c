"""
EcoCash SDK - async client for EcoCash mobile-money payments, refunds and lookups.

Adds validation, retries with backoff, a circuit breaker, an offline queue,
batch dispatch and transaction analytics around the plain HTTP API.
"""

import logging

__version__ = "0.1.0"

from ecocash.analytics import TransactionAnalytics
from ecocash.client import EcocashClient
from ecocash.config import ClientSettings, load_config
from ecocash.core import (
    AGGRESSIVE_RETRY_POLICY,
    CONSERVATIVE_RETRY_POLICY,
    DEFAULT_RETRY_POLICY,
    NO_RETRY_POLICY,
    BatchResult,
    CircuitBreaker,
    CircuitState,
    OfflineQueue,
    QueueItem,
    QueueItemKind,
    RetryPolicy,
)
from ecocash.environment import Environment
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
from ecocash.models import (
    PaymentRequest,
    PaymentResponse,
    RefundRequest,
    RefundResponse,
    TransactionStatus,
)
from ecocash.utils.logging import setup_logging

# Library logging stays silent until the application configures it
logging.getLogger("ecocash").addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    # Client
    "EcocashClient",
    "ClientSettings",
    "Environment",
    "load_config",
    "setup_logging",
    # Models
    "PaymentRequest",
    "PaymentResponse",
    "RefundRequest",
    "RefundResponse",
    "TransactionStatus",
    "BatchResult",
    "TransactionAnalytics",
    # Resilience
    "RetryPolicy",
    "DEFAULT_RETRY_POLICY",
    "AGGRESSIVE_RETRY_POLICY",
    "CONSERVATIVE_RETRY_POLICY",
    "NO_RETRY_POLICY",
    "CircuitBreaker",
    "CircuitState",
    "OfflineQueue",
    "QueueItem",
    "QueueItemKind",
    # Exceptions
    "EcocashError",
    "ConfigurationError",
    "ValidationError",
    "TransportError",
    "RemoteError",
    "ResponseFormatError",
    "CircuitBreakerOpenError",
    "OfflineQueueError",
    "QueuedError",
    "QueueExhaustedError",
]
