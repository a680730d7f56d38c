"""
Resilience and dispatch layer: retry, circuit breaker, offline queue,
batch dispatch and request orchestration.
"""

from ecocash.core.batch import BatchDispatcher, BatchResult
from ecocash.core.orchestrator import RequestOrchestrator
from ecocash.core.queue import (
    OfflineQueue,
    ProcessedItem,
    QueueEventStream,
    QueueItem,
    QueueItemKind,
)
from ecocash.core.retry import (
    AGGRESSIVE_RETRY_POLICY,
    CONSERVATIVE_RETRY_POLICY,
    DEFAULT_RETRY_POLICY,
    NO_RETRY_POLICY,
    CircuitBreaker,
    CircuitState,
    RetryExecutor,
    RetryPolicy,
)

__all__ = [
    "AGGRESSIVE_RETRY_POLICY",
    "CONSERVATIVE_RETRY_POLICY",
    "DEFAULT_RETRY_POLICY",
    "NO_RETRY_POLICY",
    "BatchDispatcher",
    "BatchResult",
    "CircuitBreaker",
    "CircuitState",
    "OfflineQueue",
    "ProcessedItem",
    "QueueEventStream",
    "QueueItem",
    "QueueItemKind",
    "RequestOrchestrator",
    "RetryExecutor",
    "RetryPolicy",
]
