"""
Request orchestration: queue decision, resilience wrapping, analytics and logging.

Every client operation funnels through RequestOrchestrator.dispatch:

    connectivity check -> (offline) enqueue and raise QueuedError
                       -> (online)  breaker(retry(call)) -> parse -> analytics -> return
"""

import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from ecocash.core.queue import OfflineQueue, QueueItem
from ecocash.core.retry import CircuitBreaker, RetryExecutor
from ecocash.exceptions import QueuedError
from ecocash.observability.structured_logging import add_correlation_id
from ecocash.utils.logging import get_logger
from ecocash.utils.masking import mask_sensitive_data

logger = get_logger("ecocash.core.orchestrator")

T = TypeVar("T")

ConnectivityProbe = Callable[[], Awaitable[bool]]
AnalyticsSink = Callable[[Any], Any]


class RequestOrchestrator:
    """
    Composes the resilience components around one API call.

    One orchestrator belongs to one client; its circuit breaker and offline
    queue are shared by every call that client makes.
    """

    def __init__(
        self,
        circuit_breaker: CircuitBreaker,
        retry_executor: RetryExecutor | None = None,
        offline_queue: OfflineQueue | None = None,
        connectivity_probe: ConnectivityProbe | None = None,
        analytics_sink: AnalyticsSink | None = None,
        enable_logging: bool = True,
    ):
        """
        Initialize orchestrator.

        Args:
            circuit_breaker: Breaker guarding the remote service
            retry_executor: Executor for transient failures (None disables retries)
            offline_queue: Queue for requests made while offline (None disables queueing)
            connectivity_probe: Async callable reporting whether the network is reachable
            analytics_sink: Receives each successful parsed response
            enable_logging: Emit per-request log records
        """
        self.circuit_breaker = circuit_breaker
        self.retry_executor = retry_executor
        self.offline_queue = offline_queue
        self.connectivity_probe = connectivity_probe
        self.analytics_sink = analytics_sink
        self.enable_logging = enable_logging

    async def dispatch(
        self,
        operation: str,
        call: Callable[[], Awaitable[Any]],
        parse: Callable[[Any], T] | None = None,
        *,
        request_id: str | None = None,
        queue_item: Callable[[], QueueItem] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> T:
        """
        Run one API call through the resilience pipeline.

        Args:
            operation: Name used in logs ("payment", "refund", "lookup")
            call: Zero-argument async callable performing the HTTP request
            parse: Turns the raw response body into the returned model
            request_id: Correlation id attached to every log record
            queue_item: Builds the QueueItem to defer when offline; None means never queue
            metadata: Extra fields for log records (masked before logging)

        Returns:
            The parsed response

        Raises:
            QueuedError: The request was deferred to the offline queue
            CircuitBreakerOpenError: The breaker rejected the call
            Exception: The last failure from the retry executor
        """
        with add_correlation_id(request_id) as cid:
            fields = {"operation": operation, "request_id": cid}
            if metadata:
                fields["metadata"] = mask_sensitive_data(metadata)

            if queue_item is not None and self.offline_queue is not None and not await self._is_online():
                item = queue_item()
                self.offline_queue.enqueue(item)
                self._log("warning", f"{operation} deferred to offline queue as {item.id}", fields)
                raise QueuedError(item.id, operation=operation)

            self._log("info", f"{operation} request started", fields)
            started = time.monotonic()

            try:
                raw = await self.circuit_breaker.execute(lambda: self._call_with_retry(call, fields))
                response = parse(raw) if parse is not None else raw
            except Exception as e:
                duration_ms = round((time.monotonic() - started) * 1000, 2)
                self._log(
                    "error",
                    f"{operation} request failed after {duration_ms}ms: {e}",
                    {**fields, "duration_ms": duration_ms, "error_type": type(e).__name__},
                )
                raise

            duration_ms = round((time.monotonic() - started) * 1000, 2)
            self._record_analytics(response, fields)
            self._log(
                "info",
                f"{operation} request completed in {duration_ms}ms",
                {**fields, "duration_ms": duration_ms},
            )
            return response

    async def _call_with_retry(self, call: Callable[[], Awaitable[Any]], fields: dict[str, Any]) -> Any:
        if self.retry_executor is None:
            return await call()

        def on_retry(attempt: int, error: BaseException, delay: float) -> None:
            self._log(
                "warning",
                f"{fields['operation']} attempt {attempt} failed: {error}. Retrying in {delay:.2f}s...",
                {**fields, "attempt": attempt},
            )

        return await self.retry_executor.execute(call, on_retry=on_retry)

    async def _is_online(self) -> bool:
        if self.connectivity_probe is None:
            return True
        try:
            return await self.connectivity_probe()
        except Exception as e:
            logger.warning(f"Connectivity probe failed, assuming offline: {e}")
            return False

    def _record_analytics(self, response: Any, fields: dict[str, Any]) -> None:
        if self.analytics_sink is None:
            return
        try:
            self.analytics_sink(response)
        except Exception:
            logger.exception("Analytics sink raised; response still returned", extra=fields)

    def _log(self, level: str, message: str, fields: dict[str, Any]) -> None:
        if self.enable_logging:
            getattr(logger, level)(message, extra=fields)
