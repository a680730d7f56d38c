"""
Tests for RequestOrchestrator: queue decision, breaker and retry wrapping,
analytics recording and request logging.
"""

import logging

import pytest

from ecocash.connectivity import StaticConnectivityProbe
from ecocash.core.orchestrator import RequestOrchestrator
from ecocash.core.queue import OfflineQueue, QueueItem, QueueItemKind
from ecocash.core.retry import CircuitBreaker, CircuitState, RetryExecutor, RetryPolicy
from ecocash.exceptions import CircuitBreakerOpenError, QueuedError, RemoteError, TransportError
from ecocash.observability import get_correlation_id

FAST_POLICY = RetryPolicy(max_attempts=3, initial_delay=0.001, max_delay=0.01)


class Call:
    """HTTP call stand-in failing a fixed number of times."""

    def __init__(self, failures: int = 0, error: Exception | None = None, body: dict | None = None):
        self.failures = failures
        self.error = error or TransportError("connection refused")
        self.body = body or {"status": "success"}
        self.calls = 0
        self.correlation_ids: list[str | None] = []

    async def __call__(self):
        self.calls += 1
        self.correlation_ids.append(get_correlation_id())
        if self.calls <= self.failures:
            raise self.error
        return self.body


def make_orchestrator(**kwargs) -> RequestOrchestrator:
    options = {
        "circuit_breaker": CircuitBreaker(failure_threshold=2, open_duration=60.0),
        "retry_executor": RetryExecutor(FAST_POLICY),
    }
    options.update(kwargs)
    return RequestOrchestrator(**options)


def queue_item() -> QueueItem:
    return QueueItem(kind=QueueItemKind.PAYMENT, payload={"amount": 1})


class TestDispatch:
    """Tests for the online path."""

    @pytest.mark.asyncio
    async def test_returns_parsed_response(self):
        orchestrator = make_orchestrator()
        result = await orchestrator.dispatch("payment", Call(), lambda body: body["status"])
        assert result == "success"

    @pytest.mark.asyncio
    async def test_without_parser_returns_raw(self):
        call = Call(body={"raw": True})
        assert await make_orchestrator().dispatch("lookup", call) == {"raw": True}

    @pytest.mark.asyncio
    async def test_retries_transient_failures(self):
        call = Call(failures=2)
        await make_orchestrator().dispatch("payment", call)
        assert call.calls == 3

    @pytest.mark.asyncio
    async def test_no_retry_executor_single_attempt(self):
        call = Call(failures=1)
        with pytest.raises(TransportError):
            await make_orchestrator(retry_executor=None).dispatch("payment", call)
        assert call.calls == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries_count_once_against_breaker(self):
        breaker = CircuitBreaker(failure_threshold=2, open_duration=60.0)
        orchestrator = make_orchestrator(circuit_breaker=breaker)

        with pytest.raises(TransportError):
            await orchestrator.dispatch("payment", Call(failures=10))
        assert breaker.failure_count == 1

        with pytest.raises(TransportError):
            await orchestrator.dispatch("payment", Call(failures=10))
        assert breaker.state == CircuitState.OPEN

        call = Call()
        with pytest.raises(CircuitBreakerOpenError):
            await orchestrator.dispatch("payment", call)
        assert call.calls == 0

    @pytest.mark.asyncio
    async def test_non_retryable_error_propagates(self):
        call = Call(failures=1, error=RemoteError("Invalid API key", status_code=401))
        with pytest.raises(RemoteError, match="Invalid API key"):
            await make_orchestrator().dispatch("payment", call)
        assert call.calls == 1

    @pytest.mark.asyncio
    async def test_correlation_id_set_during_call(self):
        call = Call(failures=1)
        await make_orchestrator().dispatch("payment", call, request_id="ref-123")
        assert call.correlation_ids == ["ref-123", "ref-123"]
        assert get_correlation_id() is None

    @pytest.mark.asyncio
    async def test_correlation_id_generated(self):
        call = Call()
        await make_orchestrator().dispatch("payment", call)
        assert call.correlation_ids[0]


class TestOfflinePath:
    """Tests for the queue decision."""

    @pytest.mark.asyncio
    async def test_offline_request_is_queued(self):
        queue = OfflineQueue(interval=60.0)
        orchestrator = make_orchestrator(offline_queue=queue, connectivity_probe=StaticConnectivityProbe(False))
        call = Call()

        with pytest.raises(QueuedError) as exc_info:
            await orchestrator.dispatch("payment", call, queue_item=queue_item)

        assert call.calls == 0
        assert queue.size == 1
        assert exc_info.value.item_id == queue.peek().id
        assert exc_info.value.operation == "payment"

    @pytest.mark.asyncio
    async def test_online_request_not_queued(self):
        queue = OfflineQueue(interval=60.0)
        orchestrator = make_orchestrator(offline_queue=queue, connectivity_probe=StaticConnectivityProbe(True))

        await orchestrator.dispatch("payment", Call(), queue_item=queue_item)
        assert queue.is_empty

    @pytest.mark.asyncio
    async def test_no_queue_item_never_queued(self):
        queue = OfflineQueue(interval=60.0)
        orchestrator = make_orchestrator(offline_queue=queue, connectivity_probe=StaticConnectivityProbe(False))
        call = Call()

        await orchestrator.dispatch("lookup", call)
        assert call.calls == 1
        assert queue.is_empty

    @pytest.mark.asyncio
    async def test_probe_error_means_offline(self):
        async def broken_probe():
            raise OSError("resolver unavailable")

        queue = OfflineQueue(interval=60.0)
        orchestrator = make_orchestrator(offline_queue=queue, connectivity_probe=broken_probe)

        with pytest.raises(QueuedError):
            await orchestrator.dispatch("refund", Call(), queue_item=queue_item)
        assert queue.size == 1


class TestAnalyticsAndLogging:
    """Tests for analytics sink and request logging."""

    @pytest.mark.asyncio
    async def test_sink_receives_response(self):
        recorded = []
        orchestrator = make_orchestrator(analytics_sink=recorded.append)
        await orchestrator.dispatch("payment", Call(), lambda body: body["status"])
        assert recorded == ["success"]

    @pytest.mark.asyncio
    async def test_sink_not_called_on_failure(self):
        recorded = []
        orchestrator = make_orchestrator(analytics_sink=recorded.append, retry_executor=None)
        with pytest.raises(TransportError):
            await orchestrator.dispatch("payment", Call(failures=1))
        assert recorded == []

    @pytest.mark.asyncio
    async def test_sink_error_does_not_fail_request(self):
        def broken_sink(response):
            raise RuntimeError("analytics store full")

        orchestrator = make_orchestrator(analytics_sink=broken_sink)
        assert await orchestrator.dispatch("payment", Call()) == {"status": "success"}

    @pytest.mark.asyncio
    async def test_logs_masked_metadata(self, caplog):
        caplog.set_level(logging.INFO, logger="ecocash")
        await make_orchestrator().dispatch(
            "payment",
            Call(),
            request_id="ref-1",
            metadata={"customerMsisdn": "263774222475", "amount": 10.5},
        )

        completed = [r for r in caplog.records if "completed" in r.getMessage()]
        assert len(completed) == 1
        assert completed[0].metadata == {"customerMsisdn": "263***75", "amount": 10.5}
        assert completed[0].request_id == "ref-1"
        assert completed[0].duration_ms >= 0
        assert "263774222475" not in caplog.text

    @pytest.mark.asyncio
    async def test_logs_error_type(self, caplog):
        caplog.set_level(logging.INFO, logger="ecocash")
        with pytest.raises(RemoteError):
            await make_orchestrator().dispatch("payment", Call(failures=1, error=RemoteError("nope", status_code=400)))

        failed = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert failed[0].error_type == "RemoteError"

    @pytest.mark.asyncio
    async def test_logging_disabled(self, caplog):
        caplog.set_level(logging.DEBUG, logger="ecocash")
        await make_orchestrator(enable_logging=False).dispatch("payment", Call())
        assert not [r for r in caplog.records if r.name == "ecocash.core.orchestrator"]
