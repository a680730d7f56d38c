"""
EcoCash API client.

Usage:
    async with EcocashClient(api_key="...", environment=Environment.SANDBOX) as client:
        payment = await client.make_payment("263774222475", 10.50, "Order #42", "USD")
        status = await client.lookup_transaction("263774222475", payment_reference)
"""

import uuid
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

from ecocash.analytics import OverallAnalytics, PaymentAnalytics, RefundAnalytics, TransactionAnalytics
from ecocash.config.loader import load_config
from ecocash.config.settings import ClientSettings
from ecocash.connectivity import DnsConnectivityProbe
from ecocash.core.batch import BatchDispatcher, BatchResult
from ecocash.core.orchestrator import ConnectivityProbe, RequestOrchestrator
from ecocash.core.queue import OfflineQueue, QueueItem, QueueItemKind
from ecocash.core.retry import CircuitBreaker, RetryExecutor, RetryPolicy
from ecocash.environment import DEFAULT_BASE_URL, Endpoints, Environment
from ecocash.exceptions import ConfigurationError, ValidationError
from ecocash.models import (
    DEFAULT_CLIENT_NAME,
    LookupRequest,
    PaymentRequest,
    PaymentResponse,
    RefundRequest,
    RefundResponse,
    TransactionStatus,
)
from ecocash.transport import DEFAULT_REQUEST_TIMEOUT, HttpTransport, Transport
from ecocash.utils.logging import get_logger
from ecocash.validators import (
    normalize_phone_number,
    validate_payment_request,
    validate_refund_request,
    validate_transaction_lookup,
)

logger = get_logger("ecocash.client")


class EcocashClient:
    """
    Async client for the EcoCash payment, refund and lookup endpoints.

    Each client owns one circuit breaker, one offline queue and one analytics
    store; they are never shared with another client. Payments and refunds
    made while offline are queued and raise QueuedError; lookups are never
    queued.
    """

    def __init__(
        self,
        api_key: str,
        bearer_token: str | None = None,
        environment: Environment | str = Environment.SANDBOX,
        *,
        base_url: str = DEFAULT_BASE_URL,
        transport: Transport | None = None,
        retry_policy: RetryPolicy | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        offline_queue: OfflineQueue | None = None,
        connectivity_probe: ConnectivityProbe | None = None,
        analytics: TransactionAnalytics | None = None,
        enable_validation: bool = True,
        enable_retries: bool = True,
        enable_offline_queue: bool = True,
        enable_logging: bool = True,
        enable_analytics: bool = True,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        client_name: str = DEFAULT_CLIENT_NAME,
    ):
        """
        Initialize client.

        Args:
            api_key: Merchant API key sent as X-API-KEY
            bearer_token: Optional token sent as a Bearer Authorization header
            environment: sandbox or live
            base_url: API base URL
            transport: HTTP transport (default: HttpTransport with ``request_timeout``)
            retry_policy: Retry policy for transient failures (default: DEFAULT_RETRY_POLICY)
            circuit_breaker: Breaker guarding the API (default: CircuitBreaker())
            offline_queue: Queue for offline payments and refunds (default: OfflineQueue())
            connectivity_probe: Async callable reporting reachability (default: DNS lookup)
            analytics: Analytics store (default: TransactionAnalytics())
            enable_validation: Validate arguments before sending
            enable_retries: Retry transient failures
            enable_offline_queue: Queue payments and refunds while offline
            enable_logging: Emit per-request log records
            enable_analytics: Record responses for get_*_analytics
            request_timeout: Per-request timeout in seconds for the default transport
            client_name: Default clientName for refunds
        """
        if not api_key:
            raise ConfigurationError("api_key is required")

        self.api_key = api_key
        self.bearer_token = bearer_token
        self.environment = Environment(environment)
        self.endpoints = Endpoints(self.environment, base_url)
        self.client_name = client_name

        self.enable_validation = enable_validation
        self.enable_retries = enable_retries
        self.enable_offline_queue = enable_offline_queue
        self.enable_logging = enable_logging
        self.enable_analytics = enable_analytics

        self.transport: Transport = transport or HttpTransport(timeout=request_timeout)
        self.circuit_breaker = circuit_breaker or CircuitBreaker()
        self.retry_executor = RetryExecutor(retry_policy) if enable_retries else None

        self.offline_queue: OfflineQueue | None = None
        if enable_offline_queue:
            self.offline_queue = offline_queue if offline_queue is not None else OfflineQueue()
            if self.offline_queue.processor is None:
                self.offline_queue.processor = self._replay_queued

        self.analytics: TransactionAnalytics | None = None
        if enable_analytics:
            self.analytics = analytics or TransactionAnalytics()

        self.orchestrator = RequestOrchestrator(
            circuit_breaker=self.circuit_breaker,
            retry_executor=self.retry_executor,
            offline_queue=self.offline_queue,
            connectivity_probe=(connectivity_probe or DnsConnectivityProbe()) if enable_offline_queue else None,
            analytics_sink=self.analytics.record if self.analytics is not None else None,
            enable_logging=enable_logging,
        )
        self.batch_dispatcher = BatchDispatcher()
        self._closed = False

    # --- Construction ---------------------------------------------------------

    @classmethod
    def from_settings(cls, settings: ClientSettings, **overrides: Any) -> "EcocashClient":
        """Build a client from ClientSettings; keyword overrides win."""
        options: dict[str, Any] = {
            "bearer_token": settings.bearer_token,
            "environment": settings.environment,
            "base_url": settings.base_url,
            "retry_policy": settings.retry_policy,
            "circuit_breaker": CircuitBreaker(
                failure_threshold=settings.circuit_breaker.failure_threshold,
                open_duration=settings.circuit_breaker.open_duration,
                half_open_timeout=settings.circuit_breaker.half_open_timeout,
            ),
            "offline_queue": OfflineQueue(
                max_attempts=settings.offline_queue.max_attempts,
                interval=settings.offline_queue.interval,
                backoff_base=settings.offline_queue.backoff_base,
            ),
            "enable_validation": settings.enable_validation,
            "enable_retries": settings.enable_retries,
            "enable_offline_queue": settings.enable_offline_queue,
            "enable_logging": settings.enable_logging,
            "enable_analytics": settings.enable_analytics,
            "request_timeout": settings.request_timeout,
            "client_name": settings.client_name,
        }
        options.update(overrides)
        return cls(settings.api_key, **options)

    @classmethod
    def from_config(cls, project_dir: Path | None = None, env: str | None = None, **overrides: Any) -> "EcocashClient":
        """Build a client from ecocash.yaml (and its ``env`` overlay) in ``project_dir``."""
        config = load_config(project_dir, env=env)
        return cls.from_settings(ClientSettings.from_config(config), **overrides)

    @staticmethod
    def generate_source_reference() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def generate_refund_correlator() -> str:
        return str(uuid.uuid4())

    # --- Operations -----------------------------------------------------------

    async def make_payment(
        self,
        customer_msisdn: str,
        amount: float,
        reason: str,
        currency: str = "USD",
        source_reference: str | None = None,
        *,
        bypass_queue: bool = False,
    ) -> PaymentResponse:
        """
        Initiate a C2B instant payment.

        Args:
            customer_msisdn: Customer number, 263XXXXXXXXX or 0XXXXXXXXX
            amount: Amount with at most two decimal places
            reason: Payment description shown to the customer
            currency: USD, ZWL, EUR or GBP
            source_reference: Merchant UUID for the payment (generated if omitted)
            bypass_queue: Send even when offline instead of queueing

        Raises:
            ValidationError: Invalid arguments
            QueuedError: Offline; the payment was queued
            CircuitBreakerOpenError: The API is failing and calls are suspended
            RemoteError, TransportError: The call failed after retries
        """
        self._ensure_open()
        source_reference = source_reference or self.generate_source_reference()

        if self.enable_validation:
            self._validate(
                "payment", validate_payment_request, customer_msisdn, amount, reason, currency, source_reference
            )

        request = PaymentRequest(
            customer_msisdn=normalize_phone_number(customer_msisdn),
            amount=amount,
            reason=reason,
            currency=currency.upper(),
            source_reference=source_reference,
        )
        return await self._send_payment(request, bypass_queue=bypass_queue)

    async def process_refund(
        self,
        original_transaction_reference: str,
        source_mobile_number: str,
        amount: float,
        reason_for_refund: str,
        currency: str = "USD",
        refund_correlator: str | None = None,
        client_name: str | None = None,
        *,
        requires_auth: bool = False,
        bypass_queue: bool = False,
    ) -> RefundResponse:
        """
        Refund a previous payment.

        Args:
            original_transaction_reference: EcoCash reference of the payment
            source_mobile_number: Number the payment came from
            amount: Amount to refund
            reason_for_refund: Free-text reason
            currency: USD, ZWL, EUR or GBP
            refund_correlator: Merchant UUID for the refund (generated if omitted)
            client_name: Merchant name on the refund (default: client_name)
            requires_auth: Fail unless a bearer token is configured
            bypass_queue: Send even when offline instead of queueing
        """
        self._ensure_open()
        self._check_auth(requires_auth)
        refund_correlator = refund_correlator or self.generate_refund_correlator()
        client_name = client_name or self.client_name

        if self.enable_validation:
            self._validate(
                "refund",
                validate_refund_request,
                original_transaction_reference,
                refund_correlator,
                source_mobile_number,
                amount,
                reason_for_refund,
                currency,
                client_name,
            )

        request = RefundRequest(
            original_transaction_reference=original_transaction_reference,
            refund_correlator=refund_correlator,
            source_mobile_number=normalize_phone_number(source_mobile_number),
            amount=amount,
            reason_for_refund=reason_for_refund,
            currency=currency.upper(),
            client_name=client_name,
        )
        return await self._send_refund(request, bypass_queue=bypass_queue)

    async def lookup_transaction(
        self,
        source_mobile_number: str,
        source_reference: str,
        *,
        requires_auth: bool = False,
    ) -> TransactionStatus:
        """Look up the status of a transaction by its source reference. Never queued."""
        self._ensure_open()
        self._check_auth(requires_auth)

        if self.enable_validation:
            self._validate("lookup", validate_transaction_lookup, source_mobile_number, source_reference)

        request = LookupRequest(normalize_phone_number(source_mobile_number), source_reference)
        headers = self._headers()
        return await self.orchestrator.dispatch(
            "lookup",
            lambda: self.transport.post_json(self.endpoints.lookup, headers, request.to_dict()),
            TransactionStatus.from_dict,
            request_id=uuid.uuid4().hex[:8],
            metadata={"sourceMobileNumber": request.source_mobile_number, "sourceReference": source_reference},
        )

    async def batch_payments(
        self,
        requests: Sequence[PaymentRequest],
        concurrency: int = 3,
    ) -> BatchResult[PaymentResponse]:
        """
        Send several payments, ``concurrency`` at a time (clamped to 1..10).

        Batch items are sent directly and never queued. Results are keyed by
        position in ``requests``.
        """
        self._ensure_open()

        async def pay(request: PaymentRequest) -> PaymentResponse:
            return await self.make_payment(
                request.customer_msisdn,
                request.amount,
                request.reason,
                request.currency,
                request.source_reference,
                bypass_queue=True,
            )

        return await self.batch_dispatcher.run(requests, pay, concurrency=concurrency)

    async def process_offline_queue(self) -> int:
        """
        Replay every queued payment and refund now.

        Returns:
            Number of processing attempts made
        """
        self._ensure_open()
        if self.offline_queue is None:
            raise ConfigurationError("Offline queue is disabled for this client")
        return await self.offline_queue.process_queue()

    # --- Analytics ------------------------------------------------------------

    def _require_analytics(self) -> TransactionAnalytics:
        if self.analytics is None:
            raise ConfigurationError("Analytics is disabled for this client")
        return self.analytics

    def get_analytics(self, start: datetime | None = None, end: datetime | None = None) -> OverallAnalytics:
        return self._require_analytics().get_overall_analytics(start, end)

    def get_payment_analytics(self, start: datetime | None = None, end: datetime | None = None) -> PaymentAnalytics:
        return self._require_analytics().get_payment_analytics(start, end)

    def get_refund_analytics(self, start: datetime | None = None, end: datetime | None = None) -> RefundAnalytics:
        return self._require_analytics().get_refund_analytics(start, end)

    def get_stats(self) -> dict[str, Any]:
        return {
            "environment": self.environment.value,
            "circuit_breaker": self.circuit_breaker.get_stats(),
            "offline_queue_size": self.offline_queue.size if self.offline_queue is not None else None,
            "closed": self._closed,
        }

    # --- Lifecycle ------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """Stop the queue timer, close the queue's streams and the HTTP session. Idempotent."""
        if self._closed:
            return
        self._closed = True
        if self.offline_queue is not None:
            self.offline_queue.dispose()
        await self.transport.close()

    async def __aenter__(self) -> "EcocashClient":
        return self

    async def __aexit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        await self.close()

    # --- Internals ------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("EcocashClient is closed")

    def _check_auth(self, requires_auth: bool) -> None:
        if requires_auth and not self.bearer_token:
            raise ConfigurationError("This request requires a bearer token but none is configured")

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "X-API-KEY": self.api_key}
        if self.bearer_token:
            headers["Authorization"] = f"Bearer {self.bearer_token}"
        return headers

    def _validate(self, operation: str, validator: Any, *args: Any) -> None:
        try:
            validator(*args)
        except ValidationError as e:
            if self.enable_logging:
                logger.warning(
                    f"{operation} validation failed: {e.message}",
                    extra={"operation": operation, "field": e.field},
                )
            raise

    async def _send_payment(self, request: PaymentRequest, *, bypass_queue: bool) -> PaymentResponse:
        headers = self._headers()
        return await self.orchestrator.dispatch(
            "payment",
            lambda: self.transport.post_json(self.endpoints.payment, headers, request.to_dict()),
            PaymentResponse.from_dict,
            request_id=request.source_reference,
            queue_item=None if bypass_queue else (lambda: QueueItem(kind=QueueItemKind.PAYMENT, payload=request)),
            metadata={
                "customerMsisdn": request.customer_msisdn,
                "amount": request.amount,
                "currency": request.currency,
            },
        )

    async def _send_refund(self, request: RefundRequest, *, bypass_queue: bool) -> RefundResponse:
        headers = self._headers()
        return await self.orchestrator.dispatch(
            "refund",
            lambda: self.transport.post_json(self.endpoints.refund, headers, request.to_request_body()),
            RefundResponse.from_dict,
            request_id=request.refund_correlator,
            queue_item=None if bypass_queue else (lambda: QueueItem(kind=QueueItemKind.REFUND, payload=request)),
            metadata={
                "sourceMobileNumber": request.source_mobile_number,
                "amount": request.amount,
                "currency": request.currency,
            },
        )

    async def _replay_queued(self, item: QueueItem) -> PaymentResponse | RefundResponse:
        """Offline queue processor: resend a queued request without re-queueing it."""
        if item.kind == QueueItemKind.PAYMENT:
            return await self._send_payment(item.payload, bypass_queue=True)
        return await self._send_refund(item.payload, bypass_queue=True)
