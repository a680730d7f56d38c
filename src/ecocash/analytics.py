"""
In-memory aggregation of transaction outcomes.

Responses are recorded as they come back from the API and summarized on
demand, optionally restricted to a date range. Responses without a
transaction timestamp are left out of every summary.
"""

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

from ecocash.models import PaymentResponse, RefundResponse, TransactionStatus
from ecocash.utils.logging import get_logger

logger = get_logger("ecocash.analytics")

DEFAULT_CURRENCY = "USD"


@dataclass(frozen=True)
class PaymentAnalytics:
    total_payments: int = 0
    successful_payments: int = 0
    failed_payments: int = 0
    total_amount: float = 0.0
    average_amount: float = 0.0
    currency_breakdown: dict[str, float] = field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        if self.total_payments == 0:
            return 0.0
        return self.successful_payments / self.total_payments * 100

    def to_dict(self) -> dict[str, Any]:
        return {**asdict(self), "success_rate": self.success_rate}


@dataclass(frozen=True)
class RefundAnalytics:
    total_refunds: int = 0
    successful_refunds: int = 0
    failed_refunds: int = 0
    total_amount: float = 0.0
    average_amount: float = 0.0

    @property
    def success_rate(self) -> float:
        if self.total_refunds == 0:
            return 0.0
        return self.successful_refunds / self.total_refunds * 100

    def to_dict(self) -> dict[str, Any]:
        return {**asdict(self), "success_rate": self.success_rate}


@dataclass(frozen=True)
class OverallAnalytics:
    total_transactions: int
    net_amount: float
    payments: PaymentAnalytics
    refunds: RefundAnalytics

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_transactions": self.total_transactions,
            "net_amount": self.net_amount,
            "payments": self.payments.to_dict(),
            "refunds": self.refunds.to_dict(),
        }


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def _in_range(timestamp: datetime | None, start: datetime | None, end: datetime | None) -> bool:
    if timestamp is None:
        return False
    timestamp = _as_utc(timestamp)
    if start is not None and timestamp < _as_utc(start):
        return False
    if end is not None and timestamp > _as_utc(end):
        return False
    return True


class TransactionAnalytics:
    """
    Collects payment, refund and lookup responses.

    ``record`` is the sink handed to the request orchestrator; it accepts
    any of the three response models and ignores anything else.
    """

    def __init__(self) -> None:
        self._payments: list[PaymentResponse] = []
        self._refunds: list[RefundResponse] = []
        self._lookups: list[TransactionStatus] = []

    def record(self, response: Any) -> None:
        if isinstance(response, PaymentResponse):
            self.record_payment(response)
        elif isinstance(response, RefundResponse):
            self.record_refund(response)
        elif isinstance(response, TransactionStatus):
            self.record_lookup(response)
        else:
            logger.debug(f"Ignoring unrecognized response type {type(response).__name__}")

    def record_payment(self, payment: PaymentResponse) -> None:
        self._payments.append(payment)

    def record_refund(self, refund: RefundResponse) -> None:
        self._refunds.append(refund)

    def record_lookup(self, lookup: TransactionStatus) -> None:
        self._lookups.append(lookup)

    @property
    def lookup_count(self) -> int:
        return len(self._lookups)

    def get_payment_analytics(self, start: datetime | None = None, end: datetime | None = None) -> PaymentAnalytics:
        payments = [p for p in self._payments if _in_range(p.transaction_date_time, start, end)]
        if not payments:
            return PaymentAnalytics()

        successful = sum(1 for p in payments if p.is_successful)
        total_amount = sum(p.amount or 0.0 for p in payments)

        breakdown: dict[str, float] = {}
        for payment in payments:
            currency = payment.currency or DEFAULT_CURRENCY
            breakdown[currency] = breakdown.get(currency, 0.0) + (payment.amount or 0.0)

        return PaymentAnalytics(
            total_payments=len(payments),
            successful_payments=successful,
            failed_payments=len(payments) - successful,
            total_amount=total_amount,
            average_amount=total_amount / len(payments),
            currency_breakdown=breakdown,
        )

    def get_refund_analytics(self, start: datetime | None = None, end: datetime | None = None) -> RefundAnalytics:
        refunds = [r for r in self._refunds if _in_range(r.transaction_date_time, start, end)]
        if not refunds:
            return RefundAnalytics()

        successful = sum(1 for r in refunds if r.is_successful)
        total_amount = sum(r.amount or 0.0 for r in refunds)

        return RefundAnalytics(
            total_refunds=len(refunds),
            successful_refunds=successful,
            failed_refunds=len(refunds) - successful,
            total_amount=total_amount,
            average_amount=total_amount / len(refunds),
        )

    def get_overall_analytics(self, start: datetime | None = None, end: datetime | None = None) -> OverallAnalytics:
        payments = self.get_payment_analytics(start, end)
        refunds = self.get_refund_analytics(start, end)
        return OverallAnalytics(
            total_transactions=payments.total_payments + refunds.total_refunds,
            net_amount=payments.total_amount - refunds.total_amount,
            payments=payments,
            refunds=refunds,
        )

    def clear(self) -> None:
        self._payments.clear()
        self._refunds.clear()
        self._lookups.clear()
