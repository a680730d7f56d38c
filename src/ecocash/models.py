"""
Request and response models for the EcoCash API.

Attributes use Python names; ``to_dict`` / ``from_dict`` convert to and
from the camelCase JSON the API speaks.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ecocash.exceptions import ResponseFormatError

DEFAULT_CLIENT_NAME = "Ecocash SDK"


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as e:
        raise ResponseFormatError(f"Invalid transactionDateTime: {value!r}") from e


def _parse_amount(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ResponseFormatError(f"Invalid amount: {value!r}") from e


def _require(data: dict[str, Any], key: str, model: str) -> Any:
    if not isinstance(data, dict):
        raise ResponseFormatError(f"{model} expects a JSON object, got {type(data).__name__}")
    value = data.get(key)
    if value is None:
        raise ResponseFormatError(f"{model} response missing '{key}'", details={"body": data})
    return value


def _format_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# --- Payments ----------------------------------------------------------------


@dataclass(frozen=True)
class PaymentRequest:
    customer_msisdn: str
    amount: float
    reason: str
    currency: str
    source_reference: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "customerMsisdn": self.customer_msisdn,
            "amount": self.amount,
            "reason": self.reason,
            "currency": self.currency,
            "sourceReference": self.source_reference,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PaymentRequest":
        return cls(
            customer_msisdn=_require(data, "customerMsisdn", "PaymentRequest"),
            amount=float(_require(data, "amount", "PaymentRequest")),
            reason=_require(data, "reason", "PaymentRequest"),
            currency=_require(data, "currency", "PaymentRequest"),
            source_reference=_require(data, "sourceReference", "PaymentRequest"),
        )


@dataclass(frozen=True)
class PaymentResponse:
    status: str
    message: str
    ecocash_transaction_reference: str | None = None
    amount: float | None = None
    currency: str | None = None
    transaction_date_time: datetime | None = None

    @property
    def is_successful(self) -> bool:
        return self.status.lower() == "success"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "message": self.message,
            "ecocashTransactionReference": self.ecocash_transaction_reference,
            "amount": self.amount,
            "currency": self.currency,
            "transactionDateTime": _format_datetime(self.transaction_date_time),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PaymentResponse":
        return cls(
            status=_require(data, "status", "PaymentResponse"),
            message=data.get("message") or "",
            ecocash_transaction_reference=data.get("ecocashTransactionReference"),
            amount=_parse_amount(data.get("amount")),
            currency=data.get("currency"),
            transaction_date_time=_parse_datetime(data.get("transactionDateTime")),
        )


# --- Refunds -----------------------------------------------------------------


@dataclass(frozen=True)
class RefundRequest:
    original_transaction_reference: str
    refund_correlator: str
    source_mobile_number: str
    amount: float
    reason_for_refund: str
    currency: str
    client_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "originalEcocashTransactionReference": self.original_transaction_reference,
            "refundCorrelator": self.refund_correlator,
            "sourceMobileNumber": self.source_mobile_number,
            "amount": self.amount,
            "reasonForRefund": self.reason_for_refund,
            "currency": self.currency,
        }
        if self.client_name is not None:
            data["clientName"] = self.client_name
        return data

    def to_request_body(self) -> dict[str, Any]:
        """JSON body in the field spelling the refund endpoint expects."""
        return {
            "origionalEcocashTransactionReference": self.original_transaction_reference,
            "refundCorelator": self.refund_correlator,
            "sourceMobileNumber": self.source_mobile_number,
            "amount": self.amount,
            "clientName": self.client_name or DEFAULT_CLIENT_NAME,
            "currency": self.currency,
            "reasonForRefund": self.reason_for_refund,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RefundRequest":
        return cls(
            original_transaction_reference=_require(data, "originalEcocashTransactionReference", "RefundRequest"),
            refund_correlator=_require(data, "refundCorrelator", "RefundRequest"),
            source_mobile_number=_require(data, "sourceMobileNumber", "RefundRequest"),
            amount=float(_require(data, "amount", "RefundRequest")),
            reason_for_refund=_require(data, "reasonForRefund", "RefundRequest"),
            currency=_require(data, "currency", "RefundRequest"),
            client_name=data.get("clientName"),
        )


@dataclass(frozen=True)
class RefundResponse:
    transaction_status: str
    refund_correlator: str
    amount: float | None = None
    currency: str | None = None
    transaction_date_time: datetime | None = None

    @property
    def is_successful(self) -> bool:
        return self.transaction_status.lower() == "completed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "transactionStatus": self.transaction_status,
            "refundCorrelator": self.refund_correlator,
            "amount": self.amount,
            "currency": self.currency,
            "transactionDateTime": _format_datetime(self.transaction_date_time),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RefundResponse":
        return cls(
            transaction_status=_require(data, "transactionStatus", "RefundResponse"),
            refund_correlator=data.get("refundCorrelator") or data.get("refundCorelator") or "",
            amount=_parse_amount(data.get("amount")),
            currency=data.get("currency"),
            transaction_date_time=_parse_datetime(data.get("transactionDateTime")),
        )


# --- Lookups -----------------------------------------------------------------


@dataclass(frozen=True)
class LookupRequest:
    source_mobile_number: str
    source_reference: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "sourceMobileNumber": self.source_mobile_number,
            "sourceReference": self.source_reference,
        }


@dataclass(frozen=True)
class TransactionStatus:
    status: str
    ecocash_reference: str | None = None
    amount: float | None = None
    currency: str | None = None
    customer_msisdn: str | None = None
    transaction_date_time: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "ecocashReference": self.ecocash_reference,
            "amount": self.amount,
            "currency": self.currency,
            "customerMsisdn": self.customer_msisdn,
            "transactionDateTime": _format_datetime(self.transaction_date_time),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TransactionStatus":
        return cls(
            status=_require(data, "status", "TransactionStatus"),
            ecocash_reference=data.get("ecocashReference"),
            amount=_parse_amount(data.get("amount")),
            currency=data.get("currency"),
            customer_msisdn=data.get("customerMsisdn"),
            transaction_date_time=_parse_datetime(data.get("transactionDateTime")),
        )
