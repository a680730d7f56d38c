"""
Input validation for EcoCash requests.

The ``is_valid_*`` predicates return bools; the ``validate_*`` functions
raise ValidationError naming the offending field. Validation failures are
never retried or queued.
"""

import re
from decimal import Decimal, InvalidOperation
from enum import StrEnum

from ecocash.exceptions import ValidationError

SUPPORTED_CURRENCIES = frozenset({"USD", "ZWL", "EUR", "GBP"})

MAX_AMOUNT = Decimal("999999999.99")
MAX_REASON_LENGTH = 255
MAX_CLIENT_NAME_LENGTH = 100
MAX_REFERENCE_LENGTH = 50
MIN_CREDENTIAL_LENGTH = 16

_INTERNATIONAL_MSISDN = re.compile(r"^263[0-9]{9}$")
_LOCAL_MSISDN = re.compile(r"^0[0-9]{9}$")
_UUID = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$")
_CLIENT_NAME = re.compile(r"^[a-zA-Z0-9\s\-_.]+$")
_TRANSACTION_REFERENCE = re.compile(r"^[a-zA-Z0-9\-_]+$")
_WHITESPACE = re.compile(r"\s+")


class NetworkOperator(StrEnum):
    """Zimbabwean mobile network operators."""

    ECONET = "Econet"
    NETONE = "NetOne"
    TELECEL = "Telecel"


NETWORK_PREFIXES = {
    "77": NetworkOperator.ECONET,
    "78": NetworkOperator.ECONET,
    "71": NetworkOperator.NETONE,
    "73": NetworkOperator.TELECEL,
    "74": NetworkOperator.TELECEL,
}

_MSISDN_HINT = "Expected: 263XXXXXXXXX or 0XXXXXXXXX"


# --- Predicates --------------------------------------------------------------


def is_valid_mobile_number(mobile_number: str) -> bool:
    return bool(_INTERNATIONAL_MSISDN.match(mobile_number) or _LOCAL_MSISDN.match(mobile_number))


def normalize_phone_number(mobile_number: str) -> str:
    """Convert local format (07...) to international format (2637...)."""
    if mobile_number.startswith("0"):
        return f"263{mobile_number[1:]}"
    return mobile_number


def is_valid_amount(amount: float | Decimal) -> bool:
    """Positive, at most 999,999,999.99 and no more than two decimal places."""
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        return False
    if not value.is_finite():
        return False
    exponent = value.normalize().as_tuple().exponent
    return Decimal(0) < value <= MAX_AMOUNT and isinstance(exponent, int) and exponent >= -2


def is_valid_currency(currency: str) -> bool:
    return currency.upper() in SUPPORTED_CURRENCIES


def is_valid_uuid(value: str) -> bool:
    return bool(_UUID.match(value))


def is_valid_reason(reason: str) -> bool:
    return 0 < len(reason) <= MAX_REASON_LENGTH and bool(reason.strip())


def is_valid_client_name(client_name: str) -> bool:
    return (
        0 < len(client_name) <= MAX_CLIENT_NAME_LENGTH
        and bool(client_name.strip())
        and bool(_CLIENT_NAME.match(client_name))
    )


def is_valid_transaction_reference(reference: str) -> bool:
    return 0 < len(reference) <= MAX_REFERENCE_LENGTH and bool(_TRANSACTION_REFERENCE.match(reference))


def is_valid_api_key(api_key: str) -> bool:
    return len(api_key) >= MIN_CREDENTIAL_LENGTH


def is_valid_bearer_token(token: str) -> bool:
    return len(token) >= MIN_CREDENTIAL_LENGTH


def sanitize_string(value: str) -> str:
    """Trim and collapse internal whitespace."""
    return _WHITESPACE.sub(" ", value.strip())


def get_network_operator(mobile_number: str) -> NetworkOperator | None:
    normalized = normalize_phone_number(mobile_number)
    if len(normalized) < 5:
        return None
    return NETWORK_PREFIXES.get(normalized[3:5])


def is_valid_network_prefix(mobile_number: str) -> bool:
    return get_network_operator(mobile_number) is not None


# --- Request validation ------------------------------------------------------


def _validate_currency(currency: str) -> None:
    if not is_valid_currency(currency):
        raise ValidationError(
            f"Invalid currency. Supported: {', '.join(sorted(SUPPORTED_CURRENCIES))}",
            field="currency",
        )


def validate_payment_request(
    customer_msisdn: str,
    amount: float,
    reason: str,
    currency: str,
    source_reference: str | None = None,
) -> None:
    if not is_valid_mobile_number(customer_msisdn):
        raise ValidationError(f"Invalid mobile number format. {_MSISDN_HINT}", field="customerMsisdn")
    if not is_valid_amount(amount):
        raise ValidationError(
            "Invalid amount. Must be > 0, <= 999,999,999.99 and have max 2 decimal places",
            field="amount",
        )
    if not is_valid_reason(reason):
        raise ValidationError("Invalid reason. Must be non-empty and <= 255 characters", field="reason")
    _validate_currency(currency)
    if source_reference is not None and not is_valid_uuid(source_reference):
        raise ValidationError("Invalid source reference format. Must be a valid UUID", field="sourceReference")


def validate_refund_request(
    original_transaction_reference: str,
    refund_correlator: str,
    source_mobile_number: str,
    amount: float,
    reason_for_refund: str,
    currency: str,
    client_name: str | None = None,
) -> None:
    if not is_valid_transaction_reference(original_transaction_reference):
        raise ValidationError(
            "Invalid original transaction reference format",
            field="originalEcocashTransactionReference",
        )
    if not is_valid_uuid(refund_correlator):
        raise ValidationError("Invalid refund correlator format. Must be a valid UUID", field="refundCorrelator")
    if not is_valid_mobile_number(source_mobile_number):
        raise ValidationError(f"Invalid source mobile number format. {_MSISDN_HINT}", field="sourceMobileNumber")
    if not is_valid_amount(amount):
        raise ValidationError(
            "Invalid refund amount. Must be > 0, <= 999,999,999.99 and have max 2 decimal places",
            field="amount",
        )
    if client_name is not None and not is_valid_client_name(client_name):
        raise ValidationError(
            "Invalid client name. Must be non-empty, <= 100 characters, and contain only "
            "letters, digits, spaces, hyphens, underscores and dots",
            field="clientName",
        )
    _validate_currency(currency)
    if not is_valid_reason(reason_for_refund):
        raise ValidationError(
            "Invalid refund reason. Must be non-empty and <= 255 characters",
            field="reasonForRefund",
        )


def validate_transaction_lookup(source_mobile_number: str, source_reference: str) -> None:
    if not is_valid_mobile_number(source_mobile_number):
        raise ValidationError(f"Invalid mobile number format. {_MSISDN_HINT}", field="sourceMobileNumber")
    if not is_valid_transaction_reference(source_reference):
        raise ValidationError("Invalid source reference format", field="sourceReference")
