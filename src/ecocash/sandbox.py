"""
Sandbox helpers: test numbers, mock payloads and an offline transport.

SandboxTransport answers the three API endpoints locally, so the whole
client pipeline (validation, retry, breaker, analytics) can run without
network access.
"""

import asyncio
import random
import string
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any

from ecocash.exceptions import TransportError
from ecocash.utils.logging import get_logger
from ecocash.utils.masking import mask_sensitive_data

logger = get_logger("ecocash.sandbox")

TEST_PHONE_SUCCESS = "263774222475"
TEST_PHONE_INSUFFICIENT_FUNDS = "263774222476"
TEST_PHONE_TIMEOUT = "263774222477"
TEST_PHONE_INVALID_PIN = "263774222478"
TEST_PHONE_NETWORK_ERROR = "263774222479"

VALID_TEST_PINS = ("0000", "1234", "9999")
DEFAULT_TEST_PIN = "0000"

TEST_AMOUNT_SUCCESS = 10.50
TEST_AMOUNT_INSUFFICIENT_FUNDS = 999999.99
TEST_AMOUNT_TIMEOUT = 50.00


class MockResponseType(StrEnum):
    SUCCESS = "success"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    TIMEOUT = "timeout"
    INVALID_PIN = "invalid_pin"
    NETWORK_ERROR = "network_error"


@dataclass(frozen=True)
class SandboxScenario:
    name: str
    phone: str
    amount: float
    response_type: MockResponseType
    expected_status: str
    description: str


TEST_SCENARIOS = (
    SandboxScenario(
        "Successful Payment",
        TEST_PHONE_SUCCESS,
        TEST_AMOUNT_SUCCESS,
        MockResponseType.SUCCESS,
        "success",
        "Should complete successfully with valid response",
    ),
    SandboxScenario(
        "Insufficient Funds",
        TEST_PHONE_INSUFFICIENT_FUNDS,
        TEST_AMOUNT_INSUFFICIENT_FUNDS,
        MockResponseType.INSUFFICIENT_FUNDS,
        "failed",
        "Should fail due to insufficient funds",
    ),
    SandboxScenario(
        "Transaction Timeout",
        TEST_PHONE_TIMEOUT,
        TEST_AMOUNT_TIMEOUT,
        MockResponseType.TIMEOUT,
        "failed",
        "Should timeout and fail",
    ),
    SandboxScenario(
        "Invalid PIN",
        TEST_PHONE_INVALID_PIN,
        TEST_AMOUNT_SUCCESS,
        MockResponseType.INVALID_PIN,
        "failed",
        "Should fail due to invalid PIN",
    ),
    SandboxScenario(
        "Network Error",
        TEST_PHONE_NETWORK_ERROR,
        TEST_AMOUNT_SUCCESS,
        MockResponseType.NETWORK_ERROR,
        "failed",
        "Should fail due to network error",
    ),
)

_SCENARIOS_BY_PHONE = {scenario.phone: scenario for scenario in TEST_SCENARIOS}

_FAILURE_MESSAGES = {
    MockResponseType.INSUFFICIENT_FUNDS: "Insufficient funds in customer wallet",
    MockResponseType.TIMEOUT: "Transaction timeout",
    MockResponseType.INVALID_PIN: "Invalid PIN entered",
    MockResponseType.NETWORK_ERROR: "Network error occurred",
}


def is_test_phone_number(phone: str) -> bool:
    return phone in _SCENARIOS_BY_PHONE


def get_expected_response_type(phone: str) -> MockResponseType:
    """Scenario for a test number; unknown numbers behave as success."""
    scenario = _SCENARIOS_BY_PHONE.get(phone)
    return scenario.response_type if scenario else MockResponseType.SUCCESS


def _random_id(length: int, rng: random.Random | None = None) -> str:
    rng = rng or random.Random()
    return "".join(rng.choices(string.digits + string.ascii_uppercase, k=length))


def _now() -> str:
    return datetime.now(UTC).isoformat()


# --- Mock payloads -----------------------------------------------------------


def mock_successful_payment_response(source_reference: str, amount: float, currency: str) -> dict[str, Any]:
    return {
        "status": "success",
        "message": "Payment completed successfully",
        "ecocashTransactionReference": f"ECO{_random_id(10)}",
        "sourceReference": source_reference,
        "amount": amount,
        "currency": currency,
        "transactionDateTime": _now(),
        "customerMsisdn": TEST_PHONE_SUCCESS,
    }


def mock_failed_payment_response(source_reference: str, reason: str = "Insufficient funds") -> dict[str, Any]:
    return {
        "status": "failed",
        "message": reason,
        "sourceReference": source_reference,
        "errorCode": "INSUFFICIENT_FUNDS",
        "transactionDateTime": _now(),
    }


def mock_successful_refund_response(refund_correlator: str, amount: float, currency: str) -> dict[str, Any]:
    return {
        "transactionStatus": "completed",
        "destinationReferenceCode": f"REF{_random_id(8)}",
        "refundCorrelator": refund_correlator,
        "amount": amount,
        "currency": currency,
        "transactionDateTime": _now(),
        "message": "Refund processed successfully",
    }


def mock_failed_refund_response(refund_correlator: str) -> dict[str, Any]:
    return {
        "transactionStatus": "failed",
        "refundCorrelator": refund_correlator,
        "message": "Refund failed - original transaction not found",
        "errorCode": "ORIGINAL_TRANSACTION_NOT_FOUND",
        "transactionDateTime": _now(),
    }


def mock_transaction_lookup_response(
    source_reference: str, source_mobile_number: str, status: str = "completed"
) -> dict[str, Any]:
    return {
        "sourceMobileNumber": source_mobile_number,
        "sourceReference": source_reference,
        "amount": TEST_AMOUNT_SUCCESS,
        "status": status,
        "ecocashReference": f"ECO{_random_id(10)}",
        "transactionDateTime": (datetime.now(UTC) - timedelta(minutes=5)).isoformat(),
        "currency": "USD",
        "customerMsisdn": TEST_PHONE_SUCCESS,
    }


def generate_payment_mock_response(
    customer_msisdn: str, source_reference: str, amount: float, currency: str
) -> dict[str, Any]:
    """Payment payload determined by which test number was used."""
    response_type = get_expected_response_type(customer_msisdn)
    if response_type == MockResponseType.SUCCESS:
        return mock_successful_payment_response(source_reference, amount, currency)
    return mock_failed_payment_response(source_reference, reason=_FAILURE_MESSAGES[response_type])


# --- Sandbox transport -------------------------------------------------------


@dataclass(frozen=True)
class SandboxConfig:
    """
    Behavior of SandboxTransport.

    With ``scripted_responses`` the outcome follows the test number used;
    otherwise each call succeeds with probability ``success_rate``.
    """

    scripted_responses: bool = False
    response_delay: float = 0.5
    success_rate: float = 0.8
    log_all_requests: bool = True
    name: str = "sandbox"

    def __post_init__(self):
        if not 0.0 <= self.success_rate <= 1.0:
            raise ValueError("success_rate must be between 0 and 1")
        if self.response_delay < 0:
            raise ValueError("response_delay must be >= 0")

    @classmethod
    def preset(cls, name: str) -> "SandboxConfig":
        try:
            return SANDBOX_PRESETS[name]
        except KeyError:
            raise ValueError(f"Unknown sandbox preset '{name}'. Available: {', '.join(SANDBOX_PRESETS)}") from None


SANDBOX_PRESETS = {
    "development": SandboxConfig(
        scripted_responses=True, response_delay=0.2, success_rate=0.95, name="development"
    ),
    "testing": SandboxConfig(scripted_responses=True, response_delay=0.1, success_rate=0.7, name="testing"),
    "production": SandboxConfig(
        scripted_responses=False, response_delay=1.0, success_rate=0.99, log_all_requests=False
    ),
}


class SandboxTransport:
    """
    Transport that fabricates API responses locally.

    Routes on the endpoint path, so it can replace HttpTransport in an
    EcocashClient unchanged. The network-error test number raises
    TransportError, which exercises the client's retry path.
    """

    def __init__(self, config: SandboxConfig | None = None, seed: int | None = None):
        self.config = config or SANDBOX_PRESETS["development"]
        self._random = random.Random(seed)
        self.requests: list[tuple[str, dict[str, Any]]] = []

    async def post_json(self, url: str, headers: dict[str, str], body: dict[str, Any]) -> dict[str, Any]:
        self.requests.append((url, body))
        if self.config.log_all_requests:
            logger.info(f"Sandbox request to {url}", extra={"metadata": mask_sensitive_data(body)})

        if self.config.response_delay:
            await asyncio.sleep(self.config.response_delay)

        if "/payment/" in url:
            return self._payment(body)
        if "/refund/" in url:
            return self._refund(body)
        if "/transaction/" in url:
            return self._lookup(body)
        raise TransportError(f"Sandbox has no handler for {url}")

    def _succeeds(self) -> bool:
        return self._random.random() < self.config.success_rate

    def _payment(self, body: dict[str, Any]) -> dict[str, Any]:
        msisdn = body.get("customerMsisdn", "")
        reference = body.get("sourceReference", "")
        amount = body.get("amount", 0.0)
        currency = body.get("currency", "USD")

        if self.config.scripted_responses:
            if get_expected_response_type(msisdn) == MockResponseType.NETWORK_ERROR:
                raise TransportError("Simulated network error")
            return generate_payment_mock_response(msisdn, reference, amount, currency)

        if self._succeeds():
            return mock_successful_payment_response(reference, amount, currency)
        return mock_failed_payment_response(reference, reason="Simulated failure for testing")

    def _refund(self, body: dict[str, Any]) -> dict[str, Any]:
        correlator = body.get("refundCorelator") or body.get("refundCorrelator", "")
        if self._succeeds():
            return mock_successful_refund_response(correlator, body.get("amount", 0.0), body.get("currency", "USD"))
        return mock_failed_refund_response(correlator)

    def _lookup(self, body: dict[str, Any]) -> dict[str, Any]:
        return mock_transaction_lookup_response(
            source_reference=body.get("sourceReference", ""),
            source_mobile_number=body.get("sourceMobileNumber", ""),
            status="completed" if self._succeeds() else "failed",
        )

    async def close(self) -> None:
        pass
