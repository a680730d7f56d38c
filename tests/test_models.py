"""
Tests for request/response models and endpoint URLs.
"""

from datetime import UTC, datetime

import pytest

from ecocash.environment import Endpoints, Environment
from ecocash.exceptions import ResponseFormatError
from ecocash.models import (
    LookupRequest,
    PaymentRequest,
    PaymentResponse,
    RefundRequest,
    RefundResponse,
    TransactionStatus,
)


class TestEndpoints:
    """Tests for Endpoints."""

    def test_sandbox_urls(self):
        endpoints = Endpoints(Environment.SANDBOX)
        assert endpoints.payment.endswith("/v2/payment/instant/c2b/sandbox")
        assert endpoints.refund.endswith("/v2/refund/instant/c2b/sandbox")
        assert endpoints.lookup.endswith("/v1/transaction/c2b/status/sandbox")

    def test_custom_base_url_trailing_slash(self):
        endpoints = Endpoints("live", base_url="https://example.test/api/")
        assert endpoints.payment == "https://example.test/api/v2/payment/instant/c2b/live"

    def test_unknown_environment(self):
        with pytest.raises(ValueError):
            Endpoints("staging")


class TestPaymentModels:
    """Tests for payment request/response."""

    def test_request_to_dict(self):
        request = PaymentRequest("263774222475", 10.5, "Order", "USD", "ref-1")
        assert request.to_dict() == {
            "customerMsisdn": "263774222475",
            "amount": 10.5,
            "reason": "Order",
            "currency": "USD",
            "sourceReference": "ref-1",
        }
        assert PaymentRequest.from_dict(request.to_dict()) == request

    def test_response_from_dict(self):
        response = PaymentResponse.from_dict(
            {
                "status": "SUCCESS",
                "ecocashTransactionReference": "ECO1",
                "amount": "10.50",
                "transactionDateTime": "2024-01-15T10:30:00Z",
            }
        )
        assert response.is_successful
        assert response.message == ""
        assert response.amount == 10.5
        assert response.transaction_date_time == datetime(2024, 1, 15, 10, 30, tzinfo=UTC)

    def test_response_missing_status(self):
        with pytest.raises(ResponseFormatError, match="PaymentResponse response missing 'status'"):
            PaymentResponse.from_dict({"message": "ok"})

    def test_response_bad_timestamp(self):
        with pytest.raises(ResponseFormatError, match="transactionDateTime"):
            PaymentResponse.from_dict({"status": "success", "transactionDateTime": "yesterday"})

    def test_response_bad_amount(self):
        with pytest.raises(ResponseFormatError, match="Invalid amount"):
            PaymentResponse.from_dict({"status": "success", "amount": "ten"})

    def test_non_object_body(self):
        with pytest.raises(ResponseFormatError, match="expects a JSON object"):
            PaymentResponse.from_dict(["status"])


class TestRefundModels:
    """Tests for refund request/response."""

    def test_request_body_uses_api_spelling(self):
        request = RefundRequest("ECO1", "corr-1", "263774222475", 5.0, "Damaged", "USD")
        body = request.to_request_body()
        assert body["origionalEcocashTransactionReference"] == "ECO1"
        assert body["refundCorelator"] == "corr-1"
        assert body["clientName"] == "Ecocash SDK"

    def test_to_dict_round_trip(self):
        request = RefundRequest("ECO1", "corr-1", "263774222475", 5.0, "Damaged", "USD", "Shop")
        assert RefundRequest.from_dict(request.to_dict()) == request

    def test_response_status(self):
        assert RefundResponse.from_dict({"transactionStatus": "COMPLETED"}).is_successful
        assert not RefundResponse.from_dict({"transactionStatus": "failed"}).is_successful

    def test_response_accepts_api_correlator_spelling(self):
        response = RefundResponse.from_dict({"transactionStatus": "completed", "refundCorelator": "corr-9"})
        assert response.refund_correlator == "corr-9"


class TestLookupModels:
    """Tests for lookup request and transaction status."""

    def test_lookup_request(self):
        assert LookupRequest("263774222475", "ref").to_dict() == {
            "sourceMobileNumber": "263774222475",
            "sourceReference": "ref",
        }

    def test_transaction_status_to_dict(self):
        status = TransactionStatus.from_dict(
            {"status": "completed", "ecocashReference": "ECO1", "transactionDateTime": "2024-01-15T10:30:00+00:00"}
        )
        data = status.to_dict()
        assert data["status"] == "completed"
        assert data["ecocashReference"] == "ECO1"
        assert data["transactionDateTime"] == "2024-01-15T10:30:00+00:00"
