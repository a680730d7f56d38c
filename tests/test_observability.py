"""
Tests for logging setup, structured formatting, redaction and masking.
"""

import json
import logging
import sys

import pytest
from rich.logging import RichHandler

from ecocash.observability.structured_logging import (
    HumanReadableFormatter,
    RedactingFilter,
    StructuredFormatter,
    add_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from ecocash.utils.logging import get_logger, setup_logging, setup_logging_from_config
from ecocash.utils.masking import (
    is_sensitive_key,
    mask_api_key,
    mask_phone_number,
    mask_sensitive_data,
    mask_transaction_reference,
    mask_value,
)


def make_record(message="hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("ecocash.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_ecocash_logger():
    logger = logging.getLogger("ecocash")
    handlers, level = logger.handlers[:], logger.level
    yield logger
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)


class TestMasking:
    """Tests for masking helpers."""

    def test_mask_value(self):
        assert mask_value("secretvalue") == "se***ue"
        assert mask_value("1234") == "***"

    def test_mask_phone_number(self):
        assert mask_phone_number("263774222475") == "263***75"
        assert mask_phone_number("123") == "***"

    def test_mask_transaction_reference(self):
        assert mask_transaction_reference("ECO1234567890") == "ECO1***7890"
        assert mask_transaction_reference("ECO123") == "***"

    def test_mask_api_key(self):
        assert mask_api_key("abcd12345678wxyz") == "abcd********wxyz"
        assert mask_api_key("short") == "*****"

    @pytest.mark.parametrize("key", ["pin", "PIN", "password", "apiKey", "x-api-key", "Authorization", "bearer_token"])
    def test_sensitive_keys(self, key):
        assert is_sensitive_key(key)

    @pytest.mark.parametrize("key", ["amount", "currency", "reason"])
    def test_plain_keys(self, key):
        assert not is_sensitive_key(key)

    def test_mask_sensitive_data_nested(self):
        data = {
            "customerMsisdn": "263774222475",
            "amount": 10.5,
            "pin": "1234",
            "auth": {"token": "abcdefghijkl"},
            "items": [{"sourceMobileNumber": "263771111111"}],
        }
        masked = mask_sensitive_data(data)
        assert masked == {
            "customerMsisdn": "263***75",
            "amount": 10.5,
            "pin": "***",
            "auth": {"token": "ab***kl"},
            "items": [{"sourceMobileNumber": "263***11"}],
        }
        assert data["pin"] == "1234"

    def test_non_string_secret(self):
        assert mask_sensitive_data({"pin": 1234}) == {"pin": "***"}


class TestCorrelationId:
    """Tests for correlation id context."""

    def test_context_manager(self):
        assert get_correlation_id() is None
        with add_correlation_id("req-1") as cid:
            assert cid == "req-1"
            assert get_correlation_id() == "req-1"
        assert get_correlation_id() is None

    def test_generated(self):
        with add_correlation_id() as cid:
            assert len(cid) == 8

    def test_nested_restores_outer(self):
        with add_correlation_id("outer"):
            with add_correlation_id("inner"):
                assert get_correlation_id() == "inner"
            assert get_correlation_id() == "outer"

    def test_set(self):
        with add_correlation_id("scope"):
            set_correlation_id("changed")
            assert get_correlation_id() == "changed"
        assert get_correlation_id() is None


class TestFormatters:
    """Tests for StructuredFormatter and HumanReadableFormatter."""

    def test_structured_output(self):
        formatter = StructuredFormatter(extra_fields={"service": "shop"})
        record = make_record("Payment done", operation="payment", duration_ms=12.5)

        with add_correlation_id("req-9"):
            data = json.loads(formatter.format(record))

        assert data["message"] == "Payment done"
        assert data["level"] == "INFO"
        assert data["logger"] == "ecocash.test"
        assert data["correlation_id"] == "req-9"
        assert data["operation"] == "payment"
        assert data["duration_ms"] == 12.5
        assert data["service"] == "shop"

    def test_structured_exception(self):
        formatter = StructuredFormatter()
        try:
            raise ValueError("broken")
        except ValueError:
            record = logging.LogRecord("ecocash", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

        data = json.loads(formatter.format(record))
        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "broken"

    def test_structured_after_asctime_formatter(self):
        record = make_record("Payment done")
        logging.Formatter("%(asctime)s %(message)s").format(record)

        data = json.loads(StructuredFormatter().format(record))
        assert "asctime" not in data
        assert data["message"] == "Payment done"

    def test_human_readable(self):
        formatter = HumanReadableFormatter()
        with add_correlation_id("req-2"):
            line = formatter.format(make_record("Payment done", duration_ms=40))
        assert "[req-2]" in line
        assert "Payment done" in line
        assert line.endswith("(40ms)")


class TestRedactingFilter:
    """Tests for RedactingFilter."""

    def test_masks_metadata(self):
        record = make_record(metadata={"customerMsisdn": "263774222475", "amount": 1})
        assert RedactingFilter().filter(record)
        assert record.metadata == {"customerMsisdn": "263***75", "amount": 1}

    def test_masks_sensitive_extras(self):
        record = make_record(api_key="abcdefghijkl", operation="payment")
        RedactingFilter().filter(record)
        assert record.api_key == "ab***kl"
        assert record.operation == "payment"


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_console_rich(self, restore_ecocash_logger):
        logger = setup_logging(level="DEBUG")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], RichHandler)

    def test_console_plain(self, restore_ecocash_logger):
        logger = setup_logging(use_rich=False)
        handler = logger.handlers[0]
        assert isinstance(handler.formatter, HumanReadableFormatter)
        assert any(isinstance(f, RedactingFilter) for f in handler.filters)

    def test_no_handlers_gives_null_handler(self, restore_ecocash_logger):
        logger = setup_logging(console_enabled=False)
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.NullHandler)

    def test_unknown_level_defaults_to_info(self, restore_ecocash_logger):
        assert setup_logging(level="LOUD", console_enabled=False).level == logging.INFO

    def test_json_file(self, tmp_path, restore_ecocash_logger):
        log_file = tmp_path / "logs" / "ecocash.log"
        setup_logging(log_file=log_file, console_enabled=False)

        get_logger("ecocash.test").info(
            "Payment sent", extra={"metadata": {"customerMsisdn": "263774222475"}, "operation": "payment"}
        )
        for handler in logging.getLogger("ecocash").handlers:
            handler.flush()

        entry = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert entry["message"] == "Payment sent"
        assert entry["operation"] == "payment"
        assert entry["metadata"] == {"customerMsisdn": "263***75"}

    def test_plain_file_without_rotation(self, tmp_path, restore_ecocash_logger):
        log_file = tmp_path / "plain.log"
        logger = setup_logging(log_file=log_file, console_enabled=False, rotate_daily=False, json_format=False)
        assert type(logger.handlers[0]) is logging.FileHandler

        get_logger("ecocash.test").warning("Plain line")
        logger.handlers[0].flush()
        assert "[WARNING ] ecocash.test: Plain line" in log_file.read_text()

    def test_from_config(self, tmp_path, restore_ecocash_logger):
        config = {"logging": {"level": "WARNING", "file": "logs/app.log", "console_enabled": False}}
        logger = setup_logging_from_config(config, project_dir=tmp_path)

        assert logger.level == logging.WARNING
        assert logger.handlers[0].baseFilename == str(tmp_path / "logs" / "app.log")
