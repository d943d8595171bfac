"""Tests for billing_kernel.logging_config."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from billing_kernel.domain.values import DocumentType
from billing_kernel.exceptions import MaxRemindersExceededError
from billing_kernel.logging_config import (
    LogContext,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _fresh_logging():
    """Each test configures its own handler; the suite-wide setup comes back afterwards."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


@pytest.fixture
def log_stream():
    stream = StringIO()
    configure_logging(handler=logging.StreamHandler(stream))
    return stream


def _records(stream: StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


class TestRecordShape:
    def test_envelope_fields(self, log_stream):
        get_logger("modules.quote.service").info("quote_send_committed")

        (record,) = _records(log_stream)
        assert record["level"] == "INFO"
        assert record["message"] == "quote_send_committed"
        assert record["logger"] == "billing_kernel.modules.quote.service"
        assert record["ts"].endswith("+00:00")

    def test_extra_values_are_json_friendly(self, log_stream):
        invoice_id = uuid4()
        get_logger("test").info(
            "invoice_overpaid",
            extra={
                "invoice_id": invoice_id,
                "outstanding": Decimal("-8.50"),
                "document_type": DocumentType.INVOICE,
                "reminder_level": 2,
            },
        )

        (record,) = _records(log_stream)
        assert record["invoice_id"] == str(invoice_id)
        assert record["outstanding"] == "-8.50"
        assert record["document_type"] == "invoice"
        assert record["reminder_level"] == 2

    def test_debug_dropped_at_default_level(self, log_stream):
        logger = get_logger("test")
        logger.debug("noise")
        logger.info("kept")
        logger.warning("also_kept")

        assert [r["message"] for r in _records(log_stream)] == ["kept", "also_kept"]

    def test_plain_exception(self, log_stream):
        try:
            raise RuntimeError("disk full")
        except RuntimeError:
            get_logger("test").exception("save_failed")

        (record,) = _records(log_stream)
        assert record["level"] == "ERROR"
        assert record["exc_type"] == "RuntimeError"
        assert record["exc_message"] == "disk full"
        assert "exc_code" not in record
        assert "Traceback" in record["traceback"]

    def test_billing_error_contributes_code_and_context(self, log_stream):
        try:
            raise MaxRemindersExceededError("inv-1", 3, 3)
        except MaxRemindersExceededError:
            get_logger("test").warning("invoice_raise_reminder_failed", exc_info=True)

        (record,) = _records(log_stream)
        assert record["exc_code"] == "MAX_REMINDERS_EXCEEDED"
        assert record["exc_type"] == "MaxRemindersExceededError"
        assert record["exc_document_id"] == "inv-1"
        assert record["exc_max_level"] == 3


class TestLogContext:
    def test_context_lands_on_records(self, log_stream):
        LogContext.set(correlation_id="req-7", document_number="RG-2024-000001")
        get_logger("test").info("invoice_send_committed")

        (record,) = _records(log_stream)
        assert record["correlation_id"] == "req-7"
        assert record["document_number"] == "RG-2024-000001"

    def test_empty_context_adds_nothing(self, log_stream):
        get_logger("test").info("bare")

        (record,) = _records(log_stream)
        assert not set(LogContext.FIELDS) & set(record)

    def test_set_is_additive_and_ignores_none(self):
        LogContext.set(correlation_id="a")
        LogContext.set(document_id="b", actor_id=None)
        assert LogContext.get_all() == {"correlation_id": "a", "document_id": "b"}

    def test_values_are_stringified(self):
        actor = uuid4()
        LogContext.set(actor_id=actor)
        assert LogContext.get_all()["actor_id"] == str(actor)

    def test_every_field_accepted(self):
        LogContext.set(**{name: f"v-{name}" for name in LogContext.FIELDS})
        assert len(LogContext.get_all()) == 6

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError, match="Unknown log context field: event_id"):
            LogContext.set(event_id="y")
        with pytest.raises(ValueError):
            with LogContext.bind(tenant="x"):
                pass

    def test_clear(self):
        LogContext.set(batch_run_id="run-1")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_overrides_then_restores(self):
        LogContext.set(document_type="quote")
        with LogContext.bind(document_type="invoice", document_id="d-1"):
            assert LogContext.get_all() == {"document_type": "invoice", "document_id": "d-1"}
        assert LogContext.get_all() == {"document_type": "quote"}

    def test_bind_restores_after_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(batch_run_id="run-2"):
                raise RuntimeError("item failed")
        assert "batch_run_id" not in LogContext.get_all()

    def test_fields_set_inside_bind_do_not_leak(self):
        with LogContext.bind(document_id="d-1"):
            LogContext.set(document_number="ANG-2024-000001")
            assert LogContext.get_all()["document_number"] == "ANG-2024-000001"
        assert LogContext.get_all() == {}


class TestConfigureLogging:
    def test_second_call_is_ignored(self):
        first = logging.StreamHandler(StringIO())
        configure_logging(handler=first)
        configure_logging(handler=logging.StreamHandler(StringIO()))
        assert logging.getLogger("billing_kernel").handlers == [first]

    def test_reset_allows_reconfiguration(self):
        configure_logging(handler=logging.StreamHandler(StringIO()))
        reset_logging()
        root = logging.getLogger("billing_kernel")
        assert root.handlers == []
        assert root.level == logging.WARNING

    def test_nested_loggers_share_the_root_handler(self):
        stream = StringIO()
        configure_logging(handler=logging.StreamHandler(stream), level=logging.DEBUG)
        get_logger("batch.runner").debug("batch_item_started")

        (record,) = _records(stream)
        assert record["logger"] == "billing_kernel.batch.runner"
