"""Tests for the structured logging system (escrow_kernel/logging_config.py)."""

import json
import logging
from io import StringIO
from uuid import uuid4

import pytest

from escrow_kernel.domain.values import EscrowStatus
from escrow_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "escrow_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("payment_released", extra={"amount": 25_000, "release_marker": 3})

        record = _parse_log(stream)
        assert record["amount"] == 25_000
        assert record["release_marker"] == 3

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(caller="client-wallet", escrow_id="e1")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["caller"] == "client-wallet"
        assert record["escrow_id"] == "e1"

    def test_escrow_exception_code_extracted(self):
        """Kernel exceptions carry a numeric code and structured attributes."""
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        from escrow_kernel.exceptions import InsufficientFundsError

        try:
            raise InsufficientFundsError("e1", 100, 90, 20)
        except InsufficientFundsError:
            get_logger("test").error("release_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == 103
        assert record["exc_type"] == "InsufficientFundsError"
        assert record["exc_escrow_id"] == "e1"
        assert record["exc_requested"] == 20
        assert "traceback" in record

    def test_plain_exception_has_no_code(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record

    def test_uuid_and_enum_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info("values", extra={"event_id": uid, "status": EscrowStatus.DISPUTED})

        record = _parse_log(stream)
        assert record["event_id"] == str(uid)
        assert record["status"] == "disputed"

    def test_debug_filtered_at_default_level(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        assert [r["message"] for r in logs] == ["first", "second"]


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:

    def test_set_and_get(self):
        LogContext.set(correlation_id="x", payment_id="m1")
        assert LogContext.get_all() == {"correlation_id": "x", "payment_id": "m1"}

    def test_clear(self):
        LogContext.set(operation="close_escrow")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous(self):
        LogContext.set(escrow_id="outer")
        with LogContext.bind(escrow_id="inner"):
            assert LogContext.get_all()["escrow_id"] == "inner"
        assert LogContext.get_all()["escrow_id"] == "outer"

    def test_bind_ignores_none(self):
        with LogContext.bind(operation="add_payment", payment_id=None):
            ctx = LogContext.get_all()
        assert ctx == {"operation": "add_payment"}
        assert LogContext.get_all() == {}


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)

        # pytest may attach its own capture handlers to the logger
        handlers = logging.getLogger("escrow_kernel").handlers
        assert h1 in handlers
        assert h2 not in handlers
        assert [h for h in handlers if isinstance(h.formatter, StructuredFormatter)] == [h1]

    def test_get_logger_returns_child(self):
        assert get_logger("services.payment_ledger").name == "escrow_kernel.services.payment_ledger"
