"""Tests for the structured logging system (inventory_kernel/logging_config.py)."""

import json
import logging
from datetime import datetime, timezone
from io import StringIO
from uuid import uuid4

import pytest

from inventory_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests, then restore the suite's setup."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())


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
    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "inventory_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("claim_opened", extra={"quantity": 4, "kind": "repair"})

        record = _parse_log(stream)
        assert record["quantity"] == 4
        assert record["kind"] == "repair"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        with LogContext.bind(request_id="req-123", actor_id="ops"):
            get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["request_id"] == "req-123"
        assert record["actor_id"] == "ops"

    def test_kernel_exception_fields_extracted(self):
        from inventory_kernel.exceptions import InsufficientQuantityError

        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise InsufficientQuantityError("asset-1", 2, 5)
        except InsufficientQuantityError:
            get_logger("test").error("claim_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "INSUFFICIENT_QUANTITY"
        assert record["exc_type"] == "InsufficientQuantityError"
        assert record["exc_available"] == 2
        assert record["exc_requested"] == 5
        assert "traceback" in record

    def test_uuid_datetime_and_enum_serialized(self):
        from inventory_kernel.domain.claim import ClaimState

        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        deadline = datetime(2024, 3, 8, 9, 30, tzinfo=timezone.utc)
        get_logger("test").info(
            "with_uuid",
            extra={"claim_id": uid, "state": ClaimState.OPEN, "deadline": deadline},
        )

        record = _parse_log(stream)
        assert record["claim_id"] == str(uid)
        assert record["state"] == "open"
        assert record["deadline"] == "2024-03-08T09:30:00+00:00"

    def test_debug_filtered_at_info(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        assert [r["message"] for r in _parse_all_logs(stream)] == ["first", "second"]


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    def test_clear_drops_bound_fields(self):
        with LogContext.bind(claim_id="x", request_id="y", unknown="z"):
            assert LogContext.get_all() == {"claim_id": "x", "request_id": "y"}
            LogContext.clear()
            assert LogContext.get_all() == {}

    def test_bind_restores_previous(self):
        with LogContext.bind(actor_id="outer"):
            with LogContext.bind(actor_id="inner", asset_id=None):
                assert LogContext.get_all() == {"actor_id": "inner"}
            assert LogContext.get_all() == {"actor_id": "outer"}
        assert LogContext.get_all() == {}

    def test_bind_stringifies_uuid(self):
        uid = uuid4()
        with LogContext.bind(asset_id=uid):
            assert LogContext.get_all()["asset_id"] == str(uid)
        assert "asset_id" not in LogContext.get_all()


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        assert len(logging.getLogger("inventory_kernel").handlers) == 1

    def test_get_logger_returns_child(self):
        assert get_logger("services.quantity_ledger").name == (
            "inventory_kernel.services.quantity_ledger"
        )

    def test_level_by_name(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level="DEBUG")
        get_logger("deep.nested.module").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "inventory_kernel.deep.nested.module"
