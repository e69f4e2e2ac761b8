"""
Tests for Structured Logging

Tests cover:
- JSON lines carry the request id and the FareHarbor booking id
- Webhook outcome logs include action and duration
- setup_logging installs one root handler with the chosen format
"""

import io
import json
import logging

import pytest

from fareharbor_sync.utils.logging_config import (
    JSONFormatter,
    clear_request_context,
    get_logger,
    set_request_context,
    setup_logging,
)


@pytest.fixture
def captured():
    """Structured logger writing JSON lines into a buffer"""
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())
    base = logging.getLogger("fareharbor_sync.tests.logging")
    base.handlers = [handler]
    base.setLevel(logging.INFO)
    base.propagate = False

    yield get_logger(base.name), stream

    base.handlers = []
    clear_request_context()


def read_lines(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines()]


class TestJSONFormatter:
    def test_webhook_processed_fields(self, captured):
        logger, stream = captured
        set_request_context("req-42")

        logger.webhook_processed("booking.created", "created", "BK100", duration_ms=3.5)

        line = read_lines(stream)[0]
        assert line["message"] == "Webhook booking.created -> created"
        assert line["request_id"] == "req-42"
        assert line["fareharbor_id"] == "BK100"
        assert line["duration_ms"] == 3.5
        assert line["data"] == {"event_type": "booking.created", "action": "created"}
        assert "entity_type" not in line

    def test_event_without_booking_id(self, captured):
        logger, stream = captured

        logger.webhook_processed("item.created", "ignored", None, duration_ms=1.0)

        line = read_lines(stream)[0]
        assert "fareharbor_id" not in line
        assert "request_id" not in line

    def test_booking_upserted_fields(self, captured):
        logger, stream = captured

        logger.booking_upserted("BK7", "updated", "confirmed", 12.5)

        line = read_lines(stream)[0]
        assert line["fareharbor_id"] == "BK7"
        assert line["data"]["status"] == "confirmed"


class TestSetupLogging:
    def test_installs_single_root_handler(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging(level="WARNING", json_format=True)

            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JSONFormatter)
            assert root.level == logging.WARNING

            setup_logging(level="INFO", json_format=False)
            assert not isinstance(root.handlers[0].formatter, JSONFormatter)
        finally:
            root.handlers = saved_handlers
            root.setLevel(saved_level)
