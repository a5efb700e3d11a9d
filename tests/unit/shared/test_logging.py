"""Tests for structured JSON logging helpers."""

import json
import logging

import pytest

from ticketguard.shared.infrastructure.logging import (
    CustomJsonFormatter, get_logger, log_latency, setup_logging
)


def _record(**fields) -> logging.LogRecord:
    base = {
        "name": "ticketguard.test",
        "levelname": "INFO",
        "levelno": logging.INFO,
        "msg": "gate opened",
    }
    base.update(fields)
    return logging.makeLogRecord(base)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestCustomJsonFormatter:
    def test_extra_fields_and_environment(self):
        formatter = CustomJsonFormatter("%(name)s %(levelname)s %(message)s", environment="staging")
        payload = json.loads(formatter.format(_record(ticket_id="T-1")))

        assert payload["message"] == "gate opened"
        assert payload["name"] == "ticketguard.test"
        assert payload["ticket_id"] == "T-1"
        assert payload["environment"] == "staging"
        assert payload["timestamp"]

    def test_sensitive_values_redacted(self):
        formatter = CustomJsonFormatter("%(message)s")
        payload = json.loads(formatter.format(_record(api_token="abc", db_password="hunter2")))
        assert payload["api_token"] == "***REDACTED***"
        assert payload["db_password"] == "***REDACTED***"

    def test_verification_values_redacted(self):
        formatter = CustomJsonFormatter("%(message)s")
        payload = json.loads(formatter.format(_record(customerName="Ada Lovelace", user_id="agent-1")))
        assert payload["customerName"] == "***REDACTED***"
        assert payload["user_id"] == "agent-1"

    def test_timestamp_is_event_time(self):
        formatter = CustomJsonFormatter("%(message)s")
        payload = json.loads(formatter.format(_record(created=0.0)))
        assert payload["timestamp"].startswith("1970-01-01T00:00:00")

    def test_correlation_id_and_record_environment(self):
        formatter = CustomJsonFormatter("%(message)s", environment="development")
        payload = json.loads(formatter.format(_record(correlation_id="req-9", environment="production")))
        assert payload["correlation_id"] == "req-9"
        assert payload["environment"] == "production"


class TestSetup:
    def test_setup_installs_json_handler(self, restore_root_logger):
        setup_logging("DEBUG", "production")
        assert restore_root_logger.level == logging.DEBUG
        assert len(restore_root_logger.handlers) == 1
        formatter = restore_root_logger.handlers[0].formatter
        assert isinstance(formatter, CustomJsonFormatter)
        assert formatter.environment == "production"
        assert logging.getLogger("apscheduler").level == logging.WARNING

    def test_get_logger(self):
        assert get_logger("ticketguard.sla").name == "ticketguard.sla"


class TestLogLatency:
    def test_logs_operation_and_latency(self, caplog):
        logger = get_logger("ticketguard.test.latency")
        with caplog.at_level(logging.INFO, logger="ticketguard.test.latency"):
            with log_latency(logger, "sweep", tickets=3):
                pass

        record = caplog.records[-1]
        assert record.getMessage() == "sweep completed"
        assert record.operation == "sweep"
        assert record.tickets == 3
        assert record.latency_ms >= 0

    def test_logs_even_when_block_raises(self, caplog):
        logger = get_logger("ticketguard.test.latency")
        with caplog.at_level(logging.INFO, logger="ticketguard.test.latency"):
            with pytest.raises(RuntimeError):
                with log_latency(logger, "sweep"):
                    raise RuntimeError("boom")
        assert caplog.records[-1].operation == "sweep"

    def test_slow_block_logs_warning(self, caplog):
        logger = get_logger("ticketguard.test.latency")
        with caplog.at_level(logging.INFO, logger="ticketguard.test.latency"):
            with log_latency(logger, "sweep", slow_after_ms=-1):
                pass

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.getMessage() == "sweep exceeded budget"
