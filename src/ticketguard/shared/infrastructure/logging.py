"""
Structured Logging
==================

JSON logs for the engine, written to stdout for the embedding service's
log pipeline.

Every record carries:
- timestamp of the event (ISO 8601, UTC)
- environment name
- correlation_id when the caller passes one in ``extra``

Credentials and customer identity values (the verification fields) never
reach the output; they are replaced with a redaction marker.

Usage:
    from ticketguard.shared.infrastructure.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Gate opened", extra={"ticket_id": "TICKET-001"})
"""

import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Optional

from pythonjsonlogger import jsonlogger

from ticketguard.config import VERIFICATION_FIELDS


REDACTED = "***REDACTED***"

# Substrings of credential-like keys
SECRET_KEY_MARKERS = ("password", "api_key", "secret", "token")

# Third-party loggers that only matter at WARNING and above
NOISY_LOGGERS = ("apscheduler", "watchdog")


def _is_sensitive(key: str) -> bool:
    if key in VERIFICATION_FIELDS:
        return True
    lowered = key.lower()
    return any(marker in lowered for marker in SECRET_KEY_MARKERS)


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that stamps engine context onto each record and redacts sensitive values."""

    def __init__(self, *args: Any, environment: str = "unknown", **kwargs: Any):
        self.environment = environment
        super().__init__(*args, **kwargs)

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record.setdefault(
            "timestamp", datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        )
        if getattr(record, "correlation_id", None):
            log_record["correlation_id"] = record.correlation_id
        log_record["environment"] = getattr(record, "environment", self.environment)

        for key, value in list(log_record.items()):
            if isinstance(value, str) and _is_sensitive(key):
                log_record[key] = REDACTED


def setup_logging(level: str = "INFO", environment: str = "development") -> None:
    """
    Install the JSON handler on the root logger.

    Replaces any handlers already attached so repeated calls (tests, reloads)
    do not duplicate output.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        environment: Environment name stamped on every record
    """
    log_level = getattr(logging, level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(
        CustomJsonFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
            environment=environment,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Module logger; pass ``__name__``."""
    return logging.getLogger(name)


@contextmanager
def log_latency(
    logger: logging.Logger,
    operation: str,
    slow_after_ms: Optional[float] = None,
    **extra_context: Any,
):
    """
    Time the enclosed block and log its latency, even when the block raises.

    Logs at INFO, or at WARNING when ``slow_after_ms`` is given and exceeded
    (a sweep that outlasts its scheduling interval, for example).

    Usage:
        with log_latency(logger, "sla_sweep", slow_after_ms=60_000, tickets=12):
            evaluator.evaluate_all_tickets()
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        latency_ms = round((time.perf_counter() - start) * 1000, 2)
        slow = slow_after_ms is not None and latency_ms > slow_after_ms
        logger.log(
            logging.WARNING if slow else logging.INFO,
            f"{operation} {'exceeded budget' if slow else 'completed'}",
            extra={
                "operation": operation,
                "latency_ms": latency_ms,
                **extra_context,
            },
        )
