"""
Structured Logging Configuration

Provides JSON-formatted logging with:
- Request ID tracking
- FareHarbor booking id on webhook and booking events
- Structured output for log aggregation
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Optional, Any, Dict
from contextvars import ContextVar

# Context variable for request tracking
request_id_var: ContextVar[str] = ContextVar('request_id', default='')


class JSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.
    Outputs logs in JSON format for easy parsing by log aggregators.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        log_data["module"] = record.module
        log_data["function"] = record.funcName
        log_data["line"] = record.lineno

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_data'):
            log_data["data"] = record.extra_data

        if hasattr(record, 'duration_ms'):
            log_data["duration_ms"] = record.duration_ms

        if getattr(record, 'fareharbor_id', None):
            log_data["fareharbor_id"] = record.fareharbor_id

        return json.dumps(log_data, ensure_ascii=False, default=str)


class StructuredLogger(logging.LoggerAdapter):
    """
    Logger adapter that adds structured context to log messages.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.get('extra', {})
        extra.update(self.extra)
        kwargs['extra'] = extra
        return msg, kwargs

    def log_with_context(
        self,
        level: int,
        msg: str,
        fareharbor_id: Optional[str] = None,
        duration_ms: Optional[float] = None,
        **extra_data
    ):
        """Log with additional structured context."""
        extra = {}
        if fareharbor_id:
            extra['fareharbor_id'] = fareharbor_id
        if duration_ms is not None:
            extra['duration_ms'] = duration_ms
        if extra_data:
            extra['extra_data'] = extra_data

        self.log(level, msg, extra=extra)

    def webhook_processed(self, event_type: str, action: str, fareharbor_id: Optional[str], duration_ms: float):
        """Log the outcome of one webhook delivery."""
        self.log_with_context(
            logging.INFO,
            f"Webhook {event_type} -> {action}",
            fareharbor_id=fareharbor_id,
            duration_ms=duration_ms,
            event_type=event_type,
            action=action
        )

    def booking_upserted(self, fareharbor_id: str, action: str, status: str, amount: Any):
        """Log a booking write."""
        self.log_with_context(
            logging.INFO,
            f"Booking {fareharbor_id} {action}",
            fareharbor_id=fareharbor_id,
            action=action,
            status=status,
            amount=amount
        )


def setup_logging(
    level: str = "INFO",
    json_format: bool = True
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use JSON format (True for production)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    app_logger = logging.getLogger("fareharbor_sync")
    app_logger.setLevel(log_level)

    # Reduce noise from third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for the given module."""
    base_logger = logging.getLogger(name)
    return StructuredLogger(base_logger, {})


def set_request_context(request_id: str):
    """Set context for the current request."""
    request_id_var.set(request_id)


def clear_request_context():
    """Clear request context."""
    request_id_var.set('')
