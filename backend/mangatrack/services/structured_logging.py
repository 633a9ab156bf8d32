"""
Structured Logging Service

Provides JSON-formatted logging with correlation context so that every log
line emitted while handling an API request carries the request id and the
tracker service involved.

Features:
- JSON log formatter for machine-parseable output
- Request correlation via X-Request-ID
- Tracker service correlation (service id)
- Context propagation via contextvars
"""

import json
import logging
import uuid
from contextvars import ContextVar
from datetime import datetime
from typing import Optional


# Context variables for correlation
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
tracker_id_var: ContextVar[Optional[int]] = ContextVar('tracker_id', default=None)


def get_request_id() -> Optional[str]:
    """Get the current request ID from context."""
    return request_id_var.get()


def set_request_id(request_id: Optional[str]) -> None:
    """Set the request ID in context."""
    request_id_var.set(request_id)


def get_tracker_id() -> Optional[int]:
    """Get the tracker service id handling the current request."""
    return tracker_id_var.get()


def set_tracker_id(tracker_id: Optional[int]) -> None:
    tracker_id_var.set(tracker_id)


def clear_context() -> None:
    """Clear all context variables."""
    request_id_var.set(None)
    tracker_id_var.set(None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid.uuid4())[:8]


class JSONLogFormatter(logging.Formatter):
    """
    JSON formatter for structured logging output.

    Each record becomes one JSON object carrying the correlation IDs
    present in the current context.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON."""
        log_data = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = get_request_id()
        if request_id:
            log_data["request_id"] = request_id

        tracker_id = get_tracker_id()
        if tracker_id is not None:
            log_data["tracker_id"] = tracker_id

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
            }

        return json.dumps(log_data, default=str)


class CorrelationContext:
    """
    Context manager for setting correlation IDs outside of a request,
    e.g. in scripts refreshing tracks in bulk.

    Usage:
        with CorrelationContext(request_id="abc123", tracker_id=4):
            logger.info("This log will include correlation IDs")
    """

    def __init__(self, request_id: Optional[str] = None, tracker_id: Optional[int] = None):
        self.request_id = request_id
        self.tracker_id = tracker_id
        self._old_request_id = None
        self._old_tracker_id = None

    def __enter__(self):
        self._old_request_id = get_request_id()
        self._old_tracker_id = get_tracker_id()

        if self.request_id:
            set_request_id(self.request_id)
        if self.tracker_id is not None:
            set_tracker_id(self.tracker_id)

        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        set_request_id(self._old_request_id)
        set_tracker_id(self._old_tracker_id)
        return False


def setup_json_logging(
    logger_name: Optional[str] = None,
    level: int = logging.INFO,
    json_output: bool = True
) -> logging.Handler:
    """
    Attach a stream handler to a logger.

    Args:
        logger_name: Logger name (None for root logger)
        level: Minimum log level
        json_output: Whether to output JSON (True) or plain text (False)

    Returns:
        The configured handler
    """
    logger = logging.getLogger(logger_name) if logger_name else logging.getLogger()

    handler = logging.StreamHandler()
    handler.setLevel(level)

    if json_output:
        handler.setFormatter(JSONLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            '%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s'
        ))

    logger.addHandler(handler)
    return handler
