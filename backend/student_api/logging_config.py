"""
Structured JSON logging configuration.

Every log line is a single JSON object written to stdout, tagged with a
channel (http, db, query) and the ID of the request that produced it.
"""

import logging
import json
import os
import uuid
from datetime import datetime, timezone
from contextvars import ContextVar

# Request ID of the HTTP request currently being handled. Set by the
# request ID middleware and read by the formatter for every log entry.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CHANNELS = ["http", "db", "query"]


class StructuredJsonFormatter(logging.Formatter):
    """
    Formats log records as JSON objects.

    Each entry contains:
    - timestamp: ISO 8601 timestamp in UTC
    - level: Log severity
    - message: Human-readable log message
    - channel: Log source category (http, db, query, app)
    - context: Business context (request_id, student_id, ...)
    - extra: Additional metadata (duration_ms, counts, ...)
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "message": record.getMessage(),
            "channel": getattr(record, "channel", record.name.split(".")[-1] if "." in record.name else "app"),
            "context": {
                "request_id": request_id_var.get(""),
                **(getattr(record, "context", {}) or {})
            },
            "extra": getattr(record, "extra_data", {}) or {}
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def setup_logging(level: str = None):
    """
    Configure the root logger and the channel loggers.

    All output goes to a single stdout handler using StructuredJsonFormatter.
    """
    level_value = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredJsonFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level_value)
    root_logger.handlers = [handler]

    for channel in CHANNELS:
        logging.getLogger(f"student_api.{channel}").setLevel(level_value)

    return root_logger


def get_logger(channel: str) -> logging.Logger:
    """Get the logger for a channel (http, db, query)."""
    return logging.getLogger(f"student_api.{channel}")


def log_with_context(logger: logging.Logger, level: str, message: str,
                     context: dict = None, extra_data: dict = None, exc_info=False):
    """
    Emit a structured log entry with business context and extra metadata.

    Args:
        logger: The channel logger to use
        level: Log level string (INFO, WARNING, ERROR, DEBUG)
        message: Human-readable log message
        context: Business context dict (student_id, course, ...)
        extra_data: Additional metadata dict (duration_ms, count, ...)
        exc_info: Attach the active exception's traceback
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logger.log(
        log_level,
        message,
        exc_info=exc_info,
        extra={"context": context or {}, "extra_data": extra_data or {}, "channel": logger.name.split(".")[-1]}
    )


def generate_request_id() -> str:
    """Generate a new UUID for request tracking."""
    return str(uuid.uuid4())
