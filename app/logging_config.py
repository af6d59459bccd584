"""Structured logging configuration with correlation and actor context."""

import json
import logging
from contextvars import ContextVar
from datetime import datetime, timezone

# Per-request context populated by the HTTP middleware
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
actor_id_var: ContextVar[str] = ContextVar("actor_id", default="")


class JsonFormatter(logging.Formatter):
    """Formats log records as single-line JSON documents."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, object] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", "N/A") or "N/A",
            "actor_id": getattr(record, "actor_id", "") or None,
        }

        ledger_event = getattr(record, "ledger_event", None)
        if ledger_event:
            log_entry["ledger_event"] = ledger_event

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_entry["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(log_entry, default=str)


class RequestContextFilter(logging.Filter):
    """Injects the current correlation ID and acting user into every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get()
        record.actor_id = actor_id_var.get()
        return True


def configure_logging(log_level: str = "INFO") -> None:
    """
    Set up structured JSON logging.

    Idempotent: the JSON handler is installed once; later calls only change
    the level so handlers added by test runners stay untouched.

    Args:
        log_level: Logging level string (e.g. "INFO", "DEBUG", "WARNING").
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level.upper())

    already_configured = any(
        isinstance(h.formatter, JsonFormatter)
        for h in root_logger.handlers
        if h.formatter is not None
    )
    if already_configured:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RequestContextFilter())
    root_logger.addHandler(handler)
