"""Structured JSON logging for Releasegate."""

import json
import logging
import sys
from datetime import datetime, timezone

# Attributes passed via ``extra=`` that are copied into the JSON line.
CONTEXT_FIELDS = ("customer_id", "license_id", "machine_id", "version", "upstream", "status_code")


class JSONFormatter(logging.Formatter):
    """Format log records as JSON lines, including request context fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Configure structured logging for the releasegate logger tree.

    Safe to call more than once; the JSON handler is only attached once.
    """
    root = logging.getLogger("releasegate")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not any(isinstance(h.formatter, JSONFormatter) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        root.addHandler(handler)
    root.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Get a logger scoped under releasegate."""
    return logging.getLogger(f"releasegate.{name}")
