"""
Structured logging for the workflow API.

Services attach context through ``extra=log_fields(...)``. The JSON formatter
emits one line per record with that context promoted to top-level keys; the
text formatter appends it as ``key=value`` pairs for local runs.
"""
import logging
import sys
import json
from datetime import datetime, timezone
from typing import Any, Dict
from core.config import settings

SERVICE_NAME = "athlete-hub-workflows"

# Keys every record carries; context fields never overwrite them.
RESERVED_KEYS = frozenset({"timestamp", "level", "logger", "message", "service", "environment"})


def log_fields(**fields: Any) -> Dict[str, Any]:
    """Build the ``extra`` mapping picked up by both formatters."""
    return {"extra_fields": fields}


def _context(record: logging.LogRecord) -> Dict[str, Any]:
    fields = getattr(record, "extra_fields", None) or {}
    return {k: v for k, v in fields.items() if v is not None and k not in RESERVED_KEYS}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, context fields at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": SERVICE_NAME,
            "environment": settings.ENVIRONMENT,
        }
        log_data.update(_context(record))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        if record.levelno >= logging.WARNING:
            log_data["location"] = f"{record.module}.{record.funcName}:{record.lineno}"

        return json.dumps(log_data, default=str)


class ContextTextFormatter(logging.Formatter):
    """Plain text for development, with context appended as key=value."""

    def __init__(self):
        super().__init__("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context(record)
        if not context:
            return line
        pairs = " ".join(f"{k}={v}" for k, v in sorted(context.items()))
        first, sep, rest = line.partition("\n")
        return f"{first} [{pairs}]{sep}{rest}"


def setup_logging():
    """
    Configure the root logger.

    JSON in production or when LOG_FORMAT=json, text otherwise.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    if settings.LOG_FORMAT == "json" or settings.ENVIRONMENT == "production":
        formatter = JSONFormatter()
    else:
        formatter = ContextTextFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Noisy libraries
    for name in ("sqlalchemy.engine", "httpx", "alembic.runtime.migration"):
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger
