"""
Client Directory - Structured Logging

JSON lines in production, a plain single-line format in development. Every
record carries the id of the request it was emitted under.

Privacy:
- Extra fields named like contact data (email, mobile, phone, query) are
  replaced before formatting; audit events already strip them, this covers
  everything else.
"""

import json
import logging
import os
import sys
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Request id of the request being served in the current task
_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

PRIVATE_EXTRA_KEYS = ("email", "mobile", "phone", "query")
REDACTED = "[REDACTED]"

# Attributes every LogRecord has; anything else was passed via `extra`
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "request_id"}

PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"

NOISY_LOGGERS = ("uvicorn.access", "httpx", "twilio.http_client", "aiosqlite")


def _scrub(extra: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: REDACTED if key.lower() in PRIVATE_EXTRA_KEYS else value
        for key, value in extra.items()
    }


class RequestIdFilter(logging.Filter):
    """Stamps records with the current request id ('-' outside requests)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation."""

    def __init__(self, service_name: str = "client-directory"):
        super().__init__()
        self.service_name = service_name
        self.environment = os.environ.get("ENVIRONMENT", "development")

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "environment": self.environment,
            "request_id": getattr(record, "request_id", None),
        }

        if record.exc_info and record.exc_info[0]:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        extra = {k: v for k, v in vars(record).items() if k not in _STANDARD_ATTRS}
        if extra:
            entry["extra"] = _scrub(extra)

        return json.dumps(entry, default=str)


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    service_name: str = "client-directory"
) -> logging.Logger:
    """
    Replace the root logger's handlers with a single stdout handler.

    Args:
        level: Log level name; unknown names fall back to INFO
        json_format: JSON lines (production) or the plain format
        service_name: Reported in every JSON record

    Returns:
        The root logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(JSONFormatter(service_name) if json_format else logging.Formatter(PLAIN_FORMAT))

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_request_id(request_id: Optional[str]):
    """Bind a request id to log records emitted by the current task."""
    _request_id.set(request_id)


def get_request_id() -> Optional[str]:
    return _request_id.get()
