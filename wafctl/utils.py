"""
Utility functions for wafctl.
"""
import logging
import os
import uuid
from contextvars import ContextVar
from typing import Iterable, List

# Context variable for per-request correlation
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

LOGGER_PREFIX = "wafctl"


def generate_request_id() -> str:
    """Generate a new short correlation ID."""
    return uuid.uuid4().hex[:12]


def get_request_id() -> str:
    """Get the current request ID from context."""
    return request_id_var.get()


def set_request_id(request_id: str) -> None:
    """Set the request ID in context."""
    request_id_var.set(request_id)


class RequestIdFilter(logging.Filter):
    """Logging filter to add request_id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


def _default_level() -> int:
    name = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(service_name: str) -> logging.Logger:
    """
    Configure logging with request ID tracking.

    Loggers are created under the ``wafctl`` namespace so that
    set_log_level() can adjust all of them at once.

    Args:
        service_name: Name of the component for the logger

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(f"{LOGGER_PREFIX}.{service_name}")
    logger.setLevel(_default_level())
    logger.propagate = False

    # Avoid duplicate handlers
    if not logger.handlers:
        handler = logging.StreamHandler()

        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - "
            "[request_id=%(request_id)s] - %(message)s"
        )
        handler.setFormatter(formatter)
        handler.addFilter(RequestIdFilter())

        logger.addHandler(handler)

    return logger


def set_log_level(level: int) -> None:
    """Apply a level to every logger created through setup_logging()."""
    for name, logger in logging.root.manager.loggerDict.items():
        if name.startswith(f"{LOGGER_PREFIX}.") and isinstance(logger, logging.Logger):
            logger.setLevel(level)


def split_csv(values: Iterable[str]) -> List[str]:
    """
    Flatten comma-separated flag values.

    ``["1.1.1.1,2.2.2.2", "3.3.3.3"]`` becomes three entries; blanks are dropped.
    """
    items: List[str] = []
    for value in values or []:
        for part in value.split(","):
            part = part.strip()
            if part:
                items.append(part)
    return items


def dedupe(items: Iterable) -> list:
    """Drop repeated items, keeping the first occurrence and the order."""
    seen = set()
    result = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        result.append(item)
    return result
