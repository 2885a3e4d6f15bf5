"""Logging for sqlbridge.

Every logger lives under the ``sqlbridge`` namespace. Records carry the
correlation ID of the current context, so that the connections, transactions
and queries issued on behalf of one request can be grouped together, and may
carry structured fields such as the connection id or the native SQL text.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, TextIO

from sqlbridge._serialization import encode_json

if TYPE_CHECKING:
    from logging import LogRecord

__all__ = (
    "CorrelationIDFilter",
    "StructuredFormatter",
    "configure_logging",
    "correlation_id_var",
    "correlation_scope",
    "get_correlation_id",
    "get_logger",
    "log_with_context",
    "set_correlation_id",
)

ROOT_LOGGER_NAME = "sqlbridge"

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation ID for the current context.

    Args:
        correlation_id: The correlation ID to set, or None to clear
    """
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


@contextmanager
def correlation_scope(correlation_id: str) -> Generator[str, None, None]:
    """Tag every record logged inside the ``with`` block with ``correlation_id``."""
    token = correlation_id_var.set(correlation_id)
    try:
        yield correlation_id
    finally:
        correlation_id_var.reset(token)


class StructuredFormatter(logging.Formatter):
    """Render records as one JSON object per line."""

    def format(self, record: LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        correlation_id = getattr(record, "correlation_id", None) or get_correlation_id()
        if correlation_id:
            entry["correlation_id"] = correlation_id
        fields = getattr(record, "extra_fields", None)
        if fields:
            entry.update(fields)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return str(encode_json(entry))


class CorrelationIDFilter(logging.Filter):
    """Copy the current correlation ID onto each record."""

    def filter(self, record: LogRecord) -> bool:
        if correlation_id := get_correlation_id():
            record.correlation_id = correlation_id
        return True


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger in the ``sqlbridge`` namespace.

    Args:
        name: Dotted name below ``sqlbridge``; None returns the namespace root.

    Returns:
        The logger, with a :class:`CorrelationIDFilter` attached.
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIDFilter) for f in logger.filters):
        logger.addFilter(CorrelationIDFilter())
    return logger


def log_with_context(logger: logging.Logger, level: int, message: str, *args: Any, **fields: Any) -> None:
    """Log ``message`` with ``fields`` attached as structured data.

    :class:`StructuredFormatter` merges the fields into the JSON entry; text
    formatters ignore them.
    """
    if logger.isEnabledFor(level):
        logger.log(level, message, *args, extra={"extra_fields": fields})


def configure_logging(
    level: int | str = logging.INFO,
    structured: bool = True,
    stream: TextIO | None = None,
    log_file: str | None = None,
) -> logging.Logger:
    """Install handlers on the ``sqlbridge`` logger.

    Replaces any handlers installed before and stops propagation to the
    root logger.

    Args:
        level: Level name or number
        structured: JSON lines when True, plain text otherwise
        stream: Console stream, defaults to ``sys.stderr``
        log_file: Optional file that always receives JSON lines

    Returns:
        The configured ``sqlbridge`` logger.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level.upper() if isinstance(level, str) else level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(stream if stream is not None else sys.stderr)
    console.setFormatter(StructuredFormatter() if structured else logging.Formatter(_TEXT_FORMAT))
    root.addHandler(console)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter())
        root.addHandler(file_handler)
    root.propagate = False
    return root
