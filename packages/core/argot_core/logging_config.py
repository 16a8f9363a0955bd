"""
Logging configuration.

Provides a single place to configure stdlib logging for Argot packages and a
helper to obtain module loggers. Context passed through ``extra={...}`` is
appended to each rendered record.
"""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

_ROOT_LOGGER_NAME = "argot"

# Attributes present on every LogRecord; anything else came in through `extra`.
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "taskName",
}


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RESERVED_ATTRS}


class ContextFormatter(logging.Formatter):
    """Plain-text formatter that appends `extra` context as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extra = _extra_fields(record)
        if not extra:
            return base
        context = " ".join(f"{key}={value!r}" for key, value in sorted(extra.items()))
        return f"{base} | {context}"


class JsonFormatter(logging.Formatter):
    """Formatter emitting one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_extra_fields(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def init_logging(level: str | int = "INFO", json_format: bool = False) -> None:
    """
    Configure the package logger hierarchy.

    Safe to call more than once; previously installed handlers are replaced.

    Args:
        level: Log level name or number.
        json_format: Emit JSON lines instead of plain text.
    """
    root = logging.getLogger(_ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            ContextFormatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )

    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the package hierarchy.

    Args:
        name: Usually the caller's ``__name__``.

    Returns:
        Logger whose name is rooted at ``argot``.
    """
    if name == _ROOT_LOGGER_NAME or name.startswith(f"{_ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_ROOT_LOGGER_NAME}.{name}")
