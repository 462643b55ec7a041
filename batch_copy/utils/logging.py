"""
Logging utilities for batch-copy.

The engine logs through standard library loggers and never configures logging
itself; applications (and the CLI) call `configure_logging` once. Flush events
carry structured fields via ``extra=`` (``rows``, ``discarded``, ``phase``,
``duration``). The JSON formatter lifts them to top-level keys, the console
formatter appends them as ``key=value`` pairs.

Usage:
    from batch_copy.utils.logging import configure_logging, get_logger

    configure_logging(level="INFO", json_logs=True)
    log = get_logger(__name__)
    log.info("flushed", extra={"rows": 8000})
"""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any, Dict, Optional

# Attributes every LogRecord has; anything else was passed through ``extra=``.
_RESERVED = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}

CONSOLE_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
CONSOLE_DATEFMT = "%H:%M:%S"


def record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """
    Structured fields attached to `record`.

    Both ``extra={"rows": 1}`` and the nested ``extra={"extra": {"rows": 1}}``
    spellings are accepted; nested keys win on conflict.
    """
    fields = {
        key: value
        for key, value in vars(record).items()
        if key not in _RESERVED and key != "extra"
    }
    nested = getattr(record, "extra", None)
    if isinstance(nested, dict):
        fields.update(nested)
    return fields


def _json_formatter(record: logging.LogRecord) -> str:
    payload: Dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
        **record_fields(record),
    }
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


class ConsoleFormatter(logging.Formatter):
    """Human formatter with the structured fields appended as ``key=value``."""

    def __init__(self) -> None:
        super().__init__(fmt=CONSOLE_FORMAT, datefmt=CONSOLE_DATEFMT)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = record_fields(record)
        if not fields:
            return line
        suffix = " ".join(f"{key}={value}" for key, value in sorted(fields.items()))
        head, sep, tail = line.partition("\n")
        return f"{head} {suffix}{sep}{tail}"


def logging_config(level: str = "INFO", json_logs: bool = False) -> Dict[str, Any]:
    """
    Build the `dictConfig` mapping used by `configure_logging`.

    Parameters
    ----------
    level : str
        Level name for ``batch_copy`` loggers and the stderr handler, any case.
    json_logs : bool
        Emit JSON lines instead of the console format.
    """
    level = level.upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"()": ConsoleFormatter},
            "json": {"()": JsonFormatter},
        },
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "formatter": "json" if json_logs else "console",
                "level": level,
            }
        },
        "loggers": {
            "batch_copy": {"level": level},
            # pool maintenance chatter
            "psycopg.pool": {"level": "WARNING"},
        },
        "root": {"handlers": ["stderr"], "level": level},
    }


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Install the stderr handler on the root logger."""
    logging.config.dictConfig(logging_config(level, json_logs))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)


__all__ = [
    "ConsoleFormatter",
    "JsonFormatter",
    "configure_logging",
    "get_logger",
    "logging_config",
    "record_fields",
]
