"""Logging configuration.

Logs go to stderr: stdout carries obfuscated output in stream mode.  Log
records carry rule names, counts and paths only, never matched values.
"""

from __future__ import annotations
import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

PACKAGE_LOGGER = "pii_obfuscator"
DEFAULT_LEVEL = os.environ.get("PII_OBFUSCATOR_LOG_LEVEL", "INFO")

_PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class StructuredFormatter(logging.Formatter):
    """JSON-lines formatter for log collectors."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


def configure_logging(level: str = DEFAULT_LEVEL, structured: bool = False) -> None:
    """Attach a single stderr handler to the package logger.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL (case-insensitive)
        structured: emit JSON lines instead of plain text
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(log_level)
    logger.propagate = False
    if logger.handlers:
        logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(
        StructuredFormatter() if structured else logging.Formatter(_PLAIN_FORMAT)
    )
    logger.addHandler(handler)

    logger.debug("Logging configured at %s", logging.getLevelName(log_level))
