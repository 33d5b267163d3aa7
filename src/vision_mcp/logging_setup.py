"""Logging setup for vision-mcp.

stdout carries the MCP JSON-RPC stream in stdio mode, so every log line
goes to stderr. A filter masks credential query parameters in every record
before it is formatted.
"""

from __future__ import annotations

import logging
import sys

from .exceptions import sanitize_text

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def parse_log_level(level: str | int | None) -> int:
    """Map a LOG_LEVEL value to a logging level. Unknown values mean INFO."""
    if isinstance(level, int):
        return level
    return _LEVELS.get((level or "").strip().lower(), logging.INFO)


class RedactingFilter(logging.Filter):
    """Replace credential values (``?key=...``) in log messages with ``***``."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = sanitize_text(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logging(level: str | int | None = "info") -> logging.Logger:
    """Configure the ``vision-mcp`` logger to write redacted lines to stderr."""
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    console.addFilter(RedactingFilter())

    logger = logging.getLogger("vision-mcp")
    logger.handlers.clear()
    logger.addHandler(console)
    logger.setLevel(parse_log_level(level))
    logger.propagate = False

    for noisy in ("aiohttp", "asyncio", "mcp", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    return logger
