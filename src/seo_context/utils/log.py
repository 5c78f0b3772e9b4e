"""Logging setup for the MCP server.

All output goes to stderr: stdout carries the MCP JSON-RPC stream.
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def parse_log_level(level: str) -> int:
    """Map a LOG_LEVEL string to a logging level (unknown values mean INFO)."""
    return _LEVELS.get(level.strip().lower(), logging.INFO)


def configure_logging(level: str = "info") -> None:
    """Send package logs to stderr at the given level."""
    logger = logging.getLogger("seo_context")
    logger.setLevel(parse_log_level(level))

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
