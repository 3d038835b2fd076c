"""
Logging setup shared by every module.

Usage:
    from linewatch.utils.logging import get_logger

    logger = get_logger(__name__)

LOG_LEVEL controls the level (default INFO) and LOG_FORMAT selects
"json" (default, one JSON object per line) or "text".
"""
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional

TEXT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON for container log collectors."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _default_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def setup_logger(name: str, level: Optional[str] = None, fmt: Optional[str] = None) -> logging.Logger:
    """
    Configure and return a named logger.

    Calling this repeatedly for the same name returns the same logger without
    stacking duplicate handlers.

    Args:
        name: Logger name (usually __name__)
        level: Level name; defaults to LOG_LEVEL or INFO
        fmt: "json" or "text"; defaults to LOG_FORMAT or json
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, (level or _default_level()).upper(), logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        if (fmt or os.getenv("LOG_FORMAT", "json")).lower() == "text":
            handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%H:%M:%S"))
        else:
            handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)

    # Handlers live on each named logger; avoid duplicate lines via the root logger
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Convenience wrapper used at module import time."""
    return setup_logger(name)
