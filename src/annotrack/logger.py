"""Logging configuration for annotrack."""

from __future__ import annotations

import logging
import os
import sys
from collections import deque
from datetime import datetime, timezone
from typing import Any

MAX_RECENT_LOGS = 500

# Level names as clients filter on them
LEVEL_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "error",
}
CLIENT_LEVELS = {"debug": logging.DEBUG, "info": logging.INFO, "warn": logging.WARNING, "error": logging.ERROR}

# Create logger for annotrack
logger = logging.getLogger("annotrack")


class RecentLogHandler(logging.Handler):
    """Keep the newest log records in memory as JSON-ready entries.

    Records may carry ``log_source``, ``log_timestamp`` and ``context``
    through ``extra`` to override the defaults.
    """

    def __init__(self, capacity: int = MAX_RECENT_LOGS) -> None:
        super().__init__()
        self._entries: deque[dict[str, Any]] = deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            timestamp = getattr(record, "log_timestamp", None) or (
                datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
            )
            entry = {
                "timestamp": timestamp,
                "level": LEVEL_NAMES.get(record.levelno, record.levelname.lower()),
                "source": getattr(record, "log_source", None) or f"backend:{record.name}",
                "message": record.getMessage(),
                "context": dict(getattr(record, "context", None) or {}),
            }
        except Exception:
            self.handleError(record)
            return
        with self.lock:
            self._entries.appendleft(entry)

    def entries(self, level: str | None = None, source: str | None = None, limit: int | None = None) -> list[dict[str, Any]]:
        """Return entries newest first, optionally filtered.

        Args:
            level: Exact level name; None or "all" keeps every level
            source: Substring the entry source must contain
            limit: Maximum number of entries returned
        """
        with self.lock:
            entries = list(self._entries)
        if level and level != "all":
            entries = [e for e in entries if e["level"] == level]
        if source:
            entries = [e for e in entries if source in e["source"]]
        return entries if limit is None else entries[:limit]

    def clear(self) -> None:
        with self.lock:
            self._entries.clear()


recent_logs = RecentLogHandler()


def setup_logger(level: int | None = None) -> None:
    """Setup the annotrack logger with default configuration.

    Args:
        level: Logging level (default: ANNOTRACK_LOG_LEVEL or INFO)
    """
    if logger.handlers:
        # Already configured
        return

    if level is None:
        level = logging.getLevelName(os.environ.get("ANNOTRACK_LOG_LEVEL", "INFO").upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    formatter = logging.Formatter("annotrack: %(levelname)s %(name)s: %(message)s")
    handler.setFormatter(formatter)

    logger.addHandler(handler)
    logger.addHandler(recent_logs)
    logger.setLevel(level)
    logger.propagate = False


# Initialize logger on import
setup_logger()
