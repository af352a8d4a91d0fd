"""
Structured JSON logging with context enrichment.

Every log line is a single JSON object with guaranteed keys: ``timestamp``,
``level``, ``logger``, ``message``, ``service``, and optional contextual
fields (``request_id``, ``method``, ``path``, ``thread``, ``func``, ``line``).
All handlers carry a ``PiiScrubber`` so secrets never reach disk or stderr.
"""

import json
import logging
import os
import sys
import threading
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from ..constants import APP_NAME, APP_VERSION, LOG_BACKUP_COUNT, LOG_MAX_BYTES
from .pii import PiiScrubber

# Thread-local storage for per-request context (request_id, path, etc.)
_context = threading.local()

# Default service name, overridable via LOG_SERVICE_NAME env var
SERVICE_NAME: str = os.environ.get("LOG_SERVICE_NAME", APP_NAME)


def set_log_context(**kwargs: Any) -> None:
    """Attach key-value pairs to the current thread's log context.

    Typical usage inside Flask ``before_request``::

        set_log_context(request_id=rid, path=request.path)
    """
    if not hasattr(_context, "data"):
        _context.data = {}
    _context.data.update(kwargs)


def clear_log_context() -> None:
    """Remove all per-request context from the current thread."""
    _context.data = {}


def get_log_context() -> Dict[str, Any]:
    """Return a *copy* of the current thread's context dict."""
    return dict(getattr(_context, "data", {}))


# ── JSON Formatter ───────────────────────────────────────────────


class _JsonFormatter(logging.Formatter):
    """Emit each record as a single-line JSON object."""

    # ``extra`` keys set by RequestTracer and ErrorTracker; request_id,
    # method and path already arrive through the log context.
    _PROMOTE_KEYS = ("duration_ms", "status_code", "error_type", "event_id", "fingerprint")

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": SERVICE_NAME,
            "version": APP_VERSION,
            "thread": record.threadName,
        }

        # Add source location for DEBUG / ERROR+
        if record.levelno <= logging.DEBUG or record.levelno >= logging.ERROR:
            entry["func"] = record.funcName
            entry["line"] = record.lineno
            entry["file"] = record.pathname

        ctx = get_log_context()
        if ctx:
            entry.update(ctx)

        for key in self._PROMOTE_KEYS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = record.exc_text or self.formatException(record.exc_info)
            entry["error_type"] = record.exc_info[0].__name__

        return json.dumps(entry, default=str, ensure_ascii=False)


# ── Plain Formatter (dev / console) ─────────────────────────────


class _DevFormatter(logging.Formatter):
    """Human-readable coloured output for local development."""

    _COLORS = {
        "DEBUG": "\033[36m",     # cyan
        "INFO": "\033[32m",      # green
        "WARNING": "\033[33m",   # yellow
        "ERROR": "\033[31m",     # red
        "CRITICAL": "\033[35m",  # magenta
    }
    _RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self._COLORS.get(record.levelname, "")
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        rid = get_log_context().get("request_id", "")
        prefix = f"[{rid[:8]}] " if rid else ""
        base = (
            f"{color}{ts} {record.levelname:<8}{self._RESET} "
            f"{record.name} {prefix}{record.getMessage()}"
        )
        if record.exc_info and record.exc_info[0] is not None:
            base += "\n" + (record.exc_text or self.formatException(record.exc_info))
        return base


# ── Logger Factory ───────────────────────────────────────────────


def log_dir() -> Path:
    """Directory for log files: ``$LOG_DIR`` or ``<project>/logs``."""
    override = os.environ.get("LOG_DIR", "").strip()
    if override:
        return Path(override)
    return Path(__file__).parent.parent.parent / "logs"


def setup_structured_logger(
    name: str,
    log_file: str,
    *,
    level: Optional[int] = None,
    debug: bool = False,
) -> logging.Logger:
    """Create (or retrieve) a structured JSON logger.

    Args:
        name: Logger name.
        log_file: Filename under the log directory.
        level: Explicit level (overrides *debug*).
        debug: If ``True``, sets level to ``DEBUG``.

    Returns:
        A configured ``logging.Logger``.
    """
    if level is None:
        level = logging.DEBUG if debug else logging.INFO

    log_path = log_dir() / log_file
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        for h in logger.handlers:
            h.setLevel(level)
        return logger

    scrubber = PiiScrubber()

    # ── JSON file handler ────────────────────────────────────────
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(_JsonFormatter())
    file_handler.addFilter(scrubber)

    # ── Console handler: JSON in prod, coloured in dev ───────────
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    if os.environ.get("LOG_FORMAT", "").lower() == "json":
        console_handler.setFormatter(_JsonFormatter())
    else:
        console_handler.setFormatter(_DevFormatter())
    console_handler.addFilter(scrubber)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    return logger
