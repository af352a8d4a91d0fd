"""
Centralised error tracking backed by the Sentry SDK.

``ErrorTracker`` is constructed explicitly from config and handed to whoever
needs it (the Flask app keeps it in ``app.config["tracker"]``).  It owns the
SDK initialisation and registers :func:`sanitize_event` as the pre-send hook,
so every outgoing event and transaction is scrubbed before transmission.

Errors are:
1. Logged via the structured logger (messages already redacted).
2. Stored in a bounded in-memory ring buffer for the dashboard endpoints.
3. Forwarded to Bugsink/Sentry when a DSN is configured.
"""

import logging
import sys
import threading
import traceback
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import sentry_sdk
from flask import Flask, g, jsonify, request
from sentry_sdk.consts import VERSION as SENTRY_SDK_VERSION
from sentry_sdk.integrations.flask import FlaskIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from werkzeug.exceptions import HTTPException

from ..config import as_bool, resolve_sample_rate
from ..constants import MAX_ERROR_BUFFER, RELEASE
from .logging import get_log_context, setup_structured_logger
from .sanitizer import redact_message, sanitize_event

# ── Error record ─────────────────────────────────────────────────


@dataclass
class ErrorRecord:
    """A single captured error event."""

    timestamp: str
    error_type: str
    message: str
    traceback: str
    context: Dict[str, Any] = field(default_factory=dict)
    fingerprint: str = ""  # for dedup grouping
    event_id: Optional[str] = None  # set when forwarded to Sentry

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "error_type": self.error_type,
            "message": self.message,
            "traceback": self.traceback,
            "context": self.context,
            "fingerprint": self.fingerprint,
            "event_id": self.event_id,
        }


# ── Error Tracker ────────────────────────────────────────────────


class ErrorTracker:
    """Captures, deduplicates, stores and forwards errors.

    Usage::

        tracker = ErrorTracker(config)
        tracker.install_flask(app)

        try:
            do_work()
        except Exception:
            tracker.capture_exception(extra={"job_id": jid})

    Args:
        config: Full application config; only the ``sentry`` section is read.
        transport: Optional ``sentry_sdk.transport.Transport`` instance.
            Tests inject one to observe what would be transmitted.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, *, transport=None) -> None:
        sentry_conf = (config or {}).get("sentry", {})
        debug_mode = as_bool((config or {}).get("logging", {}).get("debug", False))

        self._dsn = str(sentry_conf.get("dsn") or "").strip()
        self._environment = str(sentry_conf.get("environment") or "development")
        self._buffer: deque[ErrorRecord] = deque(maxlen=MAX_ERROR_BUFFER)
        self._counts: Dict[str, int] = {}  # fingerprint -> count
        self._lock = threading.Lock()
        self._logger = setup_structured_logger("error_tracker", "errors.log", debug=debug_mode)
        self._callbacks: List[Callable[[ErrorRecord], None]] = []
        self._client = None

        if self._dsn or transport is not None:
            self._init_sentry(sentry_conf, transport)
        else:
            self._logger.info("SENTRY_DSN not set; errors are tracked locally only")

    def _init_sentry(self, sentry_conf: Dict[str, Any], transport) -> None:
        sample_rate = resolve_sample_rate(sentry_conf.get("traces_sample_rate"), self._environment)
        sentry_sdk.init(
            dsn=self._dsn or None,
            environment=self._environment,
            release=RELEASE,
            debug=as_bool(sentry_conf.get("debug", False)),
            traces_sample_rate=sample_rate,
            send_default_pii=as_bool(sentry_conf.get("send_default_pii", False)),
            # Frame locals hold raw exception objects and request state
            include_local_variables=as_bool(sentry_conf.get("include_local_variables", False)),
            integrations=[
                FlaskIntegration(transaction_style="url"),
                # Log lines become breadcrumbs only; events come from capture_*
                LoggingIntegration(level=logging.INFO, event_level=None),
            ],
            before_send=self._before_send,
            before_send_transaction=self._before_send,
            transport=transport,
        )
        self._client = sentry_sdk.get_client()
        self._logger.info(
            "Sentry SDK initialised (environment=%s, traces_sample_rate=%s)",
            self._environment,
            sample_rate,
        )

    def _before_send(self, event, hint):
        """Pre-send hook: scrub the event, or drop it if scrubbing blows up."""
        try:
            return sanitize_event(event, hint)
        except Exception:
            # Never fall back to the raw event
            self._logger.exception("Event sanitizer failed; dropping event")
            return None

    @property
    def enabled(self) -> bool:
        """``True`` when events are actually forwarded to Sentry."""
        return self._client is not None and self._client.is_active()

    # ── Flask integration ────────────────────────────────────────

    def install_flask(self, app: Flask) -> None:
        """Register a Flask error handler that captures all unhandled exceptions."""

        @app.errorhandler(Exception)
        def _handle_exception(exc: Exception):
            # Let Flask handle HTTP exceptions (400, 404, etc.) normally
            if isinstance(exc, HTTPException):
                return exc

            record = self.capture_exception(exc=exc)
            return (
                jsonify(
                    {
                        "error": "Internal Server Error",
                        "message": redact_message(str(exc)),
                        "request_id": getattr(g, "request_id", None) or "",
                        "sent_to_sentry": bool(record and record.event_id),
                    }
                ),
                500,
            )

        @app.errorhandler(404)
        def _handle_404(exc):
            return {"error": "Not found"}, 404

    # ── Capture methods ──────────────────────────────────────────

    def capture_exception(
        self,
        exc: Optional[BaseException] = None,
        *,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Optional[ErrorRecord]:
        """Capture an exception with full context.

        Args:
            exc: The exception. If ``None``, uses ``sys.exc_info()``.
            extra: Additional context to attach (also sent to Sentry as extras).

        Returns:
            The ``ErrorRecord``, or ``None`` if nothing to capture.
        """
        if exc is None:
            exc_info = sys.exc_info()
            if exc_info[0] is None:
                return None
            exc = exc_info[1]
        else:
            exc_info = (type(exc), exc, exc.__traceback__)

        tb = redact_message("".join(traceback.format_exception(*exc_info)))
        fingerprint = f"{type(exc).__name__}:{_extract_location(exc_info)}"

        ctx: Dict[str, Any] = get_log_context()
        if extra:
            ctx.update(extra)

        # Flask request context
        try:
            if request:
                ctx.setdefault("method", request.method)
                ctx.setdefault("path", request.path)
        except RuntimeError:
            pass  # Outside request context

        event_id = None
        if self.enabled:
            with sentry_sdk.new_scope() as scope:
                for key, value in (extra or {}).items():
                    scope.set_extra(key, value)
                event_id = sentry_sdk.capture_exception(exc)

        record = ErrorRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            error_type=type(exc).__name__,
            message=redact_message(str(exc)),
            traceback=tb,
            context=ctx,
            fingerprint=fingerprint,
            event_id=event_id,
        )

        with self._lock:
            self._buffer.append(record)
            self._counts[fingerprint] = self._counts.get(fingerprint, 0) + 1

        self._logger.error(
            "Captured %s: %s",
            record.error_type,
            record.message,
            extra={"error_type": record.error_type, "fingerprint": fingerprint, "event_id": event_id},
        )

        for cb in self._callbacks:
            try:
                cb(record)
            except Exception:
                self._logger.exception("Error callback %r failed", cb)

        return record

    def capture_message(self, message: str, level: str = "info") -> Optional[str]:
        """Send a plain message event.  Returns the Sentry event id, if sent."""
        self._logger.info("Capturing message (%s): %s", level, message)
        if not self.enabled:
            return None
        return sentry_sdk.capture_message(message, level=level)

    def on_error(self, callback: Callable[[ErrorRecord], None]) -> None:
        """Register a callback invoked on every captured error."""
        self._callbacks.append(callback)

    # ── Scope enrichment ─────────────────────────────────────────

    def set_user(self, user: Optional[Dict[str, Any]]) -> None:
        sentry_sdk.set_user(user)

    def set_context(self, name: str, value: Dict[str, Any]) -> None:
        sentry_sdk.set_context(name, value)

    def set_tag(self, key: str, value: Any) -> None:
        sentry_sdk.set_tag(key, value)

    def add_breadcrumb(
        self,
        message: str,
        *,
        category: str = "default",
        level: str = "info",
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        crumb: Dict[str, Any] = {"category": category, "message": message, "level": level}
        if data:
            crumb["data"] = data
        sentry_sdk.add_breadcrumb(crumb)

    # ── Query methods ────────────────────────────────────────────

    def recent_errors(self, limit: int = 50) -> List[Dict[str, Any]]:
        """Return the most recent errors as dicts, newest first."""
        with self._lock:
            items = list(self._buffer)[-limit:] if limit > 0 else []
        items.reverse()
        return [e.to_dict() for e in items]

    def error_summary(self) -> Dict[str, Any]:
        """Return dedup counts and totals."""
        with self._lock:
            counts = dict(self._counts)
        return {
            "total_captured": sum(counts.values()),
            "unique_errors": len(counts),
            "top_errors": sorted(
                [{"fingerprint": fp, "count": c} for fp, c in counts.items()],
                key=lambda x: x["count"],
                reverse=True,
            )[:20],
        }

    def integration_report(self) -> Dict[str, Any]:
        """Describe the active SDK client: version, DSN status, integrations."""
        integrations = sorted(getattr(self._client, "integrations", None) or {})
        return {
            "sdk_version": SENTRY_SDK_VERSION,
            "dsn": "configured" if self._dsn else "Not configured",
            "environment": self._environment,
            "enabled": self.enabled,
            "total_integrations": len(integrations),
            "integrations": integrations,
            "server_type": {
                "framework": "flask",
                "uses_flask_integration": "flask" in integrations,
                "uses_logging_integration": "logging" in integrations,
            },
        }

    # ── Lifecycle ────────────────────────────────────────────────

    def flush(self, timeout: float = 2.0) -> None:
        """Block until queued events are sent (or *timeout* elapses)."""
        if self._client is not None:
            self._client.flush(timeout=timeout)

    def close(self) -> None:
        """Flush and shut down the SDK client owned by this tracker."""
        if self._client is not None:
            self._client.close()
            self._client = None


def _extract_location(exc_info) -> str:
    """Extract file:line from the innermost traceback frame."""
    tb = exc_info[2]
    if tb is None:
        return "unknown"
    while tb.tb_next:
        tb = tb.tb_next
    return f"{tb.tb_frame.f_code.co_filename}:{tb.tb_lineno}"
