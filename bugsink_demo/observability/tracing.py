"""
Request-ID propagation for log/Sentry correlation.

Flask middleware that:
1. Extracts or generates an ``X-Request-ID`` header.
2. Injects it into the structured log context and as a Sentry tag, so a
   Bugsink issue can be matched to the log lines of the same request.
3. Echoes it back on the response and logs method, path, status and latency.
"""

import time
import uuid
from typing import Optional

import sentry_sdk
from flask import Flask, g, request

from .logging import clear_log_context, set_log_context


def _new_id(length: int = 32) -> str:
    """Generate a random hex ID."""
    return uuid.uuid4().hex[:length]


class RequestTracer:
    """Flask middleware: assigns request IDs and measures latency.

    Usage::

        tracer = RequestTracer(app, logger=logger)
    """

    REQUEST_ID_HEADER = "X-Request-ID"
    # Inbound IDs longer than this are replaced rather than trusted
    MAX_REQUEST_ID_LENGTH = 128

    def __init__(self, app: Flask, *, logger=None):
        self.app = app
        self.logger = logger
        app.before_request(self._before)
        app.after_request(self._after)
        app.teardown_request(self._teardown)

    # ── hooks ────────────────────────────────────────────────────

    def _before(self) -> None:
        request_id = self._extract_request_id() or _new_id()
        g.request_id = request_id
        g.request_start = time.monotonic()

        set_log_context(request_id=request_id, method=request.method, path=request.path)
        sentry_sdk.set_tag("request_id", request_id)

    def _after(self, response):
        request_id = getattr(g, "request_id", None)
        if request_id is None:
            return response

        response.headers[self.REQUEST_ID_HEADER] = request_id

        if self.logger:
            duration_ms = (time.monotonic() - g.request_start) * 1000
            log_method = self.logger.warning if response.status_code >= 400 else self.logger.info
            log_method(
                "%s %s %s %.1fms",
                request.method,
                request.path,
                response.status_code,
                duration_ms,
                extra={"duration_ms": round(duration_ms, 2), "status_code": response.status_code},
            )
        return response

    def _teardown(self, exc=None) -> None:
        clear_log_context()

    # ── header parsing ───────────────────────────────────────────

    def _extract_request_id(self) -> Optional[str]:
        rid = request.headers.get(self.REQUEST_ID_HEADER, "").strip()
        if not rid or len(rid) > self.MAX_REQUEST_ID_LENGTH or not rid.isprintable():
            return None
        return rid
