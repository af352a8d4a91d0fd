"""
Observability package — event sanitization, error tracking and logging.

Provides:
- ``sanitize_event``: Pre-send hook that scrubs outgoing Sentry events
- ``ErrorTracker``: Explicit Sentry client owner with local error buffer
- ``setup_structured_logger``: JSON-formatted logging with per-request context
- ``RequestTracer``: Flask middleware for request-id propagation
- ``PiiScrubber``: Filters secrets from log records
"""

from .errors import ErrorRecord, ErrorTracker
from .logging import setup_structured_logger
from .pii import PiiScrubber
from .sanitizer import MESSAGE_RULES, redact_message, redact_query_string, sanitize_event
from .tracing import RequestTracer

__all__ = [
    "sanitize_event",
    "redact_message",
    "redact_query_string",
    "MESSAGE_RULES",
    "ErrorTracker",
    "ErrorRecord",
    "setup_structured_logger",
    "RequestTracer",
    "PiiScrubber",
]
