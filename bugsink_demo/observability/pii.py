"""
PII scrubbing filter for log records.

Applies the same message rules used on outgoing Sentry events, so a secret
that is redacted from an error report is also redacted from the log line
describing it.  Installed as a ``logging.Filter`` on every handler created by
the structured logger.
"""

import logging
from typing import FrozenSet

from ..constants import REDACTED
from .sanitizer import redact_message

# Record attribute names that should *always* be fully redacted when present.
_REDACT_ATTRS: FrozenSet[str] = frozenset(
    {
        "password",
        "passwd",
        "secret",
        "token",
        "api_key",
        "authorization",
        "cookie",
        "cookies",
        "dsn",
    }
)

_TRACEBACK_FORMATTER = logging.Formatter()


class PiiScrubber(logging.Filter):
    """Logging filter that scrubs secrets from log records.

    Attach to a handler or logger::

        handler.addFilter(PiiScrubber())
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = _scrub_text(record.getMessage())
        record.args = None  # prevent double-formatting

        if record.exc_info and record.exc_info[0] is not None and not record.exc_text:
            record.exc_text = _scrub_text(_TRACEBACK_FORMATTER.formatException(record.exc_info))

        for attr in _REDACT_ATTRS:
            if hasattr(record, attr):
                setattr(record, attr, REDACTED)

        return True


def _scrub_text(text: str) -> str:
    """Apply all sensitive-data patterns to *text* and return the result."""
    return redact_message(text)
