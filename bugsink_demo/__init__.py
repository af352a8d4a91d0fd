"""
Bugsink Demo - Flask + Sentry SDK error-reporting harness with event sanitization
"""

__version__ = "1.0.0"

from .observability.errors import ErrorTracker
from .observability.sanitizer import sanitize_event
from .web_server import DemoServer

__all__ = [
    "DemoServer",
    "ErrorTracker",
    "sanitize_event",
]
