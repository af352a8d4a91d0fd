"""
Flask Blueprints organised by domain.

Each blueprint reaches the ``DemoServer`` via ``current_app.config['server']``
and the ``ErrorTracker`` via ``current_app.config['tracker']``.
"""

from .api_bp import api_bp
from .observability_bp import observability_bp
from .sentry_test_bp import sentry_test_bp

__all__ = [
    "observability_bp",
    "sentry_test_bp",
    "api_bp",
]
