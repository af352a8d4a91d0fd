"""
Observability routes — health check, endpoint directory, error dashboard.

Endpoints:
    GET /                   — endpoint directory
    GET /health             — liveness + Sentry status
    GET /api/errors/recent  — recent captured errors (messages redacted)
    GET /api/errors/summary — error dedup summary
"""

from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request

from ..constants import DEFAULT_ERROR_DISPLAY_LIMIT

observability_bp = Blueprint("observability", __name__)


def _server():
    return current_app.config["server"]


def _tracker():
    return current_app.config["tracker"]


@observability_bp.route("/")
def index():
    """API documentation for the demo."""
    return jsonify(
        {
            "message": _server().service_name,
            "endpoints": {
                "health": "GET /health",
                "test_sentry": {
                    "list": "GET /test-sentry",
                    "error": "GET /test-sentry/error",
                    "capture_exception": "GET /test-sentry/capture-exception",
                    "capture_message": "GET /test-sentry/capture-message",
                    "error_with_context": "GET /test-sentry/error-with-context",
                    "async_error": "GET /test-sentry/async-error",
                    "breadcrumbs": "GET /test-sentry/breadcrumbs",
                    "random_error": "GET /test-sentry/random-error",
                    "sensitive_error": "GET /test-sentry/sensitive-error",
                },
                "api": {
                    "users": "GET /api/users",
                    "user": "GET /api/users/<id>",
                    "test_error": "GET /api/test-error",
                    "check_integrations": "GET /api/check-integrations",
                    "errors_recent": "GET /api/errors/recent",
                    "errors_summary": "GET /api/errors/summary",
                },
            },
            "bugsink": _server().dashboard_url,
        }
    )


@observability_bp.route("/health")
def health():
    """Liveness check; also reports whether events reach Sentry."""
    return jsonify(
        {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "sentry": "enabled" if _tracker().enabled else "disabled",
        }
    )


@observability_bp.route("/api/errors/recent")
def errors_recent():
    """Return the most recent captured errors."""
    try:
        limit = int(request.args.get("limit", DEFAULT_ERROR_DISPLAY_LIMIT))
    except ValueError:
        return jsonify({"error": "limit must be an integer"}), 400
    return jsonify(_tracker().recent_errors(limit))


@observability_bp.route("/api/errors/summary")
def errors_summary():
    """Return deduplicated error counts."""
    return jsonify(_tracker().error_summary())
