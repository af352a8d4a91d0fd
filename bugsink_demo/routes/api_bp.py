"""Demo API routes: a tiny users resource plus the integration check."""

from flask import Blueprint, current_app, jsonify

api_bp = Blueprint("api", __name__, url_prefix="/api")

_USERS = (
    {"id": 1, "name": "John Doe", "email": "john@example.com"},
    {"id": 2, "name": "Jane Smith", "email": "jane@example.com"},
)


class UserNotFound(LookupError):
    """No user with the requested id."""


def _tracker():
    return current_app.config["tracker"]


@api_bp.route("/users")
def list_users():
    return jsonify({"users": list(_USERS)})


@api_bp.route("/users/<user_id>")
def get_user(user_id: str):
    """Look up one user; a non-numeric id is just another missing user."""
    try:
        user_id = int(user_id)
    except ValueError:
        user = None
    else:
        user = next((u for u in _USERS if u["id"] == user_id), None)
    if user is None:
        try:
            raise UserNotFound(f"User not found: {user_id}")
        except UserNotFound as exc:
            _tracker().capture_exception(exc, extra={"user_id": user_id})
        return jsonify({"error": "User not found"}), 404
    return jsonify({"user": user})


@api_bp.route("/test-error")
def test_error():
    """Throw, capture, and report a server-side error."""
    try:
        raise RuntimeError("This is a test error sent to Sentry!")
    except RuntimeError as exc:
        _tracker().capture_exception(exc)
        return (
            jsonify({"error": "Test error thrown and sent to Sentry", "message": str(exc)}),
            500,
        )


@api_bp.route("/check-integrations")
def check_integrations():
    """Report SDK version, DSN status and the integrations the client loaded."""
    report = _tracker().integration_report()
    if not report["enabled"]:
        return jsonify({"error": "Sentry client not found", **report}), 500
    return jsonify(report)
