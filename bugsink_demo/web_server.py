"""
Demo web server wiring Flask to Bugsink through the Sentry SDK.
Features: error-tracking test endpoints, request-id correlation, JSON errors,
and event sanitization before anything leaves the process.
"""

import signal
import sys
from typing import Any, Dict, Optional

from flask import Flask

from .config import ConfigError, as_bool, load_config, validate_config
from .constants import DEFAULT_CONFIG_PATH, DEFAULT_DASHBOARD_URL, DEFAULT_HOST, DEFAULT_PORT
from .observability.errors import ErrorTracker
from .observability.logging import setup_structured_logger
from .observability.tracing import RequestTracer
from .routes import api_bp, observability_bp, sentry_test_bp


class DemoServer:
    """Flask application demonstrating Sentry/Bugsink error reporting."""

    def __init__(
        self,
        config: Dict[str, Any] = None,
        *,
        config_path: str = None,
        tracker: Optional[ErrorTracker] = None,
    ):
        """Initialise the Flask web server.

        Args:
            config: Pre-loaded configuration dict (preferred).
            config_path: Path to the JSON config file.
            tracker: Optional pre-built ``ErrorTracker``.  Created from
                *config* if not provided.
        """
        self.config = config if config is not None else load_config(config_path or DEFAULT_CONFIG_PATH)
        debug_mode = as_bool(self.config.get("logging", {}).get("debug", False))
        self.logger = setup_structured_logger("web_server", "web_server.log", debug=debug_mode)

        web_conf = self.config.get("web_server", {})
        sentry_conf = self.config.get("sentry", {})
        self.service_name = web_conf.get("service_name", "Flask + Sentry/Bugsink Demo")
        self.dashboard_url = sentry_conf.get("dashboard_url") or DEFAULT_DASHBOARD_URL

        # Tracker must exist before the app handles requests so the SDK's
        # Flask integration is active for every request
        self.tracker = tracker or ErrorTracker(self.config)

        self.app = Flask(__name__)
        self.app.json.sort_keys = False
        self.app.config["server"] = self
        self.app.config["tracker"] = self.tracker

        RequestTracer(self.app, logger=self.logger)
        self.tracker.install_flask(self.app)
        self._register_blueprints()

        self.logger.info(
            "DemoServer initialized (sentry %s)",
            "enabled" if self.tracker.enabled else "disabled",
        )

    def _register_blueprints(self):
        """Register domain-specific Blueprints."""
        for bp in (observability_bp, sentry_test_bp, api_bp):
            self.app.register_blueprint(bp)

    # ── Server Start ─────────────────────────────────────────────

    def run(self, host: str = None, port: int = None):
        """Start the development web server (blocking)."""
        host = host or self.config.get("web_server", {}).get("host") or DEFAULT_HOST
        port = int(port or self.config.get("web_server", {}).get("port") or DEFAULT_PORT)
        display_host = host if host != "0.0.0.0" else "localhost"

        self.logger.info("Starting web server on %s:%s", host, port)

        print("\n🐛 Flask + Sentry/Bugsink Demo Server")
        print(f"🔗 URL: http://{display_host}:{port}")
        print(f"🌍 Environment: {self.config.get('sentry', {}).get('environment', 'development')}")
        print(f"📡 Sentry: {'enabled' if self.tracker.enabled else 'disabled (no DSN)'}")
        print(f"📊 Bugsink Dashboard: {self.dashboard_url}")
        print("\nPress Ctrl+C to stop\n")

        try:
            self.app.run(host=host, port=port, debug=False)
        finally:
            self.tracker.close()


def main():
    """Entry point for the demo web server."""
    import argparse

    parser = argparse.ArgumentParser(description="Start the Flask + Sentry/Bugsink demo server")
    parser.add_argument("--host", help="Host address (overrides config)")
    parser.add_argument("--port", type=int, help="Port number (overrides config)")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to config file")
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"  Config error: {exc}", file=sys.stderr)
        sys.exit(1)

    config_errors = validate_config(config)
    if config_errors:
        for err in config_errors:
            print(f"  Config error: {err}", file=sys.stderr)
        sys.exit(1)

    server = DemoServer(config=config)

    def shutdown(signum, frame):
        server.logger.info("Shutdown signal received")
        print("\n Shutting down...")
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    server.run(host=args.host, port=args.port)


if __name__ == "__main__":
    main()
