"""
Centralised constants for the Bugsink demo application.

Redaction vocabulary, defaults and logging limits live here so they can be
imported by any module without circular dependencies.
"""

# ── Version ──────────────────────────────────────────────────────
APP_VERSION = "1.0.0"
APP_NAME = "bugsink-demo"
RELEASE = f"{APP_NAME}@{APP_VERSION}"

# ── Default paths ────────────────────────────────────────────────
DEFAULT_CONFIG_PATH = "config.json"
DEFAULT_DASHBOARD_URL = "https://bugsink.digiprodpass.com/"

# ── Web server ───────────────────────────────────────────────────
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000

# ── Sampling defaults (passed straight through to sentry-sdk) ────
PRODUCTION_SAMPLE_RATE = 0.1
DEVELOPMENT_SAMPLE_RATE = 1.0

# ── Redaction ────────────────────────────────────────────────────
REDACTED = "***REDACTED***"

# Headers deleted from request data before an event leaves the process.
SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "x-api-key"})

# Query parameters whose values are masked.
SENSITIVE_QUERY_PARAMS = ("password", "token", "api_key", "secret", "key", "auth")

# URL schemes whose ``user:pass@`` portion is masked in exception messages.
SENSITIVE_CONNECTION_SCHEMES = (
    "mongodb+srv",
    "mongodb",
    "postgresql",
    "postgres",
    "mysql",
    "redis",
    "amqp",
)

# Stack-frame locals and breadcrumb data keys whose values are masked whole.
# Matched as substrings of the lowercased key (``HTTP_AUTHORIZATION`` -> auth).
SENSITIVE_VAR_NAMES = (
    "password",
    "passwd",
    "secret",
    "token",
    "api_key",
    "apikey",
    "auth",
    "cookie",
    "dsn",
)

# ── Error tracking ───────────────────────────────────────────────
MAX_ERROR_BUFFER = 200  # recent errors kept in memory
DEFAULT_ERROR_DISPLAY_LIMIT = 50

# ── Logging ──────────────────────────────────────────────────────
LOG_MAX_BYTES = 10 * 1024 * 1024  # 10 MB per log file
LOG_BACKUP_COUNT = 5
