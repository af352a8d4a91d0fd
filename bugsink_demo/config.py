"""
Configuration loading and validation for the Bugsink demo server.

Centralises config parsing so it happens once at startup.  String values may
hold ``${ENV_VAR:-default}`` placeholders; a ``.env`` file next to the
process is honoured for local development.
"""

import json
import os
import re
from pathlib import Path
from typing import Any, Dict, List

from dotenv import load_dotenv

from .constants import DEFAULT_CONFIG_PATH, DEVELOPMENT_SAMPLE_RATE, PRODUCTION_SAMPLE_RATE

load_dotenv()

# Required top-level sections and the sub-keys that must exist within them.
_REQUIRED_SCHEMA: Dict[str, List[str]] = {
    "web_server": ["host", "port"],
    "sentry": ["dsn", "environment"],
}


class ConfigError(Exception):
    """Raised when the configuration file is missing or invalid."""


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load configuration from a JSON file and resolve ``${ENV_VAR:-default}``
    placeholders in all string values.

    Args:
        config_path: Path to the config file (relative paths resolve
            against the project root)

    Returns:
        Fully-resolved configuration dictionary.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    base_dir = Path(__file__).parent.parent
    full_path = base_dir / config_path

    if not full_path.exists():
        raise ConfigError(f"Configuration file not found: {full_path}")

    try:
        with open(full_path, "r") as f:
            config = json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {full_path}: {exc}") from exc

    return _resolve(config)


def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    Validate a config dict against the required schema.

    Returns:
        A list of human-readable error strings.  Empty means valid.
    """
    errors: List[str] = []

    for section, sub_keys in _REQUIRED_SCHEMA.items():
        if section not in config:
            errors.append(f"Missing required config section: '{section}'")
            continue
        for sub in sub_keys:
            if sub not in config[section]:
                errors.append(f"Missing required key '{sub}' in config section '{section}'")

    port = config.get("web_server", {}).get("port")
    if port is not None:
        try:
            port_ok = 1 <= int(port) <= 65535
        except (TypeError, ValueError):
            port_ok = False
        if not port_ok:
            errors.append(f"web_server.port must be an integer between 1 and 65535, got '{port}'")

    rate = config.get("sentry", {}).get("traces_sample_rate")
    if rate not in (None, ""):
        try:
            rate_ok = 0.0 <= float(rate) <= 1.0
        except (TypeError, ValueError):
            rate_ok = False
        if not rate_ok:
            errors.append(f"sentry.traces_sample_rate must be between 0 and 1, got '{rate}'")

    for path, value in _walk_strings(config):
        if _PLACEHOLDER_RE.search(value):
            errors.append(f"{path} is an unresolved placeholder: '{value}'")

    return errors


def resolve_sample_rate(value: Any, environment: str) -> float:
    """Return the configured traces sample rate, or the per-environment default.

    An explicit value wins; otherwise production samples 10 % and every
    other environment samples everything.
    """
    if value not in (None, ""):
        return float(value)
    if environment == "production":
        return PRODUCTION_SAMPLE_RATE
    return DEVELOPMENT_SAMPLE_RATE


def as_bool(value: Any) -> bool:
    """Interpret JSON booleans and env-style strings (``"1"``, ``"true"``, ``"yes"``)."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


# ── Private helpers ──────────────────────────────────────────────

_PLACEHOLDER_RE = re.compile(r"\$\{(\w+)(?::-([^}]*))?\}")


def _resolve(obj: Any) -> Any:
    """Recursively resolve ``${ENV_VAR:-default}`` in string values."""
    if isinstance(obj, str):
        return _PLACEHOLDER_RE.sub(_replace_match, obj)
    elif isinstance(obj, dict):
        return {k: _resolve(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_resolve(v) for v in obj]
    return obj


def _replace_match(m: re.Match) -> str:
    var = m.group(1)
    default = m.group(2) if m.group(2) is not None else ""
    return os.environ.get(var, default)


def _walk_strings(obj: Any, prefix: str = ""):
    """Yield ``(dotted.path, value)`` for every string leaf in *obj*."""
    if isinstance(obj, str):
        yield prefix, obj
    elif isinstance(obj, dict):
        for k, v in obj.items():
            yield from _walk_strings(v, f"{prefix}.{k}" if prefix else str(k))
