"""
Event sanitization for outgoing Sentry payloads.

Registered as the SDK's ``before_send`` / ``before_send_transaction`` hook so
every event is scrubbed right before it is transmitted.  Six independent
passes run in order, each returning a new event value:

1. Exception messages: credentials, tokens, secrets and DB connection
   strings are replaced with a marker that keeps the field name.
2. Request headers: ``authorization``, ``cookie`` and ``x-api-key`` are
   deleted outright.
3. Request cookies: dropped entirely.
4. Query string: sensitive parameters keep their name, lose their value.
5. Stack frames: source context lines and local variables get the message
   rules; locals under a sensitive name are masked whole.
6. Breadcrumbs: messages and data get the same treatment as frame locals.

The function is total: missing or oddly-typed substructures mean "nothing to
redact" for that field.  The caller's event is never mutated.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Pattern, Tuple

from ..constants import (
    REDACTED,
    SENSITIVE_CONNECTION_SCHEMES,
    SENSITIVE_HEADERS,
    SENSITIVE_QUERY_PARAMS,
    SENSITIVE_VAR_NAMES,
)

Event = Dict[str, Any]


# ── Message rule table ───────────────────────────────────────────


@dataclass(frozen=True)
class RedactionRule:
    """A single pattern → replacement record applied to free-form text."""

    name: str
    pattern: Pattern[str]
    replacement: str


def _assignment_rule(name: str, keyword: str, label: str) -> RedactionRule:
    # keyword, then separators (: = whitespace "), then the value token
    return RedactionRule(
        name=name,
        pattern=re.compile(keyword + r'["\s:=]+[^\s&"]*', re.IGNORECASE),
        replacement=f"{label}={REDACTED}",
    )


def _connection_rule(scheme: str) -> RedactionRule:
    return RedactionRule(
        name=f"{scheme}_url",
        pattern=re.compile(r"(" + re.escape(scheme) + r")://[^@\s/]+@", re.IGNORECASE),
        replacement=rf"\1://{REDACTED}@",
    )


# Connection strings go first so keyword rules never swallow the host part.
MESSAGE_RULES: Tuple[RedactionRule, ...] = (
    *(_connection_rule(scheme) for scheme in SENSITIVE_CONNECTION_SCHEMES),
    _assignment_rule("password", "password", "password"),
    _assignment_rule("token", "token", "token"),
    _assignment_rule("api_key", r"api[_-]?key", "api_key"),
    _assignment_rule("secret", "secret", "secret"),
    RedactionRule(
        name="bearer",
        pattern=re.compile(r"authorization:\s*bearer\s+\S+", re.IGNORECASE),
        replacement=f"authorization: bearer {REDACTED}",
    ),
)


def redact_message(text: Any) -> Any:
    """Apply every message rule to *text*.  Non-strings are returned as-is."""
    if not isinstance(text, str) or not text:
        return text
    for rule in MESSAGE_RULES:
        text = rule.pattern.sub(rule.replacement, text)
    return text


# ── Query-string rules ───────────────────────────────────────────

# A name only counts at a parameter boundary: ``monkey=1`` is not ``key``.
_QUERY_RULES: Tuple[Pattern[str], ...] = tuple(
    re.compile(r"(?<![^&;])(" + re.escape(param) + r")=[^&]*", re.IGNORECASE)
    for param in SENSITIVE_QUERY_PARAMS
)


def redact_query_string(query: Any) -> Any:
    """Mask the values of sensitive parameters in a raw query string."""
    if not isinstance(query, str) or not query:
        return query
    for pattern in _QUERY_RULES:
        query = pattern.sub(rf"\1={REDACTED}", query)
    return query


# ── Passes ───────────────────────────────────────────────────────


def _request_of(event: Event) -> Optional[Dict[str, Any]]:
    request = event.get("request")
    return request if isinstance(request, Mapping) else None


def _map_values(event: Event, field: str, fn: Callable[[Any], Any]) -> Event:
    """Apply *fn* to every entry of ``event[field]``.

    The field may be the wire shape ``{"values": [...]}`` or a bare list;
    anything else is left alone.
    """
    container = event.get(field)
    if isinstance(container, Mapping):
        values = container.get("values")
    elif isinstance(container, list):
        values = container
    else:
        return event
    if not isinstance(values, list):
        return event

    cleaned = [fn(entry) for entry in values]
    if isinstance(container, Mapping):
        return {**event, field: {**container, "values": cleaned}}
    return {**event, field: cleaned}


def _is_sensitive_name(name: Any) -> bool:
    if not isinstance(name, str):
        return False
    lowered = name.lower()
    return any(word in lowered for word in SENSITIVE_VAR_NAMES)


def _scrub_value(value: Any, name: Any = None) -> Any:
    """Mask values under sensitive names, redact free text everywhere else."""
    if _is_sensitive_name(name):
        return REDACTED
    if isinstance(value, str):
        return redact_message(value)
    if isinstance(value, Mapping):
        return {k: _scrub_value(v, k) for k, v in value.items()}
    if isinstance(value, list):
        return [_scrub_value(v) for v in value]
    return value


def _redact_exception_value(record: Any) -> Any:
    if isinstance(record, Mapping) and isinstance(record.get("value"), str):
        return {**record, "value": redact_message(record["value"])}
    return record


def _redact_frame(frame: Any) -> Any:
    if not isinstance(frame, Mapping):
        return frame
    cleaned = dict(frame)
    if isinstance(frame.get("context_line"), str):
        cleaned["context_line"] = redact_message(frame["context_line"])
    for key in ("pre_context", "post_context"):
        if isinstance(frame.get(key), list):
            cleaned[key] = [redact_message(line) for line in frame[key]]
    if isinstance(frame.get("vars"), Mapping):
        cleaned["vars"] = _scrub_value(frame["vars"])
    return cleaned


def _redact_stacktrace(record: Any) -> Any:
    if not isinstance(record, Mapping):
        return record
    stacktrace = record.get("stacktrace")
    if not isinstance(stacktrace, Mapping) or not isinstance(stacktrace.get("frames"), list):
        return record
    frames = [_redact_frame(frame) for frame in stacktrace["frames"]]
    return {**record, "stacktrace": {**stacktrace, "frames": frames}}


def _redact_breadcrumb(crumb: Any) -> Any:
    if not isinstance(crumb, Mapping):
        return crumb
    cleaned = dict(crumb)
    if isinstance(crumb.get("message"), str):
        cleaned["message"] = redact_message(crumb["message"])
    if isinstance(crumb.get("data"), Mapping):
        cleaned["data"] = _scrub_value(crumb["data"])
    return cleaned


def _redact_exceptions(event: Event) -> Event:
    return _map_values(event, "exception", _redact_exception_value)


def _strip_headers(event: Event) -> Event:
    request = _request_of(event)
    if request is None:
        return event
    headers = request.get("headers")

    if isinstance(headers, Mapping):
        kept: Any = {
            k: v
            for k, v in headers.items()
            if not (isinstance(k, str) and k.lower() in SENSITIVE_HEADERS)
        }
    elif isinstance(headers, list):
        kept = [
            pair
            for pair in headers
            if not (
                isinstance(pair, (list, tuple))
                and pair
                and isinstance(pair[0], str)
                and pair[0].lower() in SENSITIVE_HEADERS
            )
        ]
    else:
        return event

    return {**event, "request": {**request, "headers": kept}}


def _drop_cookies(event: Event) -> Event:
    request = _request_of(event)
    if request is None or "cookies" not in request:
        return event
    return {**event, "request": {k: v for k, v in request.items() if k != "cookies"}}


def _redact_query(event: Event) -> Event:
    request = _request_of(event)
    if request is None or not isinstance(request.get("query_string"), str):
        return event
    return {
        **event,
        "request": {**request, "query_string": redact_query_string(request["query_string"])},
    }


def _redact_stack_frames(event: Event) -> Event:
    return _map_values(event, "exception", _redact_stacktrace)


def _redact_breadcrumbs(event: Event) -> Event:
    return _map_values(event, "breadcrumbs", _redact_breadcrumb)


SANITIZER_PASSES: Tuple[Callable[[Event], Event], ...] = (
    _redact_exceptions,
    _strip_headers,
    _drop_cookies,
    _redact_query,
    _redact_stack_frames,
    _redact_breadcrumbs,
)


def sanitize_event(event: Event, hint: Optional[Dict[str, Any]] = None) -> Event:
    """Return a scrubbed copy of a Sentry *event*.

    Signature matches the SDK's ``before_send`` hook; *hint* is unused.
    Anything that is not a dict is returned unchanged since there is no
    structure to redact.
    """
    if not isinstance(event, Mapping):
        return event
    result: Event = dict(event)
    for redaction_pass in SANITIZER_PASSES:
        result = redaction_pass(result)
    return result
