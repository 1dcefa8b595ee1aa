"""Redaction of credentials and e-mail addresses in log output.

Strings longer than MAX_STR_LOG are replaced by their length and a digest
without being scanned; shorter strings have bearer tokens, JWTs and e-mail
addresses replaced by [REDACTED].
"""

import hashlib
import re
import traceback
from typing import Any

MAX_STR_LOG = 2048
MAX_DEPTH = 6

REDACTED = "[REDACTED]"

# Keys whose values are never logged, compared lower-cased
_SENSITIVE_KEYS = frozenset({
    "authorization",
    "token",
    "access_token",
    "email",
    "confirmation_name",
})

_SENSITIVE_VALUE = re.compile(
    r"Bearer \S+"
    r"|eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]*"
    r"|[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}"
)


def sanitize_str(s: str) -> str:
    if not isinstance(s, str):
        return s  # type: ignore[return-value]

    if len(s) > MAX_STR_LOG:
        digest = hashlib.sha256(s.encode("utf-8", errors="replace")).hexdigest()[:16]
        return f"[TRUNCATED len={len(s)} sha256={digest}]"

    return _SENSITIVE_VALUE.sub(REDACTED, s)


def sanitize_obj(obj: Any, depth: int = 0) -> Any:
    """Sanitize a value passed through extra={...}.

    Mappings lose the values of sensitive keys, containers are walked
    element by element, and strings go through sanitize_str().
    """
    if depth >= MAX_DEPTH:
        return "[DEPTH_LIMIT]"

    if isinstance(obj, dict):
        return {
            key: REDACTED
            if isinstance(key, str) and key.lower() in _SENSITIVE_KEYS
            else sanitize_obj(value, depth + 1)
            for key, value in obj.items()
        }

    if isinstance(obj, (list, tuple, set, frozenset)):
        return [sanitize_obj(item, depth + 1) for item in obj]

    return sanitize_str(obj)


def sanitize_exc(exc_info: tuple) -> str:
    """Traceback text for exc_info, without local variables, redacted."""
    _type, value, _tb = exc_info
    if value is None:
        return ""
    lines = traceback.format_exception(type(value), value, value.__traceback__)
    return sanitize_str("".join(lines))
