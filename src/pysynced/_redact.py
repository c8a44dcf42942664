"""Redaction of frame payloads before they reach DEBUG logs.

Identity frames carry the durable user id, and application payloads can hold
credentials, large strings or raw binary. :func:`redact_for_log` produces a
log-safe copy: identity/credential keys are masked, bytes are reduced to their
size and long strings or lists are cut short.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_MASK = "<redacted>"
_MAX_DEPTH = 20

# Compared after lowercasing and dropping underscores ("session_id" -> "sessionid").
_MASKED_KEYS: frozenset[str] = frozenset(
    {
        "user",
        "session",
        "userid",
        "sessionid",
        "password",
        "token",
        "accesstoken",
        "refreshtoken",
        "authorization",
        "cookie",
    }
)


def _is_masked(key: Any) -> bool:
    return str(key).lower().replace("_", "") in _MASKED_KEYS


def _summarise(value: Any, max_string: int, max_items: int, depth: int) -> Any:
    if depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return f"<bytes:{len(value)}b>"
    if isinstance(value, Mapping):
        return {
            str(key): _MASK if _is_masked(key) else _summarise(item, max_string, max_items, depth + 1)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        shown = [_summarise(item, max_string, max_items, depth + 1) for item in value[:max_items]]
        if len(value) > max_items:
            shown.append(f"<+{len(value) - max_items} more>")
        return shown
    return repr(value)


def redact_for_log(value: Any, *, max_string: int = 512, max_items: int = 50) -> Any:
    """Return a copy of *value* that is safe to pass to ``_logger.debug``."""
    return _summarise(value, max_string, max_items, 0)
