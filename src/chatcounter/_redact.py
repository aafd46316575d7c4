"""Helpers for safe debug logging.

chatcounter handles bearer tokens and forwards opaque chat payloads.
This module redacts sensitive fields before they reach DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

# Compared after dropping case, "_" and "-", so accessToken, access_token
# and Access-Token all match "accesstoken".
_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "token",
        "accesstoken",
        "refreshtoken",
        "authorization",
        "cookie",
        # Message bodies are never needed to count them
        "content",
        "text",
        "fileurl",
    }
)

_MAX_DEPTH = 20


def _normalize_key(key: Any) -> str:
    return str(key).lower().replace("_", "").replace("-", "")


def is_sensitive_key(key: Any) -> bool:
    """Whether values stored under *key* must not be logged."""
    return _normalize_key(key) in _SENSITIVE_KEYS


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs.

    Sensitive keys are replaced by ``"<redacted>"`` at any depth. Socket.IO
    binary attachments are reduced to their size.
    """
    if _depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"
    if isinstance(value, (bytes, bytearray)):
        return f"<binary:{len(value)}b>"
    if isinstance(value, Mapping):
        return {
            str(key): "<redacted>"
            if is_sensitive_key(key)
            else redact_for_log(item, max_string=max_string, _depth=_depth + 1)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_for_log(item, max_string=max_string, _depth=_depth + 1) for item in value]
    return repr(value)
