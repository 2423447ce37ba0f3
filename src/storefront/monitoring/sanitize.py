"""
Redaction helpers applied before request headers or bodies reach the logs.
"""

import json
from collections.abc import Mapping
from typing import Any

REDACTED = "[REDACTED]"
TRUNCATION_MARKER = "..."

SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "x-api-key"})
SENSITIVE_FIELDS = frozenset({"password", "token", "secret"})


def sanitize_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy ``headers`` with credential-bearing values replaced."""
    return {
        key: REDACTED if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


def redact_fields(value: Any) -> Any:
    """Replace sensitive fields at any depth of nested dicts and lists."""
    if isinstance(value, Mapping):
        return {
            key: REDACTED if str(key).lower() in SENSITIVE_FIELDS else redact_fields(item)
            for key, item in value.items()
        }
    if isinstance(value, list | tuple):
        return [redact_fields(item) for item in value]
    return value


def _truncate(text: str, max_length: int) -> str:
    if len(text) > max_length:
        return text[:max_length] + TRUNCATION_MARKER
    return text


def sanitize_body(body: Any, max_length: int = 1000) -> Any:
    """Redact sensitive fields of a decoded body and cap its logged size.

    Structured bodies keep their shape unless their JSON form exceeds
    ``max_length``, in which case the truncated JSON text is returned.
    """
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")

    if isinstance(body, str):
        return _truncate(body, max_length)

    if isinstance(body, Mapping | list | tuple):
        redacted = redact_fields(body)
        text = json.dumps(redacted, default=str)
        if len(text) > max_length:
            return _truncate(text, max_length)
        return redacted

    return body


__all__ = [
    "REDACTED",
    "TRUNCATION_MARKER",
    "SENSITIVE_HEADERS",
    "SENSITIVE_FIELDS",
    "redact_fields",
    "sanitize_headers",
    "sanitize_body",
]
