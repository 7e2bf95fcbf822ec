"""Helpers for safe debug logging.

The alert API is called with a static ``Authorization`` header value, which
is a credential. Request headers and response bodies pass through these
helpers before they reach DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_HEADERS: frozenset[str] = frozenset({"authorization", "cookie", "x-api-key"})


def redact_header_value(value: str) -> str:
    """Keep the auth scheme (``Bearer``, ``Basic``…) and hide the credential."""
    scheme, sep, credential = value.strip().partition(" ")
    if sep and credential:
        return f"{scheme} <redacted:{len(credential)}>"
    return f"<redacted:{len(value)}>"


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Return a copy of *headers* with credential values masked."""
    return {
        key: redact_header_value(value) if key.lower() in _SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


def redact_for_log(value: Any, *, max_string: int = 256, max_items: int = 20) -> Any:
    """Return a shortened copy of a decoded JSON body for debug logs.

    Long strings are truncated and long lists are cut to ``max_items``
    entries with a marker describing how many were dropped.
    """
    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, Mapping):
        return {
            str(k): (
                "<redacted>"
                if str(k).lower() in _SENSITIVE_HEADERS
                else redact_for_log(v, max_string=max_string, max_items=max_items)
            )
            for k, v in value.items()
        }

    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        items = [redact_for_log(v, max_string=max_string, max_items=max_items) for v in value[:max_items]]
        if len(value) > max_items:
            items.append(f"<{len(value) - max_items} more>")
        return items

    return value
