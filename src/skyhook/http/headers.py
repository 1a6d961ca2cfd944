# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Header normalization utilities.

HTTP header field names are case-insensitive (RFC 9110). skyhook stores headers as plain
lower-case keyed dicts so that merging, lookups and comparisons never depend on the casing
a caller, a hook or a fetch capability happened to use.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any


def _coerce_headers_mapping(headers: Any) -> Mapping[object, object] | None:
    """
    Best-effort coercion of "dict-like" header containers into a Mapping.

    Accepts:
    - plain dicts
    - httpx.Headers
    - email.message.Message / HTTPMessage-like types (support `.items()`)
    - iterable-of-pairs (e.g. list[tuple[str, str]])
    """
    if not headers:
        return None
    if isinstance(headers, Mapping):
        return headers

    items = getattr(headers, "items", None)
    if callable(items):
        return dict(items())

    return dict(headers)


def normalize_headers(headers: Any) -> dict[str, str]:
    """Return a lowercase-keyed copy of a header mapping."""
    coerced = _coerce_headers_mapping(headers)
    if not coerced:
        return {}
    out: dict[str, str] = {}
    for key, value in coerced.items():
        if key is None:
            continue
        name = str(key).strip().lower()
        if not name:
            continue
        out[name] = "" if value is None else str(value)
    return out


def merge_headers(base: Mapping[str, str] | None, *sources: Any) -> dict[str, str]:
    """
    Layer header sources onto ``base`` case-insensitively.

    Later sources overwrite earlier ones; a ``None`` value removes the header.
    """
    merged = normalize_headers(base)
    for source in sources:
        coerced = _coerce_headers_mapping(source)
        if not coerced:
            continue
        for key, value in coerced.items():
            if key is None:
                continue
            name = str(key).strip().lower()
            if not name:
                continue
            if value is None:
                merged.pop(name, None)
            else:
                merged[name] = str(value)
    return merged


def header_value(headers: Mapping[object, object] | Iterable[Any] | None, name: str, default: str = "") -> str:
    """
    Return a header value using case-insensitive key matching.

    Fast-paths common key casings before falling back to a full scan.
    """
    if not headers or not name:
        return default

    coerced = _coerce_headers_mapping(headers)
    if not coerced:
        return default

    lower = str(name).lower()
    for key in (lower, name, lower.title()):
        if key in coerced:
            value = coerced.get(key)
            return default if value is None else str(value).strip()

    for key, value in coerced.items():
        if key is None:
            continue
        if str(key).lower() == lower:
            return default if value is None else str(value).strip()

    return default


__all__ = ["header_value", "merge_headers", "normalize_headers"]
