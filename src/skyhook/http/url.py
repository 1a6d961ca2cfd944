# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""URL helpers: prefix joining and search parameter handling."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

SearchParams = tuple[tuple[str, str], ...]


def is_absolute_url(url: str) -> bool:
    """Return True when the URL carries both a scheme and a host."""
    parts = urlsplit(str(url or ""))
    return bool(parts.scheme and parts.netloc)


def join_prefix_url(prefix_url: str, path: str) -> str:
    """
    Join a prefix and a relative path with exactly one slash between them.

    Example:
      https://host/api + users/1 -> https://host/api/users/1
    """
    if not prefix_url:
        return path
    prefix = prefix_url if prefix_url.endswith("/") else f"{prefix_url}/"
    return f"{prefix}{path}"


def _param_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def normalize_search_params(value: Any) -> SearchParams:
    """
    Convert the accepted search parameter shapes into ordered string pairs.

    Accepts a query string (a leading ``?`` is ignored), a mapping, or a sequence of pairs.
    Mapping values may be sequences to repeat a key; ``None`` values are dropped.
    """
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(parse_qsl(value.lstrip("?"), keep_blank_values=True))
    if isinstance(value, (bytes, bytearray)):
        return normalize_search_params(bytes(value).decode("utf-8"))

    if isinstance(value, Mapping):
        items: list[tuple[Any, Any]] = []
        for key, item in value.items():
            if isinstance(item, (list, tuple)):
                items.extend((key, sub) for sub in item)
            else:
                items.append((key, item))
    else:
        items = []
        for pair in value:
            if isinstance(pair, (str, bytes)) or len(pair) != 2:
                raise ValueError(f"search_params entries must be (name, value) pairs, got {pair!r}")
            items.append((pair[0], pair[1]))

    return tuple((str(key), _param_value(item)) for key, item in items if item is not None)


def append_search_params(url: str, params: SearchParams) -> str:
    """Append encoded params to the query already present on ``url``."""
    if not params:
        return url
    parts = urlsplit(url)
    encoded = urlencode(params)
    query = f"{parts.query}&{encoded}" if parts.query else encoded
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


__all__ = [
    "SearchParams",
    "append_search_params",
    "is_absolute_url",
    "join_prefix_url",
    "normalize_search_params",
]
