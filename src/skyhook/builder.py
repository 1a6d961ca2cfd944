# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Build the outbound Request for one attempt from the call input and its options."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable
from typing import Any
from urllib.parse import urlsplit

from .errors import RequestBuildError
from .http.headers import merge_headers
from .http.models import Request, RequestBody
from .http.url import append_search_params, is_absolute_url, join_prefix_url
from .options import NormalizedOptions

logger = logging.getLogger(__name__)

Input = str | Request | Any


def resolve_url(input: Any, options: NormalizedOptions) -> str:
    """Join relative string inputs to prefix_url and append search params."""
    if isinstance(input, str):
        url = input
        if options.prefix_url:
            if url.startswith("/"):
                raise RequestBuildError("input must not begin with a slash when using prefix_url")
            if not is_absolute_url(url):
                url = join_prefix_url(options.prefix_url, url)
    elif input is None:
        raise RequestBuildError("input must be a URL or a Request, got None")
    else:
        # URL objects (httpx.URL, yarl.URL, ...) are taken as-is.
        url = str(input)

    url = append_search_params(url, options.search_params)
    parts = urlsplit(url)
    if parts.scheme not in {"http", "https"} or not parts.netloc:
        raise RequestBuildError(f"Invalid URL: {url!r}")
    return url


def encode_body(options: NormalizedOptions, headers: dict[str, str]) -> RequestBody:
    """Serialize json/body into request content, filling in content-type when it is missing."""
    if options.json is not None:
        try:
            payload = options.stringify_json(options.json)
        except (TypeError, ValueError) as exc:
            raise RequestBuildError(f"json payload is not serializable: {exc}") from exc
        headers.setdefault("content-type", "application/json")
        return payload if isinstance(payload, bytes) else str(payload).encode("utf-8")

    body = options.body
    if body is None:
        return None
    if isinstance(body, str):
        headers.setdefault("content-type", "text/plain;charset=UTF-8")
        return body.encode("utf-8")
    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body)
    if isinstance(body, AsyncIterable):
        return body
    raise RequestBuildError(f"Unsupported body type: {type(body).__name__}")


def build_request(input: Input, options: NormalizedOptions, attempt: int = 0) -> Request:
    """
    Produce a fresh Request for attempt number ``attempt``.

    The body is regenerated on every call so each attempt sends its own copy. A Request input
    keeps its URL, method and body; option headers sit underneath its own headers.
    """
    if isinstance(input, Request):
        url = append_search_params(input.url, options.search_params)
        headers = merge_headers(options.headers, input.headers)
        body = input.body
        method = input.method
        if options.json is not None or options.body is not None:
            body = encode_body(options, headers)
        request = Request(url=url, method=method, headers=headers, body=body)
    else:
        headers = dict(options.headers)
        body = encode_body(options, headers)
        request = Request(url=resolve_url(input, options), method=options.method, headers=headers, body=body)

    logger.debug("built attempt %d: %s %s", attempt, request.method, request.url)
    return request


__all__ = ["Input", "build_request", "encode_body", "resolve_url"]
