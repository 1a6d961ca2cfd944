# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP request/response data models exchanged with fetch capabilities."""

from __future__ import annotations

import json as jsonlib
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable, Mapping
from dataclasses import dataclass, field, replace
from http import HTTPStatus
from typing import Any

from ..errors import BodyAlreadyConsumedError
from .headers import header_value, normalize_headers

Headers = dict[str, str]
RequestBody = bytes | AsyncIterable[bytes] | None


@dataclass
class Request:
    """Fully built outbound request handed to a fetch capability."""

    url: str
    method: str = "GET"
    headers: Headers = field(default_factory=dict)
    body: RequestBody = None

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        self.headers = normalize_headers(self.headers)

    @property
    def replayable(self) -> bool:
        """Whether the body can be sent again on a retry."""
        return self.body is None or isinstance(self.body, bytes)

    def header(self, name: str, default: str = "") -> str:
        return header_value(self.headers, name, default)

    def copy(self, **changes: Any) -> "Request":
        return replace(self, **{"headers": dict(self.headers), **changes})


@dataclass
class Response:
    """
    HTTP response whose body can be read exactly once.

    The body is either given up front (``content``) or streamed from ``stream``; in both cases
    the first read marks it used and any later read raises BodyAlreadyConsumedError.
    """

    status_code: int = 200
    headers: Headers = field(default_factory=dict)
    content: bytes | None = field(default=None, repr=False)
    url: str = ""
    reason: str = ""
    request: Request | None = None
    stream: AsyncIterator[bytes] | None = field(default=None, repr=False)
    on_close: Callable[[], Awaitable[None]] | None = field(default=None, repr=False)
    _body_used: bool = field(default=False, init=False, repr=False)
    _closed: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        self.headers = normalize_headers(self.headers)
        if not self.reason:
            try:
                self.reason = HTTPStatus(self.status_code).phrase
            except ValueError:
                self.reason = ""
        if not self.url and self.request is not None:
            self.url = self.request.url

    @classmethod
    def from_json(cls, data: Any, status_code: int = 200, headers: Mapping[str, str] | None = None, **kwargs: Any) -> "Response":
        """Helper for synthetic JSON responses (hooks, stubs)."""
        merged = {"content-type": "application/json"}
        merged.update(normalize_headers(headers))
        return cls(
            status_code=status_code,
            headers=merged,
            content=jsonlib.dumps(data).encode("utf-8"),
            **kwargs,
        )

    @property
    def ok(self) -> bool:
        """Returns True if :attr:`status_code` is in the 200-299 range, False if not."""
        return 200 <= self.status_code < 300

    @property
    def body_used(self) -> bool:
        return self._body_used

    @property
    def content_type(self) -> str:
        return header_value(self.headers, "content-type").split(";", 1)[0].strip().lower()

    @property
    def charset(self) -> str:
        for part in header_value(self.headers, "content-type").split(";")[1:]:
            key, _, value = part.partition("=")
            if key.strip().lower() == "charset" and value.strip():
                return value.strip().strip('"')
        return "utf-8"

    def header(self, name: str, default: str = "") -> str:
        return header_value(self.headers, name, default)

    async def aread(self) -> bytes:
        """Consume the body and return it as bytes."""
        if self._body_used:
            raise BodyAlreadyConsumedError("Response body has already been consumed")
        self._body_used = True
        try:
            if self.stream is None:
                return self.content or b""
            chunks = bytearray()
            async for chunk in self.stream:
                if chunk:
                    chunks.extend(chunk)
            return bytes(chunks)
        finally:
            await self.aclose()

    async def atext(self) -> str:
        raw = await self.aread()
        try:
            return raw.decode(self.charset, errors="replace")
        except LookupError:
            return raw.decode("utf-8", errors="replace")

    async def aclose(self) -> None:
        """Release the underlying connection without reading the rest of the body."""
        if self._closed:
            return
        self._closed = True
        if self.on_close is not None:
            await self.on_close()


__all__ = ["Headers", "Request", "RequestBody", "Response"]
