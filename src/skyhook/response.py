# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Lazy response wrapper returned by every client call."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Generator
from email.parser import BytesParser
from email.policy import HTTP
from typing import Any
from urllib.parse import parse_qsl

from .errors import BodyAlreadyConsumedError, ConfigurationError
from .execution import Execution
from .http.fetch import FetchCallable
from .http.models import Response
from .options import NormalizedOptions

_ACCEPT = {
    "json": "application/json",
    "text": "text/*",
    "bytes": "*/*",
    "form": "multipart/form-data",
}

FormData = list[tuple[str, Any]]


def parse_form(content_type: str, raw: bytes, charset: str = "utf-8") -> FormData:
    """Parse an urlencoded or multipart body into (name, value) pairs; file parts stay bytes."""
    media_type = content_type.split(";", 1)[0].strip().lower()
    if media_type == "application/x-www-form-urlencoded":
        return list(parse_qsl(raw.decode(charset, errors="replace"), keep_blank_values=True))
    if media_type != "multipart/form-data":
        raise ValueError(f"Cannot parse a form from content type {media_type or 'unknown'!r}")

    message = BytesParser(policy=HTTP).parsebytes(
        b"Content-Type: " + content_type.encode("latin-1") + b"\r\n\r\n" + raw
    )
    pairs: FormData = []
    for part in message.iter_parts():
        name = part.get_param("name", header="content-disposition")
        if name is None:
            continue
        payload = part.get_payload(decode=True) or b""
        if part.get_filename() is None:
            payload = payload.decode(part.get_content_charset() or charset, errors="replace")
        pairs.append((str(name), payload))
    return pairs


class LazyResponse:
    """
    Deferred result of a call.

    Nothing is sent until the object is awaited or one of its body readers is called. The call
    runs once however many times it is awaited, and a failed call raises the same error on every
    await or read. Only one body reader may be used: calling the same one again returns the same
    result, calling a different one raises BodyAlreadyConsumedError. When a before_retry hook
    returned STOP the call resolves to None and every body reader returns None.

    With before_return hooks configured, awaiting yields the last hook's return value and the
    body readers are unavailable.
    """

    def __init__(self, input: Any, options: NormalizedOptions, fetch: FetchCallable | None = None):
        self._execution = Execution(input, options, fetch)
        self._task: asyncio.Task[Any] | None = None
        self._body_kind: str | None = None
        self._body_task: asyncio.Task[Any] | None = None

    def __repr__(self) -> str:
        return f"<LazyResponse {self._execution.state.value} input={self._execution.input!r}>"

    @property
    def options(self) -> NormalizedOptions:
        return self._execution.options

    @property
    def started(self) -> bool:
        return self._task is not None

    @property
    def retry_count(self) -> int:
        return self._execution.retry_count

    def _start(self) -> asyncio.Task[Any]:
        if self._task is None:
            self._task = asyncio.ensure_future(self._execution.run())
        return self._task

    def __await__(self) -> Generator[Any, None, Any]:
        return self._start().__await__()

    async def _read(self, kind: str, parse: Callable[[Response], Awaitable[Any]]) -> Any:
        if self.options.hooks.before_return:
            raise ConfigurationError(f"{kind}() is unavailable when before_return hooks are configured")
        if self._task is None:
            self._execution.accept = _ACCEPT[kind]

        response = await self._start()
        if response is None:
            return None
        if self._body_kind is not None and self._body_kind != kind:
            raise BodyAlreadyConsumedError(
                f"Response body was already consumed by {self._body_kind}(); cannot call {kind}()"
            )
        if self._body_task is None:
            self._body_kind = kind
            self._body_task = asyncio.ensure_future(parse(response))
        return await self._body_task

    async def json(self) -> Any:
        """Parse the body as JSON with the parse_json option; None for 204 or an empty body."""

        async def parse(response: Response) -> Any:
            text = await response.atext()
            if response.status_code == 204 or not text.strip():
                return None
            return self.options.parse_json(text)

        return await self._read("json", parse)

    async def text(self) -> str | None:
        return await self._read("text", Response.atext)

    async def bytes(self) -> bytes | None:
        return await self._read("bytes", Response.aread)

    async def form(self) -> FormData | None:
        async def parse(response: Response) -> FormData:
            content_type = response.header("content-type")
            return parse_form(content_type, await response.aread(), response.charset)

        return await self._read("form", parse)


__all__ = ["FormData", "LazyResponse", "parse_form"]
