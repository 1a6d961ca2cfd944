# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Client instances: callable request entry points carrying inherited defaults."""

from __future__ import annotations

from collections.abc import Callable
from types import TracebackType
from typing import Any

from .hooks import STOP
from .http.fetch import FetchCallable, create_default_fetch
from .http.httpx_fetch import HttpxFetch
from .options import NormalizedOptions, OptionsInput, merge_options
from .response import LazyResponse

DefaultsInput = OptionsInput | Callable[[NormalizedOptions], OptionsInput]


class Client:
    """
    Callable HTTP client.

    ``client(url, **options)`` returns a :class:`LazyResponse`; ``client.get(...)`` and the other
    method shorthands only differ in the method they set. Per-call options are merged over the
    client defaults. When no ``fetch`` option is configured, the client lazily creates an
    httpx-backed one and closes it in :meth:`aclose`.

    Example:
        >>> api = Client(prefix_url="https://example.com/api", retry=3)
        >>> users = api.extend(lambda parent: {"prefix_url": f"{parent.prefix_url}/users"})
        >>> user = await users.get("42").json()
    """

    stop = STOP

    def __init__(self, **defaults: Any):
        self._defaults = merge_options(defaults)
        self._default_fetch: HttpxFetch | None = None

    @classmethod
    def _from_options(cls, options: NormalizedOptions) -> "Client":
        client = cls.__new__(cls)
        client._defaults = options
        client._default_fetch = None
        return client

    def __repr__(self) -> str:
        return f"<Client prefix_url={self._defaults.prefix_url!r}>"

    @property
    def defaults(self) -> NormalizedOptions:
        return self._defaults

    def _fetch_for(self, options: NormalizedOptions) -> FetchCallable:
        if options.fetch is not None:
            return options.fetch
        if self._default_fetch is None:
            self._default_fetch = create_default_fetch()
        return self._default_fetch

    def __call__(self, input: Any, **options: Any) -> LazyResponse:
        merged = merge_options(self._defaults, options)
        return LazyResponse(input, merged, self._fetch_for(merged))

    def get(self, input: Any, **options: Any) -> LazyResponse:
        return self(input, **{**options, "method": "GET"})

    def post(self, input: Any, **options: Any) -> LazyResponse:
        return self(input, **{**options, "method": "POST"})

    def put(self, input: Any, **options: Any) -> LazyResponse:
        return self(input, **{**options, "method": "PUT"})

    def patch(self, input: Any, **options: Any) -> LazyResponse:
        return self(input, **{**options, "method": "PATCH"})

    def head(self, input: Any, **options: Any) -> LazyResponse:
        return self(input, **{**options, "method": "HEAD"})

    def delete(self, input: Any, **options: Any) -> LazyResponse:
        return self(input, **{**options, "method": "DELETE"})

    def create(self, **defaults: Any) -> "Client":
        """Return a new client with fresh defaults; nothing is inherited from this one."""
        return Client(**defaults)

    def extend(self, defaults: DefaultsInput | None = None, /, **options: Any) -> "Client":
        """
        Return a client inheriting this client's defaults.

        ``defaults`` may be a mapping or a callable receiving this client's NormalizedOptions and
        returning a mapping. Hook lists are concatenated with the parent's hooks first.
        """
        if callable(defaults):
            defaults = defaults(self._defaults)
        return Client._from_options(merge_options(self._defaults, defaults, options))

    async def aclose(self) -> None:
        if self._default_fetch is not None:
            await self._default_fetch.aclose()
            self._default_fetch = None

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


__all__ = ["Client"]
