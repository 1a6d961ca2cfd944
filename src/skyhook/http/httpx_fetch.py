# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""httpx-backed fetch capability."""

from __future__ import annotations

import logging

import httpx

from ..config import HttpSettings, load_http_settings
from ..signals import Signal
from .models import Request, Response

logger = logging.getLogger(__name__)


class HttpxFetch:
    """
    Asynchronous httpx client wrapper.

    Timeouts and retries are handled by skyhook itself, so the wrapped client is created
    without a timeout of its own. Responses are streamed; the body is only pulled from the
    connection when the caller reads it.
    """

    def __init__(self, settings: HttpSettings | None = None, client: httpx.AsyncClient | None = None):
        self.settings = settings or load_http_settings()
        self._client = client or httpx.AsyncClient(
            follow_redirects=self.settings.allow_redirects,
            timeout=None,
            verify=self.settings.verify_ssl,
        )

    async def __call__(self, request: Request, *, signal: Signal) -> Response:
        signal.raise_if_cancelled()
        headers = dict(request.headers)
        headers.setdefault("user-agent", self.settings.user_agent)

        outbound = self._client.build_request(
            request.method,
            request.url,
            headers=headers,
            content=request.body,
        )
        logger.debug("httpx send %s %s", request.method, request.url)
        resp = await self._client.send(outbound, stream=True)
        return Response(
            status_code=resp.status_code,
            headers=resp.headers,
            url=str(resp.url),
            reason=resp.reason_phrase,
            request=request,
            stream=resp.aiter_bytes(),
            on_close=resp.aclose,
        )

    @property
    def closed(self) -> bool:
        return self._client.is_closed

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = ["HttpxFetch"]
