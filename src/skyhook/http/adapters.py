# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""In-memory fetch capability for tests and offline use."""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from ..signals import Signal
from .models import Request, Response

# A queued outcome: a Response to return, an exception to raise, or a callable taking the
# request (sync or async) that produces either.
Outcome = Response | BaseException | Callable[[Request], Any]


class StubFetch:
    """
    Deterministic, programmable fetch capability.

    Outcomes are queued per URL and consumed in order; the last one keeps being served once
    the queue is down to it. Every Response handed out is a fresh copy so its body can be read.
    """

    def __init__(self, responses: dict[str, Outcome | list[Outcome]] | None = None):
        self._outcomes: dict[str, list[Outcome]] = {}
        self.requests: list[Request] = []
        for url, outcome in (responses or {}).items():
            outcomes = outcome if isinstance(outcome, list) else [outcome]
            self.add(url, *outcomes)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def add(self, url: str, *outcomes: Outcome) -> None:
        self._outcomes.setdefault(url, []).extend(outcomes)

    async def __call__(self, request: Request, *, signal: Signal) -> Response:
        signal.raise_if_cancelled()
        self.requests.append(request)

        queue = self._outcomes.get(request.url)
        if not queue:
            return Response(status_code=404, request=request, content=b"No stubbed response configured")
        outcome = queue.pop(0) if len(queue) > 1 else queue[0]

        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, Response):
            return replace(outcome, request=request, url=outcome.url or request.url)

        result = outcome(request)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, BaseException):
            raise result
        return result

    async def aclose(self) -> None:
        return None


__all__ = ["StubFetch"]
