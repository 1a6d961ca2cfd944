# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
The request-execution state machine.

One :class:`Execution` drives one logical call through
``BUILD -> DISPATCH -> (SHORT_CIRCUIT | AWAIT_RESULT) -> EVALUATE -> (SUCCESS | RETRY_WAIT | FAIL)``,
looping from RETRY_WAIT back to BUILD with an incremented attempt number. A before_retry
hook returning STOP ends the call in STOPPED with no response. When before_return hooks are
configured, a successful call resolves to the last one's return value instead of the response.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .builder import build_request
from .errors import (
    CancellationError,
    ConfigurationError,
    HTTPError,
    NetworkError,
    SkyhookError,
    TimeoutError,
    categorize_exception,
)
from .hooks import HookContext, HookPoint, run_hooks
from .http.fetch import FetchCallable
from .http.models import Request, Response
from .http.retry import decide
from .options import NormalizedOptions
from .signals import CancelReason, compose_signal, sleep

logger = logging.getLogger(__name__)


class State(str, Enum):
    BUILD = "BUILD"
    DISPATCH = "DISPATCH"
    SHORT_CIRCUIT = "SHORT_CIRCUIT"
    AWAIT_RESULT = "AWAIT_RESULT"
    EVALUATE = "EVALUATE"
    RETRY_WAIT = "RETRY_WAIT"
    SUCCESS = "SUCCESS"
    FAIL = "FAIL"
    STOPPED = "STOPPED"


@dataclass
class Attempt:
    number: int
    request: Request
    started_at: float = field(default_factory=time.monotonic)
    elapsed: float = 0.0
    response: Response | None = None
    error: SkyhookError | None = None


class Execution:
    """Runs one call: builds, dispatches, evaluates and retries until a terminal state."""

    def __init__(self, input: Any, options: NormalizedOptions, fetch: FetchCallable | None = None):
        fetch = fetch or options.fetch
        if fetch is None:
            raise ConfigurationError("No fetch capability configured")
        self.input = input
        self.options = options
        self.fetch = fetch
        self.accept: str | None = None
        self.state = State.BUILD
        self.retry_count = 0

    async def run(self) -> Any:
        options = self.options
        policy = options.effective_retry
        started = time.monotonic()
        number = 0

        while True:
            self.state = State.BUILD
            request = build_request(self.input, options, number)
            if self.accept:
                request.headers.setdefault("accept", self.accept)
            attempt = Attempt(number=number, request=request)
            context = HookContext(request=request, options=options, retry_count=number)

            self.state = State.DISPATCH
            short_circuit = await run_hooks(HookPoint.BEFORE_REQUEST, options.hooks.before_request, context)
            attempt.request = context.request
            if short_circuit.kind == "replace":
                self.state = State.SHORT_CIRCUIT
                attempt.response = short_circuit.value
            else:
                self.state = State.AWAIT_RESULT
                try:
                    attempt.response = await self._fetch(attempt.request)
                except SkyhookError as exc:
                    attempt.error = exc
            attempt.elapsed = time.monotonic() - started
            context.response = attempt.response

            self.state = State.EVALUATE
            if attempt.error is None and attempt.response.ok:
                return await self._succeed(context)
            if isinstance(attempt.error, CancellationError):
                raise await self._fail(attempt.error, context)

            outcome = attempt.error if attempt.error is not None else attempt.response
            decision = decide(outcome, number, policy, attempt.elapsed, request=attempt.request)
            if not decision.should_retry:
                if attempt.error is not None:
                    raise await self._fail(attempt.error, context)
                return await self._succeed(context)

            self.state = State.RETRY_WAIT
            self.retry_count = number + 1
            context.retry_count = self.retry_count
            context.error = attempt.error if attempt.error is not None else HTTPError(attempt.response, attempt.request, options)
            stop = await run_hooks(HookPoint.BEFORE_RETRY, options.hooks.before_retry, context)
            if attempt.response is not None:
                await attempt.response.aclose()
            if stop.kind == "stop":
                self.state = State.STOPPED
                logger.debug("retry stopped by hook after %d retries: %s %s", self.retry_count, attempt.request.method, attempt.request.url)
                return None

            logger.debug(
                "retry %d/%d in %.3fs after %s: %s %s",
                self.retry_count,
                policy.limit,
                decision.delay,
                context.error,
                attempt.request.method,
                attempt.request.url,
            )
            try:
                await sleep(decision.delay, options.signal)
            except CancellationError as exc:
                context.response = None
                raise await self._fail(CancellationError(exc.reason, attempt.request), context) from None
            number += 1

    async def _fetch(self, request: Request) -> Response:
        options = self.options
        with compose_signal(options.signal, options.timeout) as composed:
            try:
                response = await composed.signal.run(self.fetch(request, signal=composed.signal))
            except CancellationError as exc:
                if exc.reason is CancelReason.TIMEOUT:
                    raise TimeoutError(request, options.timeout) from None
                raise CancellationError(exc.reason, request) from None
            except SkyhookError:
                raise
            except Exception as exc:  # noqa: BLE001
                raise NetworkError(
                    str(exc) or type(exc).__name__,
                    code=categorize_exception(exc),
                    request=request,
                ) from exc
        if response.request is None:
            response.request = request
        return response

    async def _succeed(self, context: HookContext) -> Any:
        await run_hooks(HookPoint.AFTER_RESPONSE, self.options.hooks.after_response, context)
        response = context.response
        if not response.ok and self.options.throw_on_http_error:
            raise await self._fail(HTTPError(response, context.request, self.options), context)
        self.state = State.SUCCESS
        if self.options.hooks.before_return:
            await run_hooks(HookPoint.BEFORE_RETURN, self.options.hooks.before_return, context)
            return context.result
        return response

    async def _fail(self, error: SkyhookError, context: HookContext) -> BaseException:
        self.state = State.FAIL
        context.error = error
        await run_hooks(HookPoint.BEFORE_ERROR, self.options.hooks.before_error, context)
        logger.debug("call failed after %d retries: %s", self.retry_count, context.error)
        return context.error


async def execute(input: Any, options: NormalizedOptions, fetch: FetchCallable | None = None) -> Any:
    """
    Run a whole call and return its final response, or None when a hook stopped retrying.

    With before_return hooks configured the last hook's return value is returned instead.
    """
    return await Execution(input, options, fetch).run()


__all__ = ["Attempt", "Execution", "State", "execute"]
