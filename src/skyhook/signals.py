# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Cooperative cancellation for in-flight calls.

A :class:`Signal` is a one-shot cancellation token. Callers hand one to a call through the
``signal`` option; the orchestrator derives a per-attempt signal from it with
:func:`compose_signal` so that the attempt is cancelled by whichever fires first, the
caller or the attempt timeout. The reason recorded on the signal tells the two apart.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from contextlib import suppress
from enum import Enum
from types import TracebackType
from typing import Any, TypeVar

from .errors import CancellationError

T = TypeVar("T")
Listener = Callable[[Any], None]


class CancelReason(str, Enum):
    CALLER = "caller"
    TIMEOUT = "timeout"


class Signal:
    """One-shot cancellation token with listener registration."""

    def __init__(self) -> None:
        self._cancelled = False
        self._reason: Any = None
        self._listeners: list[Listener] = []

    def __repr__(self) -> str:
        state = f"cancelled reason={self._reason!r}" if self._cancelled else "pending"
        return f"<Signal {state}>"

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Any:
        return self._reason

    def cancel(self, reason: Any = CancelReason.CALLER) -> None:
        """Fire the signal. Only the first call has any effect."""
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener(reason)

    def add_listener(self, callback: Listener) -> Callable[[], None]:
        """
        Register ``callback(reason)`` to run when the signal fires.

        Returns a function that detaches the listener. A listener added after the signal has
        fired runs immediately.
        """
        if self._cancelled:
            callback(self._reason)
            return lambda: None
        self._listeners.append(callback)

        def remove() -> None:
            with suppress(ValueError):
                self._listeners.remove(callback)

        return remove

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise CancellationError(self._reason)

    async def run(self, awaitable: Awaitable[T]) -> T:
        """
        Await ``awaitable``, cancelling it as soon as this signal fires.

        Raises CancellationError carrying the signal's reason when the signal won the race.
        Cancellation of the calling task itself propagates as usual.
        """
        if self._cancelled:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise CancellationError(self._reason)

        task = asyncio.ensure_future(awaitable)
        remove = self.add_listener(lambda _reason: task.cancel())
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if self._cancelled and (current is None or not current.cancelling()):
                raise CancellationError(self._reason) from None
            raise
        finally:
            remove()


class ComposedSignal:
    """
    Signal that fires on caller cancellation or after ``timeout`` seconds.

    Owns a timer and a listener on the caller signal; :meth:`dispose` releases both and must
    run on every exit path, which the context manager form guarantees.
    """

    def __init__(self, caller: Signal | None = None, timeout: float | None = None):
        self._timer: asyncio.TimerHandle | None = None
        self._detach: Callable[[], None] | None = None

        if timeout is None:
            self.signal = caller if caller is not None else Signal()
            return

        self.signal = Signal()
        if caller is not None:
            self._detach = caller.add_listener(self.signal.cancel)
        if not self.signal.cancelled:
            loop = asyncio.get_running_loop()
            self._timer = loop.call_later(timeout, self.signal.cancel, CancelReason.TIMEOUT)

    @property
    def timed_out(self) -> bool:
        return self.signal.cancelled and self.signal.reason is CancelReason.TIMEOUT

    def dispose(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._detach is not None:
            self._detach()
            self._detach = None

    def __enter__(self) -> "ComposedSignal":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.dispose()


def compose_signal(caller: Signal | None = None, timeout: float | None = None) -> ComposedSignal:
    """Combine a caller signal with an optional timeout into a single signal."""
    return ComposedSignal(caller, timeout)


async def sleep(delay: float, signal: Signal | None = None) -> None:
    """Sleep for ``delay`` seconds, waking early with CancellationError if ``signal`` fires."""
    if signal is None:
        await asyncio.sleep(delay)
        return
    await signal.run(asyncio.sleep(delay))


__all__ = ["CancelReason", "ComposedSignal", "Signal", "compose_signal", "sleep"]
