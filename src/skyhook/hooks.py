# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Lifecycle hooks.

Hooks are plain functions or coroutine functions taking a single :class:`HookContext`.
Whatever a hook returns is interpreted into a :class:`HookOutcome` (continue, replace or
stop) according to the lifecycle point it runs at, and the runner applies that outcome to
the context before calling the next hook. Return values a point has no use for are
ignored. before_return hooks are different: each one's return value becomes the result of the
call, so the last one wins.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, fields
from enum import Enum
from typing import TYPE_CHECKING, Any, Literal

from .errors import ConfigurationError
from .http.models import Request, Response

if TYPE_CHECKING:
    from .options import NormalizedOptions

logger = logging.getLogger(__name__)


class _Stop:
    _instance: "_Stop | None" = None

    def __new__(cls) -> "_Stop":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "skyhook.STOP"


STOP = _Stop()


class HookPoint(str, Enum):
    BEFORE_REQUEST = "before_request"
    BEFORE_RETRY = "before_retry"
    BEFORE_ERROR = "before_error"
    AFTER_RESPONSE = "after_response"
    BEFORE_RETURN = "before_return"


@dataclass
class HookContext:
    request: Request
    options: NormalizedOptions
    response: Response | None = None
    error: BaseException | None = None
    retry_count: int = 0
    result: Any = None


HookCallable = Callable[[HookContext], Any]


@dataclass(frozen=True)
class HookOutcome:
    kind: Literal["continue", "replace", "stop"]
    value: Any = None


CONTINUE = HookOutcome("continue")


@dataclass(frozen=True)
class Hooks:
    before_request: tuple[HookCallable, ...] = ()
    before_retry: tuple[HookCallable, ...] = ()
    before_error: tuple[HookCallable, ...] = ()
    after_response: tuple[HookCallable, ...] = ()
    before_return: tuple[HookCallable, ...] = ()

    @classmethod
    def coerce(cls, value: "Hooks | Mapping[str, Iterable[HookCallable]] | None") -> "Hooks":
        if value is None:
            return cls()
        if isinstance(value, Hooks):
            return value
        if not isinstance(value, Mapping):
            raise ConfigurationError(f"hooks must be a mapping of lifecycle point to callables, got {type(value).__name__}")

        known = {f.name for f in fields(cls)}
        unknown = set(value) - known
        if unknown:
            raise ConfigurationError(f"Unknown hook point(s): {', '.join(sorted(unknown))}")

        collected: dict[str, tuple[HookCallable, ...]] = {}
        for name, hooks in value.items():
            if hooks is None:
                continue
            if callable(hooks):
                hooks = (hooks,)
            hooks = tuple(hooks)
            for hook in hooks:
                if not callable(hook):
                    raise ConfigurationError(f"{name} hooks must be callable, got {hook!r}")
            collected[name] = hooks
        return cls(**collected)

    def merge(self, other: "Hooks") -> "Hooks":
        """Concatenate hook lists; hooks already on ``self`` run first."""
        return Hooks(
            before_request=self.before_request + other.before_request,
            before_retry=self.before_retry + other.before_retry,
            before_error=self.before_error + other.before_error,
            after_response=self.after_response + other.after_response,
            before_return=self.before_return + other.before_return,
        )

    def for_point(self, point: HookPoint) -> tuple[HookCallable, ...]:
        return getattr(self, point.value)


def interpret(point: HookPoint, value: Any) -> HookOutcome:
    """Turn a hook's return value into the outcome it stands for at ``point``."""
    if point is HookPoint.BEFORE_RETURN:
        return HookOutcome("replace", value)
    if value is None:
        return CONTINUE
    if point is HookPoint.BEFORE_REQUEST and isinstance(value, (Request, Response)):
        return HookOutcome("replace", value)
    if point is HookPoint.AFTER_RESPONSE and isinstance(value, Response):
        return HookOutcome("replace", value)
    if point is HookPoint.BEFORE_RETRY and value is STOP:
        return HookOutcome("stop")
    if point is HookPoint.BEFORE_ERROR and isinstance(value, BaseException):
        return HookOutcome("replace", value)
    logger.debug("ignoring %s hook return value %r", point.value, value)
    return CONTINUE


async def run_hooks(point: HookPoint, hooks: Iterable[HookCallable], context: HookContext) -> HookOutcome:
    """
    Run ``hooks`` one after another, awaiting each before the next.

    Replacements are written back to ``context`` so that later hooks see them. Returns the
    outcome that ended the run early (a short-circuit response or STOP), else CONTINUE.
    """
    for hook in hooks:
        result = hook(context)
        if inspect.isawaitable(result):
            result = await result
        outcome = interpret(point, result)
        if outcome.kind == "continue":
            continue
        if outcome.kind == "stop":
            return outcome

        value = outcome.value
        if point is HookPoint.BEFORE_REQUEST:
            if isinstance(value, Response):
                context.response = value
                return outcome
            context.request = value
        elif point is HookPoint.AFTER_RESPONSE:
            context.response = value
        elif point is HookPoint.BEFORE_ERROR:
            context.error = value
        elif point is HookPoint.BEFORE_RETURN:
            context.result = value
    return CONTINUE


__all__ = [
    "CONTINUE",
    "STOP",
    "HookCallable",
    "HookContext",
    "HookOutcome",
    "HookPoint",
    "Hooks",
    "interpret",
    "run_hooks",
]
