# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Option merging.

Options arrive as a chain of partial mappings (client defaults, derived client defaults,
per-call overrides) and are folded left to right into one immutable
:class:`NormalizedOptions`. Each field has its own merge rule:

- scalars: the last value that is not ``None`` wins (``timeout=False`` disables the timeout)
- headers: case-insensitive union, later wins, ``None`` removes a header
- search_params: replaced wholesale by a later source
- hooks: concatenated, earlier (parent) hooks first
- retry: a policy or mapping replaces the policy, a bare int only sets its limit
"""

from __future__ import annotations

import json as jsonlib
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields, replace
from datetime import timedelta
from types import MappingProxyType
from typing import Any

from .config import HttpSettings, load_http_settings
from .errors import ConfigurationError
from .hooks import Hooks
from .http.fetch import FetchCallable
from .http.headers import merge_headers
from .http.retry import RetryPolicy
from .http.url import SearchParams, normalize_search_params
from .signals import Signal

OptionsInput = Mapping[str, Any]


@dataclass(frozen=True)
class NormalizedOptions:
    """Fully merged options for one call. Shared between calls, never mutated."""

    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    search_params: SearchParams = ()
    json: Any = None
    body: Any = None
    prefix_url: str = ""
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    timeout: float | None = 10.0
    hooks: Hooks = field(default_factory=Hooks)
    throw_on_http_error: bool = True
    signal: Signal | None = None
    fetch: FetchCallable | None = None
    parse_json: Callable[[str], Any] = jsonlib.loads
    stringify_json: Callable[[Any], str] = jsonlib.dumps

    @property
    def effective_retry(self) -> RetryPolicy:
        """The retry policy with max_retry_after defaulted to the timeout."""
        if self.retry.max_retry_after is None and self.timeout is not None:
            return replace(self.retry, max_retry_after=self.timeout)
        return self.retry

    def as_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


OPTION_NAMES = frozenset(f.name for f in fields(NormalizedOptions))
_CALLABLE_OPTIONS = frozenset({"fetch", "parse_json", "stringify_json"})


def default_options(settings: HttpSettings | None = None) -> NormalizedOptions:
    """Baseline options derived from environment-backed HttpSettings."""
    settings = settings or load_http_settings()
    timeout = settings.timeout if settings.timeout and settings.timeout > 0 else None
    return NormalizedOptions(timeout=timeout, retry=RetryPolicy.from_settings(settings))


def _normalize_timeout(value: Any) -> float | None:
    if value is False:
        return None
    if isinstance(value, timedelta):
        value = value.total_seconds()
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value) or value < 0:
        raise ConfigurationError(f"timeout must be a non-negative number of seconds or False, got {value!r}")
    if math.isinf(value):
        return None
    return float(value)


def _merge_retry(current: RetryPolicy, value: Any) -> RetryPolicy:
    if isinstance(value, RetryPolicy):
        return value
    if isinstance(value, Mapping):
        return RetryPolicy.from_mapping(value)
    if isinstance(value, int) and not isinstance(value, bool):
        return current.with_limit(value)
    raise ConfigurationError(f"retry must be an int, a mapping or a RetryPolicy, got {value!r}")


def _as_mapping(partial: NormalizedOptions | OptionsInput | None) -> Mapping[str, Any]:
    if partial is None:
        return {}
    if isinstance(partial, NormalizedOptions):
        return partial.as_dict()
    if isinstance(partial, Mapping):
        return partial
    raise ConfigurationError(f"options must be a mapping, got {type(partial).__name__}")


def _apply(state: dict[str, Any], partial: Mapping[str, Any]) -> None:
    unknown = set(partial) - OPTION_NAMES
    if unknown:
        raise ConfigurationError(f"Unknown option(s): {', '.join(sorted(unknown))}")
    if partial.get("json") is not None and partial.get("body") is not None:
        raise ConfigurationError("The json and body options are mutually exclusive")

    for key, value in partial.items():
        if value is None:
            continue
        if key == "headers":
            state["headers"] = merge_headers(state["headers"], value)
        elif key == "hooks":
            state["hooks"] = state["hooks"].merge(Hooks.coerce(value))
        elif key == "retry":
            state["retry"] = _merge_retry(state["retry"], value)
        elif key == "search_params":
            try:
                state["search_params"] = normalize_search_params(value)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(f"Invalid search_params: {exc}") from exc
        elif key == "timeout":
            state["timeout"] = _normalize_timeout(value)
        elif key == "method":
            if not isinstance(value, str) or not value.strip():
                raise ConfigurationError(f"method must be a non-empty string, got {value!r}")
            state["method"] = value.strip().upper()
        elif key == "json":
            state["json"] = value
            state["body"] = None
        elif key == "body":
            state["body"] = value
            state["json"] = None
        elif key == "prefix_url":
            state["prefix_url"] = str(value)
        elif key == "throw_on_http_error":
            if not isinstance(value, bool):
                raise ConfigurationError(f"throw_on_http_error must be a bool, got {value!r}")
            state[key] = value
        elif key == "signal":
            if not isinstance(value, Signal):
                raise ConfigurationError(f"signal must be a skyhook Signal, got {type(value).__name__}")
            state[key] = value
        elif key in _CALLABLE_OPTIONS:
            if not callable(value):
                raise ConfigurationError(f"{key} must be callable")
            state[key] = value
        else:
            state[key] = value


def merge_options(*partials: NormalizedOptions | OptionsInput | None) -> NormalizedOptions:
    """
    Fold ``partials`` left to right into NormalizedOptions.

    When the first partial is already a NormalizedOptions it is the starting point; otherwise
    merging starts from :func:`default_options`. Inputs are never mutated.
    """
    chain = list(partials)
    if chain and isinstance(chain[0], NormalizedOptions):
        base = chain.pop(0)
    else:
        base = default_options()

    state = base.as_dict()
    state["headers"] = dict(base.headers)
    for partial in chain:
        _apply(state, _as_mapping(partial))

    state["headers"] = MappingProxyType(dict(state["headers"]))
    return NormalizedOptions(**state)


__all__ = ["OPTION_NAMES", "NormalizedOptions", "OptionsInput", "default_options", "merge_options"]
