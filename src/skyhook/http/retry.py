# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Retry policy and the per-attempt retry decision."""

from __future__ import annotations

import email.utils
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import timezone
from typing import Any

from ..config import HttpSettings, load_http_settings
from ..errors import CancellationError, ConfigurationError, ErrorCategory, HTTPError, NetworkError
from .headers import header_value
from .models import Request, Response

DEFAULT_RETRY_METHODS = frozenset({"GET", "PUT", "HEAD", "DELETE", "OPTIONS", "TRACE"})
DEFAULT_RETRY_STATUS_CODES = frozenset({408, 413, 429, 500, 502, 503, 504})
DEFAULT_RETRY_AFTER_STATUS_CODES = frozenset({413, 429, 503})
DEFAULT_RETRY_ERROR_CODES = frozenset(
    {
        ErrorCategory.TIMEOUT.value,
        ErrorCategory.CONNECTION_ERROR.value,
        ErrorCategory.DNS_ERROR.value,
        ErrorCategory.UNKNOWN_ERROR.value,
    }
)

# Rate limit reset headers carry either a delta in seconds or an epoch timestamp.
_RATE_LIMIT_HEADERS = ("ratelimit-reset", "x-ratelimit-retry-after", "x-ratelimit-reset", "x-rate-limit-reset")
_EPOCH_THRESHOLD = 1704067200.0  # 2024-01-01T00:00:00Z


def _error_code(value: Any) -> str:
    if isinstance(value, ErrorCategory):
        return value.value
    return str(value).upper()


@dataclass(frozen=True)
class RetryPolicy:
    """Canonical retry policy; every shorthand is resolved into one of these during merge."""

    limit: int = 2
    methods: frozenset[str] = DEFAULT_RETRY_METHODS
    status_codes: frozenset[int] = DEFAULT_RETRY_STATUS_CODES
    after_status_codes: frozenset[int] = DEFAULT_RETRY_AFTER_STATUS_CODES
    error_codes: frozenset[str] = DEFAULT_RETRY_ERROR_CODES
    max_retry_after: float | None = None
    backoff_factor: float = 0.3
    backoff_limit: float | None = None
    budget: float | None = None
    delay: Callable[[int], float] | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit < 0:
            raise ConfigurationError(f"retry limit must be a non-negative integer, got {self.limit!r}")
        for name in ("max_retry_after", "backoff_limit", "budget"):
            value = getattr(self, name)
            if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0):
                raise ConfigurationError(f"retry {name} must be a non-negative number, got {value!r}")
        if self.delay is not None and not callable(self.delay):
            raise ConfigurationError("retry delay must be callable")
        object.__setattr__(self, "methods", frozenset(str(method).upper() for method in self.methods))
        object.__setattr__(self, "status_codes", frozenset(int(code) for code in self.status_codes))
        object.__setattr__(self, "after_status_codes", frozenset(int(code) for code in self.after_status_codes))
        object.__setattr__(self, "error_codes", frozenset(_error_code(code) for code in self.error_codes))

    @classmethod
    def from_settings(cls, settings: HttpSettings) -> "RetryPolicy":
        """Build a retry policy from the shared HttpSettings."""
        return cls(
            limit=max(0, settings.max_retries),
            backoff_factor=settings.backoff_factor,
            backoff_limit=settings.backoff_limit,
            budget=settings.retry_budget,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], base: "RetryPolicy | None" = None) -> "RetryPolicy":
        """Apply a mapping of policy fields on top of ``base`` (the default policy when omitted)."""
        base = base or build_default_retry_policy()
        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigurationError(f"Unknown retry option(s): {', '.join(sorted(unknown))}")
        return replace(base, **dict(data))

    def with_limit(self, limit: int) -> "RetryPolicy":
        return replace(self, limit=limit)

    def compute_delay(self, retry_number: int) -> float:
        """Backoff before retry number ``retry_number`` (1-based), capped at backoff_limit."""
        if self.delay is not None:
            delay = float(self.delay(retry_number))
        else:
            delay = self.backoff_factor * (2 ** (retry_number - 1))
        if self.backoff_limit is not None:
            delay = min(delay, self.backoff_limit)
        return max(0.0, delay)


@dataclass(frozen=True)
class RetryDecision:
    should_retry: bool
    delay: float = 0.0


NO_RETRY = RetryDecision(False)


def build_default_retry_policy() -> RetryPolicy:
    """Create a RetryPolicy from environment-backed HttpSettings."""
    return RetryPolicy.from_settings(load_http_settings())


def parse_retry_after(value: str | None, now: float | None = None) -> float | None:
    """Convert a Retry-After header value (delta-seconds or HTTP-date) into a delay in seconds."""
    if not value:
        return None
    value = value.strip()
    current = time.time() if now is None else now

    try:
        delay = float(value)
    except ValueError:
        try:
            dt = email.utils.parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        delay = dt.timestamp() - current

    return max(0.0, delay)


def parse_rate_limit_reset(value: str | None, now: float | None = None) -> float | None:
    """Convert a rate limit reset value (delta-seconds or an epoch timestamp) into a delay."""
    if not value:
        return None
    try:
        delay = float(value.strip())
    except ValueError:
        return None
    if delay >= _EPOCH_THRESHOLD:
        delay -= time.time() if now is None else now
    return max(0.0, delay)


def retry_after_from(headers: Mapping[str, str] | Iterable[Any] | None, now: float | None = None) -> float | None:
    """Return the server-requested delay from Retry-After or the rate limit reset headers."""
    raw = header_value(headers, "retry-after")
    if raw:
        return parse_retry_after(raw, now)
    for name in _RATE_LIMIT_HEADERS:
        raw = header_value(headers, name)
        if raw:
            return parse_rate_limit_reset(raw, now)
    return None


def _response_of(outcome: Response | BaseException) -> Response | None:
    if isinstance(outcome, Response):
        return outcome
    if isinstance(outcome, HTTPError):
        return outcome.response
    return None


def decide(
    outcome: Response | BaseException,
    attempt: int,
    policy: RetryPolicy,
    elapsed: float = 0.0,
    *,
    request: Request | None = None,
    now: float | None = None,
) -> RetryDecision:
    """
    Decide whether the attempt numbered ``attempt`` (0-based) should be retried, and after how long.

    ``outcome`` is the response obtained or the error raised by the attempt; ``elapsed`` is the
    time spent on the call so far, checked against ``policy.budget``.
    """
    if attempt >= policy.limit:
        return NO_RETRY
    if request is not None and (request.method not in policy.methods or not request.replayable):
        return NO_RETRY

    response = _response_of(outcome)
    if response is not None:
        if response.ok or response.status_code not in policy.status_codes:
            return NO_RETRY
        delay: float | None = None
        if response.status_code in policy.after_status_codes:
            after = retry_after_from(response.headers, now)
            if after is not None:
                delay = after if policy.max_retry_after is None else min(after, policy.max_retry_after)
            elif response.status_code == 413:
                # Payload Too Large is only worth retrying when the server says when.
                return NO_RETRY
        if delay is None:
            delay = policy.compute_delay(attempt + 1)
    elif isinstance(outcome, CancellationError):
        return NO_RETRY
    elif isinstance(outcome, NetworkError):
        if outcome.code.value not in policy.error_codes:
            return NO_RETRY
        delay = policy.compute_delay(attempt + 1)
    else:
        return NO_RETRY

    if policy.budget is not None and elapsed + delay > policy.budget:
        return NO_RETRY
    return RetryDecision(True, delay)


__all__ = [
    "DEFAULT_RETRY_AFTER_STATUS_CODES",
    "DEFAULT_RETRY_ERROR_CODES",
    "DEFAULT_RETRY_METHODS",
    "DEFAULT_RETRY_STATUS_CODES",
    "NO_RETRY",
    "RetryDecision",
    "RetryPolicy",
    "build_default_retry_policy",
    "decide",
    "parse_rate_limit_reset",
    "parse_retry_after",
    "retry_after_from",
]
