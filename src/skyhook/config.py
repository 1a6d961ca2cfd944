# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Configuration helpers for skyhook."""

import os
from dataclasses import dataclass

from .version import __version__

DEFAULT_USER_AGENT = f"skyhook/{__version__}"


def _float_env(name: str, default: float) -> float:
    try:
        value = os.getenv(name)
        return float(value) if value is not None else default
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    try:
        value = os.getenv(name)
        return int(value) if value is not None else default
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _optional_float_env(name: str, default: float | None) -> float | None:
    try:
        value = os.getenv(name)
        if value is None:
            return default
        parsed = float(value)
        return parsed if parsed > 0 else None
    except ValueError:
        return default


@dataclass
class HttpSettings:
    """HTTP client defaults."""

    timeout: float = 10.0
    max_retries: int = 2
    backoff_factor: float = 0.3
    backoff_limit: float | None = None
    retry_budget: float | None = None
    user_agent: str = DEFAULT_USER_AGENT
    allow_redirects: bool = True
    verify_ssl: bool = True

    @classmethod
    def from_env(cls) -> "HttpSettings":
        """Create settings from environment variables (evaluated at call time)."""
        timeout = _float_env("SKYHOOK_HTTP_TIMEOUT", cls.timeout)
        if timeout < 0:
            timeout = cls.timeout
        max_retries = _int_env("SKYHOOK_HTTP_RETRIES", cls.max_retries)
        if max_retries < 0:
            max_retries = cls.max_retries
        return cls(
            timeout=timeout,
            max_retries=max_retries,
            backoff_factor=_float_env("SKYHOOK_HTTP_BACKOFF", cls.backoff_factor),
            backoff_limit=_optional_float_env("SKYHOOK_HTTP_BACKOFF_LIMIT", cls.backoff_limit),
            retry_budget=_optional_float_env("SKYHOOK_HTTP_RETRY_BUDGET", cls.retry_budget),
            user_agent=os.getenv("SKYHOOK_USER_AGENT", cls.user_agent),
            allow_redirects=_bool_env("SKYHOOK_HTTP_REDIRECTS", cls.allow_redirects),
            verify_ssl=_bool_env("SKYHOOK_HTTP_VERIFY_SSL", cls.verify_ssl),
        )


def load_http_settings() -> HttpSettings:
    """Load HTTP settings from environment with sensible defaults."""
    return HttpSettings.from_env()
