# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP models and fetch capability exports."""

from .adapters import StubFetch
from .fetch import FetchCallable, create_default_fetch
from .headers import header_value, merge_headers, normalize_headers
from .httpx_fetch import HttpxFetch
from .models import Headers, Request, Response
from .retry import RetryDecision, RetryPolicy, build_default_retry_policy, decide, parse_retry_after

__all__ = [
    "FetchCallable",
    "Headers",
    "HttpxFetch",
    "Request",
    "Response",
    "RetryDecision",
    "RetryPolicy",
    "StubFetch",
    "build_default_retry_policy",
    "create_default_fetch",
    "decide",
    "header_value",
    "merge_headers",
    "normalize_headers",
    "parse_retry_after",
]
