# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
skyhook package entrypoint.

An asyncio HTTP client layered over an injectable fetch capability: retries with backoff,
per-attempt timeouts and caller cancellation, lifecycle hooks, inheritable client defaults
and lazily evaluated response bodies.

    >>> import skyhook
    >>> data = await skyhook.get("https://example.com/api/items", search_params={"page": 2}).json()

The module-level helpers (``get``, ``post``, ..., ``create``, ``extend``) are bound to a shared
default :class:`Client`.
"""

from .client import Client
from .config import HttpSettings, load_http_settings
from .errors import (
    BodyAlreadyConsumedError,
    CancellationError,
    ConfigurationError,
    ErrorCategory,
    HTTPError,
    NetworkError,
    RequestBuildError,
    SkyhookError,
    TimeoutError,
)
from .hooks import STOP, HookContext, Hooks
from .http import HttpxFetch, Request, Response, RetryPolicy, StubFetch
from .log import setup_logging
from .options import NormalizedOptions, merge_options
from .response import LazyResponse
from .signals import CancelReason, Signal
from .version import __version__

default_client = Client()

request = default_client
get = default_client.get
post = default_client.post
put = default_client.put
patch = default_client.patch
head = default_client.head
delete = default_client.delete
create = default_client.create
extend = default_client.extend
stop = STOP

__all__ = [
    "BodyAlreadyConsumedError",
    "CancelReason",
    "CancellationError",
    "Client",
    "ConfigurationError",
    "ErrorCategory",
    "HTTPError",
    "HookContext",
    "Hooks",
    "HttpSettings",
    "HttpxFetch",
    "LazyResponse",
    "NetworkError",
    "NormalizedOptions",
    "Request",
    "RequestBuildError",
    "Response",
    "RetryPolicy",
    "STOP",
    "Signal",
    "SkyhookError",
    "StubFetch",
    "TimeoutError",
    "__version__",
    "create",
    "default_client",
    "delete",
    "extend",
    "get",
    "head",
    "load_http_settings",
    "merge_options",
    "patch",
    "post",
    "put",
    "request",
    "setup_logging",
    "stop",
]
