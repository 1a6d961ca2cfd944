# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy and exception helpers."""

from __future__ import annotations

import builtins
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .http.models import Request, Response
    from .options import NormalizedOptions


class ErrorCategory(str, Enum):
    TIMEOUT = "TIMEOUT"
    SSL_ERROR = "SSL_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    DNS_ERROR = "DNS_ERROR"
    PROTOCOL_ERROR = "PROTOCOL_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class SkyhookError(Exception):
    """Base class for every error raised by skyhook."""


class ConfigurationError(SkyhookError, ValueError):
    """Options could not be merged into a valid configuration."""


class RequestBuildError(SkyhookError):
    """The outbound request could not be built (bad URL, unserializable body)."""


class BodyAlreadyConsumedError(SkyhookError, RuntimeError):
    """A response body was read twice."""


class CancellationError(SkyhookError):
    """The caller cancelled the call through its signal."""

    def __init__(self, reason: Any = None, request: Request | None = None):
        self.reason = reason
        self.request = request
        message = "Request was cancelled"
        if request is not None:
            message = f"{message}: {request.method} {request.url}"
        super().__init__(message)


class NetworkError(SkyhookError):
    """The fetch capability failed before a response was obtained."""

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCategory = ErrorCategory.UNKNOWN_ERROR,
        request: Request | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.request = request


class TimeoutError(NetworkError, builtins.TimeoutError):
    """The per-attempt timeout expired before the fetch completed."""

    def __init__(self, request: Request, timeout: float | None = None):
        super().__init__(
            f"Request timed out: {request.method} {request.url}",
            code=ErrorCategory.TIMEOUT,
            request=request,
        )
        self.timeout = timeout


class HTTPError(SkyhookError):
    """A response with a non-2xx status was the final outcome of a call."""

    def __init__(self, response: Response, request: Request, options: NormalizedOptions | None = None):
        status = f"{response.status_code} {response.reason}".strip() if response.status_code else "an unknown error"
        super().__init__(f"Request failed with status code {status}: {request.method} {request.url}")
        self.response = response
        self.request = request
        self.options = options


def categorize_exception(exc: BaseException) -> ErrorCategory:
    """
    Map Python/httpx exceptions to ErrorCategory.
    """
    import socket
    import ssl as ssl_module

    import httpx

    if isinstance(exc, NetworkError):
        return exc.code

    if isinstance(exc, (httpx.TimeoutException, builtins.TimeoutError)):
        return ErrorCategory.TIMEOUT

    if isinstance(exc, (ssl_module.SSLError, ssl_module.CertificateError)):
        return ErrorCategory.SSL_ERROR

    if isinstance(exc, (socket.gaierror, socket.herror)):
        return ErrorCategory.DNS_ERROR

    # httpx wraps the OS-level cause; look through it before falling back to the httpx type.
    cause = exc.__cause__ or exc.__context__
    if cause is not None and cause is not exc and isinstance(exc, httpx.TransportError):
        nested = categorize_exception(cause)
        if nested is not ErrorCategory.UNKNOWN_ERROR:
            return nested

    if isinstance(exc, (httpx.RemoteProtocolError, httpx.LocalProtocolError)):
        return ErrorCategory.PROTOCOL_ERROR

    if isinstance(exc, (httpx.ConnectError, httpx.NetworkError, httpx.ProxyError)):
        return ErrorCategory.CONNECTION_ERROR

    if isinstance(exc, (ConnectionError, ConnectionRefusedError, ConnectionResetError)):
        return ErrorCategory.CONNECTION_ERROR

    return ErrorCategory.UNKNOWN_ERROR


__all__ = [
    "BodyAlreadyConsumedError",
    "CancellationError",
    "ConfigurationError",
    "ErrorCategory",
    "HTTPError",
    "NetworkError",
    "RequestBuildError",
    "SkyhookError",
    "TimeoutError",
    "categorize_exception",
]
