# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Fetch capability abstraction and factory."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from ..config import HttpSettings, load_http_settings
from .models import Request, Response

if TYPE_CHECKING:
    from .httpx_fetch import HttpxFetch
    from ..signals import Signal


class FetchCallable(Protocol):
    """Anything that can exchange a Request for a Response; the only I/O skyhook performs."""

    async def __call__(self, request: Request, *, signal: Signal) -> Response: ...


def create_default_fetch(settings: HttpSettings | None = None) -> HttpxFetch:
    """Factory for the default httpx-backed fetch capability."""
    from .httpx_fetch import HttpxFetch

    return HttpxFetch(settings or load_http_settings())


__all__ = ["FetchCallable", "create_default_fetch"]
