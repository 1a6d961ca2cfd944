# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import asyncio
import logging

import httpx
import pytest

from skyhook.errors import (
    CancellationError,
    ConfigurationError,
    ErrorCategory,
    HTTPError,
    NetworkError,
    RequestBuildError,
    TimeoutError,
)
from skyhook.execution import Execution, State, execute
from skyhook.hooks import STOP
from skyhook.http.adapters import StubFetch
from skyhook.http.models import Response
from skyhook.options import merge_options
from skyhook.signals import Signal

URL = "https://example.com/items"
NO_DELAY = {"limit": 2, "delay": lambda n: 0}


def _options(**overrides):
    return merge_options({"retry": NO_DELAY, **overrides})


@pytest.mark.asyncio
async def test_retries_until_success_and_runs_after_response_once():
    fetch = StubFetch({URL: [Response(status_code=503), Response(status_code=503), Response.from_json({"ok": 1})]})
    after = []
    retries = []
    delays = []

    def record_delay(n):
        delays.append(n)
        return 0

    options = _options(
        retry={"limit": 2, "delay": record_delay},
        hooks={
            "after_response": lambda ctx: after.append(ctx.response.status_code),
            "before_retry": lambda ctx: retries.append((ctx.retry_count, type(ctx.error))),
        }
    )

    execution = Execution(URL, options, fetch)
    response = await execution.run()

    assert response.status_code == 200
    assert fetch.calls == 3
    assert after == [200]
    assert retries == [(1, HTTPError), (2, HTTPError)]
    assert delays == [1, 2]
    assert execution.retry_count == 2
    assert execution.state is State.SUCCESS


@pytest.mark.asyncio
async def test_exhausted_retries_raise_http_error():
    fetch = StubFetch({URL: Response(status_code=500)})
    with pytest.raises(HTTPError) as excinfo:
        await execute(URL, _options(), fetch)
    assert fetch.calls == 3
    assert excinfo.value.response.status_code == 500
    assert excinfo.value.request.url == URL
    assert "500 Internal Server Error" in str(excinfo.value)


@pytest.mark.asyncio
async def test_throw_on_http_error_disabled_returns_response():
    fetch = StubFetch({URL: Response(status_code=404)})
    response = await execute(URL, _options(throw_on_http_error=False), fetch)
    assert response.status_code == 404
    assert fetch.calls == 1


@pytest.mark.asyncio
async def test_before_request_response_skips_fetch():
    fetch = StubFetch()
    cached = Response(status_code=200, content=b"cached")
    response = await execute(URL, _options(hooks={"before_request": lambda ctx: cached}), fetch)
    assert response is cached
    assert fetch.calls == 0


@pytest.mark.asyncio
async def test_before_request_can_replace_request():
    fetch = StubFetch({URL + "/v2": Response(status_code=200)})

    def reroute(ctx):
        return ctx.request.copy(url=URL + "/v2")

    await execute(URL, _options(hooks={"before_request": reroute}), fetch)
    assert fetch.requests[0].url == URL + "/v2"


@pytest.mark.asyncio
async def test_before_retry_stop_resolves_to_none():
    fetch = StubFetch({URL: Response(status_code=503)})
    execution = Execution(URL, _options(hooks={"before_retry": lambda ctx: STOP}), fetch)
    assert await execution.run() is None
    assert execution.retry_count == 1
    assert execution.state is State.STOPPED
    assert fetch.calls == 1


@pytest.mark.asyncio
async def test_timeout_cancels_fetch_and_raises_timeout_error():
    cancelled = asyncio.Event()

    async def hang(request):
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    fetch = StubFetch({URL: hang})
    with pytest.raises(TimeoutError) as excinfo:
        await execute(URL, _options(timeout=0.1, retry=0), fetch)
    assert excinfo.value.code is ErrorCategory.TIMEOUT
    assert isinstance(excinfo.value, NetworkError)
    assert cancelled.is_set()


@pytest.mark.asyncio
async def test_timeouts_are_retried_per_attempt():
    async def hang(request):
        await asyncio.sleep(10)

    fetch = StubFetch({URL: [hang, Response(status_code=200)]})
    response = await execute(URL, _options(timeout=0.05), fetch)
    assert response.status_code == 200
    assert fetch.calls == 2


@pytest.mark.asyncio
async def test_caller_cancel_is_not_retried():
    signal = Signal()

    async def hang(request):
        await asyncio.sleep(10)

    fetch = StubFetch({URL: hang})
    asyncio.get_running_loop().call_later(0.01, signal.cancel)
    with pytest.raises(CancellationError) as excinfo:
        await execute(URL, _options(signal=signal), fetch)
    assert excinfo.value.request.url == URL
    assert fetch.calls == 1


@pytest.mark.asyncio
async def test_caller_cancel_during_retry_wait():
    signal = Signal()
    fetch = StubFetch({URL: Response(status_code=503)})
    options = merge_options({"retry": {"limit": 3, "delay": lambda n: 10}, "signal": signal})
    asyncio.get_running_loop().call_later(0.02, signal.cancel)
    with pytest.raises(CancellationError):
        await execute(URL, options, fetch)
    assert fetch.calls == 1


@pytest.mark.asyncio
async def test_transport_errors_become_network_errors():
    fetch = StubFetch({URL: [httpx.ConnectError("refused"), Response(status_code=200)]})
    response = await execute(URL, _options(), fetch)
    assert response.ok
    assert fetch.calls == 2

    fetch = StubFetch({URL: httpx.ConnectError("refused")})
    with pytest.raises(NetworkError) as excinfo:
        await execute(URL, _options(retry=0), fetch)
    assert excinfo.value.code is ErrorCategory.CONNECTION_ERROR
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_before_error_can_replace_error():
    class Wrapped(Exception):
        pass

    fetch = StubFetch({URL: Response(status_code=400)})
    with pytest.raises(Wrapped):
        await execute(URL, _options(hooks={"before_error": lambda ctx: Wrapped(str(ctx.error))}), fetch)


@pytest.mark.asyncio
async def test_build_errors_skip_before_error_hooks():
    seen = []
    options = _options(prefix_url="https://example.com", hooks={"before_error": seen.append})
    with pytest.raises(RequestBuildError):
        await execute("/leading", options, StubFetch())
    assert seen == []


@pytest.mark.asyncio
async def test_non_idempotent_method_not_retried():
    fetch = StubFetch({URL: [Response(status_code=503), Response(status_code=200)]})
    with pytest.raises(HTTPError):
        await execute(URL, _options(method="POST", json={"a": 1}), fetch)
    assert fetch.calls == 1


def test_execution_requires_fetch():
    with pytest.raises(ConfigurationError):
        Execution(URL, merge_options())


@pytest.mark.asyncio
async def test_before_return_replaces_the_result():
    fetch = StubFetch({URL: [Response(status_code=503), Response.from_json({"id": 3})]})
    seen = []

    async def unwrap(ctx):
        seen.append(ctx.retry_count)
        return ctx.options.parse_json(await ctx.response.atext())["id"]

    result = await execute(URL, _options(hooks={"before_return": unwrap}), fetch)
    assert result == 3
    assert seen == [1]


@pytest.mark.asyncio
async def test_before_return_may_return_none():
    fetch = StubFetch({URL: Response(status_code=200)})
    assert await execute(URL, _options(hooks={"before_return": lambda ctx: None}), fetch) is None


@pytest.mark.asyncio
async def test_before_return_skipped_on_failure():
    fetch = StubFetch({URL: Response(status_code=404)})
    called = []
    with pytest.raises(HTTPError):
        await execute(URL, _options(hooks={"before_return": called.append}), fetch)
    assert called == []


@pytest.mark.asyncio
async def test_retries_are_logged_at_debug(caplog):
    fetch = StubFetch({URL: [Response(status_code=503), Response(status_code=200)]})
    with caplog.at_level(logging.DEBUG, logger="skyhook"):
        await execute(URL, _options(), fetch)
    assert any(record.name == "skyhook.execution" and "retry 1/2" in record.getMessage() for record in caplog.records)
