# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import asyncio

import pytest

from skyhook.errors import CancellationError
from skyhook.signals import CancelReason, Signal, compose_signal, sleep


def test_signal_fires_once_and_notifies_listeners():
    signal = Signal()
    seen = []
    signal.add_listener(seen.append)
    signal.cancel("first")
    signal.cancel("second")
    assert signal.cancelled is True
    assert signal.reason == "first"
    assert seen == ["first"]


def test_listener_added_after_cancel_runs_immediately():
    signal = Signal()
    signal.cancel()
    seen = []
    signal.add_listener(seen.append)
    assert seen == [CancelReason.CALLER]
    with pytest.raises(CancellationError):
        signal.raise_if_cancelled()


def test_removed_listener_is_not_called():
    signal = Signal()
    seen = []
    remove = signal.add_listener(seen.append)
    remove()
    signal.cancel()
    assert seen == []


@pytest.mark.asyncio
async def test_composed_signal_times_out_with_timeout_reason():
    with compose_signal(None, 0.01) as composed:
        await asyncio.sleep(0.05)
        assert composed.timed_out is True
        assert composed.signal.reason is CancelReason.TIMEOUT


@pytest.mark.asyncio
async def test_composed_signal_follows_caller():
    caller = Signal()
    with compose_signal(caller, 5) as composed:
        caller.cancel()
        assert composed.signal.cancelled is True
        assert composed.signal.reason is CancelReason.CALLER
        assert composed.timed_out is False


@pytest.mark.asyncio
async def test_dispose_cancels_timer_and_detaches_caller():
    caller = Signal()
    composed = compose_signal(caller, 0.01)
    composed.dispose()
    await asyncio.sleep(0.03)
    caller.cancel()
    assert composed.signal.cancelled is False


@pytest.mark.asyncio
async def test_composed_signal_without_timeout_is_the_caller_signal():
    caller = Signal()
    assert compose_signal(caller, None).signal is caller


@pytest.mark.asyncio
async def test_run_cancels_the_awaitable():
    signal = Signal()
    finished = asyncio.Event()

    async def slow():
        try:
            await asyncio.sleep(10)
        finally:
            finished.set()

    asyncio.get_running_loop().call_later(0.01, signal.cancel, "stop")
    with pytest.raises(CancellationError) as excinfo:
        await signal.run(slow())
    assert excinfo.value.reason == "stop"
    assert finished.is_set()


@pytest.mark.asyncio
async def test_run_on_cancelled_signal_raises_without_running():
    signal = Signal()
    signal.cancel()
    started = []

    async def work():
        started.append(True)

    with pytest.raises(CancellationError):
        await signal.run(work())
    assert started == []


@pytest.mark.asyncio
async def test_sleep_wakes_early_on_cancel():
    signal = Signal()
    loop = asyncio.get_running_loop()
    loop.call_later(0.01, signal.cancel)
    start = loop.time()
    with pytest.raises(CancellationError):
        await sleep(5, signal)
    assert loop.time() - start < 1


@pytest.mark.asyncio
async def test_outer_task_cancellation_propagates():
    signal = Signal()
    task = asyncio.ensure_future(signal.run(asyncio.sleep(10)))
    await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
