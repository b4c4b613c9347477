"""
Tests for the event emitter.
"""

import asyncio

import pytest

from mcpmux.core.events import SERVER_STARTED, SERVER_STOPPED, EventEmitter


def test_sync_handlers_receive_payload():
    emitter = EventEmitter()
    seen = []
    emitter.on(SERVER_STARTED, seen.append)

    emitter.emit(SERVER_STARTED, {"name": "a"})
    emitter.emit(SERVER_STOPPED, {"name": "a"})

    assert seen == [{"name": "a"}]


def test_raising_handler_does_not_stop_others():
    emitter = EventEmitter()
    seen = []

    def explode(payload):
        raise ValueError("boom")

    emitter.on(SERVER_STARTED, explode)
    emitter.on(SERVER_STARTED, seen.append)

    emitter.emit(SERVER_STARTED, {"name": "a"})

    assert seen == [{"name": "a"}]


@pytest.mark.asyncio
async def test_async_handlers_do_not_block_emit():
    emitter = EventEmitter()
    release = asyncio.Event()
    finished = []

    async def slow(payload):
        await release.wait()
        finished.append(payload)

    emitter.on(SERVER_STARTED, slow)
    emitter.emit(SERVER_STARTED, {"name": "a"})
    assert finished == []

    release.set()
    await asyncio.sleep(0.01)
    assert finished == [{"name": "a"}]


@pytest.mark.asyncio
async def test_failing_async_handler_is_contained():
    emitter = EventEmitter()

    async def explode(payload):
        raise RuntimeError("async boom")

    emitter.on(SERVER_STARTED, explode)
    emitter.emit(SERVER_STARTED, {"name": "a"})
    await asyncio.sleep(0.01)

    assert not emitter._pending


def test_off_ignores_unknown_handlers():
    emitter = EventEmitter()
    emitter.off(SERVER_STARTED, print)
