"""Тесты токена отмены и ожидания с отменой."""

import asyncio
import time

from ocr_mock.services.cancellation import (
    DEADLINE_EXCEEDED,
    CancellationToken,
    sleep_unless_cancelled,
)


def test_cancel_is_level_triggered():
    async def scenario():
        token = CancellationToken()
        assert not token.cancelled
        assert token.reason is None

        token.cancel("client disconnected")
        token.cancel("deadline exceeded")

        # Ожидание уже сработавшего токена не блокируется
        await asyncio.wait_for(token.wait(), timeout=0.1)
        return token

    token = asyncio.run(scenario())
    assert token.cancelled
    assert token.reason == "client disconnected"


def test_deadline_fires_token():
    async def scenario():
        token = CancellationToken(timeout=0.02)
        await asyncio.wait_for(token.wait(), timeout=1.0)
        return token

    token = asyncio.run(scenario())
    assert token.reason == DEADLINE_EXCEEDED


def test_close_releases_deadline():
    async def scenario():
        token = CancellationToken(timeout=0.02)
        token.close()
        await asyncio.sleep(0.05)
        return token

    assert not asyncio.run(scenario()).cancelled


def test_child_follows_parent():
    async def scenario():
        parent = CancellationToken()
        child = parent.child()
        parent.cancel("client disconnected")
        return child

    child = asyncio.run(scenario())
    assert child.cancelled
    assert child.reason == "client disconnected"


def test_child_deadline_does_not_cancel_parent():
    async def scenario():
        parent = CancellationToken()
        child = parent.child(timeout=0.02)
        await asyncio.wait_for(child.wait(), timeout=1.0)
        return parent, child

    parent, child = asyncio.run(scenario())
    assert child.cancelled
    assert not parent.cancelled


def test_child_of_cancelled_parent_starts_cancelled():
    async def scenario():
        parent = CancellationToken()
        parent.cancel("gone")
        return parent.child(timeout=10)

    child = asyncio.run(scenario())
    assert child.cancelled
    assert child.reason == "gone"


def test_sleep_completes_without_cancellation():
    async def scenario():
        return await sleep_unless_cancelled(CancellationToken(), 0.01)

    assert asyncio.run(scenario()) is True


def test_sleep_interrupted_by_cancellation():
    async def scenario():
        token = CancellationToken()
        asyncio.get_running_loop().call_later(0.02, token.cancel, "stop")
        return await sleep_unless_cancelled(token, 5.0)

    start = time.perf_counter()
    assert asyncio.run(scenario()) is False
    assert time.perf_counter() - start < 1.0


def test_sleep_on_cancelled_token_returns_immediately():
    async def scenario():
        token = CancellationToken()
        token.cancel()
        return await sleep_unless_cancelled(token, 5.0)

    start = time.perf_counter()
    assert asyncio.run(scenario()) is False
    assert time.perf_counter() - start < 0.5
