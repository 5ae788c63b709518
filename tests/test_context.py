import asyncio
import time

import pytest

from healthmon.context import CancelToken, Cancelled


def test_child_deadline_expires_on_its_own():
    async def scenario():
        root = CancelToken("root")
        with root.child(0.05) as deadline:
            await asyncio.wait_for(deadline.wait(), timeout=1.0)
            return root.cancelled, deadline.reason

    root_cancelled, reason = asyncio.run(scenario())
    assert root_cancelled is False
    assert reason == "deadline exceeded"


def test_parent_cancel_cascades_to_children():
    async def scenario():
        root = CancelToken("root")
        a = root.child(10.0)
        b = a.child()
        root.cancel("shutdown")
        return a.cancelled, b.cancelled, b.reason

    assert asyncio.run(scenario()) == (True, True, "shutdown")


def test_child_of_cancelled_parent_starts_cancelled():
    async def scenario():
        root = CancelToken("root")
        root.cancel()
        return root.child(5.0).cancelled

    assert asyncio.run(scenario()) is True


def test_release_detaches_from_parent():
    async def scenario():
        root = CancelToken("root")
        child = root.child(10.0)
        child.release()
        root.cancel()
        return child.cancelled

    assert asyncio.run(scenario()) is False


def test_remaining_counts_down():
    async def scenario():
        root = CancelToken("root")
        with root.child(2.0) as deadline:
            return root.remaining(), deadline.remaining()

    root_left, left = asyncio.run(scenario())
    assert root_left is None
    assert 0.0 < left <= 2.0


def test_guard_returns_value_when_not_cancelled():
    async def scenario():
        token = CancelToken()

        async def work():
            await asyncio.sleep(0.01)
            return 42

        return await token.guard(work())

    assert asyncio.run(scenario()) == 42


def test_guard_cancels_work_when_token_fires():
    state = {}

    async def scenario():
        token = CancelToken()

        async def slow():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                state["inner_cancelled"] = True
                raise

        asyncio.get_running_loop().call_later(0.05, token.cancel, "stop")
        start = time.perf_counter()
        with pytest.raises(Cancelled) as exc_info:
            await token.guard(slow())
        return time.perf_counter() - start, exc_info.value.reason

    elapsed, reason = asyncio.run(scenario())
    assert elapsed < 1.0
    assert reason == "stop"
    assert state["inner_cancelled"] is True


def test_guard_on_already_cancelled_token_raises():
    async def scenario():
        token = CancelToken()
        token.cancel("gone")
        queue: asyncio.Queue = asyncio.Queue()
        with pytest.raises(Cancelled):
            await token.guard(queue.get())

    asyncio.run(scenario())
