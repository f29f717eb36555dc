import asyncio

import pytest

from pointless.game import FakeScheduler, LoopScheduler, TimerHandle


def recorder():
    calls = []

    def make(label):
        async def _cb():
            calls.append(label)

        return _cb

    return calls, make


@pytest.mark.asyncio
async def test_fake_scheduler_fires_in_order():
    scheduler = FakeScheduler()
    calls, make = recorder()
    scheduler.call_later(5, make("b"))
    scheduler.call_later(2, make("a"))
    scheduler.call_later(5, make("c"))

    await scheduler.advance(1)
    assert calls == []
    await scheduler.advance(4)
    assert calls == ["a", "b", "c"]
    assert scheduler.now == 5
    assert scheduler.pending == []


@pytest.mark.asyncio
async def test_callback_can_schedule_followup():
    scheduler = FakeScheduler()
    calls, make = recorder()

    async def first():
        calls.append("first")
        scheduler.call_later(3, make("second"))

    scheduler.call_later(1, first)
    await scheduler.advance(10)
    assert calls == ["first", "second"]


@pytest.mark.asyncio
async def test_cancel_is_idempotent():
    scheduler = FakeScheduler()
    calls, make = recorder()
    handle = scheduler.call_later(1, make("x"))
    handle.cancel()
    handle.cancel()
    await scheduler.advance(5)
    assert calls == []
    assert not handle.pending


@pytest.mark.asyncio
async def test_cancel_after_fire_is_noop():
    handle = TimerHandle(0, lambda: asyncio.sleep(0))
    await handle.fire()
    handle.cancel()
    assert handle.fired and not handle.cancelled


@pytest.mark.asyncio
async def test_loop_scheduler_runs_and_cancels():
    scheduler = LoopScheduler()
    calls, make = recorder()
    scheduler.call_later(0.01, make("fired"))
    cancelled = scheduler.call_later(0.01, make("cancelled"))
    cancelled.cancel()

    await asyncio.sleep(0.05)
    assert calls == ["fired"]


@pytest.mark.asyncio
async def test_loop_scheduler_survives_failing_callback():
    scheduler = LoopScheduler()

    async def boom():
        raise RuntimeError("boom")

    handle = scheduler.call_later(0, boom)
    await asyncio.sleep(0.01)
    assert handle.fired
