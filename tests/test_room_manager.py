import random

import pytest

from pointless.game import FakeScheduler, RoomManager, generate_room_code
from pointless.game.room_manager import CODE_ALPHABET


def test_room_code_format():
    rng = random.Random(1)
    for _ in range(200):
        code = generate_room_code(rng)
        assert len(code) == 4
        assert all(ch in CODE_ALPHABET for ch in code)
    assert not set("01OI") & set(CODE_ALPHABET)


def test_new_code_avoids_live_rooms():
    manager = RoomManager(scheduler=FakeScheduler(), rng=random.Random(5))
    codes = {manager.new_code() for _ in range(50)}
    for code in codes:
        manager.get_or_create_room(code)
    assert len(manager) == len(codes)
    assert manager.new_code() not in codes


def test_get_or_create_is_idempotent():
    manager = RoomManager(scheduler=FakeScheduler())
    first = manager.get_or_create_room("ABCD")
    assert manager.get_or_create_room("ABCD") is first
    assert "ABCD" in manager
    assert manager.get_room("WXYZ") is None


@pytest.mark.asyncio
async def test_empty_room_destroyed_after_grace():
    scheduler = FakeScheduler()
    destroyed = []
    manager = RoomManager(scheduler=scheduler, empty_room_grace_sec=60, on_destroy=destroyed.append)
    manager.get_or_create_room("ABCD")

    manager.schedule_destroy("ABCD", lambda: True)
    await scheduler.advance(59)
    assert "ABCD" in manager

    await scheduler.advance(1)
    assert "ABCD" not in manager
    assert destroyed == ["ABCD"]


@pytest.mark.asyncio
async def test_cancelled_destroy_keeps_room():
    scheduler = FakeScheduler()
    manager = RoomManager(scheduler=scheduler)
    manager.get_or_create_room("ABCD")

    manager.schedule_destroy("ABCD", lambda: True)
    await scheduler.advance(30)
    manager.cancel_destroy("ABCD")
    await scheduler.advance(120)
    assert "ABCD" in manager
    assert scheduler.pending == []


@pytest.mark.asyncio
async def test_occupied_room_survives_timer():
    scheduler = FakeScheduler()
    manager = RoomManager(scheduler=scheduler)
    manager.get_or_create_room("ABCD")

    manager.schedule_destroy("ABCD", lambda: False)
    await scheduler.advance(60)
    assert "ABCD" in manager


@pytest.mark.asyncio
async def test_reschedule_replaces_previous_timer():
    scheduler = FakeScheduler()
    manager = RoomManager(scheduler=scheduler)
    manager.get_or_create_room("ABCD")

    manager.schedule_destroy("ABCD", lambda: True)
    await scheduler.advance(40)
    manager.schedule_destroy("ABCD", lambda: True)
    assert len(scheduler.pending) == 1

    await scheduler.advance(40)
    assert "ABCD" in manager
    await scheduler.advance(20)
    assert "ABCD" not in manager


def test_schedule_for_unknown_room_is_ignored():
    scheduler = FakeScheduler()
    manager = RoomManager(scheduler=scheduler)
    manager.schedule_destroy("NOPE", lambda: True)
    assert scheduler.pending == []


def test_destroy_is_idempotent():
    destroyed = []
    manager = RoomManager(scheduler=FakeScheduler(), on_destroy=destroyed.append)
    manager.get_or_create_room("ABCD")
    manager.destroy("ABCD")
    manager.destroy("ABCD")
    assert destroyed == ["ABCD"]
