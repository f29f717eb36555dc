import asyncio
import json
import random

import pytest
from fastapi.websockets import WebSocketState

from pointless.game import FakeScheduler, GameState, ReconnectionManager, RoomManager
from pointless.models import Pack
from pointless.services import WebSocketHandler


def make_pack_data(num_categories=1):
    """Every category shares the same answers so tests don't depend on the shuffle."""
    return {
        "title": "Test Pack",
        "categories": [
            {
                "id": f"cat-{i}",
                "prompt": f"Name a European country ({i + 1})",
                "answers": [
                    {"text": "France", "points": 90},
                    {"text": "Malta", "points": 5},
                    {"text": "Andorra", "points": 0},
                    {"text": "United Kingdom", "points": 60, "aliases": ["UK", "Britain"]},
                    {"text": "Côte d'Ivoire", "points": 3},
                ],
            }
            for i in range(num_categories)
        ],
    }


def make_pack(num_categories=1) -> Pack:
    return Pack.model_validate(make_pack_data(num_categories))


def make_room(player_names=("Alice",), num_categories=1, **settings) -> GameState:
    """A room with seated players and a loaded pack, still in the lobby."""
    from pointless.models import SettingsUpdate

    room = GameState("TEST", rng=random.Random(7))
    room.assign_host("host-1")
    for i, name in enumerate(player_names):
        room.add_player(f"p{i + 1}", name)
    room.create_game(make_pack(num_categories), SettingsUpdate(**settings))
    room.drain_events()
    return room


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class MockWebSocket:
    """Lightweight stand-in for fastapi.WebSocket driven from a queue."""

    def __init__(self):
        self.sent_messages: list[dict] = []
        self.application_state = WebSocketState.CONNECTING
        self.closed = False
        self.close_code = None
        self.fail_sends = False
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def accept(self):
        self.application_state = WebSocketState.CONNECTED

    async def receive(self):
        return await self._inbox.get()

    async def send_json(self, data: dict):
        if self.fail_sends:
            raise RuntimeError("Cannot call send once a close message has been sent.")
        self.sent_messages.append(json.loads(json.dumps(data)))

    async def close(self, code: int = 1000, reason: str | None = None):
        self.closed = True
        self.close_code = code
        self.application_state = WebSocketState.DISCONNECTED
        self.disconnect(code)

    def push(self, data):
        text = data if isinstance(data, str) else json.dumps(data)
        self._inbox.put_nowait({"type": "websocket.receive", "text": text})

    def disconnect(self, code: int = 1000):
        self._inbox.put_nowait({"type": "websocket.disconnect", "code": code})

    def last(self, msg_type: str) -> dict | None:
        for msg in reversed(self.sent_messages):
            if msg.get("type") == msg_type:
                return msg
        return None

    def all(self, msg_type: str) -> list[dict]:
        return [m for m in self.sent_messages if m.get("type") == msg_type]


async def settle(rounds: int = 50):
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gateway(scheduler, clock):
    manager = RoomManager(scheduler=scheduler, empty_room_grace_sec=60, rng=random.Random(3))
    tokens = ReconnectionManager(window_sec=300, clock=clock)
    return WebSocketHandler(manager, tokens, turn_timer_grace_sec=2)
