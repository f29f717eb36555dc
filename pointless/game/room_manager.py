import logging
import random
from typing import Callable

from .game_state import GameState
from .timers import LoopScheduler, Scheduler, TimerHandle

log = logging.getLogger(__name__)

# No 0/O or 1/I: codes are read aloud and typed on phones
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 4


def generate_room_code(rng: random.Random | None = None) -> str:
    rng = rng or random.SystemRandom()
    return "".join(rng.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


class RoomManager:
    """Owns the set of live rooms; the only writer to that set.

    Creation and destruction never await, so on a single event loop a
    lookup can never observe a half-created room.
    """

    def __init__(
        self,
        scheduler: Scheduler | None = None,
        empty_room_grace_sec: float = 60,
        on_destroy: Callable[[str], None] | None = None,
        rng: random.Random | None = None,
    ):
        self.scheduler = scheduler or LoopScheduler()
        self.empty_room_grace_sec = empty_room_grace_sec
        self.rooms: dict[str, GameState] = {}
        self.on_destroy = on_destroy
        self._rng = rng
        self._pending_destroy: dict[str, TimerHandle] = {}

    def __len__(self) -> int:
        return len(self.rooms)

    def __contains__(self, code: str) -> bool:
        return code in self.rooms

    def get_room(self, code: str) -> GameState | None:
        return self.rooms.get(code)

    def get_or_create_room(self, code: str) -> GameState:
        room = self.rooms.get(code)
        if room is None:
            room = GameState(code, rng=self._rng)
            self.rooms[code] = room
            log.info(f"Created new room: {code}")
        return room

    def new_code(self) -> str:
        while True:
            code = generate_room_code(self._rng)
            if code not in self.rooms:
                return code

    def schedule_destroy(self, code: str, is_empty: Callable[[], bool]) -> None:
        """Delete ``code`` after the grace period if ``is_empty()`` still holds."""
        if code not in self.rooms:
            return
        self.cancel_destroy(code)

        async def _fire() -> None:
            self._pending_destroy.pop(code, None)
            self.destroy_if_empty(code, is_empty)

        self._pending_destroy[code] = self.scheduler.call_later(
            self.empty_room_grace_sec, _fire
        )

    def cancel_destroy(self, code: str) -> None:
        handle = self._pending_destroy.pop(code, None)
        if handle is not None:
            handle.cancel()

    def destroy_if_empty(self, code: str, is_empty: Callable[[], bool]) -> bool:
        if code not in self.rooms or not is_empty():
            return False
        self.destroy(code)
        return True

    def destroy(self, code: str) -> None:
        self.cancel_destroy(code)
        if self.rooms.pop(code, None) is None:
            return
        log.info(f"Deleted empty room: {code}")
        if self.on_destroy is not None:
            self.on_destroy(code)
