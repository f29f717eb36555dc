from .game_state import GameState
from .reconnect import ReconnectionManager
from .room_manager import RoomManager, generate_room_code
from .timers import FakeScheduler, LoopScheduler, Scheduler, TimerHandle

__all__ = [
    "GameState",
    "ReconnectionManager",
    "RoomManager",
    "generate_room_code",
    "FakeScheduler",
    "LoopScheduler",
    "Scheduler",
    "TimerHandle",
]
