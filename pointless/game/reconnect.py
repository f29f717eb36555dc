import logging
import secrets
import time
from dataclasses import dataclass
from typing import Callable

log = logging.getLogger(__name__)


@dataclass
class ReconnectGrant:
    player_id: str
    room_code: str
    expires_at: float


class ReconnectionManager:
    """Single-use tokens that let a dropped player reclaim their seat."""

    def __init__(self, window_sec: float = 300, clock: Callable[[], float] = time.monotonic):
        self.window_sec = window_sec
        self._clock = clock
        self._grants: dict[str, ReconnectGrant] = {}

    def __len__(self) -> int:
        return len(self._grants)

    @staticmethod
    def new_token() -> str:
        return secrets.token_urlsafe(16)

    def issue(self, player_id: str, room_code: str, token: str | None = None) -> str:
        """Register ``token`` (a fresh one if omitted) for ``player_id``."""
        self._purge()
        token = token or self.new_token()
        self._grants[token] = ReconnectGrant(
            player_id=player_id,
            room_code=room_code,
            expires_at=self._clock() + self.window_sec,
        )
        log.debug(f"Issued reconnect token for {player_id} in room {room_code}")
        return token

    def redeem(self, token: str | None, room_code: str) -> str | None:
        if not token:
            return None

        grant = self._grants.get(token)
        if grant is None:
            return None
        if grant.expires_at <= self._clock():
            del self._grants[token]
            log.info(f"Reconnect token for {grant.player_id} expired")
            return None
        if grant.room_code != room_code:
            return None

        del self._grants[token]
        return grant.player_id

    def revoke_player(self, player_id: str) -> None:
        for token in [t for t, g in self._grants.items() if g.player_id == player_id]:
            del self._grants[token]

    def revoke_room(self, room_code: str) -> None:
        for token in [t for t, g in self._grants.items() if g.room_code == room_code]:
            del self._grants[token]

    def _purge(self) -> None:
        now = self._clock()
        for token in [t for t, g in self._grants.items() if g.expires_at <= now]:
            del self._grants[token]
