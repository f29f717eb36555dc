import logging
import uuid
from dataclasses import dataclass, field
from typing import AsyncIterator

import anyio
from fastapi import WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState
from pydantic import ValidationError

from ..game import GameState, ReconnectionManager, RoomManager, TimerHandle
from ..models import messages as msg

log = logging.getLogger(__name__)

KICKED_CLOSE_CODE = 4001
ROOM_NOT_FOUND_CLOSE_CODE = 4004
DEFAULT_PLAYER_NAME = "Player"


@dataclass(eq=False)
class Connection:
    websocket: WebSocket
    client_id: str
    role: str


@dataclass
class RoomChannel:
    """Transport-side companion of a room: its sockets, lock and turn timer."""

    connections: list[Connection] = field(default_factory=list)
    lock: anyio.Lock = field(default_factory=anyio.Lock)
    turn_timer: TimerHandle | None = None
    tick_timer: TimerHandle | None = None
    # Identifies the armed turn; callbacks already queued behind the lock
    # compare against it and drop out once the turn is superseded
    turn_token: object | None = None

    def cancel_turn_timer(self) -> None:
        self.turn_token = None
        for handle in (self.turn_timer, self.tick_timer):
            if handle is not None:
                handle.cancel()
        self.turn_timer = None
        self.tick_timer = None


def clean_name(name: str | None) -> str | None:
    if name is None:
        return None
    return name.strip()[: msg.MAX_NAME_LENGTH] or None


class WebSocketHandler:
    """Connection gateway between WebSockets and room state.

    Each room is processed under its own lock: a command, the resulting
    state change and its broadcast finish before the next inbound event
    for that room is looked at. Rooms never share a lock.
    """

    def __init__(
        self,
        manager: RoomManager,
        tokens: ReconnectionManager,
        turn_timer_grace_sec: float = 2,
    ):
        self.manager = manager
        self.tokens = tokens
        self.scheduler = manager.scheduler
        self.turn_timer_grace_sec = turn_timer_grace_sec
        self.channels: dict[str, RoomChannel] = {}
        manager.on_destroy = self._room_destroyed

    def connection_count(self, code: str) -> int:
        channel = self.channels.get(code)
        return len(channel.connections) if channel else 0

    def _channel(self, code: str) -> RoomChannel:
        channel = self.channels.get(code)
        if channel is None:
            channel = self.channels[code] = RoomChannel()
        return channel

    def _room_destroyed(self, code: str) -> None:
        channel = self.channels.pop(code, None)
        if channel is not None:
            channel.cancel_turn_timer()
        self.tokens.revoke_room(code)

    def shutdown(self) -> None:
        for channel in self.channels.values():
            channel.cancel_turn_timer()
        for code in list(self.manager.rooms):
            self.manager.cancel_destroy(code)

    # -- connection lifecycle ---------------------------------------------

    async def handle_connection(
        self,
        websocket: WebSocket,
        room_code: str,
        role: str = "player",
        name: str | None = None,
        language: str | None = None,
        reconnect_id: str | None = None,
    ) -> None:
        """Serve one socket from accept to close."""
        code = (room_code or "").strip().upper()
        await websocket.accept()

        if role == "host":
            code = code or self.manager.new_code()
        elif code not in self.manager:
            await self._reject_unknown_room(websocket, code)
            return

        channel = self._channel(code)
        async with channel.lock:
            if role == "host":
                room = self.manager.get_or_create_room(code)
            else:
                room = self.manager.get_room(code)
                if room is None:
                    if not channel.connections:
                        self.channels.pop(code, None)
                    await self._reject_unknown_room(websocket, code)
                    return
            self.manager.cancel_destroy(code)
            if role == "host":
                conn = await self._attach_host(websocket, code, room, channel)
            else:
                conn = await self._attach_player(
                    websocket, code, room, channel, clean_name(name), language, reconnect_id
                )

        try:
            async for raw in self._frames(websocket):
                await self.handle_message(conn, code, raw)
        finally:
            await self._detach(conn, code)

    async def _reject_unknown_room(self, websocket: WebSocket, code: str) -> None:
        log.info(f"Room not found: {code!r}")
        await self._send(
            websocket,
            {
                "type": "ERROR",
                "message": f'Room "{code}" not found. Check the code and try again.',
            },
        )
        await websocket.close(code=ROOM_NOT_FOUND_CLOSE_CODE, reason="Room not found")

    def _is_idle(self, code: str) -> bool:
        channel = self.channels.get(code)
        return channel is None or (not channel.connections and not channel.lock.locked())

    @staticmethod
    async def _frames(websocket: WebSocket) -> AsyncIterator[str | bytes]:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                return
            if message.get("text") is not None:
                yield message["text"]
            elif message.get("bytes") is not None:
                yield message["bytes"]

    async def _attach_host(
        self, websocket: WebSocket, code: str, room: GameState, channel: RoomChannel
    ) -> Connection:
        conn = Connection(websocket, f"host-{uuid.uuid4().hex[:12]}", "host")
        room.assign_host(conn.client_id)
        channel.connections.append(conn)
        log.info(f"Host {conn.client_id} connected to room {code}")

        await self._send(websocket, {"type": "GAME_CREATED", "code": code})
        await self._send(websocket, self._state_sync(room, conn))
        return conn

    async def _attach_player(
        self,
        websocket: WebSocket,
        code: str,
        room: GameState,
        channel: RoomChannel,
        name: str | None,
        language: str | None,
        reconnect_id: str | None,
    ) -> Connection:
        player = None
        player_id = self.tokens.redeem(reconnect_id, code)
        if player_id is not None:
            player = room.reattach_player(player_id, name, language)
            if player is not None:
                # A redeemed key is spent; the next drop registers a fresh one
                player.reconnect_key = self.tokens.new_token()

        if player is None:
            if reconnect_id:
                log.info(f"Reconnect token not valid for room {code}, joining as new player")
            player = room.add_player(
                f"player-{uuid.uuid4().hex[:12]}",
                name or DEFAULT_PLAYER_NAME,
                language or "en",
                reconnect_key=self.tokens.new_token(),
            )

        conn = Connection(websocket, player.id, "player")
        channel.connections.append(conn)
        await self._flush(code, room, sync=True)
        return conn

    async def _detach(self, conn: Connection, code: str) -> None:
        channel = self.channels.get(code)
        if channel is None:
            return

        async with channel.lock:
            if conn in channel.connections:
                channel.connections.remove(conn)
            log.info(f"Connection closed: {conn.client_id} from room {code}")

            room = self.manager.get_room(code)
            if room is not None and conn.role == "player":
                player = room.players.get(conn.client_id)
                if player is not None:
                    self.tokens.issue(player.id, code, token=player.reconnect_key)
                    room.mark_disconnected(player.id)
                    await self._flush(code, room, sync=True)

            if not channel.connections:
                channel.cancel_turn_timer()
                self.manager.schedule_destroy(code, lambda: self._is_idle(code))

    # -- inbound ----------------------------------------------------------

    async def handle_message(self, conn: Connection, code: str, raw: str | bytes) -> None:
        try:
            message = msg.parse_message(raw)
        except ValidationError as e:
            log.warning(
                f"Invalid message from {conn.client_id} in room {code}: {e.error_count()} errors"
            )
            await self._send(conn.websocket, {"type": "ERROR", "message": "Invalid message format"})
            return

        room = self.manager.get_room(code)
        channel = self.channels.get(code)
        if room is None or channel is None:
            return

        async with channel.lock:
            try:
                sync = self._process_message(room, conn, message)
            except Exception:
                log.exception(f"Error handling {message.type} from {conn.client_id} in room {code}")
                room.drain_events()
                await self._send(conn.websocket, {"type": "ERROR", "message": "Failed to process message"})
                # Whatever the command changed before failing must still reach every client
                await self.broadcast_state(code, room)
                return

            if sync and isinstance(message, msg.KickPlayer):
                await self._close_kicked(channel, message.player_id)
            await self._flush(code, room, sync=sync)

    def _process_message(self, room: GameState, conn: Connection, message: msg.InboundMessage) -> bool:
        """Apply one command; returns whether the full state must be re-sent."""
        is_host = conn.role == "host" and conn.client_id == room.host_id
        if isinstance(message, msg.HOST_MESSAGES) and not is_host:
            return False

        if isinstance(message, msg.CreateGame):
            return room.create_game(message.pack, message.settings)
        elif isinstance(message, msg.StartGame):
            return room.start_game()
        elif isinstance(message, msg.NextPlayer):
            return room.advance_turn()
        elif isinstance(message, msg.NextRound):
            return room.advance_round()
        elif isinstance(message, msg.KickPlayer):
            return room.kick_player(message.player_id)

        if conn.role != "player":
            return False

        if isinstance(message, msg.JoinGame):
            return room.join_game(conn.client_id, clean_name(message.name), message.language)
        elif isinstance(message, msg.SubmitAnswer):
            return room.submit_answer(conn.client_id, message.answer)
        elif isinstance(message, msg.Pass):
            return room.submit_answer(conn.client_id, None)
        elif isinstance(message, msg.Typing):
            # UI hint only: PLAYER_TYPING goes out, no full resync
            room.set_typing(conn.client_id, message.is_typing)
            return False
        elif isinstance(message, msg.SetLanguage):
            return room.set_language(conn.client_id, message.language)
        return False

    async def _close_kicked(self, channel: RoomChannel, player_id: str) -> None:
        self.tokens.revoke_player(player_id)
        for conn in [c for c in channel.connections if c.client_id == player_id]:
            channel.connections.remove(conn)
            try:
                await conn.websocket.close(code=KICKED_CLOSE_CODE, reason="Kicked by host")
            except (WebSocketDisconnect, RuntimeError, OSError) as e:
                log.debug(f"Closing kicked connection {player_id} failed: {e}")

    # -- turn timer -------------------------------------------------------

    def _sync_turn_timer(self, code: str, room: GameState, events: list[dict]) -> None:
        channel = self.channels.get(code)
        if channel is None:
            return

        turn_starts = [e for e in events if e["type"] == "TURN_START"]
        if turn_starts:
            channel.cancel_turn_timer()
            turn = turn_starts[-1]
            if (
                turn["timerDuration"]
                and room.phase == "playing"
                and room.current_player_id == turn["playerId"]
            ):
                self._arm_turn_timer(code, channel, turn["playerId"], turn["timerDuration"])
        elif room.phase != "playing":
            channel.cancel_turn_timer()

    def _arm_turn_timer(self, code: str, channel: RoomChannel, player_id: str, duration: int) -> None:
        token = channel.turn_token = object()

        async def _expire() -> None:
            await self._expire_turn(code, player_id, token)

        channel.turn_timer = self.scheduler.call_later(duration + self.turn_timer_grace_sec, _expire)
        self._schedule_tick(code, channel, player_id, token)

    def _schedule_tick(self, code: str, channel: RoomChannel, player_id: str, token: object) -> None:
        async def _tick() -> None:
            await self._tick_turn(code, player_id, token)

        channel.tick_timer = self.scheduler.call_later(1, _tick)

    def _current_turn(self, code: str, player_id: str, token: object) -> tuple[GameState, RoomChannel] | None:
        room = self.manager.get_room(code)
        channel = self.channels.get(code)
        if room is None or channel is None or channel.turn_token is not token:
            return None
        if room.phase != "playing" or room.current_player_id != player_id:
            return None
        return room, channel

    async def _tick_turn(self, code: str, player_id: str, token: object) -> None:
        """Count ``timer_remaining`` down by one second; clients read it from the next sync."""
        channel = self.channels.get(code)
        if channel is None:
            return

        async with channel.lock:
            current = self._current_turn(code, player_id, token)
            if current is None:
                return
            room, channel = current
            if room.timer_remaining:
                room.timer_remaining -= 1
            if room.timer_remaining:
                self._schedule_tick(code, channel, player_id, token)

    async def _expire_turn(self, code: str, player_id: str, token: object) -> None:
        channel = self.channels.get(code)
        if channel is None:
            return

        async with channel.lock:
            current = self._current_turn(code, player_id, token)
            if current is None:
                return
            room, _ = current
            log.info(f"Timer expired for {player_id} in room {code}, auto-passing")
            room.submit_answer(player_id, None)
            await self._flush(code, room, sync=True)

    # -- outbound ---------------------------------------------------------

    async def _flush(self, code: str, room: GameState, sync: bool) -> None:
        events = room.drain_events()
        self._sync_turn_timer(code, room, events)
        for event in events:
            if event["type"] == "STATE_SYNC":
                # Snapshot point inside a batch; expanded per connection
                await self.broadcast_state(code, room)
            else:
                await self.broadcast(code, event)
        if sync:
            await self.broadcast_state(code, room)

    def _state_sync(self, room: GameState, conn: Connection) -> dict:
        message = {"type": "STATE_SYNC", "state": room.to_client_state(), "yourId": conn.client_id}
        player = room.players.get(conn.client_id)
        if player is not None:
            message["reconnectId"] = player.reconnect_key
        return message

    async def broadcast(self, code: str, message: dict) -> None:
        channel = self.channels.get(code)
        if channel is None:
            return
        for conn in list(channel.connections):
            await self._send(conn.websocket, message)

    async def broadcast_state(self, code: str, room: GameState) -> None:
        channel = self.channels.get(code)
        if channel is None:
            return
        for conn in list(channel.connections):
            await self._send(conn.websocket, self._state_sync(room, conn))

    @staticmethod
    async def _send(websocket: WebSocket, message: dict) -> None:
        if websocket.application_state != WebSocketState.CONNECTED:
            return
        try:
            await websocket.send_json(message)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            log.debug(f"Dropping {message.get('type')} to closed socket: {e}")
