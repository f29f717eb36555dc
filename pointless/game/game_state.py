import logging
import random

from ..models import BoardEntry, Category, GameSettings, Pack, Phase, Player, SettingsUpdate
from . import matcher

log = logging.getLogger(__name__)

PENALTY_SCORE = 100
PASS_TEXT = "PASS"
JACKPOT_START = 1000
JACKPOT_BONUS = 250


class GameState:
    """Authoritative state of one room.

    Every operation mutates synchronously and queues its outbound events;
    the caller collects them with :meth:`drain_events` and is responsible
    for delivery. Operations that are not allowed in the current phase, or
    that come from the wrong player, return ``False`` and change nothing.
    Role checks (host-only commands) are made by the caller.

    A bare ``STATE_SYNC`` event marks where the caller should push a full
    snapshot ahead of the events that follow it.
    """

    def __init__(self, code: str, rng: random.Random | None = None):
        log.info(f"Creating new room state for room {code}")
        self.code = code
        self.phase: Phase = "lobby"
        self.host_id: str | None = None
        self.settings = GameSettings()
        self.pack: Pack | None = None

        self.players: dict[str, Player] = {}
        self.player_order: list[str] = []

        self.current_round = 0
        self.current_player_index = 0
        self.current_category: Category | None = None
        self.round_categories: list[Category] = []
        self.used_answers: set[str] = set()
        self.answer_board: list[BoardEntry] = []
        self.timer_remaining: int | None = None
        self.jackpot = JACKPOT_START

        self._rng = rng or random.Random()
        self._events: list[dict] = []

    def __len__(self) -> int:
        return len(self.player_order)

    @property
    def active_players(self) -> list[Player]:
        return [
            self.players[player_id]
            for player_id in self.player_order
            if not self.players[player_id].eliminated
        ]

    @property
    def current_player_id(self) -> str | None:
        if 0 <= self.current_player_index < len(self.player_order):
            return self.player_order[self.current_player_index]
        return None

    def drain_events(self) -> list[dict]:
        events, self._events = self._events, []
        return events

    def _emit(self, event_type: str, **payload) -> None:
        self._events.append({"type": event_type, **payload})

    def _seat(self, player: Player) -> int:
        return self.player_order.index(player.id)

    def _ranked(self, players: list[Player]) -> list[Player]:
        # Lower score is better; equal scores keep seat order
        return sorted(players, key=lambda p: (p.score, self._seat(p)))

    # -- seats -------------------------------------------------------------

    def assign_host(self, host_id: str) -> None:
        if self.host_id and self.host_id != host_id:
            log.info(f"Room {self.code}: host {self.host_id} replaced by {host_id}")
        self.host_id = host_id

    def add_player(
        self, player_id: str, name: str, language: str = "en", reconnect_key: str = ""
    ) -> Player:
        if player_id in self.players:
            raise ValueError(f"Player {player_id} already in room {self.code}")

        log.info(f"Adding player {name!r} ({player_id}) to room {self.code}")
        player = Player(
            id=player_id, name=name, language=language, reconnect_key=reconnect_key
        )
        self.players[player_id] = player
        self.player_order.append(player_id)
        self._emit("PLAYER_JOINED", player=player.to_client(), isReconnect=False)
        return player

    def reattach_player(
        self, player_id: str, name: str | None = None, language: str | None = None
    ) -> Player | None:
        player = self.players.get(player_id)
        if player is None:
            return None

        log.info(f"Player {player.name!r} ({player_id}) rejoined room {self.code}")
        player.connected = True
        if name:
            player.name = name
        if language:
            player.language = language
        self._emit("PLAYER_JOINED", player=player.to_client(), isReconnect=True)
        return player

    def mark_disconnected(self, player_id: str) -> bool:
        player = self.players.get(player_id)
        if player is None:
            return False

        player.connected = False
        player.typing = False
        self._emit("PLAYER_LEFT", playerId=player_id)

        if self.phase == "playing" and self.current_player_id == player_id:
            log.info(f"Room {self.code}: active player {player.name!r} left, auto-passing")
            self.submit_answer(player_id, None)
            self.advance_turn()
        return True

    def kick_player(self, player_id: str) -> bool:
        if player_id not in self.players:
            return False

        log.info(f"Room {self.code}: kicking player {player_id}")
        seat = self.player_order.index(player_id)
        was_current = self.current_player_id == player_id

        del self.players[player_id]
        self.player_order.remove(player_id)
        self._emit("PLAYER_LEFT", playerId=player_id)

        if seat < self.current_player_index:
            self.current_player_index -= 1
        elif was_current and self.phase == "playing":
            # The cursor already points at the next seat
            self.start_player_turn()
        elif was_current and self.phase == "revealing":
            self.current_player_index -= 1
        return True

    def join_game(self, player_id: str, name: str | None, language: str | None) -> bool:
        player = self.players.get(player_id)
        if player is None:
            return False
        if name and name.strip():
            player.name = name.strip()
        if language:
            player.language = language
        return True

    def set_language(self, player_id: str, language: str) -> bool:
        player = self.players.get(player_id)
        if player is None:
            return False
        player.language = language
        return True

    def set_typing(self, player_id: str, is_typing: bool) -> bool:
        player = self.players.get(player_id)
        if player is None:
            return False
        player.typing = is_typing
        self._emit("PLAYER_TYPING", playerId=player_id, isTyping=is_typing)
        return True

    # -- game flow ---------------------------------------------------------

    def create_game(self, pack: Pack, settings: SettingsUpdate | None = None) -> bool:
        if self.phase not in ("lobby", "gameOver"):
            return False

        update = settings.model_dump(exclude_unset=True, exclude_none=True) if settings else {}
        self.settings = self.settings.model_copy(update=update)
        self.pack = pack
        self._clamp_rounds()

        self.phase = "lobby"
        self.current_round = 0
        self.current_player_index = 0
        self.current_category = None
        self.round_categories = []
        self.used_answers = set()
        self.answer_board = []
        self.timer_remaining = None
        log.info(
            f"Room {self.code}: pack {pack.title!r} loaded, "
            f"{len(pack.categories)} categories, settings {self.settings.model_dump()}"
        )
        return True

    def _clamp_rounds(self) -> None:
        available = len(self.pack.categories) if self.pack else 0
        if available and self.settings.total_rounds > available:
            log.info(f"Room {self.code}: clamped rounds to {available} (available categories)")
            self.settings = self.settings.model_copy(update={"total_rounds": available})

    def _pick_categories(self, count: int) -> list[Category]:
        picked: list[Category] = []
        while len(picked) < count:
            batch = list(self.pack.categories)
            self._rng.shuffle(batch)
            picked.extend(batch[: count - len(picked)])
        return picked

    def start_game(self) -> bool:
        if self.phase != "lobby" or not self.players or not self.pack:
            return False

        self._clamp_rounds()
        for player in self.players.values():
            player.reset_for_new_game()

        self.round_categories = self._pick_categories(self.settings.total_rounds)
        self.current_round = 1
        self.current_player_index = 0
        self.jackpot = JACKPOT_START
        log.info(f"Room {self.code}: game started with {len(self.players)} players")
        self.start_round()
        return True

    def start_round(self) -> None:
        self.current_category = self.round_categories[self.current_round - 1]
        self.used_answers = set()
        self.answer_board = []
        self.current_player_index = 0
        self.phase = "playing"

        for player in self.players.values():
            player.typing = False
            player.submitted_answer = None

        # Clients see the new round before its first turn starts
        self._emit("STATE_SYNC")
        self.start_player_turn()

    def start_player_turn(self) -> None:
        while True:
            player_id = self.current_player_id
            if player_id is None:
                self.end_round()
                return
            player = self.players[player_id]
            if player.eliminated or not player.connected:
                self.current_player_index += 1
                continue
            break

        self.phase = "playing"
        player.typing = False
        player.submitted_answer = None

        duration = self.settings.timer_duration if self.settings.timer_enabled else None
        self.timer_remaining = duration
        self._emit(
            "TURN_START",
            playerId=player.id,
            playerName=player.name,
            timerDuration=duration,
        )

    def submit_answer(self, player_id: str, text: str | None) -> bool:
        if self.phase != "playing" or player_id != self.current_player_id:
            return False

        player = self.players[player_id]
        player.typing = False

        score = PENALTY_SCORE
        is_correct = False
        passed = not (text and text.strip())
        display = PASS_TEXT if passed else text.strip()
        key = matcher.normalize(text)

        # A repeat of anything already scored this round is a penalty even
        # when the text itself is on the board
        if not passed and key not in self.used_answers:
            answer = matcher.resolve(self.current_category, key)
            if answer is not None:
                score = answer.points
                is_correct = True
                display = answer.text
                self.used_answers.add(key)
                self.used_answers.add(matcher.normalize(answer.text))
                self.used_answers.update(matcher.normalize(a) for a in answer.aliases)
                if score == 0:
                    self.jackpot += JACKPOT_BONUS

        player.add_round_score(self.current_round, score)
        player.submitted_answer = display
        self.answer_board.append(
            BoardEntry(
                player_id=player_id,
                player_name=player.name,
                answer=display,
                score=score,
                is_correct=is_correct,
            )
        )

        self.phase = "revealing"
        self.timer_remaining = None
        self._emit(
            "SCORE_REVEAL",
            playerId=player_id,
            playerName=player.name,
            answer=display,
            score=score,
            isCorrect=is_correct,
            isPointless=is_correct and score == 0,
        )
        return True

    def advance_turn(self) -> bool:
        if self.phase not in ("playing", "revealing"):
            return False
        self.current_player_index += 1
        self.start_player_turn()
        return True

    def end_round(self) -> None:
        self.phase = "roundEnd"
        self.timer_remaining = None

        active = self.active_players
        eliminated: Player | None = None

        if self.settings.game_mode == "tv-show" and len(active) > 1:
            # Highest round total goes; ties eliminate the earliest seat
            eliminated = sorted(
                active, key=lambda p: (-p.round_score(self.current_round), self._seat(p))
            )[0]
            eliminated.eliminated = True
            eliminated.eliminated_round = self.current_round
            log.info(f"Room {self.code}: {eliminated.name!r} eliminated in round {self.current_round}")

        payload = {"standings": [p.to_client() for p in self._ranked(active)]}
        if eliminated is not None:
            payload["eliminatedPlayerId"] = eliminated.id
        self._emit("ROUND_END", **payload)

    def advance_round(self) -> bool:
        if self.phase != "roundEnd":
            return False

        if self.current_round >= self.settings.total_rounds or len(self.active_players) <= 1:
            self.end_game()
        else:
            self.current_round += 1
            self.start_round()
        return True

    def end_game(self) -> None:
        self.phase = "gameOver"
        self.timer_remaining = None

        standings = self._ranked(list(self.players.values()))
        winner = standings[0].to_client() if standings else None
        log.info(f"Room {self.code}: game over after round {self.current_round}")
        self._emit("GAME_END", winner=winner, standings=[p.to_client() for p in standings])

    # -- views -------------------------------------------------------------

    def to_client_state(self) -> dict:
        """Client-safe snapshot: never includes unrevealed answers or points."""
        category = self.current_category
        return {
            "code": self.code,
            "phase": self.phase,
            "players": [self.players[pid].to_client() for pid in self.player_order],
            "playerOrder": list(self.player_order),
            "settings": self.settings.model_dump(by_alias=True),
            "packTitle": self.pack.title if self.pack else None,
            "currentRound": self.current_round,
            "totalRounds": self.settings.total_rounds,
            "currentPlayerIndex": self.current_player_index,
            "currentPlayerId": self.current_player_id,
            "currentCategory": {
                "prompt": category.prompt,
                "question": category.question,
                "type": category.type,
                "translations": category.translations,
            }
            if category
            else None,
            "answerBoardEntries": [e.model_dump(by_alias=True) for e in self.answer_board],
            "timerRemaining": self.timer_remaining,
            "jackpot": self.jackpot,
        }
