from typing import Literal

from pydantic import Field

from .pack import CamelModel

Phase = Literal["lobby", "playing", "revealing", "roundEnd", "gameOver"]
GameMode = Literal["party", "tv-show"]


class GameSettings(CamelModel):
    total_rounds: int = Field(default=5, ge=1)
    timer_enabled: bool = False
    timer_duration: int = Field(default=30, ge=1, le=600)
    game_mode: GameMode = "party"


class SettingsUpdate(CamelModel):
    """Partial settings sent by the host; unset fields keep their value."""

    total_rounds: int | None = Field(default=None, ge=1)
    timer_enabled: bool | None = None
    timer_duration: int | None = Field(default=None, ge=1, le=600)
    game_mode: GameMode | None = None


class Player(CamelModel):
    id: str
    name: str
    language: str = "en"
    score: int = 0
    round_scores: list[int] = Field(default_factory=list)
    eliminated: bool = False
    eliminated_round: int | None = None
    connected: bool = True
    typing: bool = False
    submitted_answer: str | None = None
    # Secret presented by the client to reclaim this seat; never broadcast
    reconnect_key: str = Field(default="", exclude=True)

    def reset_for_new_game(self) -> None:
        self.score = 0
        self.round_scores = []
        self.eliminated = False
        self.eliminated_round = None
        self.typing = False
        self.submitted_answer = None

    def add_round_score(self, round_number: int, score: int) -> None:
        while len(self.round_scores) < round_number:
            self.round_scores.append(0)
        self.round_scores[round_number - 1] += score
        self.score += score

    def round_score(self, round_number: int) -> int:
        if 0 < round_number <= len(self.round_scores):
            return self.round_scores[round_number - 1]
        return 0

    def to_client(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "score": self.score,
            "roundScores": list(self.round_scores),
            "eliminated": self.eliminated,
            "eliminatedRound": self.eliminated_round,
            "connected": self.connected,
            "language": self.language,
            "typing": self.typing,
            "hasSubmitted": self.submitted_answer is not None,
        }


class BoardEntry(CamelModel):
    player_id: str
    player_name: str
    answer: str
    score: int
    is_correct: bool
