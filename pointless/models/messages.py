from typing import Annotated, Literal, Union

from pydantic import Field, TypeAdapter

from .game import SettingsUpdate
from .pack import CamelModel, Pack

MAX_ANSWER_LENGTH = 200
MAX_NAME_LENGTH = 32
MAX_LANGUAGE_LENGTH = 8


# Host -> server

class CreateGame(CamelModel):
    type: Literal["CREATE_GAME"]
    pack: Pack
    settings: SettingsUpdate = Field(default_factory=SettingsUpdate)


class StartGame(CamelModel):
    type: Literal["START_GAME"]


class NextPlayer(CamelModel):
    type: Literal["NEXT_PLAYER"]


class NextRound(CamelModel):
    type: Literal["NEXT_ROUND"]


class KickPlayer(CamelModel):
    type: Literal["KICK_PLAYER"]
    player_id: str


# Player -> server

class JoinGame(CamelModel):
    type: Literal["JOIN_GAME"]
    name: str | None = Field(default=None, max_length=MAX_NAME_LENGTH)
    language: str | None = Field(default=None, max_length=MAX_LANGUAGE_LENGTH)


class SubmitAnswer(CamelModel):
    type: Literal["SUBMIT_ANSWER"]
    answer: str | None = Field(default=None, max_length=MAX_ANSWER_LENGTH)


class Pass(CamelModel):
    type: Literal["PASS"]


class Typing(CamelModel):
    type: Literal["TYPING"]
    is_typing: bool


class SetLanguage(CamelModel):
    type: Literal["SET_LANGUAGE"]
    language: str = Field(min_length=1, max_length=MAX_LANGUAGE_LENGTH)


HOST_MESSAGES = (CreateGame, StartGame, NextPlayer, NextRound, KickPlayer)

InboundMessage = Annotated[
    Union[
        CreateGame,
        StartGame,
        NextPlayer,
        NextRound,
        KickPlayer,
        JoinGame,
        SubmitAnswer,
        Pass,
        Typing,
        SetLanguage,
    ],
    Field(discriminator="type"),
]

inbound_adapter = TypeAdapter(InboundMessage)


def parse_message(raw: str | bytes) -> InboundMessage:
    """Parse one inbound frame. Raises pydantic.ValidationError on bad input."""
    return inbound_adapter.validate_json(raw)
