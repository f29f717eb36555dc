from .pack import Answer, Category, Pack
from .game import BoardEntry, GameMode, GameSettings, Phase, Player, SettingsUpdate
from .messages import InboundMessage, parse_message

__all__ = [
    "Answer",
    "Category",
    "Pack",
    "BoardEntry",
    "GameMode",
    "GameSettings",
    "Phase",
    "Player",
    "SettingsUpdate",
    "InboundMessage",
    "parse_message",
]
