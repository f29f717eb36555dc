"""Multiplayer session server for a turn-based "pointless" party quiz."""

__version__ = "0.1.0"
