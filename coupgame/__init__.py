"""Coup card game: rules, lobby rooms, translations, messages and a WebSocket server."""

__version__ = "0.1.0"