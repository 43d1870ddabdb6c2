"""Game rooms that players gather in before a game starts."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime, timezone

MIN_PLAYERS_TO_START = 3
ROOM_MAX_PLAYERS = 10
INFLUENCE_COUNT = 5


class RoomError(Exception):
    """Raised when a room cannot accept or release a player."""


@dataclass(frozen=True)
class RoomPlayer:
    """A player waiting in a room."""

    id: str
    name: str


@dataclass
class Room:
    """A game room identified by a four-digit code."""

    code: str
    players: list[RoomPlayer] = field(default_factory=list)
    max_players: int = ROOM_MAX_PLAYERS
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def add_player(self, player: RoomPlayer) -> None:
        if len(self.players) >= self.max_players:
            raise RoomError(
                f"room is full, maximum {self.max_players} players allowed"
            )
        if any(existing.id == player.id for existing in self.players):
            raise RoomError(f"player with ID {player.id} already exists in room")
        self.players.append(player)

    def remove_player(self, player_id: str) -> None:
        for existing in self.players:
            if existing.id == player_id:
                self.players.remove(existing)
                return
        raise RoomError(f"player with ID {player_id} not found in room")

    def is_ready_to_start(self) -> bool:
        """Whether enough players have joined to start a game."""
        return len(self.players) >= MIN_PLAYERS_TO_START


def generate_room_code() -> str:
    """Return a random four-digit numeric code, zero-padded."""
    return f"{random.randrange(10000):04d}"


def create_room() -> Room:
    """Create an empty room with a fresh code."""
    return Room(code=generate_room_code())


def calculate_cards_per_influence(player_count: int) -> int:
    """Copies of each character card needed for the given number of players."""
    if 3 <= player_count <= 6:
        return 3
    if 7 <= player_count <= 8:
        return 4
    if 9 <= player_count <= 10:
        return 5
    return 3


def calculate_deck_size(player_count: int) -> int:
    """Total deck size for the given number of players."""
    return calculate_cards_per_influence(player_count) * INFLUENCE_COUNT