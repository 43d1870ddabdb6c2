"""A single Coup game: players, turn order, dealing and the end of the game."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from coupgame.cards import Card, all_cards
from coupgame.player import GameError, Player, deal_cards, shuffle_cards

DEFAULT_MIN_PLAYERS = 3
DEFAULT_MAX_PLAYERS = 6


def _now() -> datetime:
    return datetime.now(timezone.utc)


class GameState(enum.IntEnum):
    """The phase a game is in."""

    WAITING = 0
    STARTING = 1
    PLAYING = 2
    FINISHED = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()

    def __str__(self) -> str:
        return self.label


@dataclass
class Game:
    """A Coup game instance."""

    id: str
    state: GameState = GameState.WAITING
    players: dict[str, Player] = field(default_factory=dict)
    player_order: list[str] = field(default_factory=list)
    current_index: int = 0
    deck: list[Card] = field(default_factory=all_cards)
    discard_pile: list[Card] = field(default_factory=list)
    created_at: datetime = field(default_factory=_now)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    winner: Optional[Player] = None
    min_players: int = DEFAULT_MIN_PLAYERS
    max_players: int = DEFAULT_MAX_PLAYERS

    def add_player(self, player: Player) -> None:
        """Seat a player; only allowed while the game is waiting."""
        if self.state is not GameState.WAITING:
            raise GameError("cannot add players: game is not in waiting state")
        if len(self.players) >= self.max_players:
            raise GameError(f"game is full: maximum {self.max_players} players")
        if player.id in self.players:
            raise GameError(f"player with ID {player.id} already exists")
        self.players[player.id] = player
        self.player_order.append(player.id)

    def remove_player(self, player_id: str) -> None:
        """Remove a player, or mark them inactive if the game is under way."""
        player = self.players.get(player_id)
        if player is None:
            raise GameError(f"player with ID {player_id} not found")
        if self.state is GameState.PLAYING:
            player.is_active = False
            return
        del self.players[player_id]
        self.player_order.remove(player_id)

    def can_start(self) -> bool:
        return self.state is GameState.WAITING and len(self.players) >= self.min_players

    def start_game(self) -> None:
        """Shuffle the deck, deal two cards to each player and begin play."""
        if not self.can_start():
            raise GameError(
                f"cannot start game: need at least {self.min_players} players"
            )
        self.state = GameState.STARTING
        shuffle_cards(self.deck)
        for player_id in self.player_order:
            try:
                deal_cards(self.players[player_id], self.deck)
            except GameError as exc:
                raise GameError(
                    f"failed to deal cards to player {player_id}: {exc}"
                ) from exc
        self.current_index = 0
        self.state = GameState.PLAYING
        self.started_at = _now()

    def current_player(self) -> Optional[Player]:
        """The player whose turn it is, or None when the game is not being played."""
        if self.state is not GameState.PLAYING or not self.player_order:
            return None
        return self.players[self.player_order[self.current_index]]

    def next_turn(self) -> None:
        """Pass the turn to the next living player, then check for the end."""
        if self.state is not GameState.PLAYING:
            return
        count = len(self.player_order)
        for _ in range(count):
            self.current_index = (self.current_index + 1) % count
            if self.players[self.player_order[self.current_index]].is_alive:
                break
        self.check_game_end()

    def check_game_end(self) -> None:
        """Finish the game once at most one player is alive."""
        if self.state is not GameState.PLAYING:
            return
        alive = self.alive_players()
        if len(alive) <= 1:
            self.state = GameState.FINISHED
            self.finished_at = _now()
            if len(alive) == 1:
                self.winner = alive[0]

    def alive_players(self) -> list[Player]:
        return [player for player in self.players.values() if player.is_alive]

    def game_state(self) -> dict[str, Any]:
        """The public state of the game, for broadcasting."""
        current = self.current_player()
        state: dict[str, Any] = {
            "id": self.id,
            "state": self.state.label,
            "players": [
                self.players[player_id].public_info()
                for player_id in self.player_order
            ],
            "current_player": current.id if current is not None else "",
            "deck_size": len(self.deck),
        }
        if self.winner is not None:
            state["winner"] = self.winner.public_info()
        return state

    def player_game_state(self, player_id: str) -> dict[str, Any]:
        """The game state as seen by one player, including their own hand."""
        state = self.game_state()
        player = self.players.get(player_id)
        if player is not None:
            current = self.current_player()
            state["your_info"] = player.private_info()
            state["your_turn"] = current is not None and current.id == player_id
        return state