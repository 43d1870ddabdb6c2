"""Players, their hands and coins, and dealing from the deck."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any, MutableSequence

from coupgame.cards import ActionType, Card

MAX_CARDS = 2
STARTING_COINS = 2
MUST_COUP_COINS = 10


class GameError(Exception):
    """Raised when a game rule forbids the requested change."""


@dataclass
class Player:
    """A player in a Coup game."""

    id: str
    name: str
    coins: int = STARTING_COINS
    cards: list[Card] = field(default_factory=list)
    is_alive: bool = True
    is_active: bool = True

    def add_card(self, card: Card) -> None:
        """Put a card in the player's hand."""
        if len(self.cards) >= MAX_CARDS:
            raise GameError("player already has maximum cards")
        self.cards.append(card)

    def remove_card(self, card: Card) -> None:
        """Take a card from the hand; losing the last one eliminates the player."""
        try:
            self.cards.remove(card)
        except ValueError:
            raise GameError(f"player does not have card: {card}") from None
        if not self.cards:
            self.is_alive = False

    def has_card(self, card: Card) -> bool:
        return card in self.cards

    def can_afford(self, action: ActionType) -> bool:
        return self.coins >= action.cost()

    def add_coins(self, amount: int) -> None:
        """Change the balance by amount, never going below zero."""
        self.coins = max(0, self.coins + amount)

    def remove_coins(self, amount: int) -> None:
        if self.coins < amount:
            raise GameError(f"insufficient coins: has {self.coins}, needs {amount}")
        self.coins -= amount

    def must_coup(self) -> bool:
        """Whether the player holds enough coins that a coup is mandatory."""
        return self.coins >= MUST_COUP_COINS

    def public_info(self) -> dict[str, Any]:
        """Information visible to every player."""
        return {
            "id": self.id,
            "name": self.name,
            "coins": self.coins,
            "card_count": len(self.cards),
            "is_alive": self.is_alive,
            "is_active": self.is_active,
        }

    def private_info(self) -> dict[str, Any]:
        """Public information plus the names of the cards in hand."""
        info = self.public_info()
        info["cards"] = [str(card) for card in self.cards]
        return info


def shuffle_cards(cards: MutableSequence[Card]) -> None:
    """Shuffle cards in place."""
    random.shuffle(cards)


def deal_cards(player: Player, deck: list[Card]) -> None:
    """Deal two cards from the top of deck to player."""
    if len(deck) < MAX_CARDS:
        raise GameError("insufficient cards in deck")
    for _ in range(MAX_CARDS):
        player.add_card(deck.pop(0))