"""Character cards and the actions players can take."""

from __future__ import annotations

import enum
from typing import Optional

_COPIES_PER_CARD = 3


class Card(enum.IntEnum):
    """A character card, each with its own abilities."""

    DUKE = 0
    ASSASSIN = 1
    AMBASSADOR = 2
    CAPTAIN = 3
    CONTESSA = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()

    def __str__(self) -> str:
        return self.label

    def can_perform_action(self, action: "ActionType") -> bool:
        """Whether this card allows the given character action."""
        return action.required_card() is self

    def can_block(self, action: "ActionType") -> bool:
        """Whether this card can block the given action."""
        return self in _BLOCKERS.get(action, frozenset())


class ActionType(enum.IntEnum):
    """An action a player can take on their turn."""

    INCOME = 0
    COUP = 1
    FOREIGN_AID = 2
    TAX = 3
    ASSASSINATE = 4
    EXCHANGE = 5
    STEAL = 6

    @property
    def label(self) -> str:
        return _ACTION_LABELS[self]

    def __str__(self) -> str:
        return self.label

    def is_character_action(self) -> bool:
        """Whether the action requires a specific character card."""
        return self in _REQUIRED_CARDS

    def can_be_blocked(self) -> bool:
        """Whether another player can block the action."""
        return self in _BLOCKERS

    def required_card(self) -> Optional[Card]:
        """The card needed for a character action, or None for other actions."""
        return _REQUIRED_CARDS.get(self)

    def cost(self) -> int:
        """Coins the action costs."""
        return _COSTS.get(self, 0)

    def reward(self) -> int:
        """Coins the action yields."""
        return _REWARDS.get(self, 0)


_ACTION_LABELS = {
    ActionType.INCOME: "Income",
    ActionType.COUP: "Coup",
    ActionType.FOREIGN_AID: "Foreign Aid",
    ActionType.TAX: "Tax",
    ActionType.ASSASSINATE: "Assassinate",
    ActionType.EXCHANGE: "Exchange",
    ActionType.STEAL: "Steal",
}

_REQUIRED_CARDS = {
    ActionType.TAX: Card.DUKE,
    ActionType.ASSASSINATE: Card.ASSASSIN,
    ActionType.EXCHANGE: Card.AMBASSADOR,
    ActionType.STEAL: Card.CAPTAIN,
}

_BLOCKERS = {
    ActionType.FOREIGN_AID: frozenset({Card.DUKE}),
    ActionType.ASSASSINATE: frozenset({Card.CONTESSA}),
    ActionType.STEAL: frozenset({Card.AMBASSADOR, Card.CAPTAIN}),
}

_COSTS = {
    ActionType.COUP: 7,
    ActionType.ASSASSINATE: 3,
}

_REWARDS = {
    ActionType.INCOME: 1,
    ActionType.FOREIGN_AID: 2,
    ActionType.TAX: 3,
    ActionType.STEAL: 2,
}


def all_cards() -> list[Card]:
    """Return a full, unshuffled deck: three of each card."""
    return [card for card in Card for _ in range(_COPIES_PER_CARD)]