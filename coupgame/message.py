"""Structured messages exchanged with clients over the socket."""

from __future__ import annotations

import enum
import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Union

_FRACTION_RE = re.compile(r"(\.\d{6})\d+")
_ESCAPES = (
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


class MessageType(str, enum.Enum):
    """The kinds of message in the game protocol."""

    PLAYER_JOIN = "player_join"
    PLAYER_LEAVE = "player_leave"
    GAME_STATE = "game_state"
    GAME_ACTION = "game_action"
    CHAT = "chat"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _dumps(value: Any) -> str:
    """Compact JSON with sorted object keys and HTML-sensitive characters escaped."""
    text = json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    for char, escape in _ESCAPES:
        text = text.replace(char, escape)
    return text


def _message_type(value: str) -> Union[MessageType, str]:
    try:
        return MessageType(value)
    except ValueError:
        return value


def _parse_timestamp(value: str) -> datetime:
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(r"\1", text)
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"invalid message timestamp {value!r}") from exc


@dataclass
class GameMessage:
    """A typed message with a free-form payload."""

    type: Union[MessageType, str]
    payload: Any = None
    timestamp: Optional[datetime] = field(default_factory=_now)

    def to_json(self) -> bytes:
        """Encode the type and payload as compact JSON; the timestamp is not sent."""
        type_value = self.type.value if isinstance(self.type, MessageType) else self.type
        return (
            '{"type":' + _dumps(type_value) + ',"payload":' + _dumps(self.payload) + "}"
        ).encode("utf-8")


def from_json(data: Union[bytes, str]) -> GameMessage:
    """Decode a message; raises ValueError for malformed input."""
    document = json.loads(data)
    if document is None:
        return GameMessage(type="", payload=None, timestamp=None)
    if not isinstance(document, dict):
        raise ValueError(
            f"cannot decode JSON {type(document).__name__} into a game message"
        )

    raw_type = document.get("type")
    if raw_type is None:
        raw_type = ""
    if not isinstance(raw_type, str):
        raise ValueError("message type must be a string")

    raw_timestamp = document.get("timestamp")
    if raw_timestamp is None:
        timestamp = None
    elif isinstance(raw_timestamp, str):
        timestamp = _parse_timestamp(raw_timestamp)
    else:
        raise ValueError("message timestamp must be a string")

    return GameMessage(
        type=_message_type(raw_type),
        payload=document.get("payload"),
        timestamp=timestamp,
    )