"""Shapes exchanged between the dialogues and the chat transport."""
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from potluck.dialogue.callbacks import Intent, SkipField


@dataclass(frozen=True)
class Sender:
    user_id: int
    username: Optional[str] = None
    display_name: Optional[str] = None


# ── inbound ────────────────────────────────────────────────────────
@dataclass(frozen=True)
class TextReply:
    text: str


@dataclass(frozen=True)
class LocationReply:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Selection:
    intent: Optional[Intent]  # None when the button data was not recognised


Inbound = Union[TextReply, LocationReply, Selection]


# ── outbound ───────────────────────────────────────────────────────
@dataclass(frozen=True)
class Button:
    label: str
    data: Optional[str] = None
    url: Optional[str] = None
    switch_inline_query: Optional[str] = None


@dataclass(frozen=True)
class Reply:
    text: str  # Telegram HTML
    buttons: tuple[tuple[Button, ...], ...] = ()


@dataclass
class Turn:
    """Result of one dialogue step.

    ``state`` is what the driver keeps until the next inbound message;
    ``toast`` is the short note shown when acknowledging a button press.
    """

    state: Any
    replies: list[Reply] = field(default_factory=list)
    toast: Optional[str] = None
    done: bool = False
    outcome: Optional[str] = None


def keyboard(*rows: list[Button]) -> tuple[tuple[Button, ...], ...]:
    return tuple(tuple(row) for row in rows if row)


def is_skip(inbound: Inbound, field_name: str) -> bool:
    """A skip button for ``field_name`` or the /skip command."""
    if isinstance(inbound, Selection):
        return isinstance(inbound.intent, SkipField) and inbound.intent.field == field_name
    if isinstance(inbound, TextReply):
        return inbound.text.strip().lower() == "/skip"
    return False
