"""Callback-button data codec.

Button data on the wire stays the plain ``prefix_value`` strings Telegram
echoes back; inside the bot every string is decoded once, by
:func:`parse_callback`, into one of the intents below.
"""
from dataclasses import dataclass
from typing import Optional, Union

from potluck.models.dish import DishCategory
from potluck.models.event import EventStatus, FoodMode
from potluck.models.rsvp import RsvpStatus
from potluck.services.access import parse_link

MAX_CHOICES = (10, 20, 50)
GUEST_CHOICES = (0, 1, 2)
SKIPPABLE_FIELDS = ("desc", "location", "date")


@dataclass(frozen=True)
class RsvpLink:
    event_id: str
    token: str

    def encode(self) -> str:
        return f"rsvp_{self.event_id}_{self.token}"


@dataclass(frozen=True)
class DetailsLink:
    event_id: str
    token: str

    def encode(self) -> str:
        return f"details_{self.event_id}_{self.token}"


@dataclass(frozen=True)
class StatusChoice:
    status: RsvpStatus

    def encode(self) -> str:
        return f"status_{self.status.value}"


@dataclass(frozen=True)
class MaxChoice:
    limit: Optional[int]  # None = unlimited

    def encode(self) -> str:
        return f"max_{self.limit if self.limit is not None else 'none'}"


@dataclass(frozen=True)
class FoodChoice:
    mode: FoodMode

    def encode(self) -> str:
        return f"food_{self.mode.value}"


@dataclass(frozen=True)
class GuestsChoice:
    count: Optional[int]  # None = "more", ask for a number

    def encode(self) -> str:
        return f"guests_{self.count if self.count is not None else 'more'}"


@dataclass(frozen=True)
class CategoryChoice:
    category: Optional[DishCategory]  # None = skip the dish

    def encode(self) -> str:
        return f"cat_{self.category.value if self.category else 'skip'}"


@dataclass(frozen=True)
class AllergenToggle:
    allergen_id: int

    def encode(self) -> str:
        return f"allerg_{self.allergen_id}"


@dataclass(frozen=True)
class AllergenDone:
    def encode(self) -> str:
        return "allerg_done"


@dataclass(frozen=True)
class SkipField:
    field: str

    def encode(self) -> str:
        return f"skip_{self.field}"


@dataclass(frozen=True)
class EditEvent:
    event_id: str

    def encode(self) -> str:
        return f"edit_{self.event_id}"


@dataclass(frozen=True)
class SetEventStatus:
    event_id: str
    status: EventStatus

    def encode(self) -> str:
        return f"evstatus_{self.event_id}_{self.status.value}"


Intent = Union[
    RsvpLink, DetailsLink, StatusChoice, MaxChoice, FoodChoice, GuestsChoice,
    CategoryChoice, AllergenToggle, AllergenDone, SkipField, EditEvent, SetEventStatus,
]


def _parse_int(value: str) -> Optional[int]:
    return int(value) if value.isascii() and value.isdigit() else None


def _member(enum_cls, value: str):
    try:
        return enum_cls(value)
    except ValueError:
        return None


def parse_callback(data: str) -> Optional[Intent]:
    """Decode button data; None for anything unrecognised.

    ``rsvp_`` and ``details_`` data that lacks an id or token raises
    InvalidLink rather than returning None, so redirects can report it.
    """
    if not data:
        return None
    prefix, _, value = data.partition("_")

    if prefix == "rsvp":
        link = parse_link(data, "rsvp")
        return RsvpLink(link.event_id, link.token)
    if prefix == "details":
        link = parse_link(data, "details")
        return DetailsLink(link.event_id, link.token)
    if prefix == "status" and _member(RsvpStatus, value):
        return StatusChoice(RsvpStatus(value))
    if prefix == "max":
        if value == "none":
            return MaxChoice(None)
        if _parse_int(value) in MAX_CHOICES:
            return MaxChoice(int(value))
        return None
    if prefix == "food" and _member(FoodMode, value):
        return FoodChoice(FoodMode(value))
    if prefix == "guests":
        if value == "more":
            return GuestsChoice(None)
        if _parse_int(value) in GUEST_CHOICES:
            return GuestsChoice(int(value))
        return None
    if prefix == "cat":
        if value == "skip":
            return CategoryChoice(None)
        if _member(DishCategory, value):
            return CategoryChoice(DishCategory(value))
        return None
    if prefix == "allerg":
        if value == "done":
            return AllergenDone()
        allergen_id = _parse_int(value)
        return AllergenToggle(allergen_id) if allergen_id is not None else None
    if prefix == "skip" and value in SKIPPABLE_FIELDS:
        return SkipField(value)
    if prefix == "edit" and value:
        return EditEvent(value)
    if prefix == "evstatus":
        event_id, sep, status = value.rpartition("_")
        if sep and event_id and _member(EventStatus, status):
            return SetEventStatus(event_id, EventStatus(status))
    return None
