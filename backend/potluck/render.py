"""Telegram HTML rendering for event summaries, cards and details.

User-supplied text is always escaped; only the markup added here is live.
"""
from collections import Counter
from datetime import datetime
from html import escape
from typing import Optional

import pytz

from potluck.dialogue.callbacks import DetailsLink, EditEvent, RsvpLink
from potluck.dialogue.messages import Button, keyboard
from potluck.models.dish import Dish
from potluck.models.event import Event
from potluck.models.rsvp import Rsvp, RsvpStatus
from potluck.models.user import User

ALLERGEN_CODES = {
    "vegan": "V",
    "vegetarian": "VG",
    "gluten_free": "GF",
    "dairy": "DAIRY",
    "nuts": "NUTS",
    "peanuts": "PEANUTS",
    "eggs": "EGGS",
    "shellfish": "SHELLFISH",
    "fish": "FISH",
    "wheat": "WHEAT",
    "soy": "SOY",
    "sesame": "SESAME",
}


def format_event_date(value: Optional[datetime], tz_name: str = "UTC") -> str:
    """Render a stored date in the display timezone. Naive values are UTC."""
    if value is None:
        return ""
    if value.tzinfo is None:
        value = pytz.utc.localize(value)
    local = value.astimezone(pytz.timezone(tz_name))
    return local.strftime("%a %d %b %Y, %H:%M")


def guest_suffix(guest_count: int) -> str:
    if guest_count <= 0:
        return ""
    return f" (+{guest_count} guest{'s' if guest_count > 1 else ''})"


def event_summary(event: Event, tz_name: str = "UTC") -> str:
    """Confirmation shown to the creator once the event is stored."""
    lines = ["Event created!", "", f"<b>{escape(event.title)}</b>"]
    if event.description:
        lines.append(f"<i>{escape(event.description)}</i>")
    if event.location:
        lines.append(f"Location: {escape(event.location)}")
    if event.event_date:
        lines.append(f"Date: {format_event_date(event.event_date, tz_name)}")
    lines.append(f"Max: {event.max_attendees} people" if event.max_attendees else "No limit")
    lines.append(f"Food: {event.food_mode.value}")
    return "\n".join(lines)


def event_summary_buttons(event: Event):
    return keyboard([
        Button("Edit", data=EditEvent(event.id).encode()),
        Button("Share", switch_inline_query=event.title),
    ])


def event_card(event: Event, attendee_count: int, tz_name: str = "UTC") -> str:
    """Shareable card posted into group chats through inline mode."""
    lines = [f"<b>{escape(event.title)}</b>"]
    if event.description:
        lines.append(f"<i>{escape(event.description)}</i>")
    lines.append("")
    if event.location:
        lines.append(f"Location: {escape(event.location)}")
    if event.event_date:
        lines.append(f"Date: {format_event_date(event.event_date, tz_name)}")
    lines.append("")
    if event.max_attendees:
        lines.append(f"Spots: {attendee_count}/{event.max_attendees}")
    else:
        lines.append(f"Attendees: {attendee_count}")
    return "\n".join(lines)


def event_card_buttons(event: Event):
    return keyboard([
        Button("RSVP", data=RsvpLink(event.id, event.share_token).encode()),
        Button("View Details", data=DetailsLink(event.id, event.share_token).encode()),
    ])


def allergen_tags(dish: Dish) -> str:
    if not dish.allergens:
        return ""
    codes = [ALLERGEN_CODES.get(a.name, a.name.upper()) for a in dish.allergens]
    return f" [{', '.join(codes)}]"


def _attendee_lines(rsvps: list[Rsvp], dishes: list[Dish], users: dict[int, User]) -> list[str]:
    lines = []
    for rsvp in rsvps:
        user = users.get(rsvp.user_id)
        name = (user and (user.display_name or user.username)) or f"User {rsvp.user_id}"
        guests = f" (+{rsvp.guest_count})" if rsvp.guest_count > 0 else ""
        own = [d for d in dishes if d.rsvp_id == rsvp.id]
        if not own:
            lines.append(f"- {escape(name)}{guests}")
        for dish in own:
            lines.append(f"- {escape(name)}{guests}: {escape(dish.description)}{allergen_tags(dish)}")
    return lines


def event_details(event: Event, rsvps: list[Rsvp], dishes: list[Dish], users: dict[int, User]) -> str:
    """Attendee list with dishes and a per-category menu summary."""
    going = [r for r in rsvps if r.status == RsvpStatus.going]
    maybe = [r for r in rsvps if r.status == RsvpStatus.maybe]
    total_going = sum(1 + r.guest_count for r in going)
    total_maybe = sum(1 + r.guest_count for r in maybe)

    going_lines = _attendee_lines(going, dishes, users)
    maybe_lines = _attendee_lines(maybe, dishes, users)

    listed = {r.id for r in going + maybe}
    per_category = Counter(d.category.value for d in dishes if d.rsvp_id in listed)
    menu = ", ".join(f"{category}: {count}" for category, count in per_category.items())

    return "\n".join([
        f"<b>{escape(event.title)}</b>",
        "",
        f"<b>Going ({total_going}):</b>",
        "\n".join(going_lines) if going_lines else "<i>None yet</i>",
        "",
        f"<b>Maybe ({total_maybe}):</b>",
        "\n".join(maybe_lines) if maybe_lines else "<i>None</i>",
        "",
        f"<b>Menu:</b> {menu or 'No dishes yet'}",
    ])
