"""Synchronous read paths behind the non-dialogue bot handlers.

Each function takes a session and returns rendered text plus buttons, so
the async handlers only move data between the worker thread and Telegram.
"""
import logging
from dataclasses import dataclass
from html import escape

from sqlalchemy.orm import Session

from potluck.dialogue.callbacks import SetEventStatus
from potluck.dialogue.messages import Button, keyboard
from potluck.errors import Forbidden, NotFound
from potluck.models.event import Event, EventStatus
from potluck.render import event_card, event_card_buttons, event_details, format_event_date
from potluck.services import access, event_service, rsvp_service, user_service

logger = logging.getLogger(__name__)

MAX_INLINE_RESULTS = 20


@dataclass(frozen=True)
class Card:
    event_id: str
    title: str
    description: str
    text: str
    buttons: tuple


def details_view(db: Session, payload: str) -> str:
    """Gate a ``details_<id>_<token>`` payload and render the attendee list."""
    event = access.open_link(db, payload, "details")
    rsvps = rsvp_service.get_rsvps_for_event(db, event.id)
    dishes = rsvp_service.get_dishes_for_event(db, event.id)
    users = user_service.get_users_by_ids(db, [r.user_id for r in rsvps])
    logger.info("Details for event %s: %d RSVPs, %d dishes", event.id, len(rsvps), len(dishes))
    return event_details(event, rsvps, dishes, users)


def redirect_payload(db: Session, prefix: str, event_id: str, token: str) -> str:
    """Deep-link payload for a callback redirect, issued only for an active event."""
    event = access.authorize(db, event_id, token)
    return access.share_payload(prefix, event)


def inline_cards(db: Session, creator_id: int, query: str = "", tz_name: str = "UTC") -> list[Card]:
    """The creator's active events as shareable cards, filtered by title."""
    needle = query.strip().lower()
    events = [
        e for e in event_service.get_events_by_creator(db, creator_id)
        if needle in e.title.lower()
    ]
    cards = []
    for event in events[:MAX_INLINE_RESULTS]:
        count = rsvp_service.get_attendee_count(db, event.id)
        summary = format_event_date(event.event_date, tz_name) or event.location or "Potluck"
        cards.append(Card(
            event_id=event.id,
            title=event.title,
            description=summary,
            text=event_card(event, count, tz_name),
            buttons=event_card_buttons(event),
        ))
    return cards


def _owned_event(db: Session, event_id: str, actor_id: int) -> Event:
    event = event_service.get_event_by_id(db, event_id)
    if event is None:
        raise NotFound()
    if event.creator_id != actor_id:
        raise Forbidden()
    return event


def manage_view(db: Session, event_id: str, actor_id: int) -> tuple[str, tuple]:
    """Creator-only menu for closing an event."""
    event = _owned_event(db, event_id, actor_id)
    if event.status != EventStatus.active:
        return f"This event is already {event.status.value}.", ()
    buttons = keyboard(
        [Button("Mark completed", data=SetEventStatus(event.id, EventStatus.completed).encode())],
        [Button("Cancel event", data=SetEventStatus(event.id, EventStatus.cancelled).encode())],
    )
    return f"Manage <b>{escape(event.title)}</b>:", buttons


def change_status(db: Session, event_id: str, actor_id: int, status: EventStatus) -> str:
    event = event_service.set_event_status(db, event_id, actor_id, status)
    return f"Event marked {event.status.value}."
