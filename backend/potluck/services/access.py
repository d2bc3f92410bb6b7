"""Share-link authorization gate.

Deep links and inline buttons carry ``<prefix>_<eventId>_<token>``. Tokens
never contain underscores, so the token starts after the last one. Every
RSVP or details entry, and every redirect that issues a deep link, must
pass through :func:`open_link` (or :func:`authorize` with an already
parsed pair) before touching anything else.
"""
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from potluck.errors import EventClosed, InvalidLink, NotFound
from potluck.models.event import Event, EventStatus
from potluck.services import event_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShareLink:
    event_id: str
    token: str


def parse_link(payload: str, prefix: str) -> ShareLink:
    """Split ``<prefix>_<eventId>_<token>``; raise InvalidLink if malformed."""
    head = f"{prefix}_"
    if not payload or not payload.startswith(head):
        raise InvalidLink()
    rest = payload[len(head):]
    event_id, sep, token = rest.rpartition("_")
    if not sep or not event_id or not token:
        raise InvalidLink()
    return ShareLink(event_id=event_id, token=token)


def authorize(db: Session, event_id: str, token: str) -> Event:
    """Return the active event matching (id, token) or raise."""
    event = event_service.get_event_by_id_and_token(db, event_id, token)
    if event is None:
        logger.warning("No event for link %s with the given token", event_id)
        raise NotFound()
    if event.status != EventStatus.active:
        logger.warning("Link used for %s event %s", event.status.value, event_id)
        raise EventClosed()
    return event


def open_link(db: Session, payload: str, prefix: str) -> Event:
    link = parse_link(payload, prefix)
    return authorize(db, link.event_id, link.token)


def share_payload(prefix: str, event: Event) -> str:
    return f"{prefix}_{event.id}_{event.share_token}"
