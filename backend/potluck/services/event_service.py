"""Event store: creation, token-gated lookup and allow-listed updates.

Responsibilities:
- Share token generation at creation time (never regenerated)
- Lookup by (id, token) in a single query, so a wrong token and an unknown
  id are indistinguishable to the caller
- Partial updates restricted to the EventUpdate allow-list
- Creator-only lifecycle transitions (cancel / complete)
"""
import logging
import secrets
from typing import Any, Mapping, Optional, Union

from sqlalchemy.orm import Session

from potluck.errors import Forbidden, NotFound
from potluck.models.event import Event, EventStatus
from potluck.schemas.event import EventCreate, EventUpdate

logger = logging.getLogger(__name__)

SHARE_TOKEN_BYTES = 6  # 12 hex chars, 48 bits


def generate_share_token() -> str:
    """Return a fresh unguessable token for a new event."""
    return secrets.token_hex(SHARE_TOKEN_BYTES)


def create_event(db: Session, payload: EventCreate) -> Event:
    """Persist a new active event with its own share token."""
    event = Event(
        creator_id=payload.creator_id,
        title=payload.title,
        description=payload.description,
        location=payload.location,
        event_date=payload.event_date,
        max_attendees=payload.max_attendees,
        allow_guests=payload.allow_guests,
        food_mode=payload.food_mode,
        status=EventStatus.active,
        share_token=generate_share_token(),
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Created event '%s' (%s) by creator %s", event.title, event.id, event.creator_id)
    return event


def get_event_by_id(db: Session, event_id: str) -> Optional[Event]:
    return db.query(Event).filter(Event.id == event_id).first()


def get_event_by_id_and_token(db: Session, event_id: str, token: str) -> Optional[Event]:
    """Fetch an event only when both id and token match."""
    return (
        db.query(Event)
        .filter(Event.id == event_id, Event.share_token == token)
        .first()
    )


def get_events_by_creator(db: Session, creator_id: int) -> list[Event]:
    """Active events created by ``creator_id``, newest first."""
    return (
        db.query(Event)
        .filter(Event.creator_id == creator_id, Event.status == EventStatus.active)
        .order_by(Event.created_at.desc())
        .all()
    )


def update_event(
    db: Session,
    event_id: str,
    updates: Union[EventUpdate, Mapping[str, Any]],
) -> Optional[Event]:
    """Apply a partial update. Returns None when the event does not exist."""
    if not isinstance(updates, EventUpdate):
        updates = EventUpdate.model_validate(dict(updates))

    event = get_event_by_id(db, event_id)
    if not event:
        return None

    changes = updates.model_dump(exclude_unset=True)
    if not changes:
        return event

    for field, value in changes.items():
        setattr(event, field, value)

    db.commit()
    db.refresh(event)
    logger.info("Updated event %s: %s", event_id, sorted(changes))
    return event


def set_event_status(db: Session, event_id: str, actor_id: int, status: EventStatus) -> Event:
    """Move an event to a new lifecycle status on behalf of its creator."""
    event = get_event_by_id(db, event_id)
    if not event:
        raise NotFound()
    if event.creator_id != actor_id:
        logger.warning("User %s tried to set status of event %s they do not own", actor_id, event_id)
        raise Forbidden()
    return update_event(db, event_id, EventUpdate(status=status))
