"""RSVP and dish store.

RSVPs are upserted per (event, user); dishes hang off an RSVP and carry a
set of allergen tags. ``submit_rsvp`` is the commit point used by the RSVP
dialogue: it opens its transaction with a write on the event row, then
re-checks lifecycle and capacity and writes the RSVP before committing.
The opening write blocks a concurrent submission for the same event on
PostgreSQL (row lock) and on SQLite (database write lock), so two going
RSVPs cannot both squeeze into the last spot.
"""
import logging
from typing import Iterable, Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from potluck.errors import CapacityExceeded, EventClosed, NotFound, ValidationFailure
from potluck.models.dish import Allergen, Dish, DishCategory
from potluck.models.event import Event, EventStatus
from potluck.models.rsvp import Rsvp, RsvpStatus
from potluck.services.capacity import check_capacity

logger = logging.getLogger(__name__)

# (id, name, display name, is dietary preference)
ALLERGEN_SEED = [
    (1, "vegan", "Vegan", True),
    (2, "vegetarian", "Vegetarian", True),
    (3, "gluten_free", "Gluten-free", True),
    (4, "dairy", "Dairy", False),
    (5, "nuts", "Nuts", False),
    (6, "peanuts", "Peanuts", False),
    (7, "eggs", "Eggs", False),
    (8, "shellfish", "Shellfish", False),
    (9, "fish", "Fish", False),
    (10, "wheat", "Wheat", False),
    (11, "soy", "Soy", False),
    (12, "sesame", "Sesame", False),
]


def _upsert(
    db: Session,
    event_id: str,
    user_id: int,
    status: RsvpStatus,
    guest_count: int,
    guest_names: Optional[str],
) -> Rsvp:
    if guest_count < 0:
        raise ValidationFailure("Guest count can't be negative.")
    rsvp = get_rsvp(db, event_id, user_id)
    if rsvp is None:
        rsvp = Rsvp(event_id=event_id, user_id=user_id)
        db.add(rsvp)
    rsvp.status = RsvpStatus(status)
    rsvp.guest_count = guest_count
    rsvp.guest_names = guest_names
    return rsvp


def upsert_rsvp(
    db: Session,
    event_id: str,
    user_id: int,
    status: Union[RsvpStatus, str],
    guest_count: int = 0,
    guest_names: Optional[str] = None,
) -> Rsvp:
    """Create or overwrite the user's RSVP for the event."""
    rsvp = _upsert(db, event_id, user_id, RsvpStatus(status), guest_count, guest_names)
    db.commit()
    db.refresh(rsvp)
    logger.info("RSVP %s for event %s by user %s (+%d)", rsvp.status.value, event_id, user_id, guest_count)
    return rsvp


def submit_rsvp(
    db: Session,
    event_id: str,
    user_id: int,
    status: Union[RsvpStatus, str],
    guest_count: int = 0,
) -> Rsvp:
    """Write an RSVP only if the event is active and, for going, has room.

    Raises NotFound, EventClosed or CapacityExceeded without writing.
    """
    status = RsvpStatus(status)
    if status == RsvpStatus.declined:
        guest_count = 0

    # A no-op UPDATE takes the event's row lock on PostgreSQL and the
    # database write lock on SQLite before anything is counted.
    claimed = (
        db.query(Event)
        .filter(Event.id == event_id)
        .update({Event.updated_at: Event.updated_at}, synchronize_session=False)
    )
    if not claimed:
        db.rollback()
        raise NotFound()
    event = db.query(Event).filter(Event.id == event_id).populate_existing().one()
    if event.status != EventStatus.active:
        db.rollback()
        raise EventClosed()

    if status == RsvpStatus.going and event.max_attendees is not None:
        check = check_capacity(
            event.max_attendees,
            get_attendee_count(db, event_id),
            get_rsvp(db, event_id, user_id),
            guest_count,
        )
        if check.exceeded:
            db.rollback()
            logger.warning(
                "Rejected going RSVP for event %s by user %s: %d > %d",
                event_id, user_id, check.projected, check.max_attendees,
            )
            raise CapacityExceeded(check)

    rsvp = _upsert(db, event_id, user_id, status, guest_count, None)
    db.commit()
    db.refresh(rsvp)
    logger.info("RSVP %s for event %s by user %s (+%d)", status.value, event_id, user_id, guest_count)
    return rsvp


def get_rsvp(db: Session, event_id: str, user_id: int) -> Optional[Rsvp]:
    return (
        db.query(Rsvp)
        .filter(Rsvp.event_id == event_id, Rsvp.user_id == user_id)
        .first()
    )


def get_rsvps_for_event(db: Session, event_id: str) -> list[Rsvp]:
    return (
        db.query(Rsvp)
        .filter(Rsvp.event_id == event_id)
        .order_by(Rsvp.created_at)
        .all()
    )


def delete_rsvp(db: Session, event_id: str, user_id: int) -> bool:
    """Remove the user's RSVP (and its dishes). Returns False if there was none."""
    rsvp = get_rsvp(db, event_id, user_id)
    if rsvp is None:
        return False
    db.delete(rsvp)
    db.commit()
    logger.info("Deleted RSVP for event %s by user %s", event_id, user_id)
    return True


def get_attendee_count(db: Session, event_id: str) -> int:
    """Sum of 1 + guest_count over going RSVPs."""
    total = (
        db.query(func.coalesce(func.sum(1 + Rsvp.guest_count), 0))
        .filter(Rsvp.event_id == event_id, Rsvp.status == RsvpStatus.going)
        .scalar()
    )
    return int(total or 0)


def seed_allergens(db: Session) -> None:
    """Insert the reference allergen list if it is missing."""
    existing = {name for (name,) in db.query(Allergen.name).all()}
    missing = [row for row in ALLERGEN_SEED if row[1] not in existing]
    for allergen_id, name, display_name, is_pref in missing:
        db.add(Allergen(id=allergen_id, name=name, display_name=display_name, is_dietary_preference=is_pref))
    if missing:
        db.commit()
        logger.info("Seeded %d allergens", len(missing))


def get_all_allergens(db: Session) -> list[Allergen]:
    """Dietary preferences first, then allergens, each in id order."""
    return (
        db.query(Allergen)
        .order_by(Allergen.is_dietary_preference.desc(), Allergen.id)
        .all()
    )


def add_dish(
    db: Session,
    rsvp_id: str,
    category: Union[DishCategory, str],
    description: str,
    allergen_ids: Iterable[int] = (),
) -> Dish:
    """Record a dish together with its allergen tags in one commit.

    Unknown allergen ids are ignored.
    """
    ids = set(allergen_ids)
    allergens = db.query(Allergen).filter(Allergen.id.in_(ids)).order_by(Allergen.id).all() if ids else []
    dish = Dish(rsvp_id=rsvp_id, category=DishCategory(category), description=description)
    dish.allergens = allergens
    db.add(dish)
    db.commit()
    db.refresh(dish)
    logger.info("Added %s dish %s to RSVP %s with %d tags", dish.category.value, dish.id, rsvp_id, len(allergens))
    return dish


def get_dishes_for_rsvp(db: Session, rsvp_id: str) -> list[Dish]:
    return db.query(Dish).filter(Dish.rsvp_id == rsvp_id).order_by(Dish.created_at).all()


def get_dishes_for_event(db: Session, event_id: str) -> list[Dish]:
    return (
        db.query(Dish)
        .join(Rsvp, Dish.rsvp_id == Rsvp.id)
        .filter(Rsvp.event_id == event_id)
        .order_by(Dish.created_at)
        .all()
    )
