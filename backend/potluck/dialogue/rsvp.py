"""RSVP dialogue.

Status → guests → (capacity check + write) → dish category → dish
description → allergen tags → confirmation. The RSVP row is written at one
point only, by ``rsvp_service.submit_rsvp``, which also re-checks the event
and its capacity in the same transaction. The dish is written once, when
the allergen loop ends.
"""
import enum
import logging
from dataclasses import dataclass, field, replace
from html import escape
from typing import Optional

from sqlalchemy.orm import Session

from potluck.dialogue.allergens import AllergenSelection
from potluck.dialogue.callbacks import (
    AllergenDone, AllergenToggle, CategoryChoice, GuestsChoice, StatusChoice,
)
from potluck.dialogue.messages import Button, Inbound, Reply, Selection, Sender, TextReply, Turn, keyboard
from potluck.errors import CapacityExceeded, EventClosed, NotFound, PotluckError
from potluck.models.dish import DishCategory
from potluck.models.rsvp import RsvpStatus
from potluck.render import guest_suffix
from potluck.services import access, rsvp_service, user_service
from potluck.services.capacity import is_full

logger = logging.getLogger(__name__)

MAX_GUESTS = 20

ABORTED = "aborted"
DECLINED = "declined"
CAPACITY_REJECTED = "capacity_rejected"
COMPLETED = "completed"


class RsvpStep(str, enum.Enum):
    status = "status"
    guests = "guests"
    guest_number = "guest_number"
    category = "category"
    dish_description = "dish_description"
    allergens = "allergens"


@dataclass(frozen=True)
class RsvpState:
    step: RsvpStep
    event_id: str
    event_title: str
    user_id: int
    allow_guests: bool = True
    status: Optional[RsvpStatus] = None
    guest_count: int = 0
    rsvp_id: Optional[str] = None
    category: Optional[DishCategory] = None
    description: Optional[str] = None
    offered: frozenset = frozenset()
    selection: AllergenSelection = field(default_factory=AllergenSelection)


STATUS_BUTTONS = keyboard(
    [Button("Yes, I'm coming!", data=StatusChoice(RsvpStatus.going).encode())],
    [
        Button("Maybe", data=StatusChoice(RsvpStatus.maybe).encode()),
        Button("Can't make it", data=StatusChoice(RsvpStatus.declined).encode()),
    ],
)

GUESTS_PROMPT = Reply("Bringing anyone?", keyboard([
    Button("Just me", data=GuestsChoice(0).encode()),
    Button("+1", data=GuestsChoice(1).encode()),
    Button("+2", data=GuestsChoice(2).encode()),
    Button("More...", data=GuestsChoice(None).encode()),
]))

GUEST_NUMBER_PROMPT = Reply(f"How many guests? (Enter a number from 0 to {MAX_GUESTS})")

CATEGORY_PROMPT = Reply("What are you bringing?", keyboard(
    [Button(c.value.capitalize(), data=CategoryChoice(c).encode()) for c in DishCategory],
    [Button("Nothing / Surprise", data=CategoryChoice(None).encode())],
))


def parse_guest_number(text: str) -> Optional[int]:
    """An integer in [0, MAX_GUESTS], or None."""
    text = text.strip()
    if not (text.isascii() and text.isdigit()):
        return None
    value = int(text)
    return value if value <= MAX_GUESTS else None


def allergen_keyboard(allergens):
    """Dietary preferences one per row, then allergens two per row, then Done."""
    prefs = [a for a in allergens if a.is_dietary_preference]
    hazards = [a for a in allergens if not a.is_dietary_preference]
    rows = [[Button(a.display_name, data=AllergenToggle(a.id).encode())] for a in prefs]
    for i in range(0, len(hazards), 2):
        rows.append([Button(a.display_name, data=AllergenToggle(a.id).encode()) for a in hazards[i:i + 2]])
    rows.append([Button("Done", data=AllergenDone().encode())])
    return keyboard(*rows)


class RsvpDialogue:
    """Collects one user's attendance and optional dish for an event."""

    kind = "rsvp"

    def __init__(self, db: Session, tz_name: str = "UTC"):
        self.db = db
        self.tz_name = tz_name
        self._handlers = {
            RsvpStep.status: self._on_status,
            RsvpStep.guests: self._on_guests,
            RsvpStep.guest_number: self._on_guest_number,
            RsvpStep.category: self._on_category,
            RsvpStep.dish_description: self._on_dish_description,
            RsvpStep.allergens: self._on_allergens,
        }

    def start(self, sender: Optional[Sender], payload: Optional[str] = None) -> Turn:
        if sender is None:
            return self._abort("Could not identify user.")
        try:
            event = access.open_link(self.db, payload or "", "rsvp")
        except PotluckError as exc:
            return self._abort(exc.user_message)

        user_service.upsert_user(self.db, sender.user_id, sender.username, sender.display_name)

        count = rsvp_service.get_attendee_count(self.db, event.id)
        text = f"<b>{escape(event.title)}</b>\n\nAre you coming?"
        if is_full(event.max_attendees, count):
            text += "\n\n<i>Note: this event is full, you can still answer Maybe.</i>"

        state = RsvpState(
            step=RsvpStep.status,
            event_id=event.id,
            event_title=event.title,
            user_id=sender.user_id,
            allow_guests=event.allow_guests,
        )
        return Turn(state, [Reply(text, STATUS_BUTTONS)])

    def handle(self, state: RsvpState, inbound: Inbound) -> Turn:
        return self._handlers[state.step](state, inbound)

    # ── helpers ────────────────────────────────────────────────────
    def _abort(self, message: str) -> Turn:
        return Turn(None, [Reply(escape(message))], done=True, outcome=ABORTED)

    def _reprompt(self, state: RsvpState, reply: Reply, hint: str = "Please use the buttons above.") -> Turn:
        logger.warning("Unexpected input at RSVP step %s for event %s", state.step.value, state.event_id)
        return Turn(state, [Reply(hint), reply])

    def _status_prompt(self, state: RsvpState) -> Reply:
        return Reply(f"<b>{escape(state.event_title)}</b>\n\nAre you coming?", STATUS_BUTTONS)

    # ── steps ──────────────────────────────────────────────────────
    def _on_status(self, state, inbound):
        if not (isinstance(inbound, Selection) and isinstance(inbound.intent, StatusChoice)):
            return self._reprompt(state, self._status_prompt(state))
        status = inbound.intent.status

        if status == RsvpStatus.declined:
            try:
                rsvp_service.submit_rsvp(self.db, state.event_id, state.user_id, RsvpStatus.declined)
            except (NotFound, EventClosed) as exc:
                return self._abort(exc.user_message)
            return Turn(None, [Reply("Got it, maybe next time!")], done=True, outcome=DECLINED)

        state = replace(state, status=status)
        if state.allow_guests:
            return Turn(replace(state, step=RsvpStep.guests), [GUESTS_PROMPT])
        return self._commit(state)

    def _on_guests(self, state, inbound):
        if not (isinstance(inbound, Selection) and isinstance(inbound.intent, GuestsChoice)):
            return self._reprompt(state, GUESTS_PROMPT)
        if inbound.intent.count is None:
            return Turn(replace(state, step=RsvpStep.guest_number), [GUEST_NUMBER_PROMPT])
        return self._commit(replace(state, guest_count=inbound.intent.count))

    def _on_guest_number(self, state, inbound):
        if not isinstance(inbound, TextReply):
            return self._reprompt(state, GUEST_NUMBER_PROMPT, "Please type a number.")
        guest_count = parse_guest_number(inbound.text)
        notes = []
        if guest_count is None:
            logger.warning("Guest count %r out of range, using 0", inbound.text)
            notes.append(Reply(f"That's not a number between 0 and {MAX_GUESTS}, counting just you."))
            guest_count = 0
        turn = self._commit(replace(state, guest_count=guest_count))
        turn.replies[:0] = notes
        return turn

    def _commit(self, state: RsvpState) -> Turn:
        try:
            rsvp = rsvp_service.submit_rsvp(
                self.db, state.event_id, state.user_id, state.status, state.guest_count,
            )
        except CapacityExceeded as exc:
            slots = exc.check.guest_slots_left
            if exc.check.room_for_self:
                detail = f"Only {slots} guest slot{'' if slots == 1 else 's'} left."
            else:
                detail = "There are no spots left."
            text = (
                f"Sorry, not enough room at <b>{escape(state.event_title)}</b>. {detail}\n\n"
                "Open the invite link again and answer <b>Maybe</b> instead, "
                "or come with fewer guests."
            )
            return Turn(None, [Reply(text)], done=True, outcome=CAPACITY_REJECTED)
        except (NotFound, EventClosed) as exc:
            return self._abort(exc.user_message)

        state = replace(state, step=RsvpStep.category, rsvp_id=rsvp.id)
        return Turn(state, [CATEGORY_PROMPT])

    def _on_category(self, state, inbound):
        if not (isinstance(inbound, Selection) and isinstance(inbound.intent, CategoryChoice)):
            return self._reprompt(state, CATEGORY_PROMPT)
        category = inbound.intent.category
        if category is None:
            return self._confirm(state)
        prompt = Reply(f'What {category.value} dish? (e.g. "Spicy Wings", "Caesar Salad")')
        return Turn(replace(state, step=RsvpStep.dish_description, category=category), [prompt])

    def _on_dish_description(self, state, inbound):
        if not isinstance(inbound, TextReply) or not inbound.text.strip():
            prompt = Reply(f"What {state.category.value} dish?")
            return self._reprompt(state, prompt, "Please describe the dish in a text message.")
        allergens = rsvp_service.get_all_allergens(self.db)
        prompt = Reply("Any dietary info? (Select all that apply, then Done)", allergen_keyboard(allergens))
        state = replace(
            state,
            step=RsvpStep.allergens,
            description=inbound.text,
            offered=frozenset(a.id for a in allergens),
            selection=AllergenSelection(),
        )
        return Turn(state, [prompt])

    def _on_allergens(self, state, inbound):
        intent = inbound.intent if isinstance(inbound, Selection) else None
        if isinstance(intent, AllergenToggle) and intent.allergen_id in state.offered:
            selection, added = state.selection.toggle(intent.allergen_id)
            return Turn(replace(state, selection=selection), toast="Added!" if added else "Removed!")
        if isinstance(intent, AllergenDone):
            dish = rsvp_service.add_dish(
                self.db, state.rsvp_id, state.category, state.description, state.selection.ids,
            )
            return self._confirm(state, dish.description)
        # Stray input while the keyboard is open; keep waiting for a toggle or Done.
        if isinstance(inbound, Selection):
            return Turn(state, toast="Pick an option or press Done.")
        return Turn(state, [Reply("Pick the options above, then press Done.")])

    def _confirm(self, state: RsvpState, dish: Optional[str] = None) -> Turn:
        answer = "Yes" if state.status == RsvpStatus.going else "Maybe"
        text = (
            f"You're all set for <b>{escape(state.event_title)}</b>!\n\n"
            f"Status: {answer}{guest_suffix(state.guest_count)}"
        )
        if dish:
            text += f"\nBringing: {escape(dish)}"
        logger.info("RSVP dialogue completed for event %s by user %s", state.event_id, state.user_id)
        return Turn(None, [Reply(text)], done=True, outcome=COMPLETED)
