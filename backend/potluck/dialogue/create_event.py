"""Event creation dialogue.

Linear: title → description → location → date → max attendees → food mode,
then a single commit. Nothing is written before the last answer arrives,
so an abandoned dialogue leaves no event behind.
"""
import enum
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

import pytz
from sqlalchemy.orm import Session

from potluck.dialogue.callbacks import FoodChoice, MaxChoice, SkipField
from potluck.dialogue.messages import (
    Button, Inbound, LocationReply, Reply, Selection, Sender, TextReply, Turn, is_skip, keyboard,
)
from potluck.models.event import FoodMode
from potluck.render import event_summary, event_summary_buttons
from potluck.schemas.event import EventCreate
from potluck.services import event_service, user_service

logger = logging.getLogger(__name__)

CREATED = "created"
ABORTED = "aborted"

MAX_TITLE = 255
MAX_LOCATION = 500

DATE_FORMATS = (
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%d.%m.%Y %H:%M",
    "%d.%m.%Y",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y",
)


class CreateStep(str, enum.Enum):
    title = "title"
    description = "description"
    location = "location"
    date = "date"
    max_attendees = "max_attendees"
    food_mode = "food_mode"


@dataclass(frozen=True)
class CreateEventState:
    step: CreateStep
    creator_id: int
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    event_date: Optional[datetime] = None
    max_attendees: Optional[int] = None


def parse_event_date(text: str, tz_name: str = "UTC") -> Optional[datetime]:
    """Parse a typed date; naive values are read in ``tz_name``. Result is UTC."""
    text = text.strip()
    parsed = None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        for fmt in DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = pytz.timezone(tz_name).localize(parsed)
    return parsed.astimezone(pytz.utc)


PROMPTS = {
    CreateStep.title: Reply("Let's create a new event! What's the name of your potluck?"),
    CreateStep.description: Reply(
        "Add a description (or send /skip):",
        keyboard([Button("Skip", data=SkipField("desc").encode())]),
    ),
    CreateStep.location: Reply(
        "Where is it? (Send an address or share a location, or /skip)",
        keyboard([Button("Skip", data=SkipField("location").encode())]),
    ),
    CreateStep.date: Reply(
        "When is it? (e.g. '2026-01-15 18:00' or '15.01.2026 18:00', or /skip)",
        keyboard([Button("Skip", data=SkipField("date").encode())]),
    ),
    CreateStep.max_attendees: Reply(
        "Max attendees?",
        keyboard(
            [Button(str(n), data=MaxChoice(n).encode()) for n in (10, 20, 50)],
            [Button("Unlimited", data=MaxChoice(None).encode())],
        ),
    ),
    CreateStep.food_mode: Reply(
        "How should food be organized?\n"
        "- <b>Categories</b>: People pick a category (Main, Side, etc.)\n"
        "- <b>Slots</b>: You define exactly what's needed",
        keyboard([
            Button("Categories (flexible)", data=FoodChoice(FoodMode.categories).encode()),
            Button("Slots (strict)", data=FoodChoice(FoodMode.slots).encode()),
        ]),
    ),
}

HINTS = {
    CreateStep.title: "Please send the event name as a text message.",
    CreateStep.description: "Please send the description as text, or skip.",
    CreateStep.location: "Please send an address, share a location, or skip.",
    CreateStep.date: "Please type the date, or skip.",
    CreateStep.max_attendees: "Please pick one of the options.",
}


class CreateEventDialogue:
    """Collects the fields of a new event and commits it at the end."""

    kind = "create"

    def __init__(self, db: Session, tz_name: str = "UTC"):
        self.db = db
        self.tz_name = tz_name
        self._handlers = {
            CreateStep.title: self._on_title,
            CreateStep.description: self._on_description,
            CreateStep.location: self._on_location,
            CreateStep.date: self._on_date,
            CreateStep.max_attendees: self._on_max_attendees,
            CreateStep.food_mode: self._on_food_mode,
        }

    def start(self, sender: Optional[Sender], payload: Optional[str] = None) -> Turn:
        if sender is None:
            return Turn(None, [Reply("Could not identify user.")], done=True, outcome=ABORTED)
        user_service.upsert_user(self.db, sender.user_id, sender.username, sender.display_name)
        state = CreateEventState(step=CreateStep.title, creator_id=sender.user_id)
        return Turn(state, [PROMPTS[CreateStep.title]])

    def handle(self, state: CreateEventState, inbound: Inbound) -> Turn:
        return self._handlers[state.step](state, inbound)

    # ── steps ──────────────────────────────────────────────────────
    def _advance(self, state: CreateEventState, step: CreateStep, notes=(), **changes) -> Turn:
        replies = [Reply(note) for note in notes]
        replies.append(PROMPTS[step])
        return Turn(replace(state, step=step, **changes), replies)

    def _reprompt(self, state: CreateEventState, inbound: Inbound) -> Turn:
        logger.warning("Unexpected %s at step %s, re-prompting", type(inbound).__name__, state.step.value)
        return Turn(state, [Reply(HINTS[state.step]), PROMPTS[state.step]])

    def _on_title(self, state, inbound):
        if not isinstance(inbound, TextReply):
            return self._reprompt(state, inbound)
        if len(inbound.text) > MAX_TITLE:
            return Turn(state, [Reply(f"That name is too long (max {MAX_TITLE} characters)."), PROMPTS[state.step]])
        return self._advance(state, CreateStep.description, title=inbound.text)

    def _on_description(self, state, inbound):
        if is_skip(inbound, "desc"):
            return self._advance(state, CreateStep.location)
        if isinstance(inbound, TextReply):
            return self._advance(state, CreateStep.location, description=inbound.text)
        return self._reprompt(state, inbound)

    def _on_location(self, state, inbound):
        if is_skip(inbound, "location"):
            return self._advance(state, CreateStep.date)
        if isinstance(inbound, LocationReply):
            location = f"{inbound.latitude}, {inbound.longitude}"
            return self._advance(state, CreateStep.date, location=location)
        if isinstance(inbound, TextReply):
            if len(inbound.text) > MAX_LOCATION:
                return Turn(state, [Reply(f"That address is too long (max {MAX_LOCATION} characters)."), PROMPTS[state.step]])
            return self._advance(state, CreateStep.date, location=inbound.text)
        return self._reprompt(state, inbound)

    def _on_date(self, state, inbound):
        if is_skip(inbound, "date"):
            return self._advance(state, CreateStep.max_attendees)
        if not isinstance(inbound, TextReply):
            return self._reprompt(state, inbound)
        event_date = parse_event_date(inbound.text, self.tz_name)
        if event_date is None:
            logger.warning("Could not parse event date %r", inbound.text)
            return self._advance(
                state, CreateStep.max_attendees,
                notes=["Couldn't parse that date, skipping for now."],
            )
        return self._advance(state, CreateStep.max_attendees, event_date=event_date)

    def _on_max_attendees(self, state, inbound):
        if isinstance(inbound, Selection) and isinstance(inbound.intent, MaxChoice):
            return self._advance(state, CreateStep.food_mode, max_attendees=inbound.intent.limit)
        return self._reprompt(state, inbound)

    def _on_food_mode(self, state, inbound):
        food_mode = FoodMode.categories
        if isinstance(inbound, Selection) and inbound.intent == FoodChoice(FoodMode.slots):
            food_mode = FoodMode.slots

        event = event_service.create_event(self.db, EventCreate(
            creator_id=state.creator_id,
            title=state.title,
            description=state.description,
            location=state.location,
            event_date=state.event_date,
            max_attendees=state.max_attendees,
            food_mode=food_mode,
        ))
        logger.info("Event creation dialogue finished for user %s: %s", state.creator_id, event.id)
        reply = Reply(event_summary(event, self.tz_name), event_summary_buttons(event))
        return Turn(None, [reply], done=True, outcome=CREATED)
