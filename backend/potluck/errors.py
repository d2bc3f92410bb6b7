"""Domain errors raised by the services and recovered by the dialogues.

Every error carries ``user_message``: the text sent to the chat before the
dialogue terminates or re-prompts.
"""
from typing import Optional


class PotluckError(Exception):
    """Base class for recoverable domain failures."""

    default_message = "Something went wrong."

    def __init__(self, user_message: Optional[str] = None):
        self.user_message = user_message or self.default_message
        super().__init__(self.user_message)


class InvalidLink(PotluckError):
    """Deep-link payload or button data is missing its event id or token."""

    default_message = "Invalid link."


class NotFound(PotluckError):
    """No event matches the (id, token) pair."""

    default_message = "Event not found."


class EventClosed(PotluckError):
    """The event exists but no longer accepts RSVPs."""

    default_message = "This event is no longer accepting RSVPs."


class CapacityExceeded(PotluckError):
    """A going RSVP would push the event over its attendee cap."""

    default_message = "This event is full."

    def __init__(self, check, user_message: Optional[str] = None):
        self.check = check
        super().__init__(user_message)


class ValidationFailure(PotluckError):
    """User input could not be interpreted (dates, guest numbers)."""

    default_message = "I couldn't understand that."


class Forbidden(PotluckError):
    """Only the event creator may manage the event."""

    default_message = "Only the organizer can edit this event."
