"""Capacity accounting for capped events.

Only ``going`` RSVPs occupy spots, each worth 1 + its guest count. A user
who already holds a going RSVP is credited their current spots before the
projection, so re-submitting never counts them twice.
"""
from dataclasses import dataclass
from typing import Iterable, Optional

from potluck.models.rsvp import Rsvp, RsvpStatus


@dataclass(frozen=True)
class CapacityCheck:
    max_attendees: Optional[int]
    current_count: int
    credit: int
    projected: int

    @property
    def exceeded(self) -> bool:
        return self.max_attendees is not None and self.projected > self.max_attendees

    @property
    def guest_slots_left(self) -> int:
        """Guests the candidate could still bring on top of themselves."""
        if self.max_attendees is None:
            return 0
        return max(0, self.max_attendees - (self.current_count - self.credit) - 1)

    @property
    def room_for_self(self) -> bool:
        """Whether the candidate alone, without guests, would still fit."""
        if self.max_attendees is None:
            return True
        return self.current_count - self.credit + 1 <= self.max_attendees


def current_count(rsvps: Iterable[Rsvp]) -> int:
    return sum(1 + r.guest_count for r in rsvps if r.status == RsvpStatus.going)


def self_credit(existing: Optional[Rsvp]) -> int:
    if existing is not None and existing.status == RsvpStatus.going:
        return 1 + existing.guest_count
    return 0


def check_capacity(
    max_attendees: Optional[int],
    count: int,
    existing: Optional[Rsvp],
    candidate_guest_count: int,
) -> CapacityCheck:
    """Project the occupancy if the candidate's going RSVP were written."""
    credit = self_credit(existing)
    return CapacityCheck(
        max_attendees=max_attendees,
        current_count=count,
        credit=credit,
        projected=count - credit + 1 + candidate_guest_count,
    )


def would_exceed(
    max_attendees: Optional[int],
    count: int,
    existing: Optional[Rsvp],
    candidate_guest_count: int,
) -> bool:
    return check_capacity(max_attendees, count, existing, candidate_guest_count).exceeded


def is_full(max_attendees: Optional[int], count: int) -> bool:
    """Display-only flag; being full never blocks the status question."""
    return max_attendees is not None and count >= max_attendees
