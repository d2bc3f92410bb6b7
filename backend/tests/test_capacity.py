"""Tests for capacity accounting."""
from types import SimpleNamespace

from potluck.models.rsvp import RsvpStatus
from potluck.services.capacity import check_capacity, current_count, is_full, self_credit, would_exceed


def _rsvp(status, guests=0):
    return SimpleNamespace(status=status, guest_count=guests)


class TestCurrentCount:
    def test_counts_going_with_guests(self):
        rsvps = [
            _rsvp(RsvpStatus.going, 2),
            _rsvp(RsvpStatus.going),
            _rsvp(RsvpStatus.maybe, 3),
            _rsvp(RsvpStatus.declined),
        ]
        assert current_count(rsvps) == 4

    def test_empty(self):
        assert current_count([]) == 0


class TestWouldExceed:
    """projected = count - credit + 1 + guests; exceeds when > max."""

    def test_unlimited_never_exceeds(self):
        assert would_exceed(None, 500, None, 20) is False

    def test_rejects_over_cap(self):
        check = check_capacity(2, 1, None, 2)
        assert check.projected == 4
        assert check.exceeded
        assert check.guest_slots_left == 0

    def test_exact_fit_passes(self):
        assert would_exceed(5, 3, None, 1) is False

    def test_self_credit_at_full_capacity(self):
        existing = _rsvp(RsvpStatus.going, 1)
        assert self_credit(existing) == 2
        check = check_capacity(2, 2, existing, 0)
        assert check.projected == 1
        assert not check.exceeded

    def test_maybe_existing_earns_no_credit(self):
        assert self_credit(_rsvp(RsvpStatus.maybe, 3)) == 0
        assert self_credit(None) == 0

    def test_guest_slots_left(self):
        check = check_capacity(10, 6, None, 5)
        assert check.exceeded
        assert check.guest_slots_left == 3
        assert check.room_for_self

    def test_no_room_for_self(self):
        check = check_capacity(3, 3, None, 0)
        assert check.exceeded
        assert not check.room_for_self
        assert check.guest_slots_left == 0


class TestIsFull:
    def test_display_flag(self):
        assert is_full(2, 2)
        assert not is_full(2, 1)
        assert not is_full(None, 100)
