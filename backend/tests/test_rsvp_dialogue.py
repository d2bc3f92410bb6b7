"""Tests for the RSVP dialogue and its four terminal outcomes."""
import pytest

from potluck.dialogue.callbacks import AllergenDone, AllergenToggle, CategoryChoice, GuestsChoice, StatusChoice
from potluck.dialogue.messages import Selection, TextReply
from potluck.dialogue.rsvp import MAX_GUESTS, RsvpDialogue, RsvpStep, parse_guest_number
from potluck.models.dish import DishCategory
from potluck.models.event import EventStatus
from potluck.models.rsvp import RsvpStatus
from potluck.services import access, event_service, rsvp_service
from tests.conftest import CREATOR, GUEST, OTHER, create_test_event, create_test_user

GOING = Selection(StatusChoice(RsvpStatus.going))
MAYBE = Selection(StatusChoice(RsvpStatus.maybe))
DECLINED = Selection(StatusChoice(RsvpStatus.declined))


def _link(event):
    return access.share_payload("rsvp", event)


def _run(dialogue, payload, *inbounds, sender=GUEST):
    turn = dialogue.start(sender, payload)
    for inbound in inbounds:
        assert not turn.done
        turn = dialogue.handle(turn.state, inbound)
    return turn


class TestEarlyExits:
    """Bad link, unknown event, closed event, missing user."""

    def test_malformed_link(self, db):
        turn = RsvpDialogue(db).start(GUEST, "rsvp_garbage")
        assert turn.done
        assert turn.outcome == "aborted"
        assert turn.replies[0].text == "Invalid link."

    def test_wrong_token(self, db):
        event = create_test_event(db)
        turn = RsvpDialogue(db).start(GUEST, f"rsvp_{event.id}_000000000000")
        assert turn.outcome == "aborted"
        assert turn.replies[0].text == "Event not found."

    def test_closed_event(self, db):
        event = create_test_event(db)
        event_service.set_event_status(db, event.id, CREATOR.user_id, EventStatus.cancelled)
        turn = RsvpDialogue(db).start(GUEST, _link(event))
        assert turn.outcome == "aborted"
        assert "no longer accepting" in turn.replies[0].text

    def test_missing_sender(self, db):
        event = create_test_event(db)
        turn = RsvpDialogue(db).start(None, _link(event))
        assert turn.outcome == "aborted"

    def test_event_closed_mid_dialogue(self, db):
        event = create_test_event(db)
        dialogue = RsvpDialogue(db)
        turn = _run(dialogue, _link(event), GOING)
        event_service.set_event_status(db, event.id, CREATOR.user_id, EventStatus.completed)
        turn = dialogue.handle(turn.state, Selection(GuestsChoice(0)))
        assert turn.outcome == "aborted"
        assert rsvp_service.get_rsvp(db, event.id, GUEST.user_id) is None


class TestStatusStep:
    def test_prompt_offers_three_answers(self, db):
        event = create_test_event(db, title="Taco Night")
        turn = RsvpDialogue(db).start(GUEST, _link(event))
        assert turn.state.step == RsvpStep.status
        assert "Taco Night" in turn.replies[0].text
        labels = [b.data for row in turn.replies[0].buttons for b in row]
        assert labels == ["status_going", "status_maybe", "status_declined"]

    def test_full_event_is_flagged_but_open(self, db):
        event = create_test_event(db, max_attendees=1)
        create_test_user(db, OTHER)
        rsvp_service.submit_rsvp(db, event.id, OTHER.user_id, "going")
        turn = RsvpDialogue(db).start(GUEST, _link(event))
        assert not turn.done
        assert "full" in turn.replies[0].text

    def test_wrong_input_reprompts(self, db):
        event = create_test_event(db)
        dialogue = RsvpDialogue(db)
        turn = dialogue.start(GUEST, _link(event))
        again = dialogue.handle(turn.state, TextReply("yes"))
        assert again.state == turn.state
        assert not again.done

    def test_declined_exit(self, db):
        event = create_test_event(db)
        turn = _run(RsvpDialogue(db), _link(event), DECLINED)
        assert turn.outcome == "declined"
        assert turn.replies[0].text == "Got it, maybe next time!"
        rsvp = rsvp_service.get_rsvp(db, event.id, GUEST.user_id)
        assert rsvp.status == RsvpStatus.declined
        assert rsvp.guest_count == 0
        assert rsvp_service.get_dishes_for_rsvp(db, rsvp.id) == []

    def test_declining_after_going_clears_guests(self, db):
        event = create_test_event(db)
        create_test_user(db, GUEST)
        rsvp_service.submit_rsvp(db, event.id, GUEST.user_id, "going", 2)
        _run(RsvpDialogue(db), _link(event), DECLINED)
        rsvp = rsvp_service.get_rsvp(db, event.id, GUEST.user_id)
        assert rsvp.guest_count == 0
        assert rsvp_service.get_attendee_count(db, event.id) == 0


class TestGuestStep:
    def test_guests_skipped_when_not_allowed(self, db):
        event = create_test_event(db, allow_guests=False)
        turn = _run(RsvpDialogue(db), _link(event), GOING)
        assert turn.state.step == RsvpStep.category
        assert rsvp_service.get_rsvp(db, event.id, GUEST.user_id).guest_count == 0

    def test_more_asks_for_number(self, db):
        event = create_test_event(db)
        turn = _run(RsvpDialogue(db), _link(event), GOING, Selection(GuestsChoice(None)))
        assert turn.state.step == RsvpStep.guest_number
        turn = RsvpDialogue(db).handle(turn.state, TextReply("5"))
        assert turn.state.step == RsvpStep.category
        assert rsvp_service.get_rsvp(db, event.id, GUEST.user_id).guest_count == 5

    @pytest.mark.parametrize("text", ["25", "abc", "-3", "²", "１"])
    def test_out_of_range_number_coerced_to_zero(self, db, text):
        event = create_test_event(db)
        turn = _run(RsvpDialogue(db), _link(event), GOING, Selection(GuestsChoice(None)), TextReply(text))
        assert turn.state.step == RsvpStep.category
        assert str(MAX_GUESTS) in turn.replies[0].text
        assert rsvp_service.get_rsvp(db, event.id, GUEST.user_id).guest_count == 0

    def test_parse_guest_number(self):
        assert parse_guest_number(" 20 ") == 20
        assert parse_guest_number("0") == 0
        assert parse_guest_number("21") is None
        assert parse_guest_number("two") is None
        assert parse_guest_number("³") is None


class TestCapacity:
    def test_capacity_rejected_exit(self, db):
        event = create_test_event(db, max_attendees=2)
        create_test_user(db, OTHER)
        rsvp_service.submit_rsvp(db, event.id, OTHER.user_id, "going", 0)

        turn = _run(RsvpDialogue(db), _link(event), GOING, Selection(GuestsChoice(2)))
        assert turn.done
        assert turn.outcome == "capacity_rejected"
        assert "Maybe" in turn.replies[0].text
        assert rsvp_service.get_rsvp(db, event.id, GUEST.user_id) is None
        assert rsvp_service.get_attendee_count(db, event.id) == 1

    def test_rejection_reports_guest_slots(self, db):
        event = create_test_event(db, max_attendees=4)
        create_test_user(db, OTHER)
        rsvp_service.submit_rsvp(db, event.id, OTHER.user_id, "going", 1)
        turn = _run(
            RsvpDialogue(db), _link(event), GOING,
            Selection(GuestsChoice(None)), TextReply("3"),
        )
        assert turn.outcome == "capacity_rejected"
        assert "Only 1 guest slot left" in turn.replies[-1].text

    def test_maybe_skips_capacity(self, db):
        event = create_test_event(db, max_attendees=1)
        create_test_user(db, OTHER)
        rsvp_service.submit_rsvp(db, event.id, OTHER.user_id, "going", 0)
        turn = _run(RsvpDialogue(db), _link(event), MAYBE, Selection(GuestsChoice(2)))
        assert turn.state.step == RsvpStep.category

    def test_resubmission_at_capacity_passes(self, db):
        event = create_test_event(db, max_attendees=1)
        create_test_user(db, GUEST)
        rsvp_service.submit_rsvp(db, event.id, GUEST.user_id, "going", 0)
        turn = _run(RsvpDialogue(db), _link(event), GOING, Selection(GuestsChoice(0)))
        assert turn.state.step == RsvpStep.category


class TestDishSteps:
    def test_completed_with_dish_and_allergens(self, db):
        event = create_test_event(db, title="Taco Night")
        dialogue = RsvpDialogue(db)
        turn = _run(
            dialogue, _link(event), GOING, Selection(GuestsChoice(1)),
            Selection(CategoryChoice(DishCategory.main)), TextReply("Lasagna"),
        )
        assert turn.state.step == RsvpStep.allergens

        turn = dialogue.handle(turn.state, Selection(AllergenToggle(2)))
        assert turn.toast == "Added!"
        assert turn.replies == []
        turn = dialogue.handle(turn.state, Selection(AllergenToggle(4)))
        turn = dialogue.handle(turn.state, Selection(AllergenToggle(4)))
        assert turn.toast == "Removed!"
        turn = dialogue.handle(turn.state, Selection(AllergenDone()))

        assert turn.done
        assert turn.outcome == "completed"
        text = turn.replies[0].text
        assert "You're all set for <b>Taco Night</b>!" in text
        assert "Status: Yes (+1 guest)" in text
        assert "Lasagna" in text

        (dish,) = rsvp_service.get_dishes_for_event(db, event.id)
        assert dish.category == DishCategory.main
        assert [a.name for a in dish.allergens] == ["vegetarian"]

    def test_skip_dish(self, db):
        event = create_test_event(db)
        turn = _run(RsvpDialogue(db), _link(event), MAYBE, Selection(GuestsChoice(0)), Selection(CategoryChoice(None)))
        assert turn.outcome == "completed"
        assert "Status: Maybe" in turn.replies[0].text
        assert rsvp_service.get_dishes_for_event(db, event.id) == []

    def test_allergen_keyboard_layout(self, db):
        event = create_test_event(db)
        turn = _run(
            RsvpDialogue(db), _link(event), GOING, Selection(GuestsChoice(0)),
            Selection(CategoryChoice(DishCategory.side)), TextReply("Salad"),
        )
        rows = turn.replies[0].buttons
        assert [len(r) for r in rows[:3]] == [1, 1, 1]
        assert [b.label for r in rows[:3] for b in r] == ["Vegan", "Vegetarian", "Gluten-free"]
        assert all(len(r) <= 2 for r in rows[3:-1])
        assert sum(len(r) for r in rows[3:-1]) == 9
        assert rows[-1][0].data == "allerg_done"

    def test_stray_input_during_allergens(self, db):
        event = create_test_event(db)
        dialogue = RsvpDialogue(db)
        turn = _run(
            dialogue, _link(event), GOING, Selection(GuestsChoice(0)),
            Selection(CategoryChoice(DishCategory.drink)), TextReply("Lemonade"),
        )
        state = turn.state
        turn = dialogue.handle(state, Selection(AllergenToggle(999)))
        assert turn.state == state
        assert turn.toast
        turn = dialogue.handle(state, TextReply("done"))
        assert turn.state == state
        assert turn.replies

    def test_resubmission_keeps_single_rsvp(self, db):
        event = create_test_event(db)
        _run(RsvpDialogue(db), _link(event), GOING, Selection(GuestsChoice(2)), Selection(CategoryChoice(None)))
        _run(RsvpDialogue(db), _link(event), GOING, Selection(GuestsChoice(0)), Selection(CategoryChoice(None)))
        rsvps = rsvp_service.get_rsvps_for_event(db, event.id)
        assert len(rsvps) == 1
        assert rsvps[0].guest_count == 0
