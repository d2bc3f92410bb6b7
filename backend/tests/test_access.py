"""Tests for share-link parsing and the authorization gate."""
import pytest

from potluck.errors import EventClosed, InvalidLink, NotFound
from potluck.models.event import EventStatus
from potluck.services import access, event_service
from tests.conftest import CREATOR, create_test_event


class TestParseLink:
    """``<prefix>_<eventId>_<token>``, split on the last underscore."""

    def test_parses_id_and_token(self):
        link = access.parse_link("rsvp_abc-123_f00dcafe1234", "rsvp")
        assert link.event_id == "abc-123"
        assert link.token == "f00dcafe1234"

    def test_event_id_may_contain_underscores(self):
        link = access.parse_link("details_a_b_c_f00d", "details")
        assert link.event_id == "a_b_c"
        assert link.token == "f00d"

    @pytest.mark.parametrize("payload", [
        "rsvp_onlyonepart",
        "rsvp__token",
        "rsvp_event_",
        "rsvp_",
        "",
        "details_abc_123",
        "create",
    ])
    def test_malformed_payloads(self, payload):
        with pytest.raises(InvalidLink):
            access.parse_link(payload, "rsvp")


class TestAuthorize:
    """Gate lookups."""

    def test_active_event_passes(self, db):
        event = create_test_event(db)
        assert access.authorize(db, event.id, event.share_token).id == event.id

    def test_wrong_token_not_found(self, db):
        event = create_test_event(db)
        with pytest.raises(NotFound):
            access.authorize(db, event.id, "ffffffffffff")

    def test_closed_event(self, db):
        event = create_test_event(db)
        event_service.set_event_status(db, event.id, CREATOR.user_id, EventStatus.completed)
        with pytest.raises(EventClosed):
            access.authorize(db, event.id, event.share_token)

    def test_open_link_round_trip(self, db):
        event = create_test_event(db)
        payload = access.share_payload("rsvp", event)
        assert access.open_link(db, payload, "rsvp").id == event.id

    def test_open_link_malformed_never_queries(self):
        class ExplodingSession:
            def query(self, *args):
                raise AssertionError("should not query")

        with pytest.raises(InvalidLink):
            access.open_link(ExplodingSession(), "rsvp_nounderscore", "rsvp")

    def test_distinct_user_messages(self):
        assert InvalidLink().user_message != NotFound().user_message
