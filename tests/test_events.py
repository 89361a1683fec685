"""Tests for events, invites, RSVPs and event visibility."""

import pytest
from datetime import date, time

from plantogether.auth.visibility import AccessDenied, can_view_event, event_details_for
from plantogether.database.event_repository import EventError
from plantogether.database.models import EventCircleDB, EventInviteDB
from plantogether.models.event import EventStatus, InvalidEvent, RsvpStatus


@pytest.fixture
def make_event(event_repository, test_user_id):
    """Return a helper that creates an event owned by test_user_id unless told otherwise."""

    def _make(creator_id=None, **overrides):
        fields = {
            "title": "Picnic",
            "event_date": date(2024, 6, 15),
            "start_time": time(12, 0),
            "end_time": time(15, 0),
        }
        fields.update(overrides)
        return event_repository.create(creator_id or test_user_id, **fields)

    return _make


class TestCreateEvent:
    """Creating events with invites and circle links."""

    def test_invites_only_friends(self, event_repository, make_event, make_friends, test_user_id, friend_user_id, stranger_user_id):
        make_friends(test_user_id, friend_user_id)
        event = make_event(invite_user_ids=[friend_user_id, stranger_user_id, test_user_id])

        assert event.status == EventStatus.PLANNED
        invites = event_repository.invites(event.id)
        assert [i.user_id for i in invites] == [friend_user_id]
        assert invites[0].rsvp_status == RsvpStatus.PENDING
        assert invites[0].responded_at is None

    def test_invite_circles_expand_to_members(
        self, event_repository, circle_repository, make_event, make_friends,
        test_user_id, friend_user_id, stranger_user_id,
    ):
        make_friends(test_user_id, friend_user_id)
        make_friends(test_user_id, stranger_user_id)
        circle = circle_repository.create(test_user_id, "Everyone")
        circle_repository.add_member(test_user_id, circle.id, friend_user_id)
        circle_repository.add_member(test_user_id, circle.id, stranger_user_id)

        event = make_event(invite_circle_ids=[circle.id], invite_user_ids=[friend_user_id])
        assert {i.user_id for i in event_repository.invites(event.id)} == {friend_user_id, stranger_user_id}

    def test_only_own_circles_are_linked(self, event_repository, circle_repository, make_event, test_user_id, friend_user_id):
        mine = circle_repository.create(test_user_id, "Mine")
        theirs = circle_repository.create(friend_user_id, "Theirs")

        event = make_event(visible_to_circle_ids=[theirs.id, mine.id, mine.id])
        assert event_repository.linked_circle_ids(event.id) == [mine.id]

    def test_fields_are_cleaned(self, make_event):
        event = make_event(title="  Picnic  ", description="  ", location_name=" Park ")
        assert event.title == "Picnic"
        assert event.description is None
        assert event.location_name == "Park"

    @pytest.mark.parametrize("start,end", [(time(15, 0), time(15, 0)), (time(15, 0), time(12, 0))])
    def test_end_time_must_be_after_start(self, event_repository, make_event, test_user_id, start, end):
        with pytest.raises(InvalidEvent) as exc_info:
            make_event(start_time=start, end_time=end)
        assert "end_time must be after start_time" in str(exc_info.value)
        assert event_repository.list_for_user(test_user_id) == []

    def test_title_required(self, make_event):
        with pytest.raises(InvalidEvent, match="Title is required"):
            make_event(title="   ")


class TestEditEvent:
    def test_creator_updates_fields(self, event_repository, make_event, test_user_id):
        event = make_event()
        updated = event_repository.update(
            test_user_id, event.id, title="Beach day", status="confirmed", end_time=time(18, 0)
        )
        assert updated.title == "Beach day"
        assert updated.status == EventStatus.CONFIRMED
        assert updated.end_time == time(18, 0)
        assert updated.updated_at >= event.updated_at
        assert event_repository.get(event.id).title == "Beach day"

    def test_update_is_revalidated(self, event_repository, make_event, test_user_id):
        event = make_event()
        with pytest.raises(InvalidEvent):
            event_repository.update(test_user_id, event.id, start_time=time(16, 0))
        with pytest.raises(InvalidEvent, match="No updates provided"):
            event_repository.update(test_user_id, event.id)
        with pytest.raises(InvalidEvent, match="unknown field: creator_id"):
            event_repository.update(test_user_id, event.id, creator_id="someone")
        assert event_repository.get(event.id).start_time == time(12, 0)

    def test_only_creator_updates(self, event_repository, make_event, friend_user_id):
        event = make_event()
        assert event_repository.update(friend_user_id, event.id, title="Mine now") is None
        assert event_repository.get(event.id).title == "Picnic"

    def test_set_circles_replaces_links(self, event_repository, circle_repository, make_event, test_user_id, friend_user_id):
        first = circle_repository.create(test_user_id, "First")
        second = circle_repository.create(test_user_id, "Second")
        theirs = circle_repository.create(friend_user_id, "Theirs")
        event = make_event(visible_to_circle_ids=[first.id])

        assert event_repository.set_circles(test_user_id, event.id, [second.id, theirs.id]) == 1
        assert event_repository.linked_circle_ids(event.id) == [second.id]

        with pytest.raises(EventError, match="Only event creator can update visibility"):
            event_repository.set_circles(friend_user_id, event.id, [theirs.id])

    def test_delete_removes_invites_and_links(
        self, db_session, event_repository, circle_repository, make_event, make_friends, test_user_id, friend_user_id
    ):
        make_friends(test_user_id, friend_user_id)
        circle = circle_repository.create(test_user_id, "Linked")
        event = make_event(invite_user_ids=[friend_user_id], visible_to_circle_ids=[circle.id])

        assert event_repository.delete(friend_user_id, event.id) is False
        assert event_repository.delete(test_user_id, event.id) is True
        assert event_repository.get(event.id) is None
        assert db_session.query(EventInviteDB).count() == 0
        assert db_session.query(EventCircleDB).count() == 0


class TestInvitesAndRsvp:
    def test_invite_adds_new_friends_only(
        self, event_repository, make_event, make_friends, test_user_id, friend_user_id, stranger_user_id
    ):
        make_friends(test_user_id, friend_user_id)
        event = make_event()

        assert event_repository.invite(test_user_id, event.id, [friend_user_id, stranger_user_id]) == 1
        # Already invited
        assert event_repository.invite(test_user_id, event.id, [friend_user_id]) == 0
        assert [i.user_id for i in event_repository.invites(event.id)] == [friend_user_id]

        with pytest.raises(EventError, match="Only event creator can invite"):
            event_repository.invite(friend_user_id, event.id, [stranger_user_id])

    def test_rsvp(self, event_repository, make_event, make_friends, test_user_id, friend_user_id, stranger_user_id):
        make_friends(test_user_id, friend_user_id)
        event = make_event(invite_user_ids=[friend_user_id])

        invite = event_repository.rsvp(friend_user_id, event.id, RsvpStatus.GOING)
        assert invite.rsvp_status == RsvpStatus.GOING
        assert invite.responded_at is not None

        assert event_repository.rsvp(friend_user_id, event.id, "declined").rsvp_status == RsvpStatus.DECLINED
        assert event_repository.rsvp(stranger_user_id, event.id, RsvpStatus.MAYBE) is None

    @pytest.mark.parametrize("status", [RsvpStatus.PENDING, "pending", "sometimes"])
    def test_rsvp_rejects_non_answers(self, event_repository, make_event, make_friends, test_user_id, friend_user_id, status):
        make_friends(test_user_id, friend_user_id)
        event = make_event(invite_user_ids=[friend_user_id])
        with pytest.raises(EventError):
            event_repository.rsvp(friend_user_id, event.id, status)
        assert event_repository.invites(event.id)[0].rsvp_status == RsvpStatus.PENDING


class TestEventVisibility:
    """Creator, invitee, or member of a linked circle; nobody else."""

    def test_creator_and_invitee(self, db_session, make_event, make_friends, test_user_id, friend_user_id, stranger_user_id):
        make_friends(test_user_id, friend_user_id)
        event = make_event(invite_user_ids=[friend_user_id])

        assert can_view_event(db_session, test_user_id, event.id) is True
        assert can_view_event(db_session, friend_user_id, event.id) is True
        assert can_view_event(db_session, stranger_user_id, event.id) is False
        assert can_view_event(db_session, test_user_id, "missing") is False

    def test_linked_circle_member(
        self, db_session, event_repository, circle_repository, make_event, make_friends,
        test_user_id, stranger_user_id,
    ):
        make_friends(test_user_id, stranger_user_id)
        circle = circle_repository.create(test_user_id, "Neighbours")
        circle_repository.add_member(test_user_id, circle.id, stranger_user_id)
        event = make_event()

        assert can_view_event(db_session, stranger_user_id, event.id) is False
        event_repository.set_circles(test_user_id, event.id, [circle.id])
        assert can_view_event(db_session, stranger_user_id, event.id) is True

        # Leaving the circle removes access again
        circle_repository.remove_member(test_user_id, circle.id, stranger_user_id)
        assert can_view_event(db_session, stranger_user_id, event.id) is False

    def test_event_details_for(
        self, db_session, circle_repository, make_event, make_friends, test_user_id, friend_user_id, stranger_user_id
    ):
        make_friends(test_user_id, friend_user_id)
        circle = circle_repository.create(test_user_id, "Linked")
        event = make_event(invite_user_ids=[friend_user_id], visible_to_circle_ids=[circle.id])

        details = event_details_for(db_session, friend_user_id, event.id)
        assert details.event.id == event.id
        assert details.is_creator is False
        assert [i.user_id for i in details.invites] == [friend_user_id]
        assert details.circle_ids == [circle.id]
        assert event_details_for(db_session, test_user_id, event.id).is_creator is True

        with pytest.raises(AccessDenied):
            event_details_for(db_session, stranger_user_id, event.id)
        assert event_details_for(db_session, stranger_user_id, "missing") is None


class TestListEvents:
    def test_lists_visible_events_with_tallies(
        self, event_repository, circle_repository, make_event, make_friends,
        test_user_id, friend_user_id, stranger_user_id,
    ):
        make_friends(test_user_id, friend_user_id)
        make_friends(test_user_id, stranger_user_id)
        circle = circle_repository.create(test_user_id, "Crew")
        circle_repository.add_member(test_user_id, circle.id, stranger_user_id)

        later = make_event(title="Later", event_date=date(2024, 7, 1), invite_user_ids=[friend_user_id])
        sooner = make_event(
            title="Sooner",
            event_date=date(2024, 6, 1),
            invite_user_ids=[friend_user_id],
            visible_to_circle_ids=[circle.id],
        )
        event_repository.rsvp(friend_user_id, sooner.id, RsvpStatus.GOING)

        mine = event_repository.list_for_user(test_user_id)
        assert [s.event.id for s in mine] == [sooner.id, later.id]
        assert mine[0].is_creator is True
        assert mine[0].my_rsvp is None
        assert mine[0].going_count == 2
        assert mine[0].total_invited == 1
        assert mine[1].going_count == 1

        theirs = event_repository.list_for_user(friend_user_id)
        assert [s.my_rsvp for s in theirs] == [RsvpStatus.GOING, RsvpStatus.PENDING]
        assert all(s.is_creator is False for s in theirs)

        # Circle member, not invited
        via_circle = event_repository.list_for_user(stranger_user_id)
        assert [s.event.id for s in via_circle] == [sooner.id]
        assert via_circle[0].my_rsvp is None

    def test_filters(self, event_repository, make_event, test_user_id):
        past = make_event(event_date=date(2024, 1, 10))
        future = make_event(event_date=date(2024, 3, 10))
        event_repository.update(test_user_id, future.id, status=EventStatus.CONFIRMED)

        today = date(2024, 2, 1)
        upcoming = event_repository.list_for_user(test_user_id, upcoming=True, today=today)
        assert [s.event.id for s in upcoming] == [future.id]
        earlier = event_repository.list_for_user(test_user_id, upcoming=False, today=today)
        assert [s.event.id for s in earlier] == [past.id]
        confirmed = event_repository.list_for_user(test_user_id, status=EventStatus.CONFIRMED)
        assert [s.event.id for s in confirmed] == [future.id]
