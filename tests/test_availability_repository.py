"""Tests for AvailabilityRepository."""

import pytest
from datetime import date, time

from plantogether.database.models import AvailabilitySlotDB
from plantogether.models.recurrence import AvailabilityStatus, InvalidRule, RecurrenceKind


class TestAvailabilityRepository:
    """Slots round-trip through the database as RecurrenceRule values."""

    def test_create_and_get(self, availability_repository, test_user_id, make_rule):
        rule = make_rule(
            kind=RecurrenceKind.WEEKLY,
            interval=2,
            anchor_weekday=3,
            start_date=date(2024, 1, 3),
            end_date=date(2024, 6, 30),
            notes="board games",
        )
        created = availability_repository.create(test_user_id, rule)

        assert created.user_id == test_user_id
        assert created.rule == rule

        fetched = availability_repository.get(test_user_id, created.id)
        assert fetched is not None
        assert fetched.rule == rule

    def test_create_with_explicit_id(self, availability_repository, test_user_id, make_rule):
        created = availability_repository.create(test_user_id, make_rule(), slot_id="slot-1")
        assert created.id == "slot-1"

    def test_get_is_scoped_to_owner(self, availability_repository, test_user_id, friend_user_id, make_rule):
        created = availability_repository.create(test_user_id, make_rule())
        assert availability_repository.get(friend_user_id, created.id) is None
        assert availability_repository.get(test_user_id, "missing") is None

    def test_list_for_user_ordered(self, availability_repository, test_user_id, make_rule):
        later = availability_repository.create(test_user_id, make_rule(start_date=date(2024, 2, 1)))
        afternoon = availability_repository.create(
            test_user_id, make_rule(start_date=date(2024, 1, 1), start_time=time(13, 0), end_time=time(15, 0))
        )
        morning = availability_repository.create(
            test_user_id, make_rule(start_date=date(2024, 1, 1), start_time=time(8, 0), end_time=time(9, 0))
        )

        ids = [s.id for s in availability_repository.list_for_user(test_user_id)]
        assert ids == [morning.id, afternoon.id, later.id]

    def test_list_for_users_filters_status(
        self, availability_repository, test_user_id, friend_user_id, make_rule
    ):
        availability_repository.create(test_user_id, make_rule(status=AvailabilityStatus.FREE))
        availability_repository.create(friend_user_id, make_rule(status=AvailabilityStatus.BUSY))
        availability_repository.create(friend_user_id, make_rule(status=AvailabilityStatus.FREE))

        all_slots = availability_repository.list_for_users([test_user_id, friend_user_id, test_user_id])
        assert len(all_slots) == 3

        free = availability_repository.list_for_users(
            [test_user_id, friend_user_id], statuses=[AvailabilityStatus.FREE]
        )
        assert len(free) == 2
        assert all(s.rule.status == AvailabilityStatus.FREE for s in free)

        assert availability_repository.list_for_users([]) == []

    def test_update_mutable_fields(self, availability_repository, test_user_id, make_rule):
        created = availability_repository.create(test_user_id, make_rule(kind=RecurrenceKind.DAILY))
        updated = availability_repository.update(
            test_user_id,
            created.id,
            interval=3,
            end_date=date(2024, 3, 1),
            status=AvailabilityStatus.MAYBE,
        )
        assert updated is not None
        assert updated.rule.interval == 3
        assert updated.rule.end_date == date(2024, 3, 1)
        assert updated.rule.status == AvailabilityStatus.MAYBE
        assert updated.rule.kind == RecurrenceKind.DAILY

        # Persisted
        assert availability_repository.get(test_user_id, created.id).rule.interval == 3

    def test_update_requires_changes(self, availability_repository, test_user_id, make_rule):
        created = availability_repository.create(test_user_id, make_rule())
        with pytest.raises(InvalidRule) as exc_info:
            availability_repository.update(test_user_id, created.id)
        assert "no updates provided" in str(exc_info.value)

    def test_update_rejects_identity_fields(self, availability_repository, test_user_id, make_rule):
        created = availability_repository.create(test_user_id, make_rule())
        with pytest.raises(InvalidRule):
            availability_repository.update(test_user_id, created.id, kind=RecurrenceKind.DAILY)
        assert availability_repository.get(test_user_id, created.id).rule.kind == RecurrenceKind.ONCE

    def test_update_rejects_invalid_result(self, availability_repository, test_user_id, make_rule):
        created = availability_repository.create(test_user_id, make_rule())
        with pytest.raises(InvalidRule):
            availability_repository.update(test_user_id, created.id, end_time=time(8, 0))

    def test_update_missing_or_foreign_slot(
        self, availability_repository, test_user_id, friend_user_id, make_rule
    ):
        created = availability_repository.create(test_user_id, make_rule())
        assert availability_repository.update(friend_user_id, created.id, notes="x") is None
        assert availability_repository.update(test_user_id, "missing", notes="x") is None

    def test_delete(self, availability_repository, test_user_id, friend_user_id, make_rule):
        created = availability_repository.create(test_user_id, make_rule())
        assert availability_repository.delete(friend_user_id, created.id) is False
        assert availability_repository.delete(test_user_id, created.id) is True
        assert availability_repository.get(test_user_id, created.id) is None
        assert availability_repository.delete(test_user_id, created.id) is False

    def test_corrupt_row_raises_invalid_rule(self, db_session, availability_repository, test_user_id, make_rule):
        created = availability_repository.create(test_user_id, make_rule(kind=RecurrenceKind.DAILY))
        row = db_session.query(AvailabilitySlotDB).filter(AvailabilitySlotDB.id == created.id).first()
        # Weekly without an anchor passes the table checks but not the rule invariants.
        row.recurrence_type = RecurrenceKind.WEEKLY.value
        db_session.commit()

        with pytest.raises(InvalidRule):
            availability_repository.get(test_user_id, created.id)
