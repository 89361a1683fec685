"""Tests for human-readable rule descriptions."""

import pytest
from datetime import date

from plantogether.models.recurrence import RecurrenceKind
from plantogether.recurrence.describe import describe_rule


@pytest.mark.parametrize("kind,interval,anchor,expected", [
    (RecurrenceKind.ONCE, 1, None, "One time"),
    (RecurrenceKind.ONCE, 4, None, "One time"),
    (RecurrenceKind.DAILY, 1, None, "Every day"),
    (RecurrenceKind.DAILY, 3, None, "Every 3 days"),
    (RecurrenceKind.WEEKLY, 1, 1, "Every Monday"),
    (RecurrenceKind.WEEKLY, 2, 0, "Every 2 weeks on Sunday"),
    (RecurrenceKind.MONTHLY, 1, None, "Every month"),
    (RecurrenceKind.MONTHLY, 6, None, "Every 6 months"),
    (RecurrenceKind.YEARLY, 1, None, "Every year"),
    (RecurrenceKind.YEARLY, 2, None, "Every 2 years"),
])
def test_describe_rule(make_rule, kind, interval, anchor, expected):
    rule = make_rule(kind=kind, interval=interval, anchor_weekday=anchor, start_date=date(2024, 1, 1))
    assert describe_rule(rule) == expected
