"""Decide whether a recurrence rule is active on a calendar date."""

from __future__ import annotations

from datetime import date, datetime
from typing import Union

from plantogether.models.constants import DAYS_PER_WEEK, MONTHS_PER_YEAR
from plantogether.models.recurrence import RecurrenceKind, RecurrenceRule


DateLike = Union[date, datetime]


def as_calendar_date(value: DateLike) -> date:
    """Drop any time-of-day part. No time zone conversion is applied."""
    # datetime is a subclass of date, so check it first.
    if isinstance(value, datetime):
        return value.date()
    return value


def sunday_based_weekday(d: date) -> int:
    # Python weekday: Monday=0 ... Sunday=6; rules use Sunday=0 ... Saturday=6
    return (d.weekday() + 1) % DAYS_PER_WEEK


def matches(rule: RecurrenceRule, target: DateLike) -> bool:
    """Return True if the rule is active on the target date.

    Pure and side-effect free; a valid rule never raises here.
    """
    day = as_calendar_date(target)
    start = rule.start_date

    # Respect start/end bounds
    if day < start:
        return False
    if rule.end_date is not None and day > rule.end_date:
        return False

    if rule.kind == RecurrenceKind.ONCE:
        return day == start

    interval = rule.effective_interval
    delta = (day - start).days

    if rule.kind == RecurrenceKind.DAILY:
        return delta >= 0 and (delta % interval == 0)

    if rule.kind == RecurrenceKind.WEEKLY:
        if sunday_based_weekday(day) != rule.anchor_weekday:
            return False
        week_delta = delta // DAYS_PER_WEEK
        return week_delta >= 0 and (week_delta % interval == 0)

    if rule.kind == RecurrenceKind.MONTHLY:
        # Same day-of-month as start_date; no clamping for short months.
        if day.day != start.day:
            return False
        months = (day.year - start.year) * MONTHS_PER_YEAR + (day.month - start.month)
        return months >= 0 and (months % interval == 0)

    if rule.kind == RecurrenceKind.YEARLY:
        # Feb 29 anchors only fire in leap years.
        if (day.month, day.day) != (start.month, start.day):
            return False
        years = day.year - start.year
        return years >= 0 and (years % interval == 0)

    return False
