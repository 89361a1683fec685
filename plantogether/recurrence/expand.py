"""Enumerate the dates on which a recurrence rule is active."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterator

from plantogether.models.recurrence import RecurrenceRule
from plantogether.recurrence.matcher import DateLike, as_calendar_date, matches


def daterange(start: date, end_inclusive: date) -> Iterator[date]:
    cur = start
    while cur <= end_inclusive:
        yield cur
        cur = cur + timedelta(days=1)


def occurrences(rule: RecurrenceRule, range_start: DateLike, range_end: DateLike) -> Iterator[date]:
    """Yield matching dates in [range_start, range_end], ascending.

    This is a day-by-day scan through matches(). Ranges here are calendar
    views (weeks to a few months), so callers bound the range themselves.
    An inverted range yields nothing.
    """
    first = max(as_calendar_date(range_start), rule.start_date)
    last = as_calendar_date(range_end)
    if rule.end_date is not None and rule.end_date < last:
        last = rule.end_date

    for day in daterange(first, last):
        if matches(rule, day):
            yield day
