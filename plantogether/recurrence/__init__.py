"""Recurrence engine for planTogether."""

from plantogether.recurrence.matcher import matches, as_calendar_date, sunday_based_weekday
from plantogether.recurrence.expand import occurrences, daterange
from plantogether.recurrence.describe import describe_rule

__all__ = [
    "matches",
    "as_calendar_date",
    "sunday_based_weekday",
    "occurrences",
    "daterange",
    "describe_rule",
]
