"""Constants for planTogether.

This module centralizes calendar constants and default values used throughout the application.
"""


# Weekday names indexed by anchor_weekday (Sunday=0)
WEEKDAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)

DAYS_PER_WEEK = 7
MONTHS_PER_YEAR = 12

# Calendar views cover days to a few months, never multi-year spans
DEFAULT_MAX_RANGE_DAYS = 93
