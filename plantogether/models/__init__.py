"""Data models for planTogether."""

from plantogether.models.recurrence import (
    RecurrenceRule,
    RecurrenceKind,
    AvailabilityStatus,
    InvalidRule,
    parse_rule,
)
from plantogether.models.availability import AvailabilitySlot, OccurrenceEntry, TimeWindow
from plantogether.models.user import User
from plantogether.models.friendship import Friendship, FriendshipStatus
from plantogether.models.circle import Circle
from plantogether.models.event import (
    Event,
    EventDetails,
    EventInvite,
    EventStatus,
    EventSummary,
    InvalidEvent,
    RsvpStatus,
)

__all__ = [
    "RecurrenceRule",
    "RecurrenceKind",
    "AvailabilityStatus",
    "InvalidRule",
    "parse_rule",
    "AvailabilitySlot",
    "OccurrenceEntry",
    "TimeWindow",
    "User",
    "Friendship",
    "FriendshipStatus",
    "Circle",
    "Event",
    "EventDetails",
    "EventInvite",
    "EventStatus",
    "EventSummary",
    "InvalidEvent",
    "RsvpStatus",
]
