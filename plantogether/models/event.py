"""Event and RSVP models for planTogether."""

from datetime import date, datetime, time
from enum import Enum
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from plantogether.models.recurrence import validation_messages


class EventStatus(str, Enum):
    """Event status enumeration."""
    PLANNED = "planned"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class RsvpStatus(str, Enum):
    """Invitee response. Every invite starts as pending."""
    PENDING = "pending"
    GOING = "going"
    MAYBE = "maybe"
    DECLINED = "declined"


# Statuses an invitee may answer with
RSVP_RESPONSES = frozenset({RsvpStatus.GOING, RsvpStatus.MAYBE, RsvpStatus.DECLINED})

# Fields the creator may change after the event exists
MUTABLE_EVENT_FIELDS = frozenset(
    {"title", "description", "event_date", "start_time", "end_time", "location_name", "status"}
)

TITLE_MAX_LENGTH = 200
LOCATION_MAX_LENGTH = 200


class InvalidEvent(ValueError):
    """Event fields that violate the event invariants."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "invalid event")


class Event(BaseModel):
    """A planned get-together on one date.

    Visible to its creator, its invitees, and members of the circles it is
    shared with.
    """

    id: str = Field(..., description="Unique event identifier (UUID v4)")
    creator_id: str = Field(..., description="User who created the event")

    title: str = Field(..., max_length=TITLE_MAX_LENGTH)
    description: Optional[str] = None

    event_date: date
    start_time: time
    end_time: time

    location_name: Optional[str] = Field(None, max_length=LOCATION_MAX_LENGTH)
    status: EventStatus = EventStatus.PLANNED

    created_at: datetime
    updated_at: datetime

    @field_validator("title")
    @classmethod
    def _title_required(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v

    @field_validator("description", "location_name")
    @classmethod
    def _strip_optional(cls, v):
        if v is None:
            return None
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def _check_time_range(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


def parse_event(data: Mapping[str, Any]) -> Event:
    """Build an Event, raising InvalidEvent with one message per violation."""
    try:
        return Event.model_validate(dict(data))
    except ValidationError as e:
        raise InvalidEvent(validation_messages(e)) from e


class EventInvite(BaseModel):
    id: str
    event_id: str
    user_id: str
    rsvp_status: RsvpStatus = RsvpStatus.PENDING
    invited_at: datetime
    responded_at: Optional[datetime] = None


class EventSummary(BaseModel):
    """An event as listed for one user, with RSVP tallies.

    going_count includes the creator.
    """

    event: Event
    is_creator: bool
    my_rsvp: Optional[RsvpStatus] = None
    going_count: int = Field(1, ge=1)
    maybe_count: int = Field(0, ge=0)
    declined_count: int = Field(0, ge=0)
    total_invited: int = Field(0, ge=0)


class EventDetails(BaseModel):
    event: Event
    invites: List[EventInvite] = Field(default_factory=list)
    circle_ids: List[str] = Field(default_factory=list)
    is_creator: bool = False
