"""Availability slot models for planTogether."""

from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, Field

from plantogether.models.recurrence import AvailabilityStatus, RecurrenceRule


class AvailabilitySlot(BaseModel):
    """A stored recurrence rule owned by one user."""

    id: str = Field(..., description="Unique slot identifier (UUID v4)")
    user_id: str = Field(..., description="User ID who owns this slot")
    rule: RecurrenceRule = Field(..., description="When the slot applies")
    created_at: datetime = Field(..., description="Slot creation timestamp")
    updated_at: datetime = Field(..., description="Slot last update timestamp")


class TimeWindow(BaseModel):
    """Wall-clock window within a single day (end is exclusive)."""

    start: time
    end: time


class OccurrenceEntry(BaseModel):
    """One slot active on one calendar day, as shown in a calendar view."""

    day: date
    slot_id: str
    user_id: str
    start_time: time
    end_time: time
    status: AvailabilityStatus
    notes: Optional[str] = None
