"""SQLAlchemy database models for planTogether."""

from datetime import datetime
import uuid
from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
)

from typing import Union, TypeVar, Type
from plantogether.database.database import Base
from plantogether.models.event import EventStatus, RsvpStatus
from plantogether.models.friendship import FriendshipStatus
from plantogether.models.recurrence import AvailabilityStatus, RecurrenceKind, parse_rule

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T]) -> str:
    """Convert enum to string value (handles both enum and string).

    Args:
        enum_obj: Enum instance or string value

    Returns:
        String value of the enum, or the string itself if already a string
    """
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


def value_to_enum(value: str, enum_class: Type[T], default: T) -> T:
    """Convert string to enum with fallback to default.

    Args:
        value: String value to convert
        enum_class: Enum class to convert to
        default: Default enum value if conversion fails

    Returns:
        Enum instance, or default if conversion fails
    """
    if not value:
        return default
    try:
        return enum_class(value.lower())
    except (ValueError, AttributeError):
        return default


def _new_id() -> str:
    return str(uuid.uuid4())


class UserDB(Base):
    """Database model for User."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=_new_id)

    # Identity
    email = Column(String, nullable=False, unique=True, index=True)
    phone_number = Column(String, nullable=True, unique=True, index=True)

    # Profile
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    display_name = Column(String, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from plantogether.models.user import User
        return User(
            id=self.id,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            display_name=self.display_name,
            phone_number=self.phone_number,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_pydantic(cls, user):
        """Create database model from Pydantic model."""
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            display_name=user.display_name,
            phone_number=user.phone_number,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class FriendshipDB(Base):
    """Database model for a directed friendship row."""

    __tablename__ = "friendships"
    __table_args__ = (
        UniqueConstraint("user_id", "friend_id", name="uq_friendship_user_friend"),
        CheckConstraint("user_id != friend_id", name="ck_friendship_no_self"),
        CheckConstraint("status IN ('pending', 'accepted', 'blocked')", name="ck_friendship_status"),
    )

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    friend_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String, nullable=False, default=FriendshipStatus.PENDING.value, index=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from plantogether.models.friendship import Friendship
        return Friendship(
            id=self.id,
            user_id=self.user_id,
            friend_id=self.friend_id,
            status=value_to_enum(self.status, FriendshipStatus, FriendshipStatus.PENDING),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class CircleDB(Base):
    """Database model for a circle (named group of the creator's friends)."""

    __tablename__ = "circles"

    id = Column(String, primary_key=True, default=_new_id)
    creator_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_pydantic(self, member_count: int = 0):
        """Convert database model to Pydantic model."""
        from plantogether.models.circle import Circle
        return Circle(
            id=self.id,
            creator_id=self.creator_id,
            name=self.name,
            description=self.description,
            member_count=member_count,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class CircleMemberDB(Base):
    """Membership of one user in one circle."""

    __tablename__ = "circle_members"
    __table_args__ = (
        UniqueConstraint("circle_id", "user_id", name="uq_circle_member"),
    )

    id = Column(String, primary_key=True, default=_new_id)
    circle_id = Column(String, ForeignKey("circles.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    added_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class AvailabilitySlotDB(Base):
    """Database model for an availability slot (one stored recurrence rule)."""

    __tablename__ = "availability_slots"
    __table_args__ = (
        # Same invariants as RecurrenceRule, enforced again at the storage boundary.
        CheckConstraint(
            "recurrence_type IN ('once', 'daily', 'weekly', 'monthly', 'yearly')",
            name="ck_availability_recurrence_type",
        ),
        CheckConstraint("recurrence_interval > 0", name="ck_availability_interval"),
        CheckConstraint(
            "recurrence_end_date IS NULL OR recurrence_end_date >= recurrence_start_date",
            name="ck_availability_recurrence_dates",
        ),
        CheckConstraint(
            "day_of_week IS NULL OR (day_of_week >= 0 AND day_of_week <= 6)",
            name="ck_availability_day_of_week",
        ),
        CheckConstraint("end_time > start_time", name="ck_availability_time_range"),
        CheckConstraint("status IN ('free', 'busy', 'maybe')", name="ck_availability_status"),
        Index("ix_availability_slots_user_type_start", "user_id", "recurrence_type", "recurrence_start_date"),
    )

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Recurrence
    recurrence_type = Column(String, nullable=False, default=RecurrenceKind.ONCE.value)
    recurrence_interval = Column(Integer, nullable=False, default=1)
    recurrence_start_date = Column(Date, nullable=False)
    recurrence_end_date = Column(Date, nullable=True)
    day_of_week = Column(Integer, nullable=True)

    # Time window
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    # Payload
    status = Column(String, nullable=False, default=AvailabilityStatus.FREE.value, index=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def rule_fields(self) -> dict:
        """Stored columns mapped onto RecurrenceRule field names."""
        return {
            "kind": self.recurrence_type,
            "interval": self.recurrence_interval,
            "start_date": self.recurrence_start_date,
            "end_date": self.recurrence_end_date,
            "anchor_weekday": self.day_of_week,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "status": self.status,
            "notes": self.notes,
        }

    def apply_rule(self, rule) -> None:
        """Copy a RecurrenceRule onto the stored columns."""
        self.recurrence_type = enum_to_value(rule.kind)
        self.recurrence_interval = rule.interval
        self.recurrence_start_date = rule.start_date
        self.recurrence_end_date = rule.end_date
        self.day_of_week = rule.anchor_weekday
        self.start_time = rule.start_time
        self.end_time = rule.end_time
        self.status = enum_to_value(rule.status)
        self.notes = rule.notes

    def to_pydantic(self):
        """Convert database model to Pydantic model.

        Raises InvalidRule if the stored columns no longer form a valid rule.
        """
        from plantogether.models.availability import AvailabilitySlot
        return AvailabilitySlot(
            id=self.id,
            user_id=self.user_id,
            rule=parse_rule(self.rule_fields()),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_pydantic(cls, slot):
        """Create database model from Pydantic model."""
        row = cls(
            id=slot.id,
            user_id=slot.user_id,
            created_at=slot.created_at,
            updated_at=slot.updated_at,
        )
        row.apply_rule(slot.rule)
        return row


class EventDB(Base):
    """Database model for Event."""

    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("status IN ('planned', 'confirmed', 'cancelled')", name="ck_event_status"),
        CheckConstraint("end_time > start_time", name="ck_event_time_range"),
        Index("ix_events_date_start", "event_date", "start_time"),
    )

    id = Column(String, primary_key=True, default=_new_id)
    creator_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    event_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    location_name = Column(String(200), nullable=True)
    status = Column(String, nullable=False, default=EventStatus.PLANNED.value, index=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def apply_event(self, event) -> None:
        """Copy the editable fields of an Event onto the row."""
        self.title = event.title
        self.description = event.description
        self.event_date = event.event_date
        self.start_time = event.start_time
        self.end_time = event.end_time
        self.location_name = event.location_name
        self.status = enum_to_value(event.status)
        self.updated_at = event.updated_at

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from plantogether.models.event import Event
        return Event(
            id=self.id,
            creator_id=self.creator_id,
            title=self.title,
            description=self.description,
            event_date=self.event_date,
            start_time=self.start_time,
            end_time=self.end_time,
            location_name=self.location_name,
            status=value_to_enum(self.status, EventStatus, EventStatus.PLANNED),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_pydantic(cls, event):
        """Create database model from Pydantic model."""
        row = cls(id=event.id, creator_id=event.creator_id, created_at=event.created_at)
        row.apply_event(event)
        return row


class EventInviteDB(Base):
    """One user invited to one event, with their RSVP."""

    __tablename__ = "event_invites"
    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_invite"),
        CheckConstraint(
            "rsvp_status IN ('pending', 'going', 'maybe', 'declined')",
            name="ck_event_invite_rsvp_status",
        ),
    )

    id = Column(String, primary_key=True, default=_new_id)
    event_id = Column(String, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    rsvp_status = Column(String, nullable=False, default=RsvpStatus.PENDING.value, index=True)

    invited_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    responded_at = Column(DateTime, nullable=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        from plantogether.models.event import EventInvite
        return EventInvite(
            id=self.id,
            event_id=self.event_id,
            user_id=self.user_id,
            rsvp_status=value_to_enum(self.rsvp_status, RsvpStatus, RsvpStatus.PENDING),
            invited_at=self.invited_at,
            responded_at=self.responded_at,
        )


class EventCircleDB(Base):
    """Circle whose members may see an event."""

    __tablename__ = "event_circles"
    __table_args__ = (
        UniqueConstraint("event_id", "circle_id", name="uq_event_circle"),
    )

    id = Column(String, primary_key=True, default=_new_id)
    event_id = Column(String, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    circle_id = Column(String, ForeignKey("circles.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
