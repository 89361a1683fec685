"""Recurrence rules for planTogether availability.

A rule is the declarative description of when an availability window repeats.
Rules are validated once, at construction (which raises InvalidRule); matching
against a date never fails.
"""

from __future__ import annotations

from datetime import date, time
from enum import Enum
from typing import Any, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator


class RecurrenceKind(str, Enum):
    ONCE = "once"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class AvailabilityStatus(str, Enum):
    """How the owner describes the window. Not used for matching."""

    FREE = "free"
    BUSY = "busy"
    MAYBE = "maybe"


# Fields a rule keeps for its whole life; edits may only touch MUTABLE_RULE_FIELDS.
IDENTITY_RULE_FIELDS = frozenset({"kind", "start_date", "anchor_weekday"})
MUTABLE_RULE_FIELDS = frozenset({"interval", "end_date", "start_time", "end_time", "status", "notes"})


class InvalidRule(ValueError):
    """A recurrence rule whose fields violate the rule invariants."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "invalid recurrence rule")


class RecurrenceRule(BaseModel):
    """One availability declaration.

    Notes:
    - Dates are calendar dates (no time zone); time_window is wall-clock time.
    - anchor_weekday uses Sunday=0 ... Saturday=6 and only matters for weekly rules.
    - interval is ignored for once rules.
    """

    model_config = ConfigDict(frozen=True)

    def __init__(self, **data: Any):
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise InvalidRule(validation_messages(e)) from e

    kind: RecurrenceKind
    # Strict ints: booleans and numeric strings are rejected, not coerced.
    interval: int = Field(1, ge=1, strict=True, description="Every N units (days/weeks/months/years)")

    start_date: date
    end_date: Optional[date] = None

    anchor_weekday: Optional[int] = Field(
        None, ge=0, le=6, strict=True, description="For weekly rules: day of week (Sunday=0)"
    )

    start_time: time
    end_time: time

    status: AvailabilityStatus = AvailabilityStatus.FREE
    notes: Optional[str] = None

    @field_validator("notes")
    @classmethod
    def _strip_notes(cls, v):
        if v is None:
            return None
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def _check_invariants(self):
        if self.kind == RecurrenceKind.WEEKLY and self.anchor_weekday is None:
            raise ValueError("anchor_weekday is required for weekly rules")
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must be >= start_date")
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def effective_interval(self) -> int:
        if self.kind == RecurrenceKind.ONCE:
            return 1
        return self.interval

    def with_changes(self, **changes: Any) -> "RecurrenceRule":
        """Return a revalidated copy with some mutable fields replaced.

        Raises InvalidRule if a change touches an identity field or breaks an invariant.
        """
        frozen = sorted(set(changes) & IDENTITY_RULE_FIELDS)
        if frozen:
            raise InvalidRule([f"{name} cannot be changed after creation" for name in frozen])
        unknown = sorted(set(changes) - MUTABLE_RULE_FIELDS)
        if unknown:
            raise InvalidRule([f"unknown field: {name}" for name in unknown])
        data = self.model_dump()
        data.update(changes)
        return parse_rule(data)


def _format_error(err: Mapping[str, Any]) -> str:
    loc = ".".join(str(part) for part in err.get("loc", ()))
    msg = str(err.get("msg", "invalid value"))
    # Model-level checks are reported by pydantic as "Value error, <message>".
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    return f"{loc}: {msg}" if loc else msg


def validation_messages(exc: ValidationError) -> List[str]:
    """One readable message per error in a pydantic ValidationError."""
    return [_format_error(err) for err in exc.errors()]


def parse_rule(data: Mapping[str, Any]) -> RecurrenceRule:
    """Build a RecurrenceRule from untrusted input (request bodies, stored rows).

    Raises:
        InvalidRule: with one message per violated constraint.
    """
    return RecurrenceRule(**dict(data))
