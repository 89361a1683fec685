"""Repository for Event database operations."""

import logging
import uuid
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from plantogether.database.circle_repository import CircleRepository
from plantogether.database.friendship_repository import FriendshipRepository
from plantogether.database.models import (
    CircleDB,
    CircleMemberDB,
    EventCircleDB,
    EventDB,
    EventInviteDB,
    enum_to_value,
)
from plantogether.models.event import (
    MUTABLE_EVENT_FIELDS,
    RSVP_RESPONSES,
    Event,
    EventDetails,
    EventInvite,
    EventStatus,
    EventSummary,
    InvalidEvent,
    RsvpStatus,
    parse_event,
)

logger = logging.getLogger(__name__)


class EventError(ValueError):
    """An event change the caller is not allowed to make."""


class EventRepository:
    """Repository for Event database operations.

    Only the creator edits, shares, deletes or invites to an event. An event is
    visible to its creator, its invitees, and members of the circles it is
    linked to.
    """

    def __init__(self, db: Session):
        self.db = db

    def _owned_row(self, creator_id: str, event_id: str) -> Optional[EventDB]:
        return (
            self.db.query(EventDB)
            .filter(EventDB.id == event_id, EventDB.creator_id == creator_id)
            .first()
        )

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to {action}: {type(e).__name__}: {str(e)}")
            raise

    def _owned_circle_ids(self, creator_id: str, circle_ids: Iterable[str]) -> List[str]:
        """Circles from circle_ids that creator_id created (others are dropped)."""
        ids = list(dict.fromkeys(circle_ids))
        if not ids:
            return []
        rows = (
            self.db.query(CircleDB.id)
            .filter(CircleDB.id.in_(ids), CircleDB.creator_id == creator_id)
            .all()
        )
        owned = {r[0] for r in rows}
        return [c for c in ids if c in owned]

    def _invitable(self, creator_id: str, user_ids: Iterable[str]) -> List[str]:
        """Friends of the creator, or users sharing a circle with them."""
        ids = [u for u in dict.fromkeys(user_ids) if u != creator_id]
        if not ids:
            return []
        allowed = FriendshipRepository(self.db).friend_ids_among(creator_id, ids)
        remaining = [u for u in ids if u not in allowed]
        if remaining:
            allowed |= CircleRepository(self.db).users_sharing_circle_with(creator_id, remaining)
        return [u for u in ids if u in allowed]

    def create(
        self,
        creator_id: str,
        *,
        title: str,
        event_date: date,
        start_time: time,
        end_time: time,
        description: Optional[str] = None,
        location_name: Optional[str] = None,
        invite_user_ids: Iterable[str] = (),
        invite_circle_ids: Iterable[str] = (),
        visible_to_circle_ids: Iterable[str] = (),
    ) -> Event:
        """Create an event with its invites and circle links.

        Members of invite_circle_ids are invited too. Circles the creator does
        not own, and invitees who are neither friends nor circle-mates of the
        creator, are silently left out.

        Raises:
            InvalidEvent: if the event fields are invalid
        """
        now = datetime.utcnow()
        event = parse_event(
            {
                "id": str(uuid.uuid4()),
                "creator_id": creator_id,
                "title": title,
                "description": description,
                "event_date": event_date,
                "start_time": start_time,
                "end_time": end_time,
                "location_name": location_name,
                "status": EventStatus.PLANNED,
                "created_at": now,
                "updated_at": now,
            }
        )

        visible_circles = self._owned_circle_ids(creator_id, visible_to_circle_ids)
        candidates = list(invite_user_ids)
        circles = CircleRepository(self.db)
        for circle_id in self._owned_circle_ids(creator_id, invite_circle_ids):
            candidates.extend(circles.member_ids(circle_id))
        invitees = self._invitable(creator_id, candidates)

        try:
            row = EventDB.from_pydantic(event)
            self.db.add(row)
            self.db.flush()
            for circle_id in visible_circles:
                self.db.add(EventCircleDB(event_id=event.id, circle_id=circle_id))
            for user_id in invitees:
                self.db.add(EventInviteDB(event_id=event.id, user_id=user_id))
            self.db.commit()
            self.db.refresh(row)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create event for user {creator_id}: {type(e).__name__}: {str(e)}")
            raise

        logger.debug(
            f"Created event {event.id}: {len(invitees)} invite(s), {len(visible_circles)} circle(s)"
        )
        return row.to_pydantic()

    def get(self, event_id: str) -> Optional[Event]:
        """Get an event by ID (no access check)."""
        row = self.db.query(EventDB).filter(EventDB.id == event_id).first()
        return row.to_pydantic() if row else None

    def invites(self, event_id: str) -> List[EventInvite]:
        rows = (
            self.db.query(EventInviteDB)
            .filter(EventInviteDB.event_id == event_id)
            .order_by(EventInviteDB.invited_at, EventInviteDB.user_id)
            .all()
        )
        return [row.to_pydantic() for row in rows]

    def linked_circle_ids(self, event_id: str) -> List[str]:
        rows = (
            self.db.query(EventCircleDB.circle_id)
            .filter(EventCircleDB.event_id == event_id)
            .order_by(EventCircleDB.created_at, EventCircleDB.circle_id)
            .all()
        )
        return [r[0] for r in rows]

    def is_invited(self, event_id: str, user_id: str) -> bool:
        return (
            self.db.query(EventInviteDB.id)
            .filter(EventInviteDB.event_id == event_id, EventInviteDB.user_id == user_id)
            .first()
            is not None
        )

    def can_view(self, event_id: str, user_id: str) -> bool:
        """Creator, invitee, or member of a linked circle."""
        row = self.db.query(EventDB.creator_id).filter(EventDB.id == event_id).first()
        if row is None:
            return False
        if row[0] == user_id or self.is_invited(event_id, user_id):
            return True
        circles = CircleRepository(self.db)
        return any(circles.has_access(circle_id, user_id) for circle_id in self.linked_circle_ids(event_id))

    def details(self, event_id: str, viewer_id: str) -> Optional[EventDetails]:
        """Event with invites and linked circles (no access check)."""
        event = self.get(event_id)
        if event is None:
            return None
        return EventDetails(
            event=event,
            invites=self.invites(event_id),
            circle_ids=self.linked_circle_ids(event_id),
            is_creator=event.creator_id == viewer_id,
        )

    def list_for_user(
        self,
        user_id: str,
        *,
        status: Optional[EventStatus] = None,
        upcoming: Optional[bool] = None,
        today: Optional[date] = None,
    ) -> List[EventSummary]:
        """Events user_id created, is invited to, or sees through a circle.

        Args:
            status: only events in this status
            upcoming: True for events on or after today, False for past events
            today: reference date for upcoming (defaults to date.today())
        """
        invited = select(EventInviteDB.event_id).where(EventInviteDB.user_id == user_id)
        via_circle = (
            select(EventCircleDB.event_id)
            .join(CircleMemberDB, CircleMemberDB.circle_id == EventCircleDB.circle_id)
            .where(CircleMemberDB.user_id == user_id)
        )
        query = self.db.query(EventDB).filter(
            or_(
                EventDB.creator_id == user_id,
                EventDB.id.in_(invited),
                EventDB.id.in_(via_circle),
            )
        )
        if status is not None:
            query = query.filter(EventDB.status == enum_to_value(status))
        if upcoming is not None:
            today = today or date.today()
            query = query.filter(EventDB.event_date >= today if upcoming else EventDB.event_date < today)
        rows = query.order_by(EventDB.event_date, EventDB.start_time, EventDB.id).all()

        ids = [row.id for row in rows]
        tallies: Dict[str, Dict[str, int]] = {}
        mine: Dict[str, str] = {}
        if ids:
            counts = (
                self.db.query(EventInviteDB.event_id, EventInviteDB.rsvp_status, func.count(EventInviteDB.id))
                .filter(EventInviteDB.event_id.in_(ids))
                .group_by(EventInviteDB.event_id, EventInviteDB.rsvp_status)
                .all()
            )
            for event_id, rsvp_status, count in counts:
                tallies.setdefault(event_id, {})[rsvp_status] = count
            own = (
                self.db.query(EventInviteDB.event_id, EventInviteDB.rsvp_status)
                .filter(EventInviteDB.event_id.in_(ids), EventInviteDB.user_id == user_id)
                .all()
            )
            mine = {event_id: rsvp_status for event_id, rsvp_status in own}

        summaries = []
        for row in rows:
            tally = tallies.get(row.id, {})
            summaries.append(
                EventSummary(
                    event=row.to_pydantic(),
                    is_creator=row.creator_id == user_id,
                    my_rsvp=RsvpStatus(mine[row.id]) if row.id in mine else None,
                    # The creator always counts as going.
                    going_count=tally.get(RsvpStatus.GOING.value, 0) + 1,
                    maybe_count=tally.get(RsvpStatus.MAYBE.value, 0),
                    declined_count=tally.get(RsvpStatus.DECLINED.value, 0),
                    total_invited=sum(tally.values()),
                )
            )
        return summaries

    def update(self, creator_id: str, event_id: str, **changes: Any) -> Optional[Event]:
        """Change event fields. Returns None if creator_id does not own the event.

        Raises:
            InvalidEvent: no changes, an unknown field, or an invalid result
        """
        if not changes:
            raise InvalidEvent(["No updates provided"])
        unknown = sorted(set(changes) - MUTABLE_EVENT_FIELDS)
        if unknown:
            raise InvalidEvent([f"unknown field: {name}" for name in unknown])

        row = self._owned_row(creator_id, event_id)
        if row is None:
            return None

        data = row.to_pydantic().model_dump()
        data.update(changes)
        data["updated_at"] = datetime.utcnow()
        row.apply_event(parse_event(data))
        self._commit(f"update event {event_id}")
        self.db.refresh(row)
        logger.debug(f"Updated event {event_id}: {sorted(changes)}")
        return row.to_pydantic()

    def set_circles(self, creator_id: str, event_id: str, circle_ids: Iterable[str]) -> int:
        """Replace the circles an event is shared with. Returns how many were linked."""
        if self._owned_row(creator_id, event_id) is None:
            raise EventError("Only event creator can update visibility")
        valid = self._owned_circle_ids(creator_id, circle_ids)
        self.db.query(EventCircleDB).filter(EventCircleDB.event_id == event_id).delete(
            synchronize_session=False
        )
        for circle_id in valid:
            self.db.add(EventCircleDB(event_id=event_id, circle_id=circle_id))
        self._commit(f"update circles of event {event_id}")
        return len(valid)

    def delete(self, creator_id: str, event_id: str) -> bool:
        row = self._owned_row(creator_id, event_id)
        if row is None:
            return False
        self.db.delete(row)
        self._commit(f"delete event {event_id}")
        logger.debug(f"Deleted event {event_id}")
        return True

    def invite(self, creator_id: str, event_id: str, user_ids: Iterable[str]) -> int:
        """Invite more of the creator's friends. Returns how many new invites were made.

        Non-friends and users already invited are skipped.
        """
        if self._owned_row(creator_id, event_id) is None:
            raise EventError("Only event creator can invite")
        ids = list(dict.fromkeys(user_ids))
        friends = FriendshipRepository(self.db).friend_ids_among(creator_id, ids)
        existing = {invite.user_id for invite in self.invites(event_id)}
        new = [u for u in ids if u in friends and u not in existing]
        for user_id in new:
            self.db.add(EventInviteDB(event_id=event_id, user_id=user_id))
        self._commit(f"invite {len(new)} user(s) to event {event_id}")
        return len(new)

    def rsvp(self, user_id: str, event_id: str, status: RsvpStatus) -> Optional[EventInvite]:
        """Record an invitee's answer. Returns None if user_id was not invited.

        Raises:
            EventError: if status is not going, maybe or declined
        """
        try:
            status = RsvpStatus(enum_to_value(status))
        except ValueError as e:
            raise EventError(f"Invalid RSVP status: {status}") from e
        if status not in RSVP_RESPONSES:
            raise EventError("RSVP must be going, maybe or declined")

        row = (
            self.db.query(EventInviteDB)
            .filter(EventInviteDB.event_id == event_id, EventInviteDB.user_id == user_id)
            .first()
        )
        if row is None:
            return None
        row.rsvp_status = status.value
        row.responded_at = datetime.utcnow()
        self._commit(f"record RSVP of {user_id} for event {event_id}")
        self.db.refresh(row)
        return row.to_pydantic()
