"""Who may see whose availability and events.

Visibility is a plain set-membership check: the owner themself, an accepted
friend, or someone sharing a circle with the owner. Rules are filtered here
before they ever reach the recurrence engine. Events are visible to their
creator, their invitees, and members of the circles they are shared with.
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from plantogether.database.circle_repository import CircleRepository
from plantogether.database.event_repository import EventRepository
from plantogether.database.friendship_repository import FriendshipRepository
from plantogether.models.event import EventDetails

logger = logging.getLogger(__name__)


class AccessDenied(PermissionError):
    """The caller may not see the requested user's or circle's data."""


def can_view_availability(db: Session, viewer_id: str, owner_id: str) -> bool:
    if viewer_id == owner_id:
        return True
    if FriendshipRepository(db).are_friends(viewer_id, owner_id):
        return True
    return CircleRepository(db).share_circle(viewer_id, owner_id)


def visible_owner_ids(db: Session, viewer_id: str, owner_ids: Iterable[str]) -> List[str]:
    """Filter owner_ids down to those viewer_id may see (order kept, duplicates dropped)."""
    ordered = list(dict.fromkeys(owner_ids))
    others = [o for o in ordered if o != viewer_id]
    allowed = FriendshipRepository(db).friend_ids_among(viewer_id, others)
    remaining = [o for o in others if o not in allowed]
    if remaining:
        allowed |= CircleRepository(db).users_sharing_circle_with(viewer_id, remaining)
    return [o for o in ordered if o == viewer_id or o in allowed]


def require_availability_access(db: Session, viewer_id: str, owner_id: str) -> None:
    if not can_view_availability(db, viewer_id, owner_id):
        logger.warning(f"User {viewer_id} denied access to availability of {owner_id}")
        raise AccessDenied("Can only view friends availability")


def circle_member_ids(db: Session, viewer_id: str, circle_id: str) -> List[str]:
    """Creator and members of a circle the viewer created or belongs to."""
    repo = CircleRepository(db)
    circle = repo.get(circle_id)
    if circle is None or not repo.has_access(circle_id, viewer_id):
        raise AccessDenied("Access denied")
    return [circle.creator_id] + [m for m in repo.member_ids(circle_id) if m != circle.creator_id]


def can_view_event(db: Session, viewer_id: str, event_id: str) -> bool:
    return EventRepository(db).can_view(event_id, viewer_id)


def event_details_for(db: Session, viewer_id: str, event_id: str) -> Optional[EventDetails]:
    """Event details as seen by viewer_id; None if the event does not exist.

    Raises:
        AccessDenied: if the viewer is not the creator, an invitee, or in a linked circle
    """
    repo = EventRepository(db)
    if repo.get(event_id) is None:
        return None
    if not repo.can_view(event_id, viewer_id):
        logger.warning(f"User {viewer_id} denied access to event {event_id}")
        raise AccessDenied("Access denied")
    return repo.details(event_id, viewer_id)
