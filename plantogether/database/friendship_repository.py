"""Repository for Friendship database operations."""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Set

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from plantogether.database.models import FriendshipDB, UserDB
from plantogether.models.friendship import Friendship, FriendshipStatus
from plantogether.models.user import User

logger = logging.getLogger(__name__)


class FriendshipError(ValueError):
    """A friendship request that conflicts with existing state."""


class FriendshipRepository:
    """Repository for Friendship database operations.

    A request is one pending row (user_id -> friend_id). Accepting it flips the
    row to accepted and inserts the reciprocal accepted row, so "is B a friend
    of A" is always a single-direction lookup.
    """

    def __init__(self, db: Session):
        self.db = db

    def _between(self, user_a: str, user_b: str) -> Optional[FriendshipDB]:
        return (
            self.db.query(FriendshipDB)
            .filter(
                or_(
                    and_(FriendshipDB.user_id == user_a, FriendshipDB.friend_id == user_b),
                    and_(FriendshipDB.user_id == user_b, FriendshipDB.friend_id == user_a),
                )
            )
            .first()
        )

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to {action}: {type(e).__name__}: {str(e)}")
            raise

    def send_request(self, user_id: str, friend_id: str) -> Friendship:
        """Create a pending request from user_id to friend_id.

        Raises:
            FriendshipError: self-request, unknown user, or an existing relationship
        """
        if user_id == friend_id:
            raise FriendshipError("Cannot send friend request to yourself")
        if self.db.query(UserDB.id).filter(UserDB.id == friend_id).first() is None:
            raise FriendshipError("User not found")

        existing = self._between(user_id, friend_id)
        if existing is not None:
            if existing.status == FriendshipStatus.ACCEPTED.value:
                raise FriendshipError("Already friends")
            if existing.status == FriendshipStatus.PENDING.value:
                raise FriendshipError("Friend request already sent")
            raise FriendshipError("Friendship is blocked")

        row = FriendshipDB(user_id=user_id, friend_id=friend_id, status=FriendshipStatus.PENDING.value)
        self.db.add(row)
        self._commit(f"send friend request {user_id} -> {friend_id}")
        self.db.refresh(row)
        logger.debug(f"Friend request {row.id}: {user_id} -> {friend_id}")
        return row.to_pydantic()

    def accept(self, user_id: str, friendship_id: str) -> bool:
        """Accept a pending request addressed to user_id."""
        row = (
            self.db.query(FriendshipDB)
            .filter(
                FriendshipDB.id == friendship_id,
                FriendshipDB.friend_id == user_id,
                FriendshipDB.status == FriendshipStatus.PENDING.value,
            )
            .first()
        )
        if row is None:
            return False

        row.status = FriendshipStatus.ACCEPTED.value
        row.updated_at = datetime.utcnow()
        self.db.add(
            FriendshipDB(user_id=row.friend_id, friend_id=row.user_id, status=FriendshipStatus.ACCEPTED.value)
        )
        self._commit(f"accept friend request {friendship_id}")
        logger.debug(f"Accepted friend request {friendship_id}")
        return True

    def reject(self, user_id: str, friendship_id: str) -> bool:
        """Delete a pending request addressed to user_id."""
        deleted = (
            self.db.query(FriendshipDB)
            .filter(
                FriendshipDB.id == friendship_id,
                FriendshipDB.friend_id == user_id,
                FriendshipDB.status == FriendshipStatus.PENDING.value,
            )
            .delete(synchronize_session=False)
        )
        self._commit(f"reject friend request {friendship_id}")
        return deleted > 0

    def remove(self, user_id: str, friend_id: str) -> int:
        """Delete the friendship in both directions. Returns rows removed."""
        deleted = (
            self.db.query(FriendshipDB)
            .filter(
                or_(
                    and_(FriendshipDB.user_id == user_id, FriendshipDB.friend_id == friend_id),
                    and_(FriendshipDB.user_id == friend_id, FriendshipDB.friend_id == user_id),
                )
            )
            .delete(synchronize_session=False)
        )
        self._commit(f"remove friendship {user_id} <-> {friend_id}")
        logger.debug(f"Removed friendship {user_id} <-> {friend_id} ({deleted} rows)")
        return deleted

    def list_friends(self, user_id: str) -> List[User]:
        """Accepted friends of user_id, ordered by name."""
        rows = (
            self.db.query(UserDB)
            .join(FriendshipDB, FriendshipDB.friend_id == UserDB.id)
            .filter(
                FriendshipDB.user_id == user_id,
                FriendshipDB.status == FriendshipStatus.ACCEPTED.value,
            )
            .order_by(UserDB.first_name, UserDB.last_name)
            .all()
        )
        return [row.to_pydantic() for row in rows]

    def list_pending_requests(self, user_id: str) -> List[Friendship]:
        """Pending requests received by user_id, newest first."""
        rows = (
            self.db.query(FriendshipDB)
            .filter(
                FriendshipDB.friend_id == user_id,
                FriendshipDB.status == FriendshipStatus.PENDING.value,
            )
            .order_by(FriendshipDB.created_at.desc())
            .all()
        )
        return [row.to_pydantic() for row in rows]

    def status_between(self, user_a: str, user_b: str) -> Optional[FriendshipStatus]:
        row = self._between(user_a, user_b)
        if row is None:
            return None
        return FriendshipStatus(row.status)

    def are_friends(self, user_id: str, other_id: str) -> bool:
        return (
            self.db.query(FriendshipDB.id)
            .filter(
                FriendshipDB.user_id == user_id,
                FriendshipDB.friend_id == other_id,
                FriendshipDB.status == FriendshipStatus.ACCEPTED.value,
            )
            .first()
            is not None
        )

    def friend_ids_among(self, user_id: str, candidate_ids: Iterable[str]) -> Set[str]:
        """Subset of candidate_ids that are accepted friends of user_id."""
        ids = list(set(candidate_ids))
        if not ids:
            return set()
        rows = (
            self.db.query(FriendshipDB.friend_id)
            .filter(
                FriendshipDB.user_id == user_id,
                FriendshipDB.friend_id.in_(ids),
                FriendshipDB.status == FriendshipStatus.ACCEPTED.value,
            )
            .all()
        )
        return {r[0] for r in rows}
