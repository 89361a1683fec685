"""Repository for Circle database operations."""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from plantogether.database.friendship_repository import FriendshipRepository
from plantogether.database.models import CircleDB, CircleMemberDB
from plantogether.models.circle import Circle

logger = logging.getLogger(__name__)


class CircleError(ValueError):
    """A circle change the caller is not allowed to make."""


class CircleRepository:
    """Repository for Circle database operations.

    Only the creator may rename, delete, or change the membership of a circle,
    and only the creator's accepted friends can be added.
    """

    def __init__(self, db: Session):
        self.db = db

    def _member_counts(self, circle_ids: List[str]) -> Dict[str, int]:
        if not circle_ids:
            return {}
        rows = (
            self.db.query(CircleMemberDB.circle_id, func.count(CircleMemberDB.id))
            .filter(CircleMemberDB.circle_id.in_(circle_ids))
            .group_by(CircleMemberDB.circle_id)
            .all()
        )
        return {circle_id: count for circle_id, count in rows}

    def _to_pydantic_list(self, rows: List[CircleDB]) -> List[Circle]:
        counts = self._member_counts([r.id for r in rows])
        return [r.to_pydantic(member_count=counts.get(r.id, 0)) for r in rows]

    def _owned_row(self, creator_id: str, circle_id: str) -> Optional[CircleDB]:
        return (
            self.db.query(CircleDB)
            .filter(CircleDB.id == circle_id, CircleDB.creator_id == creator_id)
            .first()
        )

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to {action}: {type(e).__name__}: {str(e)}")
            raise

    def create(self, creator_id: str, name: str, description: Optional[str] = None) -> Circle:
        name = (name or "").strip()
        if not name:
            raise CircleError("Circle name is required")
        row = CircleDB(
            creator_id=creator_id,
            name=name,
            description=(description or "").strip() or None,
        )
        self.db.add(row)
        self._commit(f"create circle for {creator_id}")
        self.db.refresh(row)
        logger.debug(f"Created circle {row.id}: {name[:50]}")
        return row.to_pydantic()

    def get(self, circle_id: str) -> Optional[Circle]:
        row = self.db.query(CircleDB).filter(CircleDB.id == circle_id).first()
        if row is None:
            return None
        return self._to_pydantic_list([row])[0]

    def list_created_by(self, user_id: str) -> List[Circle]:
        """Circles user_id created, newest first."""
        rows = (
            self.db.query(CircleDB)
            .filter(CircleDB.creator_id == user_id)
            .order_by(CircleDB.created_at.desc())
            .all()
        )
        return self._to_pydantic_list(rows)

    def list_member_of(self, user_id: str) -> List[Circle]:
        """Circles created by others that user_id belongs to, newest first."""
        rows = (
            self.db.query(CircleDB)
            .join(CircleMemberDB, CircleMemberDB.circle_id == CircleDB.id)
            .filter(CircleMemberDB.user_id == user_id, CircleDB.creator_id != user_id)
            .order_by(CircleDB.created_at.desc())
            .all()
        )
        return self._to_pydantic_list(rows)

    def update(
        self,
        creator_id: str,
        circle_id: str,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Optional[Circle]:
        """Rename or re-describe a circle. Returns None if creator_id does not own it."""
        row = self._owned_row(creator_id, circle_id)
        if row is None:
            return None
        if name is not None:
            name = name.strip()
            if not name:
                raise CircleError("Circle name is required")
            row.name = name
        if description is not None:
            row.description = description.strip() or None
        row.updated_at = datetime.utcnow()
        self._commit(f"update circle {circle_id}")
        self.db.refresh(row)
        return self._to_pydantic_list([row])[0]

    def delete(self, creator_id: str, circle_id: str) -> bool:
        row = self._owned_row(creator_id, circle_id)
        if row is None:
            return False
        self.db.delete(row)
        self._commit(f"delete circle {circle_id}")
        logger.debug(f"Deleted circle {circle_id}")
        return True

    def add_member(self, creator_id: str, circle_id: str, user_id: str) -> None:
        """Add one of the creator's friends to the circle.

        Raises:
            CircleError: not the creator, not a friend, or already a member
        """
        if self._owned_row(creator_id, circle_id) is None:
            raise CircleError("Only circle creator can add members")
        if not FriendshipRepository(self.db).are_friends(creator_id, user_id):
            raise CircleError("Can only add friends to circles")
        if user_id in self.member_ids(circle_id):
            raise CircleError("User already in this circle")

        self.db.add(CircleMemberDB(circle_id=circle_id, user_id=user_id))
        self._commit(f"add member {user_id} to circle {circle_id}")
        logger.debug(f"Added {user_id} to circle {circle_id}")

    def remove_member(self, creator_id: str, circle_id: str, user_id: str) -> bool:
        if self._owned_row(creator_id, circle_id) is None:
            raise CircleError("Only circle creator can remove members")
        deleted = (
            self.db.query(CircleMemberDB)
            .filter(CircleMemberDB.circle_id == circle_id, CircleMemberDB.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self._commit(f"remove member {user_id} from circle {circle_id}")
        return deleted > 0

    def member_ids(self, circle_id: str) -> List[str]:
        rows = (
            self.db.query(CircleMemberDB.user_id)
            .filter(CircleMemberDB.circle_id == circle_id)
            .order_by(CircleMemberDB.added_at, CircleMemberDB.user_id)
            .all()
        )
        return [r[0] for r in rows]

    def has_access(self, circle_id: str, user_id: str) -> bool:
        """Creator or member."""
        if self._owned_row(user_id, circle_id) is not None:
            return True
        return (
            self.db.query(CircleMemberDB.id)
            .filter(CircleMemberDB.circle_id == circle_id, CircleMemberDB.user_id == user_id)
            .first()
            is not None
        )

    def circle_ids_for(self, user_id: str) -> Set[str]:
        """Circles user_id created or belongs to."""
        created = self.db.query(CircleDB.id).filter(CircleDB.creator_id == user_id).all()
        joined = self.db.query(CircleMemberDB.circle_id).filter(CircleMemberDB.user_id == user_id).all()
        return {r[0] for r in created} | {r[0] for r in joined}

    def share_circle(self, user_a: str, user_b: str) -> bool:
        """True if both users are in at least one common circle (as creator or member)."""
        return user_b in self.users_sharing_circle_with(user_a, [user_b])

    def users_sharing_circle_with(self, user_id: str, candidate_ids: Iterable[str]) -> Set[str]:
        """Subset of candidate_ids in at least one circle with user_id (as creator or member).

        One query: every creator/member pair of the circles user_id is in.
        """
        wanted = set(candidate_ids)
        if not wanted:
            return set()
        joined = select(CircleMemberDB.circle_id).where(CircleMemberDB.user_id == user_id)
        rows = (
            self.db.query(CircleDB.creator_id, CircleMemberDB.user_id)
            .outerjoin(CircleMemberDB, CircleMemberDB.circle_id == CircleDB.id)
            .filter(or_(CircleDB.creator_id == user_id, CircleDB.id.in_(joined)))
            .all()
        )
        found: Set[str] = set()
        for creator_id, member_id in rows:
            found.update({creator_id, member_id} & wanted)
        return found
