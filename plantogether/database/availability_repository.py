"""Repository for AvailabilitySlot database operations."""

import logging
import uuid
from datetime import datetime
from typing import Any, Iterable, List, Optional

from sqlalchemy.orm import Session

from plantogether.database.models import AvailabilitySlotDB, enum_to_value
from plantogether.models.availability import AvailabilitySlot
from plantogether.models.recurrence import AvailabilityStatus, InvalidRule, RecurrenceRule

logger = logging.getLogger(__name__)


class AvailabilityRepository:
    """Repository for AvailabilitySlot database operations.

    Rules are stored as columns and rebuilt into RecurrenceRule on read; no
    occurrence rows are ever written.
    """

    def __init__(self, db: Session):
        self.db = db

    def _owned_row(self, user_id: str, slot_id: str) -> Optional[AvailabilitySlotDB]:
        return (
            self.db.query(AvailabilitySlotDB)
            .filter(AvailabilitySlotDB.id == slot_id, AvailabilitySlotDB.user_id == user_id)
            .first()
        )

    def create(self, user_id: str, rule: RecurrenceRule, *, slot_id: Optional[str] = None) -> AvailabilitySlot:
        """Store a new slot for user_id."""
        now = datetime.utcnow()
        slot = AvailabilitySlot(
            id=slot_id or str(uuid.uuid4()),
            user_id=user_id,
            rule=rule,
            created_at=now,
            updated_at=now,
        )
        try:
            row = AvailabilitySlotDB.from_pydantic(slot)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Created availability slot {row.id} ({enum_to_value(rule.kind)}) for user {user_id}")
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create availability slot for user {user_id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, user_id: str, slot_id: str) -> Optional[AvailabilitySlot]:
        """Get a slot by ID for its owner."""
        row = self._owned_row(user_id, slot_id)
        return row.to_pydantic() if row else None

    def list_for_user(self, user_id: str) -> List[AvailabilitySlot]:
        """All slots of one user, ordered by start date then start time."""
        return self.list_for_users([user_id])

    def list_for_users(
        self,
        user_ids: Iterable[str],
        *,
        statuses: Optional[Iterable[AvailabilityStatus]] = None,
    ) -> List[AvailabilitySlot]:
        """Slots for several users, optionally restricted to some statuses."""
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return []
        query = self.db.query(AvailabilitySlotDB).filter(AvailabilitySlotDB.user_id.in_(ids))
        if statuses is not None:
            status_values = [enum_to_value(s) for s in statuses]
            query = query.filter(AvailabilitySlotDB.status.in_(status_values))
        rows = query.order_by(
            AvailabilitySlotDB.recurrence_start_date,
            AvailabilitySlotDB.start_time,
            AvailabilitySlotDB.id,
        ).all()
        return [row.to_pydantic() for row in rows]

    def update(self, user_id: str, slot_id: str, **changes: Any) -> Optional[AvailabilitySlot]:
        """Apply changes to the mutable fields of a slot.

        Only interval, end_date, start_time, end_time, status and notes may change.

        Returns:
            Updated slot, or None if the slot does not exist for this user

        Raises:
            InvalidRule: if no changes are given, an identity field is touched,
                or the resulting rule is invalid
        """
        if not changes:
            raise InvalidRule(["no updates provided"])

        row = self._owned_row(user_id, slot_id)
        if row is None:
            return None

        current = row.to_pydantic().rule
        updated = current.with_changes(**changes)

        row.apply_rule(updated)
        row.updated_at = datetime.utcnow()
        try:
            self.db.commit()
            self.db.refresh(row)
            logger.debug(f"Updated availability slot {slot_id}: {sorted(changes)}")
            return row.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update availability slot {slot_id}: {type(e).__name__}: {str(e)}")
            raise

    def delete(self, user_id: str, slot_id: str) -> bool:
        """Delete a slot owned by user_id."""
        row = self._owned_row(user_id, slot_id)
        if row is None:
            return False
        try:
            self.db.delete(row)
            self.db.commit()
            logger.debug(f"Deleted availability slot {slot_id}")
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete availability slot {slot_id}: {type(e).__name__}: {str(e)}")
            raise
