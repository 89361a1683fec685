"""Repository for User database operations."""

import logging
from typing import List, Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session

from plantogether.models.user import User
from plantogether.database.models import UserDB

logger = logging.getLogger(__name__)

# Shortest search term accepted by search()
MIN_SEARCH_LENGTH = 2
SEARCH_LIMIT = 20


def _escape_like(term: str) -> str:
    """Make LIKE wildcards in user input match literally (escape char is a backslash)."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class UserRepository:
    """Repository for User database operations."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        user_db = self.db.query(UserDB).filter(UserDB.id == user_id).first()
        return user_db.to_pydantic() if user_db else None

    def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        user_db = self.db.query(UserDB).filter(UserDB.email == email).first()
        return user_db.to_pydantic() if user_db else None

    def get_by_phone(self, phone_number: str) -> Optional[User]:
        """Get user by phone number."""
        user_db = self.db.query(UserDB).filter(UserDB.phone_number == phone_number).first()
        return user_db.to_pydantic() if user_db else None

    def exists(self, user_id: str) -> bool:
        return self.db.query(UserDB.id).filter(UserDB.id == user_id).first() is not None

    def search(self, term: str, *, exclude_user_id: Optional[str] = None) -> List[User]:
        """Case-insensitive substring search over names and email.

        Terms shorter than MIN_SEARCH_LENGTH return no results.
        """
        term = (term or "").strip()
        if len(term) < MIN_SEARCH_LENGTH:
            return []
        pattern = f"%{_escape_like(term.lower())}%"
        query = self.db.query(UserDB).filter(
            or_(
                UserDB.first_name.ilike(pattern, escape="\\"),
                UserDB.last_name.ilike(pattern, escape="\\"),
                UserDB.display_name.ilike(pattern, escape="\\"),
                UserDB.email.ilike(pattern, escape="\\"),
            )
        )
        if exclude_user_id:
            query = query.filter(UserDB.id != exclude_user_id)
        rows = query.order_by(UserDB.first_name, UserDB.last_name).limit(SEARCH_LIMIT).all()
        return [row.to_pydantic() for row in rows]

    def create_or_update(self, user: User) -> User:
        """Create or update user (upsert).

        Args:
            user: User object to create or update

        Returns:
            Created or updated User object
        """
        user_db = self.db.query(UserDB).filter(UserDB.id == user.id).first()

        if user_db:
            # Update existing user
            user_db.email = user.email
            user_db.first_name = user.first_name
            user_db.last_name = user.last_name
            user_db.display_name = user.display_name
            user_db.phone_number = user.phone_number
            user_db.updated_at = user.updated_at
            try:
                self.db.commit()
                self.db.refresh(user_db)
                logger.debug(f"Updated user {user.id}: {user.email}")
                return user_db.to_pydantic()
            except Exception as e:
                self.db.rollback()
                logger.error(f"Failed to update user {user.id}: {type(e).__name__}: {str(e)}")
                raise
        else:
            # Create new user
            try:
                user_db = UserDB.from_pydantic(user)
                self.db.add(user_db)
                self.db.commit()
                self.db.refresh(user_db)
                logger.debug(f"Created user {user.id}: {user.email}")
                return user_db.to_pydantic()
            except Exception as e:
                self.db.rollback()
                logger.error(f"Failed to create user {user.id}: {type(e).__name__}: {str(e)}")
                raise
