"""Friendship data model for planTogether."""

from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field


class FriendshipStatus(str, Enum):
    """Friendship status enumeration."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    BLOCKED = "blocked"


class Friendship(BaseModel):
    """Directed friendship row. Accepted friendships exist in both directions."""

    id: str = Field(..., description="Unique friendship identifier")
    user_id: str = Field(..., description="User who sent the request")
    friend_id: str = Field(..., description="User who received the request")
    status: FriendshipStatus = Field(FriendshipStatus.PENDING, description="Friendship status")
    created_at: datetime
    updated_at: datetime
