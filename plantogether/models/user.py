"""User data model for planTogether."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class User(BaseModel):
    """User model for planTogether."""
    
    id: str = Field(..., description="Unique user identifier")
    email: str = Field(..., description="User email address")
    first_name: str = Field(..., description="Given name")
    last_name: str = Field(..., description="Family name")
    display_name: Optional[str] = Field(None, description="Name shown to friends")
    phone_number: Optional[str] = Field(None, description="Phone number used for friend lookup")
    created_at: datetime = Field(..., description="User creation timestamp")
    updated_at: datetime = Field(..., description="User last update timestamp")
