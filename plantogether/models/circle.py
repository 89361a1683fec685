"""Circle (named group of friends) data model for planTogether."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class Circle(BaseModel):
    """A named group of the creator's friends."""

    id: str = Field(..., description="Unique circle identifier")
    creator_id: str = Field(..., description="User who created and manages the circle")
    name: str = Field(..., min_length=1, description="Circle name")
    description: Optional[str] = Field(None, description="Free-text description")
    member_count: int = Field(0, ge=0, description="Number of members (creator not included)")
    created_at: datetime
    updated_at: datetime
