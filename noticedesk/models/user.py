"""User data model for noticedesk."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class User(BaseModel):
    """Locally known member profile."""

    user_id: int = Field(..., description="External numeric user id")
    username: Optional[str] = Field(None, description="Cached username")
    picture: Optional[str] = Field(None, description="Cached avatar URL")
    created_at: datetime = Field(..., description="User creation timestamp")
    updated_at: datetime = Field(..., description="User last update timestamp")
