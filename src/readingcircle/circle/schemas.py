"""Pydantic schemas for the reading circle."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from ..profiles.schemas import ProfileResponse


class InviteStatus(str, Enum):
    """Invite lifecycle: pending, then accepted or declined for good."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class CircleMember(BaseModel):
    """Profile summary of a connected user."""

    user_id: str
    username: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def label(self) -> str:
        if self.display_name and self.username:
            return f"{self.display_name} (@{self.username})"
        return self.display_name or self.username or self.user_id


class InviteResponse(BaseModel):
    """Invite joined with the profiles of both parties."""

    id: str
    from_user_id: str
    to_user_id: str
    status: InviteStatus
    created_at: datetime
    updated_at: datetime
    from_profile: Optional[ProfileResponse] = None
    to_profile: Optional[ProfileResponse] = None

    model_config = {"from_attributes": True}

