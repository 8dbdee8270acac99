"""Pydantic schemas for recommendations and recommendation requests."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..profiles.schemas import ProfileResponse


class RecommendationStatus(str, Enum):
    """A recommendation is pending until the recipient adds or dismisses it."""

    PENDING = "pending"
    ADDED = "added"
    DISMISSED = "dismissed"


class RequestStatus(str, Enum):
    """Status of a request for recommendations.

    ``fulfilled`` is reserved; nothing sets it.
    """

    OPEN = "open"
    FULFILLED = "fulfilled"
    CLOSED = "closed"


def _strip_optional(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class RecommendationCreate(BaseModel):
    """Schema for sending a recommendation."""

    to_user_id: str = Field(..., min_length=1)
    book_title: str = Field(..., min_length=1, max_length=500)
    book_author: str = Field(..., min_length=1, max_length=500)
    note: Optional[str] = None

    @field_validator("book_title", "book_author", mode="before")
    @classmethod
    def strip_required(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("note", mode="before")
    @classmethod
    def strip_note(cls, v):
        return _strip_optional(v)


class RequestCreate(BaseModel):
    """Schema for asking for recommendations. No recipient means the whole circle."""

    to_user_id: Optional[str] = None
    note: Optional[str] = None

    @field_validator("to_user_id", "note", mode="before")
    @classmethod
    def strip_optional(cls, v):
        return _strip_optional(v)


class RecommendationResponse(BaseModel):
    """Recommendation joined with the sender's and recipient's profiles."""

    id: str
    from_user_id: str
    to_user_id: str
    book_title: str
    book_author: str
    note: Optional[str] = None
    status: RecommendationStatus
    created_at: datetime
    updated_at: datetime
    from_profile: Optional[ProfileResponse] = None
    to_profile: Optional[ProfileResponse] = None

    model_config = {"from_attributes": True}


class RequestResponse(BaseModel):
    """Recommendation request joined with the sender's and recipient's profiles."""

    id: str
    from_user_id: str
    to_user_id: Optional[str] = None
    note: Optional[str] = None
    status: RequestStatus
    created_at: datetime
    updated_at: datetime
    from_profile: Optional[ProfileResponse] = None
    to_profile: Optional[ProfileResponse] = None

    model_config = {"from_attributes": True}

    @property
    def is_broadcast(self) -> bool:
        return self.to_user_id is None
