"""Pydantic schemas for book data validation.

These schemas define the book shape exchanged between the book list
manager and its callers (CLI, user session, recommendation import).
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class BookStatus(str, Enum):
    """The three reading lists a book can live in."""

    WANT_TO_READ = "want_to_read"
    CURRENTLY_READING = "currently_reading"
    HAVE_READ = "have_read"

    @property
    def display(self) -> str:
        return {
            "want_to_read": "Want to Read",
            "currently_reading": "Currently Reading",
            "have_read": "Have Read",
        }[self.value]


class ConsumptionType(str, Enum):
    """How a book is being consumed."""

    READ = "read"
    LISTEN = "listen"


class ListenPlatform(str, Enum):
    """Audiobook platform, meaningful when listening."""

    AUDIBLE = "audible"
    LIBBY = "libby"
    SPOTIFY = "spotify"


class ReadFormat(str, Enum):
    """Physical format, meaningful when reading."""

    PAPER = "paper"
    DIGITAL = "digital"


PRIORITY_SLOTS = (1, 2, 3)


def _strip_required(value):
    if isinstance(value, str):
        return value.strip()
    return value


def _strip_optional(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _check_consumption(
    consumption_type: Optional[ConsumptionType],
    listen_platform: Optional[ListenPlatform],
    read_format: Optional[ReadFormat],
) -> None:
    if listen_platform is not None and consumption_type == ConsumptionType.READ:
        raise ValueError("A listen platform only applies to books you listen to")
    if read_format is not None and consumption_type == ConsumptionType.LISTEN:
        raise ValueError("A read format only applies to books you read")


# ============================================================================
# Base Schemas
# ============================================================================


class BookBase(BaseModel):
    """Base book fields common to create operations."""

    title: str = Field(..., min_length=1, max_length=500, description="Book title")
    author: str = Field(..., min_length=1, max_length=500, description="Primary author")
    notes: Optional[str] = None
    status: BookStatus = Field(default=BookStatus.WANT_TO_READ)

    # Consumption metadata
    consumption_type: Optional[ConsumptionType] = None
    listen_platform: Optional[ListenPlatform] = None
    read_format: Optional[ReadFormat] = None

    recommended_by: Optional[str] = Field(None, max_length=200)
    priority: Optional[int] = Field(None, ge=1, le=3, description="Up-next slot 1-3")

    @field_validator("title", "author", mode="before")
    @classmethod
    def strip_required(cls, v):
        return _strip_required(v)

    @field_validator("notes", "recommended_by", mode="before")
    @classmethod
    def strip_optional(cls, v):
        return _strip_optional(v)

    @model_validator(mode="after")
    def check_consumption(self):
        _check_consumption(self.consumption_type, self.listen_platform, self.read_format)
        return self


class BookCreate(BookBase):
    """Schema for adding a new book.

    ``completed_at`` is honoured only when the book is created as have_read;
    edits never change it.
    """

    completed_at: Optional[datetime] = None


class BookUpdate(BaseModel):
    """Schema for editing a book. All fields optional."""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    author: Optional[str] = Field(None, min_length=1, max_length=500)
    notes: Optional[str] = None
    status: Optional[BookStatus] = None
    consumption_type: Optional[ConsumptionType] = None
    listen_platform: Optional[ListenPlatform] = None
    read_format: Optional[ReadFormat] = None
    recommended_by: Optional[str] = Field(None, max_length=200)
    priority: Optional[int] = Field(None, ge=1, le=3)

    @field_validator("title", "author", mode="before")
    @classmethod
    def strip_required(cls, v):
        return _strip_required(v)

    @field_validator("notes", "recommended_by", mode="before")
    @classmethod
    def strip_optional(cls, v):
        return _strip_optional(v)

    @model_validator(mode="after")
    def check_consumption(self):
        _check_consumption(self.consumption_type, self.listen_platform, self.read_format)
        return self


class BookResponse(BaseModel):
    """Schema for book response."""

    id: str
    user_id: str
    title: str
    author: str
    notes: Optional[str] = None
    status: BookStatus
    consumption_type: Optional[ConsumptionType] = None
    listen_platform: Optional[ListenPlatform] = None
    read_format: Optional[ReadFormat] = None
    recommended_by: Optional[str] = None
    priority: Optional[int] = None
    position: int
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    is_public: bool = False

    model_config = {"from_attributes": True}


class ReadingStats(BaseModel):
    """Counts shown above the reading board."""

    want_to_read: int = 0
    currently_reading: int = 0
    have_read: int = 0
    year: int
    completed_this_year: int = 0

    @property
    def completed_all_time(self) -> int:
        return self.have_read
