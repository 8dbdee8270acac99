"""Pydantic schemas for user profiles."""

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 20
DISPLAY_NAME_MAX_LENGTH = 50

USERNAME_PATTERN = re.compile(r"^[a-z0-9_]+$")


def normalize_username(username: str) -> str:
    """Usernames are compared and stored lowercase."""
    return username.strip().lower()


def validate_username(username: str) -> str:
    """Check a normalized username, returning it unchanged."""
    if len(username) < USERNAME_MIN_LENGTH:
        raise ValueError(f"Username must be at least {USERNAME_MIN_LENGTH} characters")
    if len(username) > USERNAME_MAX_LENGTH:
        raise ValueError(f"Username must be {USERNAME_MAX_LENGTH} characters or less")
    if not USERNAME_PATTERN.match(username):
        raise ValueError("Username may only contain lowercase letters, numbers, and underscores")
    return username


def _clean_display_name(value):
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValueError("Display name is required")
    return value


class ProfileCreate(BaseModel):
    """Schema for creating a profile."""

    username: str
    display_name: str = Field(..., max_length=DISPLAY_NAME_MAX_LENGTH)

    @field_validator("username", mode="before")
    @classmethod
    def check_username(cls, v):
        if not isinstance(v, str):
            return v
        return validate_username(normalize_username(v))

    @field_validator("display_name", mode="before")
    @classmethod
    def check_display_name(cls, v):
        return _clean_display_name(v)


class ProfileUpdate(BaseModel):
    """Schema for updating a profile. Only the display name is mutable."""

    display_name: str = Field(..., max_length=DISPLAY_NAME_MAX_LENGTH)

    @field_validator("display_name", mode="before")
    @classmethod
    def check_display_name(cls, v):
        return _clean_display_name(v)


class ProfileResponse(BaseModel):
    """Schema for profile response."""

    id: str
    user_id: str
    username: str
    display_name: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
