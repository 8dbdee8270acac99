"""SQLAlchemy models for user profiles.

Tables:
- profiles: Public identity of an auth user (username, display name)
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, generate_uuid, utcnow_iso


class Profile(Base):
    """User profile, 1:1 with an auth identity."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    # Lowercase, unique, immutable once created
    username: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(50), nullable=False)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utcnow_iso)
    updated_at: Mapped[str] = mapped_column(String(32), default=utcnow_iso, onupdate=utcnow_iso)

    def __repr__(self) -> str:
        return f"<Profile(user_id={self.user_id}, username='{self.username}')>"
