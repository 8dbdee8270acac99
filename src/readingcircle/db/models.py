"""SQLAlchemy ORM models shared by every feature package.

Tables:
- books: A user's books across the three reading lists

Feature packages (profiles, circle, recommendations, shelf) declare their
own tables on the same ``Base``.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .schemas import BookStatus


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


def utcnow_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class Book(Base):
    """Book model - one row per book on one user's lists."""

    __tablename__ = "books"
    __table_args__ = (
        Index("ix_books_user_status_position", "user_id", "status", "position"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # Core fields
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    author: Mapped[str] = mapped_column(String(500), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(
        String(20), default=BookStatus.WANT_TO_READ.value, nullable=False
    )

    # Consumption metadata
    consumption_type: Mapped[Optional[str]] = mapped_column(String(10))  # read, listen
    listen_platform: Mapped[Optional[str]] = mapped_column(String(20))  # audible, libby, spotify
    read_format: Mapped[Optional[str]] = mapped_column(String(20))  # paper, digital
    recommended_by: Mapped[Optional[str]] = mapped_column(String(200))

    # Ordering
    priority: Mapped[Optional[int]] = mapped_column(Integer)  # 1-3, want_to_read only
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utcnow_iso)
    updated_at: Mapped[str] = mapped_column(String(32), default=utcnow_iso, onupdate=utcnow_iso)
    completed_at: Mapped[Optional[str]] = mapped_column(String(32))

    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title='{self.title}', status={self.status})>"

    @property
    def is_want_to_read(self) -> bool:
        return self.status == BookStatus.WANT_TO_READ.value
