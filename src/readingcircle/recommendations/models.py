"""SQLAlchemy models for recommendations.

Tables:
- recommendations: A book suggested by one user to another
- recommendation_requests: A user asking one person, or their whole circle, for ideas
"""

from typing import Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, generate_uuid, utcnow_iso
from .schemas import RecommendationStatus, RequestStatus


class Recommendation(Base):
    """Book recommendation sent from one circle member to another.

    The book is free text, not a reference to a row in ``books``.
    """

    __tablename__ = "recommendations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    from_user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    to_user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    book_title: Mapped[str] = mapped_column(String(500), nullable=False)
    book_author: Mapped[str] = mapped_column(String(500), nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text)

    status: Mapped[str] = mapped_column(
        String(20), default=RecommendationStatus.PENDING.value, nullable=False
    )

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utcnow_iso)
    updated_at: Mapped[str] = mapped_column(String(32), default=utcnow_iso, onupdate=utcnow_iso)

    def __repr__(self) -> str:
        return f"<Recommendation(id={self.id}, title='{self.book_title}', status={self.status})>"


class RecommendationRequest(Base):
    """Request for recommendations; a null recipient broadcasts to the sender's circle."""

    __tablename__ = "recommendation_requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    from_user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    to_user_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    note: Mapped[Optional[str]] = mapped_column(Text)

    status: Mapped[str] = mapped_column(
        String(20), default=RequestStatus.OPEN.value, nullable=False
    )

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utcnow_iso)
    updated_at: Mapped[str] = mapped_column(String(32), default=utcnow_iso, onupdate=utcnow_iso)

    def __repr__(self) -> str:
        return f"<RecommendationRequest(id={self.id}, from={self.from_user_id}, to={self.to_user_id})>"
