"""SQLAlchemy models for the public shelf.

Tables:
- public_shelf: Up to five want-to-read books a user shows on their profile
"""

from sqlalchemy import CheckConstraint, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, generate_uuid, utcnow_iso

SHELF_SIZE = 5


class PublicShelfItem(Base):
    """A book placed in one of the five public shelf slots."""

    __tablename__ = "public_shelf"
    __table_args__ = (
        UniqueConstraint("user_id", "position", name="uq_public_shelf_user_position"),
        UniqueConstraint("user_id", "book_id", name="uq_public_shelf_user_book"),
        CheckConstraint(
            f"position >= 1 AND position <= {SHELF_SIZE}", name="ck_public_shelf_position"
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    book_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    # Slot 1-5
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[str] = mapped_column(String(32), default=utcnow_iso)

    def __repr__(self) -> str:
        return f"<PublicShelfItem(user_id={self.user_id}, book_id={self.book_id}, position={self.position})>"
