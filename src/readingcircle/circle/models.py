"""SQLAlchemy models for the reading circle graph.

Tables:
- circle_invites: Invites between two users (pending, accepted, declined)
- connections: Undirected edges, stored once per pair with user_a_id < user_b_id
"""

from sqlalchemy import CheckConstraint, Index, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, generate_uuid, utcnow_iso
from .schemas import InviteStatus


class CircleInvite(Base):
    """Invite from one user to another to join each other's circle."""

    __tablename__ = "circle_invites"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    from_user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    to_user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20), default=InviteStatus.PENDING.value, nullable=False
    )

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utcnow_iso)
    updated_at: Mapped[str] = mapped_column(String(32), default=utcnow_iso, onupdate=utcnow_iso)

    def __repr__(self) -> str:
        return f"<CircleInvite(id={self.id}, {self.from_user_id}->{self.to_user_id}, status={self.status})>"

    @property
    def is_pending(self) -> bool:
        return self.status == InviteStatus.PENDING.value


# One pending invite per unordered pair, whichever direction it was sent in
Index(
    "uq_circle_invites_pending_pair",
    func.min(CircleInvite.from_user_id, CircleInvite.to_user_id),
    func.max(CircleInvite.from_user_id, CircleInvite.to_user_id),
    unique=True,
    sqlite_where=CircleInvite.status == InviteStatus.PENDING.value,
)


class Connection(Base):
    """Undirected connection between two users."""

    __tablename__ = "connections"
    __table_args__ = (
        UniqueConstraint("user_a_id", "user_b_id", name="uq_connections_pair"),
        CheckConstraint("user_a_id < user_b_id", name="ck_connections_ordered"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_a_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    user_b_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    created_at: Mapped[str] = mapped_column(String(32), default=utcnow_iso)

    def __repr__(self) -> str:
        return f"<Connection({self.user_a_id}<->{self.user_b_id})>"

    def other(self, user_id: str) -> str:
        """The endpoint that is not ``user_id``."""
        return self.user_b_id if self.user_a_id == user_id else self.user_a_id
