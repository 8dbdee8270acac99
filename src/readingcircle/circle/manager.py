"""Manager for the reading circle: invites and connections.

Invite lifecycle is ``pending -> accepted | declined``; both outcomes are
final and invites are never deleted. Accepting an invite creates exactly one
connection row with the two user ids in canonical (sorted) order, so
"is X in Y's circle" is a single lookup over either column.
"""

import logging
from typing import Optional

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.models import utcnow_iso
from ..db.sqlite import Database
from ..errors import (
    ConflictError,
    PartialFailureError,
    PersistenceError,
    ValidationError,
    guarded,
)
from ..manager import UserScopedManager
from ..profiles.manager import fetch_profiles, get_profile_by_username
from .models import CircleInvite, Connection
from .schemas import CircleMember, InviteResponse, InviteStatus

logger = logging.getLogger(__name__)


def canonical_pair(user_id: str, other_user_id: str) -> tuple[str, str]:
    """Order two user ids the way connections store them."""
    if user_id < other_user_id:
        return user_id, other_user_id
    return other_user_id, user_id


def pair_filter(user_id: str, other_user_id: str):
    """Match a connection between two users regardless of column order."""
    user_a, user_b = canonical_pair(user_id, other_user_id)
    return and_(Connection.user_a_id == user_a, Connection.user_b_id == user_b)


def member_ids_for(session: Session, user_id: str) -> set[str]:
    """Ids of everyone connected to ``user_id``."""
    stmt = select(Connection).where(
        or_(Connection.user_a_id == user_id, Connection.user_b_id == user_id)
    )
    return {conn.other(user_id) for conn in session.execute(stmt).scalars()}


class CircleManager(UserScopedManager):
    """Manages the signed-in user's circle invites and connections."""

    def __init__(
        self,
        db: Optional[Database] = None,
        user_id: Optional[str] = None,
        atomic_writes: bool = True,
    ):
        """Initialize the circle manager.

        Args:
            db: Database instance
            user_id: Signed-in user id
            atomic_writes: Accept an invite and create its connection in one
                transaction
        """
        super().__init__(db, user_id)
        self.atomic_writes = atomic_writes

    # -------------------------------------------------------------------------
    # Invites
    # -------------------------------------------------------------------------

    @guarded(default=False, message="Failed to send invite")
    def send_invite(self, to_user_id: str) -> bool:
        """Invite another user to the circle.

        Refused when the users are already connected or when a pending
        invite exists between them in either direction.
        """
        self._send(to_user_id)
        return True

    @guarded(default=False, message="Failed to send invite")
    def send_invite_by_username(self, username: str) -> bool:
        """Look a user up by username and invite them."""
        self._require_user()
        with self.db.get_session() as session:
            profile = get_profile_by_username(session, username)
            if profile is None:
                raise PersistenceError(f"No user found with username '{username}'")
            to_user_id = profile.user_id

        self._send(to_user_id)
        return True

    @guarded(default=False, message="Failed to accept invite")
    def accept_invite(self, invite_id: str) -> bool:
        """Accept a pending invite addressed to the signed-in user.

        Marks the invite accepted and creates the connection. Without
        ``atomic_writes`` these are two separate commits; if the second fails
        the invite stays accepted with no connection.
        """
        self._require_user()

        if self.atomic_writes:
            with self.db.get_session() as session:
                invite = self._get_received_pending(session, invite_id)
                self._mark(invite, InviteStatus.ACCEPTED)
                session.add(Connection(**self._connection_values(invite)))
                try:
                    session.flush()
                except IntegrityError as e:
                    raise ConflictError("Already in your circle") from e
                other = invite.from_user_id
        else:
            with self.db.get_session() as session:
                invite = self._get_received_pending(session, invite_id)
                self._mark(invite, InviteStatus.ACCEPTED)
                values = self._connection_values(invite)
                other = invite.from_user_id

            try:
                with self.db.get_session() as session:
                    session.add(Connection(**values))
            except SQLAlchemyError as e:
                raise PartialFailureError(
                    "Invite accepted but the connection could not be created"
                ) from e

        logger.info("Circle invite %s accepted; %s and %s connected", invite_id, self.user_id, other)
        return True

    @guarded(default=False, message="Failed to decline invite")
    def decline_invite(self, invite_id: str) -> bool:
        """Decline a pending invite addressed to the signed-in user."""
        self._require_user()
        with self.db.get_session() as session:
            invite = self._get_received_pending(session, invite_id)
            self._mark(invite, InviteStatus.DECLINED)

        logger.info("Circle invite %s declined", invite_id)
        return True

    # -------------------------------------------------------------------------
    # Connections
    # -------------------------------------------------------------------------

    @guarded(default=False, message="Failed to remove from circle")
    def remove_connection(self, other_user_id: str) -> bool:
        """Remove the connection with another user, from either side."""
        user_id = self._require_user()
        with self.db.get_session() as session:
            result = session.execute(delete(Connection).where(pair_filter(user_id, other_user_id)))

        if result.rowcount:
            logger.info("Connection removed between %s and %s", user_id, other_user_id)
        return True

    @guarded(default=set, message="Failed to fetch circle")
    def member_ids(self) -> set[str]:
        """Ids of everyone in the signed-in user's circle."""
        if not self.user_id:
            return set()
        with self.db.get_session() as session:
            return member_ids_for(session, self.user_id)

    @guarded(default=False, message="Failed to fetch circle")
    def is_member(self, other_user_id: str) -> bool:
        """Whether ``other_user_id`` is connected to the signed-in user."""
        if not self.user_id or other_user_id == self.user_id:
            return False
        with self.db.get_session() as session:
            return self._connection(session, other_user_id) is not None

    @guarded(default=list, message="Failed to fetch circle")
    def list_members(self) -> list[CircleMember]:
        """Profile summaries of everyone in the circle, by display name."""
        if not self.user_id:
            return []

        with self.db.get_session() as session:
            ids = member_ids_for(session, self.user_id)
            profiles = fetch_profiles(session, ids)

        members = []
        for member_id in ids:
            profile = profiles.get(member_id)
            members.append(CircleMember(
                user_id=member_id,
                username=profile.username if profile else None,
                display_name=profile.display_name if profile else None,
            ))
        members.sort(key=lambda m: ((m.display_name or m.username or m.user_id).lower(), m.user_id))
        return members

    @guarded(default=list, message="Failed to fetch invites")
    def list_pending_received(self) -> list[InviteResponse]:
        """Pending invites sent to the signed-in user, newest first."""
        if not self.user_id:
            return []
        return self._list_pending(CircleInvite.to_user_id == self.user_id)

    @guarded(default=list, message="Failed to fetch invites")
    def list_pending_sent(self) -> list[InviteResponse]:
        """Pending invites the signed-in user has sent, newest first."""
        if not self.user_id:
            return []
        return self._list_pending(CircleInvite.from_user_id == self.user_id)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _send(self, to_user_id: str) -> None:
        user_id = self._require_user()
        if not to_user_id:
            raise ValidationError("Choose someone to invite")
        if to_user_id == user_id:
            raise ValidationError("You cannot invite yourself")

        with self.db.get_session() as session:
            if self._connection(session, to_user_id) is not None:
                raise ConflictError("Already in your circle")
            if self._pending_between(session, to_user_id) is not None:
                raise ConflictError("Invite already pending")

            session.add(CircleInvite(
                from_user_id=user_id,
                to_user_id=to_user_id,
                status=InviteStatus.PENDING.value,
            ))
            try:
                session.flush()
            except IntegrityError as e:
                # Lost a race with a concurrent invite for the same pair
                raise ConflictError("Invite already pending") from e

        logger.info("Circle invite sent %s -> %s", user_id, to_user_id)

    def _list_pending(self, condition) -> list[InviteResponse]:
        with self.db.get_session() as session:
            stmt = (
                select(CircleInvite)
                .where(condition, CircleInvite.status == InviteStatus.PENDING.value)
                .order_by(CircleInvite.created_at.desc())
            )
            invites = list(session.execute(stmt).scalars())
            profiles = fetch_profiles(
                session,
                [i.from_user_id for i in invites] + [i.to_user_id for i in invites],
            )

            return [
                InviteResponse(
                    id=invite.id,
                    from_user_id=invite.from_user_id,
                    to_user_id=invite.to_user_id,
                    status=InviteStatus(invite.status),
                    created_at=invite.created_at,
                    updated_at=invite.updated_at,
                    from_profile=profiles.get(invite.from_user_id),
                    to_profile=profiles.get(invite.to_user_id),
                )
                for invite in invites
            ]

    def _connection(self, session: Session, other_user_id: str) -> Optional[Connection]:
        stmt = select(Connection).where(pair_filter(self.user_id, other_user_id))
        return session.execute(stmt).scalar_one_or_none()

    def _pending_between(self, session: Session, other_user_id: str) -> Optional[CircleInvite]:
        stmt = select(CircleInvite).where(
            CircleInvite.status == InviteStatus.PENDING.value,
            or_(
                and_(
                    CircleInvite.from_user_id == self.user_id,
                    CircleInvite.to_user_id == other_user_id,
                ),
                and_(
                    CircleInvite.from_user_id == other_user_id,
                    CircleInvite.to_user_id == self.user_id,
                ),
            ),
        )
        return session.execute(stmt).scalars().first()

    def _get_received_pending(self, session: Session, invite_id: str) -> CircleInvite:
        invite = session.get(CircleInvite, invite_id)
        if invite is None:
            raise PersistenceError("Invite not found")
        if invite.to_user_id != self.user_id:
            raise ValidationError("Only the invited user can respond to this invite")
        if not invite.is_pending:
            raise ConflictError(f"Invite was already {invite.status}")
        return invite

    @staticmethod
    def _mark(invite: CircleInvite, status: InviteStatus) -> None:
        invite.status = status.value
        invite.updated_at = utcnow_iso()

    @staticmethod
    def _connection_values(invite: CircleInvite) -> dict:
        user_a, user_b = canonical_pair(invite.from_user_id, invite.to_user_id)
        return {"user_a_id": user_a, "user_b_id": user_b}
