"""Reading circle: invites and symmetric connections between users."""

from .manager import CircleManager, canonical_pair, member_ids_for
from .models import CircleInvite, Connection
from .schemas import CircleMember, InviteResponse, InviteStatus

__all__ = [
    "CircleManager",
    "canonical_pair",
    "member_ids_for",
    "CircleInvite",
    "Connection",
    "CircleMember",
    "InviteResponse",
    "InviteStatus",
]
