"""Per-user session owning one instance of every feature manager.

A session is bound to a single user id. Switching users rebuilds every
manager, so no state from the previous user survives the switch.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from .books.manager import BookListManager
from .circle.manager import CircleManager
from .circle.schemas import CircleMember, InviteResponse
from .db.schemas import BookResponse, BookStatus
from .db.sqlite import Database, get_db
from .profiles.manager import ProfileManager
from .profiles.schemas import ProfileResponse
from .recommendations.manager import RecommendationManager
from .recommendations.schemas import RecommendationResponse, RequestResponse
from .shelf.manager import PublicShelfManager
from .shelf.schemas import ShelfEntry

logger = logging.getLogger(__name__)


@dataclass
class SessionState:
    """Snapshot of everything the signed-in user sees."""

    user_id: Optional[str]
    profile: Optional[ProfileResponse] = None
    books: dict[BookStatus, list[BookResponse]] = field(default_factory=dict)
    priorities: list[Optional[BookResponse]] = field(default_factory=lambda: [None, None, None])
    members: list[CircleMember] = field(default_factory=list)
    pending_received: list[InviteResponse] = field(default_factory=list)
    pending_sent: list[InviteResponse] = field(default_factory=list)
    recommendations: list[RecommendationResponse] = field(default_factory=list)
    requests: list[RequestResponse] = field(default_factory=list)
    shelf: list[ShelfEntry] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class UserSession:
    """Owns the feature managers for one user."""

    def __init__(
        self,
        db: Optional[Database] = None,
        user_id: Optional[str] = None,
        atomic_writes: bool = True,
    ):
        self.db = db or get_db()
        self.atomic_writes = atomic_writes
        self.user_id: Optional[str] = None
        self.switch_user(user_id)

    def switch_user(self, user_id: Optional[str]) -> None:
        """Bind the session to another user (None signs out)."""
        self.user_id = user_id
        self.profiles = ProfileManager(self.db, user_id)
        self.books = BookListManager(self.db, user_id, atomic_writes=self.atomic_writes)
        self.circle = CircleManager(self.db, user_id, atomic_writes=self.atomic_writes)
        self.recommendations = RecommendationManager(self.db, user_id)
        self.shelf = PublicShelfManager(self.db, user_id)
        logger.debug("Session bound to user %s", user_id)

    @property
    def managers(self) -> list:
        return [self.profiles, self.books, self.circle, self.recommendations, self.shelf]

    def refresh(self) -> SessionState:
        """Load a fresh snapshot from the store.

        Failed reads leave their section empty and add the manager's error
        message to ``errors``.
        """
        state = SessionState(user_id=self.user_id)
        if not self.user_id:
            return state

        state.profile = self.profiles.get_profile()
        state.books = {status: self.books.list_by_status(status) for status in BookStatus}
        state.priorities = self.books.priority_books()
        state.members = self.circle.list_members()
        state.pending_received = self.circle.list_pending_received()
        state.pending_sent = self.circle.list_pending_sent()
        state.recommendations = self.recommendations.incoming_recommendations(pending_only=True)
        state.requests = self.recommendations.incoming_requests()
        state.shelf = self.shelf.list_shelf()

        state.errors = [m.error for m in self.managers if m.error]
        return state
