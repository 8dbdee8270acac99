"""Shared base for the per-user feature managers."""

from typing import Optional

from .db.sqlite import Database, get_db
from .errors import ValidationError


class UserScopedManager:
    """A manager bound to one signed-in user.

    ``error`` holds the message of the last failed operation, or None after
    a successful one.
    """

    def __init__(self, db: Optional[Database] = None, user_id: Optional[str] = None):
        """Initialize the manager.

        Args:
            db: Database instance
            user_id: Opaque id of the signed-in user, None when signed out
        """
        self.db = db or get_db()
        self.user_id = user_id
        self.error: Optional[str] = None

    def _require_user(self) -> str:
        if not self.user_id:
            raise ValidationError("No user is signed in")
        return self.user_id
