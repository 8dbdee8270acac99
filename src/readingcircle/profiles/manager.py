"""Manager for user profiles and username lookup."""

import logging
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.models import utcnow_iso
from ..errors import ConflictError, PersistenceError, guarded
from ..manager import UserScopedManager
from .models import Profile
from .schemas import (
    ProfileCreate,
    ProfileResponse,
    ProfileUpdate,
    normalize_username,
)

logger = logging.getLogger(__name__)


def fetch_profiles(session: Session, user_ids: Iterable[str]) -> dict[str, ProfileResponse]:
    """Batch-fetch profiles for a set of user ids with a single IN query.

    Users without a profile are simply absent from the result.
    """
    ids = {uid for uid in user_ids if uid}
    if not ids:
        return {}

    stmt = select(Profile).where(Profile.user_id.in_(ids))
    return {
        profile.user_id: ProfileResponse.model_validate(profile)
        for profile in session.execute(stmt).scalars()
    }


def get_profile_by_username(session: Session, username: str) -> Optional[Profile]:
    stmt = select(Profile).where(Profile.username == normalize_username(username))
    return session.execute(stmt).scalar_one_or_none()


class ProfileManager(UserScopedManager):
    """Manages the signed-in user's profile and finding other users."""

    @guarded(default=None, message="Failed to fetch profile")
    def get_profile(self) -> Optional[ProfileResponse]:
        """Get the signed-in user's profile.

        Returns:
            Profile, or None if the user has not created one yet
        """
        if not self.user_id:
            return None

        with self.db.get_session() as session:
            profile = self._get_own(session)
            return ProfileResponse.model_validate(profile) if profile else None

    @guarded(default=None, message="Failed to create profile")
    def create_profile(self, username: str, display_name: str) -> Optional[ProfileResponse]:
        """Create the signed-in user's profile.

        Args:
            username: Requested username, lowercased before validation
            display_name: Free-text display name

        Returns:
            Created profile, or None on failure (see ``error``)
        """
        user_id = self._require_user()
        data = ProfileCreate(username=username, display_name=display_name)

        with self.db.get_session() as session:
            if self._get_own(session):
                raise ConflictError("You already have a profile")
            if get_profile_by_username(session, data.username):
                raise ConflictError("Username is already taken")

            profile = Profile(
                user_id=user_id,
                username=data.username,
                display_name=data.display_name,
            )
            session.add(profile)
            try:
                session.flush()
            except IntegrityError as e:
                raise ConflictError("Username is already taken") from e

            logger.info("Created profile @%s for user %s", profile.username, user_id)
            return ProfileResponse.model_validate(profile)

    @guarded(default=None, message="Failed to update profile")
    def update_display_name(self, display_name: str) -> Optional[ProfileResponse]:
        """Change the signed-in user's display name."""
        self._require_user()
        data = ProfileUpdate(display_name=display_name)

        with self.db.get_session() as session:
            profile = self._get_own(session)
            if not profile:
                raise PersistenceError("Profile not found")

            profile.display_name = data.display_name
            profile.updated_at = utcnow_iso()
            session.flush()
            return ProfileResponse.model_validate(profile)

    @guarded(default=False, message="Failed to check username")
    def is_username_available(self, username: str) -> bool:
        """Check whether a username is free (case-insensitive)."""
        with self.db.get_session() as session:
            return get_profile_by_username(session, username) is None

    @guarded(default=None, message="Failed to find user")
    def find_by_username(self, username: str) -> Optional[ProfileResponse]:
        """Find another user by username. A miss is not an error."""
        with self.db.get_session() as session:
            profile = get_profile_by_username(session, username)
            return ProfileResponse.model_validate(profile) if profile else None

    @guarded(default=dict, message="Failed to fetch profiles")
    def fetch_profiles(self, user_ids: Iterable[str]) -> dict[str, ProfileResponse]:
        """Batch-fetch profiles keyed by user id."""
        with self.db.get_session() as session:
            return fetch_profiles(session, user_ids)

    def _get_own(self, session: Session) -> Optional[Profile]:
        stmt = select(Profile).where(Profile.user_id == self.user_id)
        return session.execute(stmt).scalar_one_or_none()
