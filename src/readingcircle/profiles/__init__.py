"""User profiles module."""

from .manager import ProfileManager, fetch_profiles
from .models import Profile
from .schemas import ProfileCreate, ProfileResponse, ProfileUpdate

__all__ = [
    "ProfileManager",
    "fetch_profiles",
    "Profile",
    "ProfileCreate",
    "ProfileResponse",
    "ProfileUpdate",
]
