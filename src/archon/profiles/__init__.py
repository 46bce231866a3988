"""server profile management."""
from .manager import ProfileManager, ProfileError
from .store import ProfileStore
from .models import Profile, ActiveProfile, ArchonConfig

__all__ = [
    "ProfileManager",
    "ProfileError",
    "ProfileStore",
    "Profile",
    "ActiveProfile",
    "ArchonConfig",
]
