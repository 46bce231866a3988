import re
import logging
from typing import Dict, Optional

from ..config import EnvSettings
from ..domain.errors import ArchonError, ProfileExistsError, ProfileNotFoundError
from .models import ActiveProfile, Profile
from .store import ProfileStore

logger = logging.getLogger(__name__)


class ProfileError(ArchonError):
    """raised when profile input is invalid."""
    pass


class ProfileManager:
    """
    manages server profiles and decides which one is active.

    the active profile is resolved in this order:
      1. a session override set for the current invocation (`use_profile`)
      2. the ARCHON_PROFILE environment variable
      3. the persisted default profile
    """

    def __init__(self, store: ProfileStore, env: Optional[EnvSettings] = None):
        self.store = store
        self.env = env or EnvSettings()
        self.session_override: Optional[str] = None

    def list_profiles(self) -> Dict[str, Profile]:
        return self.store.get_profiles()

    def get_profile(self, key: str) -> Profile:
        profiles = self.store.get_profiles()
        if key not in profiles:
            raise ProfileNotFoundError(key)
        return profiles[key]

    def use_profile(self, key: str) -> None:
        """
        select a profile for this invocation only (not persisted).

        raises:
            ProfileNotFoundError: if key is unknown
        """
        if key not in self.store.get_profiles():
            raise ProfileNotFoundError(key)
        self.session_override = key

    def get_active_profile_name(self) -> str:
        if self.session_override:
            return self.session_override

        if self.env.profile_override:
            return self.env.profile_override

        return self.store.get_default_profile()

    def get_active_profile(self) -> ActiveProfile:
        """
        resolve the active profile.

        ARCHON_URL replaces only the base URL of the resolved profile; it
        never changes which profile (and so which tokens) is used.

        raises:
            ProfileNotFoundError: if the resolved key is not configured
        """
        key = self.get_active_profile_name()
        profile = self.get_profile(key)

        url = profile.url
        if self.env.url_override:
            logger.debug("using ARCHON_URL=%s for profile '%s'", self.env.url_override, key)
            url = self.env.url_override

        return ActiveProfile(key=key, name=profile.name, url=url, insecure=profile.insecure)

    def create_profile(
        self,
        key: str,
        url: str,
        display_name: Optional[str] = None,
        insecure: bool = False,
    ) -> Profile:
        """
        create a new profile.

        raises:
            ProfileExistsError: if key is taken
            ProfileError: if key or url is malformed
        """
        if not key or key in (".", "..") or not re.match(r"^[A-Za-z0-9_.-]+$", key):
            raise ProfileError(
                f"Invalid profile name '{key}'. "
                "Use only letters, numbers, dots, hyphens, and underscores."
            )

        if key in self.store.get_profiles():
            raise ProfileExistsError(key)

        _validate_url(url)

        profile = Profile(
            name=display_name or key[:1].upper() + key[1:],
            url=url.rstrip("/"),
            insecure=insecure,
        )
        self.store.set_profile(key, profile)
        return profile

    def update_profile(
        self,
        key: str,
        url: Optional[str] = None,
        display_name: Optional[str] = None,
        insecure: Optional[bool] = None,
    ) -> Profile:
        """
        change fields of an existing profile; None leaves a field as is.

        raises:
            ProfileNotFoundError: if key is unknown
        """
        existing = self.get_profile(key)

        if url is not None:
            _validate_url(url)

        updated = Profile(
            name=display_name or existing.name,
            url=url.rstrip("/") if url else existing.url,
            insecure=existing.insecure if insecure is None else insecure,
        )
        self.store.set_profile(key, updated)
        return updated

    def delete_profile(self, key: str) -> bool:
        return self.store.delete_profile(key)

    def set_default_profile(self, key: str) -> None:
        self.store.set_default_profile(key)


def _validate_url(url: str) -> None:
    if not url:
        raise ProfileError("URL is required")
    if not url.startswith(("http://", "https://")):
        raise ProfileError("URL must start with http:// or https://")
