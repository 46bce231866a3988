import json
import logging
from pathlib import Path
from typing import Dict

from ..config import DEFAULT_PROFILE
from ..domain.errors import ProfileNotFoundError
from .models import ArchonConfig, Profile

logger = logging.getLogger(__name__)


class ProfileStore:
    """handles profile persistence to JSON."""

    def __init__(self, config_file: Path):
        self.config_file = config_file

    def load(self) -> ArchonConfig:
        """load config from JSON file, seeding the default profiles on first run."""
        if not self.config_file.exists():
            config = ArchonConfig.default()
            self.save(config)
            return config

        try:
            with open(self.config_file, "r") as f:
                data = json.load(f)
            return ArchonConfig.model_validate(data)
        except (json.JSONDecodeError, ValueError, OSError) as e:
            # corrupted file, fall back to defaults without overwriting it
            logger.warning("could not read %s (%s), using default profiles", self.config_file, e)
            return ArchonConfig.default()

    def save(self, config: ArchonConfig) -> None:
        """save config to JSON file."""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_file, "w") as f:
            json.dump(config.model_dump(by_alias=True), f, indent=2)

    def get_profiles(self) -> Dict[str, Profile]:
        return self.load().profiles

    def get_default_profile(self) -> str:
        return self.load().default_profile

    def set_profile(self, key: str, profile: Profile) -> None:
        """create or overwrite a profile."""
        config = self.load()
        config.profiles[key] = profile
        self.save(config)

    def delete_profile(self, key: str) -> bool:
        """
        remove a profile.

        returns:
            True if the profile existed
        """
        config = self.load()

        if key not in config.profiles:
            return False

        del config.profiles[key]

        # if this was the default, hand it to whatever is left
        if config.default_profile == key:
            remaining = list(config.profiles.keys())
            config.default_profile = remaining[0] if remaining else DEFAULT_PROFILE

        self.save(config)
        return True

    def set_default_profile(self, key: str) -> None:
        """
        persist the default profile.

        raises:
            ProfileNotFoundError: if key is unknown
        """
        config = self.load()

        if key not in config.profiles:
            raise ProfileNotFoundError(key)

        config.default_profile = key
        self.save(config)
