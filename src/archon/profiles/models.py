"""data models for server profiles."""
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field

from ..config import DEFAULT_PROFILE, DEFAULT_PROFILES


class Profile(BaseModel):
    """one backend deployment to target."""
    name: str  # display name
    url: str
    insecure: bool = False


class ActiveProfile(Profile):
    """a profile together with the key it was resolved from."""
    key: str


class ArchonConfig(BaseModel):
    """complete persisted configuration."""
    model_config = ConfigDict(populate_by_name=True)

    default_profile: str = Field(DEFAULT_PROFILE, alias="defaultProfile")
    profiles: Dict[str, Profile] = Field(default_factory=dict)

    @classmethod
    def default(cls) -> "ArchonConfig":
        """create the first-run config with the seeded profiles."""
        return cls(
            default_profile=DEFAULT_PROFILE,
            profiles={key: Profile(**value) for key, value in DEFAULT_PROFILES.items()},
        )
