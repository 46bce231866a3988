import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict

CONFIG_DIR = Path(os.environ["ARCHON_CONFIG_DIR"]) if os.environ.get("ARCHON_CONFIG_DIR") else Path.home() / ".archon"
CONFIG_FILE_NAME = "config.json"
TOKENS_DIR_NAME = "tokens"

# tokens are treated as expired this long before they actually lapse
EXPIRY_BUFFER_MS = 5 * 60 * 1000
DEFAULT_EXPIRES_IN = 3600

AUTH_TIMEOUT = 15.0
REQUEST_TIMEOUT = 30.0

DEFAULT_PROFILE = "production"
DEFAULT_PROFILES = {
    "production": {"name": "Production", "url": "https://archon.zincapp.com"},
    "development": {"name": "Development", "url": "https://archon.zincapp.dev"},
    "local": {"name": "Local", "url": "http://localhost:4000"},
}


def get_config_file(config_dir: Path = CONFIG_DIR) -> Path:
    return config_dir / CONFIG_FILE_NAME


def get_tokens_dir(config_dir: Path = CONFIG_DIR) -> Path:
    return config_dir / TOKENS_DIR_NAME


def ensure_config_dirs(config_dir: Path = CONFIG_DIR) -> None:
    """create the config and tokens directories if missing."""
    config_dir.mkdir(parents=True, exist_ok=True)
    get_tokens_dir(config_dir).mkdir(parents=True, exist_ok=True)


class EnvSettings(BaseModel):
    """
    environment-driven settings, read once at startup.

    empty variables count as unset so `ARCHON_TOKEN= archon ...` behaves
    the same as not exporting it at all.
    """
    model_config = ConfigDict(frozen=True)

    token_override: Optional[str] = None
    auto_login_user: Optional[str] = None
    auto_login_pass: Optional[str] = None
    profile_override: Optional[str] = None
    url_override: Optional[str] = None
    debug: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EnvSettings":
        env = os.environ if environ is None else environ

        def read(name: str) -> Optional[str]:
            value = env.get(name)
            return value or None

        return cls(
            token_override=read("ARCHON_TOKEN"),
            auto_login_user=read("ARCHON_USER"),
            auto_login_pass=read("ARCHON_PASS"),
            profile_override=read("ARCHON_PROFILE"),
            url_override=read("ARCHON_URL"),
            debug=bool(read("DEBUG")),
        )

    @property
    def has_auto_login(self) -> bool:
        return bool(self.auto_login_user and self.auto_login_pass)
