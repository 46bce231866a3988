import os
import json
import logging
import tempfile
from pathlib import Path
from typing import Optional

from ..domain.errors import InvalidProfileKeyError
from .models import TokenData

logger = logging.getLogger(__name__)


class TokenStore:
    """handles per-profile token persistence, one JSON file per profile key."""

    def __init__(self, tokens_dir: Path):
        self.tokens_dir = tokens_dir

    def token_file(self, profile_key: str) -> Path:
        # keys map to file names directly, so refuse anything that could leave the directory
        if not profile_key or profile_key in (".", "..") or "/" in profile_key or "\\" in profile_key:
            raise InvalidProfileKeyError(profile_key)
        return self.tokens_dir / f"{profile_key}.json"

    def load(self, profile_key: str) -> Optional[TokenData]:
        """load the token record for a profile; unreadable records count as absent."""
        path = self.token_file(profile_key)

        if not path.exists():
            return None

        try:
            with open(path, "r") as f:
                data = json.load(f)
            return TokenData.model_validate(data)
        except (json.JSONDecodeError, ValueError, OSError) as e:
            logger.debug("ignoring unreadable token file %s: %s", path, e)
            return None

    def save(self, tokens: TokenData, profile_key: str) -> None:
        """write the token record, replacing any previous one atomically."""
        path = self.token_file(profile_key)
        self.tokens_dir.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=self.tokens_dir, prefix=f".{profile_key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(tokens.model_dump(by_alias=True), f, indent=2)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def delete(self, profile_key: str) -> bool:
        """
        remove the token record for a profile.

        returns:
            True if a record existed and was removed
        """
        path = self.token_file(profile_key)

        if not path.exists():
            return False

        path.unlink()
        return True
