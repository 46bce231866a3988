import logging
from enum import Enum
from typing import Callable, Optional

from ..domain.errors import NotAuthenticatedError, SessionExpiredError
from ..profiles.models import ActiveProfile
from .manager import TokenManager

logger = logging.getLogger(__name__)


class AuthState(str, Enum):
    ENV_OVERRIDE = "env-override"
    AUTO_LOGIN = "auto-login"
    VALID_TOKEN = "valid-token"
    EXPIRING = "expiring"
    NO_CREDENTIALS = "no-credentials"


class CredentialResolver:
    """decides which credentials apply to a profile and insists on a session for commands that need one."""

    def __init__(self, tokens: TokenManager):
        self.tokens = tokens

    def quick_check(self, profile: ActiveProfile) -> AuthState:
        """classify the profile's credentials without touching the network."""
        env = self.tokens.env
        if env.token_override:
            return AuthState.ENV_OVERRIDE
        if env.has_auto_login:
            return AuthState.AUTO_LOGIN

        stored = self.tokens.get_stored_tokens(profile.key)
        if stored is None:
            return AuthState.NO_CREDENTIALS
        if self.tokens.is_expired(stored):
            return AuthState.EXPIRING
        return AuthState.VALID_TOKEN

    def require_token(
        self,
        profile: ActiveProfile,
        notify: Optional[Callable[[str], None]] = None,
    ) -> str:
        """
        return an access token for the profile or raise with remediation text.

        raises:
            NotAuthenticatedError: nothing stored and nothing configured
            SessionExpiredError: the stored session could not be renewed
            LoginFailedError: auto-login credentials were rejected
        """
        state = self.quick_check(profile)
        if state is AuthState.NO_CREDENTIALS:
            raise NotAuthenticatedError(
                f"Not logged in to {profile.name}. Run: archon auth login"
            )
        if state is AuthState.EXPIRING:
            logger.debug("session for %s is expiring, refreshing", profile.name)
            if notify:
                notify("Session expired, refreshing...")

        token = self.tokens.get_valid_token(profile.key, profile.url, profile.insecure)
        if token is None:
            if state is AuthState.EXPIRING:
                raise SessionExpiredError(
                    f"Session for {profile.name} expired. Run: archon auth login"
                )
            raise NotAuthenticatedError()
        return token
