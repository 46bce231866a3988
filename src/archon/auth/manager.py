import time
import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

import httpx
from pydantic import ValidationError

from ..config import AUTH_TIMEOUT, DEFAULT_EXPIRES_IN, EXPIRY_BUFFER_MS, EnvSettings
from ..domain.errors import (
    LoginFailedError,
    NotAuthenticatedError,
    SessionExpiredError,
    TransportError,
)
from .models import TokenData, TokenUser
from .store import TokenStore

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/auth/login"
REFRESH_PATH = "/api/auth/refresh"


def now_ms() -> int:
    return int(time.time() * 1000)


def is_token_expired(tokens: TokenData, now: Optional[int] = None) -> bool:
    """True when the token lapses within the expiry buffer (or already has)."""
    if now is None:
        now = now_ms()
    return tokens.expires_at < now + EXPIRY_BUFFER_MS


class TokenManager:
    """
    produces a currently valid access token for a profile.

    every call does at most one network round-trip (a login or a refresh).
    resolution order:
      1. ARCHON_TOKEN is returned as is, never stored, checked or refreshed
      2. with ARCHON_USER and ARCHON_PASS, a missing or expiring token
         triggers a fresh login
      3. otherwise the stored token is used, refreshed first if it is
         inside the expiry buffer
    """

    def __init__(
        self,
        store: TokenStore,
        env: Optional[EnvSettings] = None,
        http_client: Optional[httpx.Client] = None,
        clock: Callable[[], int] = now_ms,
        timeout: float = AUTH_TIMEOUT,
    ):
        self.store = store
        self.env = env or EnvSettings()
        self.http_client = http_client
        self.clock = clock
        self.timeout = timeout

    @contextmanager
    def _client(self, insecure: bool) -> Iterator[httpx.Client]:
        if self.http_client is not None:
            yield self.http_client
            return

        with httpx.Client(verify=not insecure, timeout=self.timeout) as client:
            yield client

    def _post(self, url: str, payload: dict, insecure: bool, headers: Optional[dict] = None) -> httpx.Response:
        try:
            with self._client(insecure) as client:
                return client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {url} failed: {e}") from e

    def is_expired(self, tokens: TokenData) -> bool:
        return is_token_expired(tokens, self.clock())

    def login(
        self,
        profile_key: str,
        url: str,
        username: str,
        password: str,
        insecure: bool = False,
    ) -> TokenData:
        """
        exchange username/password for a token pair and store it.

        returns:
            the stored token record

        raises:
            LoginFailedError: if the server rejects the credentials
            TransportError: if the server could not be reached
        """
        response = self._post(
            f"{url}{LOGIN_PATH}",
            {"username": username, "password": password},
            insecure,
            headers={"X-Auth-Mode": "token"},
        )

        if not response.is_success:
            raise LoginFailedError(_error_message(response, "Login failed"))

        try:
            data = response.json()
            user = data.get("user") or {"id": 0, "username": username, "role": "VIEWER"}
            tokens = TokenData(
                access_token=data["accessToken"],
                refresh_token=data["refreshToken"],
                expires_at=self.clock() + _expires_in(data) * 1000,
                user=TokenUser.model_validate(user),
            )
        except (ValueError, KeyError, TypeError, AttributeError, ValidationError) as e:
            raise LoginFailedError(f"Unexpected login response from server: {e}") from e

        self.store.save(tokens, profile_key)
        logger.info("logged in to profile '%s' as %s", profile_key, tokens.user.username)
        return tokens

    def refresh(
        self,
        tokens: TokenData,
        profile_key: str,
        url: str,
        insecure: bool = False,
    ) -> TokenData:
        """
        trade the refresh token for a new access token and store the result.

        the refresh token is kept unless the server sends a new one.

        raises:
            SessionExpiredError: if the server rejects the refresh token;
                the stored record is deleted first
            TransportError: if the server could not be reached
        """
        response = self._post(
            f"{url}{REFRESH_PATH}",
            {"refreshToken": tokens.refresh_token},
            insecure,
        )

        if not response.is_success:
            logger.info(
                "refresh rejected for profile '%s' (HTTP %s), removing stored tokens",
                profile_key,
                response.status_code,
            )
            self.store.delete(profile_key)
            raise SessionExpiredError()

        try:
            data = response.json()
            if not data.get("accessToken"):
                raise ValueError("missing accessToken")
            record = tokens.model_dump()
            record["access_token"] = data["accessToken"]
            record["expires_at"] = self.clock() + _expires_in(data) * 1000
            if data.get("refreshToken"):
                record["refresh_token"] = data["refreshToken"]
            refreshed = TokenData.model_validate(record)
        except (ValueError, KeyError, TypeError, AttributeError, ValidationError) as e:
            logger.warning("unexpected refresh response for profile '%s': %s", profile_key, e)
            self.store.delete(profile_key)
            raise SessionExpiredError(f"Unexpected refresh response from server: {e}") from e

        self.store.save(refreshed, profile_key)
        logger.debug("refreshed access token for profile '%s'", profile_key)
        return refreshed

    def ensure_token(self, profile_key: str, url: str, insecure: bool = False) -> str:
        """
        return a valid access token or raise why there is none.

        raises:
            NotAuthenticatedError: no override, no auto-login and nothing stored
            SessionExpiredError: the stored token expired and refresh was rejected
            LoginFailedError: auto-login credentials were rejected
            TransportError: the server could not be reached
        """
        if self.env.token_override:
            logger.debug("using ARCHON_TOKEN for profile '%s'", profile_key)
            return self.env.token_override

        if self.env.has_auto_login:
            tokens = self.store.load(profile_key)
            if tokens is None or self.is_expired(tokens):
                logger.debug("auto-login as %s for profile '%s'", self.env.auto_login_user, profile_key)
                tokens = self.login(
                    profile_key, url, self.env.auto_login_user, self.env.auto_login_pass, insecure
                )
            return tokens.access_token

        tokens = self.store.load(profile_key)
        if tokens is None:
            raise NotAuthenticatedError()

        if self.is_expired(tokens):
            logger.debug("token for profile '%s' is expiring, refreshing", profile_key)
            tokens = self.refresh(tokens, profile_key, url, insecure)

        return tokens.access_token

    def get_valid_token(self, profile_key: str, url: str, insecure: bool = False) -> Optional[str]:
        """
        like ensure_token, but None instead of raising when there is simply no session.

        a rejected auto-login still raises since there is nothing to fall back to.
        """
        try:
            return self.ensure_token(profile_key, url, insecure)
        except (NotAuthenticatedError, SessionExpiredError):
            return None
        except TransportError as e:
            if self.env.has_auto_login:
                raise
            logger.warning("could not refresh token for profile '%s': %s", profile_key, e)
            return None

    def logout(self, profile_key: str) -> bool:
        return self.store.delete(profile_key)

    def is_logged_in(self, profile_key: str) -> bool:
        if self.env.token_override or self.env.has_auto_login:
            return True
        return self.store.load(profile_key) is not None

    def get_stored_tokens(self, profile_key: str) -> Optional[TokenData]:
        """stored record without any validation, for display."""
        return self.store.load(profile_key)


def _expires_in(data: dict) -> int:
    return int(data.get("expiresIn") or DEFAULT_EXPIRES_IN)


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        data = response.json()
    except ValueError:
        return fallback
    if not isinstance(data, dict):
        return fallback
    return data.get("error") or data.get("message") or fallback
