"""per-invocation context: settings, profiles, tokens and the API client for one command run."""
from pathlib import Path
from typing import Callable, List, Optional

import httpx

from .api.client import ApiClient
from .auth.manager import TokenManager
from .auth.resolver import CredentialResolver
from .auth.store import TokenStore
from .config import CONFIG_DIR, EnvSettings, ensure_config_dirs, get_config_file, get_tokens_dir
from .profiles.manager import ProfileManager
from .profiles.models import ActiveProfile
from .profiles.store import ProfileStore


class Session:
    """
    everything one CLI invocation needs, built once and passed down.

    args:
        config_dir: where config.json and tokens/ live
        env: settings read from the environment (defaults to os.environ)
        transport: optional httpx transport shared by auth and API calls,
            used by tests to fake the server
    """

    def __init__(
        self,
        config_dir: Path = CONFIG_DIR,
        env: Optional[EnvSettings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.config_dir = config_dir
        self.env = env if env is not None else EnvSettings.from_env()
        self.transport = transport

        ensure_config_dirs(config_dir)
        self.profiles = ProfileManager(ProfileStore(get_config_file(config_dir)), self.env)
        self.token_store = TokenStore(get_tokens_dir(config_dir))

        self._tokens: Optional[TokenManager] = None
        self._auth_http: Optional[httpx.Client] = None
        self._clients: List[ApiClient] = []

    @property
    def tokens(self) -> TokenManager:
        if self._tokens is None:
            if self.transport is not None:
                self._auth_http = httpx.Client(transport=self.transport)
            self._tokens = TokenManager(self.token_store, self.env, http_client=self._auth_http)
        return self._tokens

    @property
    def resolver(self) -> CredentialResolver:
        return CredentialResolver(self.tokens)

    def use_profile(self, key: str) -> None:
        self.profiles.use_profile(key)

    def active_profile(self) -> ActiveProfile:
        return self.profiles.get_active_profile()

    def api_client(self, profile: ActiveProfile, token: Optional[str] = None) -> ApiClient:
        client = ApiClient(profile.url, token, insecure=profile.insecure, transport=self.transport)
        self._clients.append(client)
        return client

    def authenticated_client(self, notify: Optional[Callable[[str], None]] = None) -> ApiClient:
        """
        API client for the active profile carrying a valid token.

        raises:
            NotAuthenticatedError, SessionExpiredError, LoginFailedError
        """
        profile = self.active_profile()
        token = self.resolver.require_token(profile, notify=notify)
        return self.api_client(profile, token)

    def close(self) -> None:
        for client in self._clients:
            client.close()
        self._clients.clear()
        if self._auth_http is not None:
            self._auth_http.close()
            self._auth_http = None
