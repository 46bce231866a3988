"""test suite for the token lifecycle manager."""
import json
import pytest
import shutil
import tempfile
import sys
from pathlib import Path

import httpx

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from archon.auth import TokenData, TokenManager, TokenStore, TokenUser, is_token_expired
from archon.config import EnvSettings
from archon.domain.errors import (
    LoginFailedError,
    NotAuthenticatedError,
    SessionExpiredError,
    TransportError,
)
from fakes import FakeArchonServer

NOW = 1_700_000_000_000
URL = "https://archon.example.test"


def make_tokens(expires_at, access="stored-access", refresh="stored-refresh"):
    return TokenData(
        access_token=access,
        refresh_token=refresh,
        expires_at=expires_at,
        user=TokenUser(id=1, username="testuser", role="ADMIN"),
    )


class TestIsTokenExpired:
    def test_far_future_is_valid(self):
        assert not is_token_expired(make_tokens(NOW + 3_600_000), NOW)

    def test_past_is_expired(self):
        assert is_token_expired(make_tokens(NOW - 1), NOW)

    def test_inside_buffer_is_expired(self):
        # one minute out is inside the five minute buffer
        assert is_token_expired(make_tokens(NOW + 60_000), NOW)

    def test_buffer_boundary(self):
        assert not is_token_expired(make_tokens(NOW + 5 * 60 * 1000), NOW)
        assert is_token_expired(make_tokens(NOW + 5 * 60 * 1000 - 1), NOW)


class TestTokenManager:
    @pytest.fixture
    def store(self):
        temp_dir = Path(tempfile.mkdtemp())
        yield TokenStore(temp_dir / "tokens")
        if temp_dir.exists():
            shutil.rmtree(temp_dir)

    @pytest.fixture
    def server(self):
        return FakeArchonServer()

    def make_manager(self, store, server, **env):
        return TokenManager(store, EnvSettings(**env), http_client=server.client(), clock=lambda: NOW)

    # login

    def test_login_persists_record(self, store, server):
        manager = self.make_manager(store, server)
        tokens = manager.login("demo", URL, "admin", "secret")

        assert tokens.access_token == "access-1"
        assert tokens.refresh_token == "refresh-1"
        assert tokens.expires_at == NOW + 3600 * 1000
        assert tokens.user.username == "admin"
        assert store.load("demo") == tokens

    def test_login_wire_format(self, store, server):
        manager = self.make_manager(store, server)
        manager.login("demo", URL, "admin", "secret")

        request = server.calls("/api/auth/login")[0]
        assert request.method == "POST"
        assert str(request.url) == f"{URL}/api/auth/login"
        assert request.headers["X-Auth-Mode"] == "token"
        assert json.loads(request.content) == {"username": "admin", "password": "secret"}

    def test_login_default_expiry_and_user(self, store):
        server = FakeArchonServer(expires_in=None, include_user=False)
        manager = self.make_manager(store, server)

        tokens = manager.login("demo", URL, "admin", "secret")

        assert tokens.expires_at == NOW + 3600 * 1000
        assert tokens.user == TokenUser(id=0, username="admin", role="VIEWER")

    def test_login_failure_uses_server_message(self, store):
        manager = self.make_manager(store, FakeArchonServer(login_ok=False))
        with pytest.raises(LoginFailedError, match="Invalid username or password"):
            manager.login("demo", URL, "admin", "wrong")
        assert store.load("demo") is None

    def test_login_failure_without_json_body(self, store):
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(500, text="boom")))
        manager = TokenManager(store, EnvSettings(), http_client=client, clock=lambda: NOW)
        with pytest.raises(LoginFailedError, match="Login failed"):
            manager.login("demo", URL, "admin", "secret")

    def test_login_network_failure(self, store):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.Client(transport=httpx.MockTransport(refuse))
        manager = TokenManager(store, EnvSettings(), http_client=client, clock=lambda: NOW)
        with pytest.raises(TransportError):
            manager.login("demo", URL, "admin", "secret")

    def test_logged_in_scenario(self, store, server):
        manager = self.make_manager(store, server)
        assert manager.is_logged_in("demo") is False

        manager.login("demo", URL, "admin", "secret")

        assert manager.is_logged_in("demo") is True
        assert store.load("demo").user.username == "admin"

    # get_valid_token

    def test_override_wins_over_everything(self, store, server):
        store.save(make_tokens(NOW + 3_600_000), "demo")
        manager = self.make_manager(store, server, token_override="env-token")

        assert manager.get_valid_token("demo", URL) == "env-token"
        assert manager.get_valid_token("empty", URL) == "env-token"
        assert server.requests == []

    def test_override_never_refreshed(self, store, server):
        store.save(make_tokens(NOW - 1), "demo")
        manager = self.make_manager(store, server, token_override="env-token")
        assert manager.get_valid_token("demo", URL) == "env-token"
        assert server.requests == []
        assert store.load("demo").access_token == "stored-access"

    def test_auto_login_without_stored_token(self, store, server):
        manager = self.make_manager(store, server, auto_login_user="admin", auto_login_pass="secret")

        token = manager.get_valid_token("demo", URL)

        assert token == "access-1"
        assert len(server.calls("/api/auth/login")) == 1
        assert store.load("demo").access_token == "access-1"

    def test_auto_login_reuses_valid_token(self, store, server):
        store.save(make_tokens(NOW + 3_600_000), "demo")
        manager = self.make_manager(store, server, auto_login_user="admin", auto_login_pass="secret")

        assert manager.get_valid_token("demo", URL) == "stored-access"
        assert server.requests == []

    def test_auto_login_replaces_expiring_token(self, store, server):
        store.save(make_tokens(NOW + 60_000), "demo")
        manager = self.make_manager(store, server, auto_login_user="admin", auto_login_pass="secret")

        assert manager.get_valid_token("demo", URL) == "access-1"
        assert server.calls("/api/auth/refresh") == []

    def test_auto_login_rejected_raises(self, store):
        server = FakeArchonServer(login_ok=False)
        manager = self.make_manager(store, server, auto_login_user="admin", auto_login_pass="wrong")
        with pytest.raises(LoginFailedError):
            manager.get_valid_token("demo", URL)

    def test_no_session(self, store, server):
        manager = self.make_manager(store, server)
        assert manager.get_valid_token("demo", URL) is None
        assert server.requests == []

    def test_valid_token_returned_unchanged(self, store, server):
        stored = make_tokens(NOW + 3_600_000)
        store.save(stored, "demo")
        manager = self.make_manager(store, server)

        assert manager.get_valid_token("demo", URL) == "stored-access"
        assert server.requests == []
        assert store.load("demo") == stored

    def test_refresh_keeps_refresh_token_when_not_rotated(self, store, server):
        store.save(make_tokens(NOW - 1000), "demo")
        manager = self.make_manager(store, server)

        token = manager.get_valid_token("demo", URL)

        assert token == "refreshed-1"
        saved = store.load("demo")
        assert saved.access_token == "refreshed-1"
        assert saved.refresh_token == "stored-refresh"
        assert saved.expires_at == NOW + 3600 * 1000
        assert saved.user.username == "testuser"
        request = server.calls("/api/auth/refresh")[0]
        assert json.loads(request.content) == {"refreshToken": "stored-refresh"}

    def test_refresh_takes_rotated_refresh_token(self, store):
        server = FakeArchonServer(rotate_refresh=True, expires_in=60)
        store.save(make_tokens(NOW - 1000), "demo")
        manager = self.make_manager(store, server)

        manager.get_valid_token("demo", URL)

        saved = store.load("demo")
        assert saved.refresh_token == "rotated-1"
        assert saved.expires_at == NOW + 60 * 1000

    def test_refresh_inside_buffer(self, store, server):
        store.save(make_tokens(NOW + 60_000), "demo")
        manager = self.make_manager(store, server)
        assert manager.get_valid_token("demo", URL) == "refreshed-1"

    def test_refresh_failure_purges_record(self, store):
        server = FakeArchonServer(refresh_ok=False)
        store.save(make_tokens(NOW - 1000), "demo")
        manager = self.make_manager(store, server)

        assert manager.get_valid_token("demo", URL) is None
        assert store.load("demo") is None

    def test_refresh_failure_is_session_expired(self, store):
        server = FakeArchonServer(refresh_ok=False)
        tokens = make_tokens(NOW - 1000)
        store.save(tokens, "demo")
        manager = self.make_manager(store, server)

        with pytest.raises(SessionExpiredError):
            manager.refresh(tokens, "demo", URL)
        assert store.load("demo") is None

    def test_refresh_network_failure_keeps_record(self, store):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        store.save(make_tokens(NOW - 1000), "demo")
        client = httpx.Client(transport=httpx.MockTransport(refuse))
        manager = TokenManager(store, EnvSettings(), http_client=client, clock=lambda: NOW)

        assert manager.get_valid_token("demo", URL) is None
        assert store.load("demo") is not None

    def test_refresh_without_access_token_is_session_expired(self, store):
        def null_token(request):
            return httpx.Response(200, json={"accessToken": None, "expiresIn": 3600})

        tokens = make_tokens(NOW - 1000)
        store.save(tokens, "demo")
        client = httpx.Client(transport=httpx.MockTransport(null_token))
        manager = TokenManager(store, EnvSettings(), http_client=client, clock=lambda: NOW)

        with pytest.raises(SessionExpiredError, match="Unexpected refresh response"):
            manager.refresh(tokens, "demo", URL)
        assert store.load("demo") is None

    def test_ensure_token_raises_not_authenticated(self, store, server):
        manager = self.make_manager(store, server)
        with pytest.raises(NotAuthenticatedError):
            manager.ensure_token("demo", URL)

    def test_refresh_only_touches_its_profile(self, store, server):
        other = make_tokens(NOW - 1000, access="other-access")
        store.save(make_tokens(NOW - 1000), "a")
        store.save(other, "b")
        manager = self.make_manager(store, server)

        manager.get_valid_token("a", URL)

        assert store.load("b") == other

    # logout and status

    def test_logout(self, store, server):
        store.save(make_tokens(NOW + 3_600_000), "demo")
        manager = self.make_manager(store, server)
        assert manager.logout("demo") is True
        assert manager.logout("demo") is False
        assert manager.get_stored_tokens("demo") is None

    def test_is_logged_in_with_env(self, store, server):
        assert self.make_manager(store, server, token_override="t").is_logged_in("demo")
        assert self.make_manager(store, server, auto_login_user="u", auto_login_pass="p").is_logged_in("demo")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
