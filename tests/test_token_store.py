"""test suite for per-profile token storage."""
import json
import pytest
import shutil
import tempfile
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from archon.auth import TokenData, TokenStore, TokenUser
from archon.domain.errors import InvalidProfileKeyError


def make_tokens(access="test-access-token", refresh="test-refresh-token", expires_at=1_900_000_000_000):
    return TokenData(
        access_token=access,
        refresh_token=refresh,
        expires_at=expires_at,
        user=TokenUser(id=1, username="testuser", role="ADMIN"),
    )


class TestTokenStore:
    @pytest.fixture
    def tokens_dir(self):
        temp_dir = Path(tempfile.mkdtemp())
        yield temp_dir / "tokens"
        if temp_dir.exists():
            shutil.rmtree(temp_dir)

    @pytest.fixture
    def store(self, tokens_dir):
        return TokenStore(tokens_dir)

    def test_load_missing(self, store):
        assert store.load("nobody") is None

    def test_save_and_load(self, store):
        tokens = make_tokens()
        store.save(tokens, "testprofile")
        assert store.load("testprofile") == tokens

    def test_save_creates_directory(self, store, tokens_dir):
        assert not tokens_dir.exists()
        store.save(make_tokens(), "testprofile")
        assert (tokens_dir / "testprofile.json").exists()

    def test_file_format(self, store, tokens_dir):
        store.save(make_tokens(), "testprofile")
        data = json.loads((tokens_dir / "testprofile.json").read_text())
        assert data == {
            "accessToken": "test-access-token",
            "refreshToken": "test-refresh-token",
            "expiresAt": 1_900_000_000_000,
            "user": {"id": 1, "username": "testuser", "role": "ADMIN"},
        }

    def test_save_leaves_no_temp_files(self, store, tokens_dir):
        store.save(make_tokens(), "testprofile")
        store.save(make_tokens(access="second"), "testprofile")
        assert [p.name for p in tokens_dir.iterdir()] == ["testprofile.json"]

    def test_corrupted_record_is_absent(self, store, tokens_dir):
        tokens_dir.mkdir(parents=True)
        (tokens_dir / "broken.json").write_text("invalid json")
        assert store.load("broken") is None

    def test_undecodable_record_is_absent(self, store, tokens_dir):
        tokens_dir.mkdir(parents=True)
        (tokens_dir / "demo.json").write_bytes(b"\xff\xfe\x00garbage")
        assert store.load("demo") is None

    def test_incomplete_record_is_absent(self, store, tokens_dir):
        tokens_dir.mkdir(parents=True)
        (tokens_dir / "partial.json").write_text(json.dumps({"accessToken": "x"}))
        assert store.load("partial") is None

    def test_delete(self, store):
        store.save(make_tokens(), "testprofile")
        assert store.delete("testprofile") is True
        assert store.load("testprofile") is None

    def test_delete_missing(self, store):
        assert store.delete("nobody") is False

    def test_profiles_are_isolated(self, store):
        a = make_tokens(access="token-a")
        b = make_tokens(access="token-b")
        store.save(a, "a")
        store.save(b, "b")

        store.delete("a")

        assert store.load("a") is None
        assert store.load("b") == b

    def test_rejects_keys_outside_directory(self, store):
        with pytest.raises(InvalidProfileKeyError):
            store.load("../config")
        with pytest.raises(InvalidProfileKeyError):
            store.save(make_tokens(), "nested/key")
        with pytest.raises(InvalidProfileKeyError):
            store.delete("..")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
