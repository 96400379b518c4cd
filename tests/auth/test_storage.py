"""Tests for the session token cache."""

import json
import os
import stat
import pytest
from datetime import datetime

from spotify_nvim.oauth.storage import (
    TokenStorage,
    TokenRecord,
    TokenLoadError,
    TokenNotFoundError,
    TokenDeserializeError,
    TokenPersistError,
)


class TestTokenRecord:
    """Tests for TokenRecord dataclass."""

    def test_is_expired_false_when_future(self, token_record):
        """Token should not be expired when expires_at is in future."""
        assert token_record.is_expired is False

    def test_is_expired_true_when_past(self):
        """Token should be expired when expires_at is in past."""
        token = TokenRecord(
            access_token="test",
            expires_at=int(datetime.now().timestamp()) - 3600,
        )
        assert token.is_expired is True

    def test_expires_in_seconds(self, token_record):
        """Should calculate seconds until expiry correctly."""
        assert 3590 <= token_record.expires_in_seconds <= 3600

    def test_from_token_response(self):
        """Should compute expires_at from expires_in and issue time."""
        token = TokenRecord.from_token_response(
            {
                "access_token": "access123",
                "token_type": "Bearer",
                "expires_in": 3600,
                "refresh_token": "refresh456",
                "scope": "user-modify-playback-state",
            },
            now=1_700_000_000,
        )

        assert token.access_token == "access123"
        assert token.refresh_token == "refresh456"
        assert token.expires_at == 1_700_003_600
        assert token.scope == "user-modify-playback-state"

    def test_from_token_response_missing_access_token(self):
        """Should raise KeyError when access_token is absent."""
        with pytest.raises(KeyError):
            TokenRecord.from_token_response({"token_type": "Bearer"})

    def test_from_dict_ignores_unknown_keys(self):
        """Extra keys in the cache file should not break loading."""
        token = TokenRecord.from_dict({"access_token": "a", "extra": 1})
        assert token.access_token == "a"


class TestTokenStorage:
    """Tests for TokenStorage class."""

    def test_save_and_load_round_trip(self, storage, token_record, token_file):
        """Loading a saved record should give back an equal record."""
        storage.save(token_record, token_file)
        loaded = storage.load(token_file)

        assert loaded == token_record

    def test_save_overwrites_existing(self, storage, token_record, token_file):
        """A later save should replace the cached token."""
        storage.save(token_record, token_file)
        newer = TokenRecord(access_token="newer", expires_at=token_record.expires_at)
        storage.save(newer, token_file)

        assert storage.load(token_file).access_token == "newer"

    def test_file_is_json(self, storage, token_record, token_file):
        """The cache file should be plain JSON of the record fields."""
        storage.save(token_record, token_file)

        data = json.loads(token_file.read_text())
        assert data["access_token"] == "access_abc"
        assert data["refresh_token"] == "refresh_xyz"

    def test_file_permissions(self, storage, token_record, token_file):
        """Should set restrictive permissions on the token file."""
        storage.save(token_record, token_file)

        # Check file permissions (0o600 = owner read/write only)
        mode = os.stat(token_file).st_mode
        assert stat.S_IMODE(mode) == 0o600

    def test_load_missing_file_raises_not_found(self, storage, token_file):
        """Should raise TokenNotFoundError when no file exists."""
        with pytest.raises(TokenNotFoundError) as exc_info:
            storage.load(token_file)

        assert exc_info.value.path == token_file

    def test_load_corrupt_json_raises_deserialize_error(self, storage, token_file):
        """Corrupt content should fail, never yield an empty record."""
        token_file.write_text("{not json")

        with pytest.raises(TokenDeserializeError):
            storage.load(token_file)

    def test_load_wrong_shape_raises_deserialize_error(self, storage, token_file):
        """A JSON list is not a token."""
        token_file.write_text("[1, 2, 3]")

        with pytest.raises(TokenDeserializeError):
            storage.load(token_file)

    def test_load_incomplete_record_raises_deserialize_error(self, storage, token_file):
        """A record without an access token is not accepted."""
        token_file.write_text(json.dumps({"refresh_token": "r", "expires_at": 1}))

        with pytest.raises(TokenDeserializeError):
            storage.load(token_file)

    def test_deserialize_error_is_load_error(self):
        """Callers can catch both load failures as TokenLoadError."""
        assert issubclass(TokenDeserializeError, TokenLoadError)
        assert issubclass(TokenNotFoundError, TokenLoadError)

    def test_save_into_missing_directory_raises_persist_error(self, storage, token_record, tmp_path):
        """Should raise TokenPersistError when the parent dir is missing."""
        path = tmp_path / "missing" / "tokens.json"

        with pytest.raises(TokenPersistError):
            storage.save(token_record, path)

    def test_clear(self, storage, token_record, token_file):
        """Should remove the file and report whether anything was removed."""
        storage.save(token_record, token_file)

        assert storage.clear(token_file) is True
        assert not token_file.exists()
        assert storage.clear(token_file) is False

    def test_status_missing(self, storage, token_file):
        """Status should report a missing cache."""
        status = storage.status(token_file)

        assert status["exists"] is False
        assert status["token"] is None

    def test_status_valid(self, storage, token_record, token_file):
        """Should return token summary for a valid cache."""
        storage.save(token_record, token_file)

        status = storage.status(token_file)

        assert status["exists"] is True
        assert status["token"]["expired"] is False
        assert status["token"]["has_refresh_token"] is True
        assert status["token"]["scope"] == "user-modify-playback-state"

    def test_status_corrupt(self, storage, token_file):
        """Should report the load error instead of raising."""
        token_file.write_text("garbage")

        status = storage.status(token_file)

        assert status["exists"] is True
        assert status["token"] is None
        assert "Corrupt" in status["error"]

    @pytest.mark.parametrize(
        "data",
        [
            {"access_token": "abc", "expires_at": "tomorrow"},
            {"access_token": "abc", "expires_in": 3600.5},
            {"access_token": "abc", "expires_at": True},
            {"access_token": "abc", "token_type": None},
            {"access_token": "abc", "scope": ["user-modify-playback-state"]},
            {"access_token": "abc", "refresh_token": 42},
            {"access_token": 123},
        ],
    )
    def test_load_wrong_field_type_raises_deserialize_error(self, storage, token_file, data):
        """Every field is type-checked; no partial tolerance."""
        token_file.write_text(json.dumps(data))

        with pytest.raises(TokenDeserializeError):
            storage.load(token_file)

    def test_load_null_refresh_token(self, storage, token_file):
        """A null refresh token is a valid cache."""
        token_file.write_text(json.dumps({"access_token": "abc", "refresh_token": None}))

        assert storage.load(token_file).refresh_token is None

    def test_status_wrong_field_type(self, storage, token_file):
        """Status reports a mistyped cache instead of raising."""
        token_file.write_text(json.dumps({"access_token": "abc", "expires_at": "tomorrow"}))

        status = storage.status(token_file)

        assert status["token"] is None
        assert "expires_at" in status["error"]
