"""Shared test fixtures for the spotify-nvim test suite."""

import pytest
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

from spotify_nvim.api.client import SpotifyClient
from spotify_nvim.auth.credentials import CredentialHolder
from spotify_nvim.auth.manager import SessionManager
from spotify_nvim.oauth.storage import TokenRecord, TokenStorage


# ============================================================================
# Mock Response Data
# ============================================================================

MOCK_SEARCH_RESPONSE = {
    "tracks": {
        "href": "https://api.spotify.com/v1/search?query=artist%3AX+&type=track&offset=0&limit=50",
        "items": [
            {"name": "One More Time", "uri": "spotify:track:0DiWol3AO6WpXZgp0goxAV", "id": "0DiWol3AO6WpXZgp0goxAV"},
            {"name": "Around the World", "uri": "spotify:track:1pKYYY0dkg23sQQXi0Q5zN", "id": "1pKYYY0dkg23sQQXi0Q5zN"},
            {"name": "Aerodynamic", "uri": "spotify:track:1LeItUMezKA1HdCHxYICed", "id": "1LeItUMezKA1HdCHxYICed"},
        ],
        "limit": 50,
        "offset": 0,
        "total": 3,
    }
}


class FakeHost:
    """In-memory editor host that records output and answers prompts."""

    def __init__(self, answer: str = "http://localhost:8888/callback?code=auth_code_789"):
        self.answer = answer
        self.out: list[str] = []
        self.err: list[str] = []
        self.prompts: list[str] = []

    async def out_write(self, message: str) -> None:
        self.out.append(message)

    async def err_write(self, message: str) -> None:
        self.err.append(message)

    async def prompt(self, text: str) -> str:
        self.prompts.append(text)
        return self.answer


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def token_record():
    """A valid, unexpired session token."""
    now = int(datetime.now().timestamp())
    return TokenRecord(
        access_token="access_abc",
        token_type="Bearer",
        expires_in=3600,
        expires_at=now + 3600,
        refresh_token="refresh_xyz",
        scope="user-modify-playback-state",
    )


@pytest.fixture
def token_file(tmp_path):
    """Path for the token cache inside the test's temp directory."""
    return tmp_path / "spotify_nvim_tokens"


@pytest.fixture
def storage():
    return TokenStorage()


@pytest.fixture
def holder(token_file):
    """Credential holder with no credentials and the temp token path."""
    return CredentialHolder(token_file_path=token_file)


@pytest.fixture
def fake_host():
    return FakeHost()


@pytest.fixture
def search_response():
    """A page of three track results, as returned by /search."""
    import copy
    return copy.deepcopy(MOCK_SEARCH_RESPONSE)


@pytest.fixture
def mock_session(search_response):
    """A SpotifyClient stand-in with async player and search methods."""
    session = MagicMock(spec=SpotifyClient)
    session.start_playback = AsyncMock(return_value=None)
    session.next_track = AsyncMock(return_value=None)
    session.previous_track = AsyncMock(return_value=None)
    session.search = AsyncMock(return_value=search_response)
    session.close = AsyncMock(return_value=None)
    return session


@pytest.fixture
def mock_oauth(token_record):
    """A SpotifyOAuth stand-in whose exchange returns ``token_record``."""
    oauth = MagicMock()
    oauth.generate_state.return_value = "state_abc"
    oauth.get_authorization_url.return_value = "https://accounts.spotify.com/authorize?state=state_abc"
    oauth.parse_response_code.return_value = "auth_code_789"
    oauth.exchange_code = AsyncMock(return_value=token_record)
    return oauth


@pytest.fixture
def manager(holder, storage, mock_oauth, mock_session):
    """SessionManager wired to the temp token path and mocked network."""
    return SessionManager(
        holder,
        storage=storage,
        oauth_factory=lambda credentials: mock_oauth,
        session_factory=lambda token: mock_session,
    )


# ============================================================================
# CLI Testing Fixtures
# ============================================================================

@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner."""
    from typer.testing import CliRunner
    return CliRunner()
