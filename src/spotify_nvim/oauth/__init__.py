"""OAuth module for Spotify account authentication.

Provides the OAuth 2.0 Authorization Code flow and the on-disk token cache.

Usage:
    from spotify_nvim.oauth import SpotifyOAuth, TokenStorage

    oauth = SpotifyOAuth(client_id="...", client_secret="...")
    auth_url = oauth.get_authorization_url()
    # User visits auth_url and pastes back the redirect URL

    token = await oauth.exchange_code(oauth.parse_response_code(pasted))
    TokenStorage().save(token, path)
"""

from .client import SpotifyOAuth, OAuthError, SPOTIFY_AUTH_URL, SPOTIFY_TOKEN_URL
from .storage import (
    TokenStorage,
    TokenRecord,
    TokenStoreError,
    TokenLoadError,
    TokenNotFoundError,
    TokenDeserializeError,
    TokenPersistError,
)

__all__ = [
    "SpotifyOAuth",
    "OAuthError",
    "SPOTIFY_AUTH_URL",
    "SPOTIFY_TOKEN_URL",
    "TokenStorage",
    "TokenRecord",
    "TokenStoreError",
    "TokenLoadError",
    "TokenNotFoundError",
    "TokenDeserializeError",
    "TokenPersistError",
]
