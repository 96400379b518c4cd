"""OAuth 2.0 client for the Spotify accounts service.

Handles the Authorization Code flow used by the bridge:
1. Generate authorization URL
2. Extract the code from the redirect URL the user pastes back
3. Exchange code for access + refresh tokens
"""

from __future__ import annotations

import base64
import secrets
from typing import Any
from urllib.parse import urlencode, urlparse, parse_qs

import httpx

from .storage import TokenRecord


# Spotify OAuth endpoints
SPOTIFY_AUTH_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"

DEFAULT_REDIRECT_URI = "http://localhost:8888/callback"
DEFAULT_SCOPES = ["user-modify-playback-state"]


class OAuthError(Exception):
    """OAuth-related error."""

    def __init__(self, message: str, error_code: str | None = None, details: dict | None = None):
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}


class SpotifyOAuth:
    """OAuth 2.0 client for a Spotify developer app.

    Usage:
        oauth = SpotifyOAuth(client_id="...", client_secret="...")

        state = oauth.generate_state()
        auth_url = oauth.get_authorization_url(state=state)

        # User visits auth_url, grants permission and is redirected to
        # redirect_uri?code=xxx&state=xxx
        code = oauth.parse_response_code(pasted_url)
        token = await oauth.exchange_code(code)
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str = DEFAULT_REDIRECT_URI,
        scopes: list[str] | None = None,
        timeout: float = 30.0,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scopes = scopes if scopes is not None else list(DEFAULT_SCOPES)
        self.timeout = timeout

        self._state: str | None = None

    def generate_state(self) -> str:
        """Generate a random state value for CSRF protection."""
        self._state = secrets.token_urlsafe(16)
        return self._state

    def get_authorization_url(self, state: str | None = None) -> str:
        """Generate the authorization URL for user consent."""
        if state:
            self._state = state
        elif not self._state:
            self.generate_state()

        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "state": self._state,
        }
        if self.scopes:
            params["scope"] = " ".join(self.scopes)

        return f"{SPOTIFY_AUTH_URL}?{urlencode(params)}"

    def verify_state(self, state: str) -> bool:
        """Verify the state parameter from callback matches."""
        if not self._state:
            return False
        return secrets.compare_digest(self._state, state)

    def parse_response_code(self, response: str) -> str:
        """Extract the authorization code from a pasted redirect URL.

        A bare code (no ``?``) is accepted as-is. When the redirect carries a
        ``state`` parameter it must match the one sent.

        Raises:
            OAuthError: If the redirect reports an error, has no code, or the
                state does not match
        """
        response = (response or "").strip()
        if not response:
            raise OAuthError("No redirect URL was entered", error_code="missing_code")

        if "?" not in response and "=" not in response:
            return response

        params = parse_qs(urlparse(response).query)
        if "error" in params:
            raise OAuthError(
                f"Authorization denied: {params['error'][0]}",
                error_code=params["error"][0],
            )

        code = params.get("code", [None])[0]
        if not code:
            raise OAuthError(
                "Redirect URL does not contain an authorization code",
                error_code="missing_code",
            )

        state = params.get("state", [None])[0]
        if state is not None and not self.verify_state(state):
            raise OAuthError(
                "State mismatch - possible CSRF attack",
                error_code="state_mismatch",
            )

        return code

    def _basic_auth_header(self) -> str:
        raw = f"{self.client_id}:{self.client_secret}".encode()
        return "Basic " + base64.b64encode(raw).decode()

    async def exchange_code(self, code: str) -> TokenRecord:
        """Exchange authorization code for a session token.

        Raises:
            OAuthError: If the request fails or the response is unusable
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    SPOTIFY_TOKEN_URL,
                    data={
                        "grant_type": "authorization_code",
                        "code": code,
                        "redirect_uri": self.redirect_uri,
                    },
                    headers={
                        "Authorization": self._basic_auth_header(),
                        "Content-Type": "application/x-www-form-urlencoded",
                    },
                )
        except httpx.HTTPError as e:
            raise OAuthError(
                f"Token exchange request failed: {e}",
                error_code="exchange_failed",
            ) from e

        if response.status_code != 200:
            try:
                error_data = response.json() if response.content else {}
            except ValueError:
                error_data = {"raw_response": response.text[:500]}
            if not isinstance(error_data, dict):
                error_data = {"raw_response": error_data}
            raise OAuthError(
                f"Token exchange failed: {response.status_code}",
                error_code=error_data.get("error", "exchange_failed"),
                details=error_data,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise OAuthError(
                "Invalid token response: body is not JSON",
                error_code="invalid_response",
                details={"raw_response": response.text[:500]},
            ) from e

        return self._parse_token_response(data)

    def _parse_token_response(self, data: Any) -> TokenRecord:
        """Parse token response from Spotify.

        Raises:
            OAuthError: If the body is not an object or required fields are
                missing or malformed
        """
        if not isinstance(data, dict):
            raise OAuthError(
                f"Invalid token response: expected an object, got {type(data).__name__}",
                error_code="invalid_response",
            )

        try:
            return TokenRecord.from_token_response(data)
        except KeyError as e:
            raise OAuthError(
                f"Invalid token response: missing {e}",
                error_code="invalid_response",
                details={"missing_field": str(e), "response_keys": list(data.keys())},
            )
        except (TypeError, ValueError) as e:
            raise OAuthError(
                f"Invalid token response: {e}",
                error_code="invalid_response",
            ) from e
