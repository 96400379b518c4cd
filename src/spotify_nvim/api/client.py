"""Spotify Web API client - the authenticated session used by the bridge."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..oauth.storage import TokenRecord

logger = logging.getLogger(__name__)

SPOTIFY_API_BASE = "https://api.spotify.com/v1"


class SpotifyError(Exception):
    """Base exception for Spotify API errors."""

    def __init__(self, message: str, status_code: int | None = None, response: dict | None = None):
        self.message = message
        self.status_code = status_code
        self.response = response
        super().__init__(self.message)


class SpotifyAuthError(SpotifyError):
    """Authentication error (token rejected or expired)."""

    pass


class SpotifyRateLimitError(SpotifyError):
    """Rate limit exceeded."""

    pass


class SpotifyClient:
    """Spotify Web API client bound to one session token.

    Usage:
        client = SpotifyClient.from_token(token)
        await client.start_playback(uris=["spotify:track:..."])
        results = await client.search("artist:Foo ", type="track", limit=50)
    """

    def __init__(
        self,
        access_token: str,
        token_type: str = "Bearer",
        base_url: str = SPOTIFY_API_BASE,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"{token_type} {access_token}",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_token(cls, token: TokenRecord, **kwargs: Any) -> "SpotifyClient":
        """Create a client from a cached or freshly exchanged token."""
        return cls(access_token=token.access_token, token_type=token.token_type or "Bearer", **kwargs)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        json: dict | None = None,
    ) -> dict[str, Any]:
        """Make an API request with error handling."""
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            response = await self._client.request(
                method=method,
                url=path,
                params=params,
                json=json,
            )
        except httpx.HTTPError as e:
            raise SpotifyError(f"Request to {path} failed: {e}") from e

        if response.status_code == 401:
            raise SpotifyAuthError("Spotify rejected the access token (expired or revoked)", 401)

        if response.status_code == 429:
            raise SpotifyRateLimitError(
                f"Rate limit exceeded. Retry after {response.headers.get('Retry-After', '?')}s.",
                429,
            )

        if response.status_code >= 400:
            body = _json_or_none(response)
            message = f"API error: {response.status_code}"
            if isinstance(body, dict) and isinstance(body.get("error"), dict):
                message = f"{message} {body['error'].get('message', '')}".rstrip()
            raise SpotifyError(message, response.status_code, body)

        # Player endpoints answer 204 No Content
        body = _json_or_none(response)
        return body if isinstance(body, dict) else {}

    # Player

    async def start_playback(
        self,
        uris: list[str] | None = None,
        context_uri: str | None = None,
        device_id: str | None = None,
    ) -> None:
        """Start or resume playback, optionally with the given track URIs."""
        data: dict[str, Any] = {}
        if uris:
            data["uris"] = uris
        if context_uri:
            data["context_uri"] = context_uri
        await self._request("PUT", "/me/player/play", params={"device_id": device_id}, json=data or None)

    async def next_track(self, device_id: str | None = None) -> None:
        """Skip to the next track in the user's queue."""
        await self._request("POST", "/me/player/next", params={"device_id": device_id})

    async def previous_track(self, device_id: str | None = None) -> None:
        """Skip to the previous track."""
        await self._request("POST", "/me/player/previous", params={"device_id": device_id})

    # Search

    async def search(
        self,
        q: str,
        type: str = "track",
        limit: int = 10,
        offset: int = 0,
        market: str | None = None,
    ) -> dict[str, Any]:
        """Search the catalog. Returns the raw response (``{"tracks": {...}}``)."""
        logger.debug("search q=%r type=%s limit=%d offset=%d", q, type, limit, offset)
        return await self._request(
            "GET",
            "/search",
            params={"q": q, "type": type, "limit": limit, "offset": offset, "market": market},
        )


def _json_or_none(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None
