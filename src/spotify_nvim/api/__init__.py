"""Spotify Web API client module.

Usage:
    from spotify_nvim.api import SpotifyClient

    async with SpotifyClient.from_token(token) as spotify:
        await spotify.next_track()
"""

from .client import SpotifyClient, SpotifyError, SpotifyAuthError, SpotifyRateLimitError

__all__ = [
    "SpotifyClient",
    "SpotifyError",
    "SpotifyAuthError",
    "SpotifyRateLimitError",
]
