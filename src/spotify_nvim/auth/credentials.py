"""Client credentials and token file location set by the editor."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path


class MissingCredentialsError(Exception):
    """Raised when ``configure`` is called without a client id or secret."""

    def __init__(self, message: str | None = None):
        super().__init__(message or "client_id and/or client_secret not passed to config")


@dataclass(frozen=True)
class Credentials:
    """Spotify developer app identity."""

    client_id: str
    client_secret: str


@dataclass(frozen=True)
class CredentialSnapshot:
    """A consistent view of the holder at one point in time."""

    credentials: Credentials | None
    token_file_path: Path

    @property
    def is_configured(self) -> bool:
        return self.credentials is not None


class CredentialHolder:
    """Single-writer, multi-reader store for credentials and token path.

    Usage:
        holder = CredentialHolder(token_file_path=settings.token_path)
        await holder.configure("id", "secret", token_file_path="~/tokens")
        snapshot = await holder.current()
    """

    def __init__(self, token_file_path: Path | str):
        self._credentials: Credentials | None = None
        self._token_file_path = Path(token_file_path).expanduser()
        self._lock = asyncio.Lock()

    async def configure(
        self,
        client_id: str | None,
        client_secret: str | None,
        token_file_path: Path | str | None = None,
    ) -> CredentialSnapshot:
        """Replace the stored credentials, and the token path if given.

        Raises:
            MissingCredentialsError: If id or secret is empty; nothing is changed
        """
        if not _non_empty(client_id) or not _non_empty(client_secret):
            raise MissingCredentialsError()

        async with self._lock:
            self._credentials = Credentials(client_id=client_id, client_secret=client_secret)
            if token_file_path:
                self._token_file_path = Path(token_file_path).expanduser()
            return CredentialSnapshot(self._credentials, self._token_file_path)

    async def current(self) -> CredentialSnapshot:
        """Return the current credentials (possibly unset) and token path."""
        async with self._lock:
            return CredentialSnapshot(self._credentials, self._token_file_path)


def _non_empty(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())
