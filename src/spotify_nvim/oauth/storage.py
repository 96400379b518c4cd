"""Token storage for the Spotify session token.

The token is written as JSON to a single file (``~/.spotify_nvim_tokens``
by default) with restrictive file permissions (0o600).

Note: Tokens are stored in plaintext and protected by file permissions only.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, asdict, fields
from datetime import datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class TokenStoreError(Exception):
    """Base class for token cache failures."""

    def __init__(self, message: str, path: Path | str | None = None):
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class TokenLoadError(TokenStoreError):
    """The cached token could not be read back."""


class TokenNotFoundError(TokenLoadError):
    """No token file exists at the given path."""


class TokenDeserializeError(TokenLoadError):
    """The token file exists but its content is not a usable token."""


class TokenPersistError(TokenStoreError):
    """The token could not be written to disk."""


@dataclass
class TokenRecord:
    """Session token issued by the Spotify accounts service."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 3600
    expires_at: int = 0  # Unix timestamp
    refresh_token: str | None = None
    scope: str = ""

    def validate(self) -> None:
        """Check every field has its declared type.

        Raises:
            TypeError: Naming the first field with a wrong type
        """
        if not isinstance(self.access_token, str) or not self.access_token:
            raise TypeError("access_token must be a non-empty string")
        for name in ("token_type", "scope"):
            if not isinstance(getattr(self, name), str):
                raise TypeError(f"{name} must be a string")
        for name in ("expires_in", "expires_at"):
            value = getattr(self, name)
            # bool is an int subclass but never a timestamp
            if not isinstance(value, int) or isinstance(value, bool):
                raise TypeError(f"{name} must be an integer")
        if self.refresh_token is not None and not isinstance(self.refresh_token, str):
            raise TypeError("refresh_token must be a string or null")

    @property
    def is_expired(self) -> bool:
        """Check if the access token is past its expiry (with 60s buffer)."""
        return datetime.now().timestamp() > (self.expires_at - 60)

    @property
    def expires_in_seconds(self) -> int:
        """Seconds until token expires."""
        return max(0, int(self.expires_at - datetime.now().timestamp()))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TokenRecord":
        """Create from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_token_response(cls, data: dict[str, Any], now: int | None = None) -> "TokenRecord":
        """Build a record from the accounts service token response.

        Raises:
            KeyError: If ``access_token`` is missing
            TypeError, ValueError: If a field has the wrong type
        """
        issued_at = int(datetime.now().timestamp()) if now is None else now
        expires_in = int(data.get("expires_in", 3600))
        record = cls(
            access_token=data["access_token"],
            token_type=data.get("token_type", "Bearer"),
            expires_in=expires_in,
            expires_at=issued_at + expires_in,
            refresh_token=data.get("refresh_token"),
            scope=data.get("scope", ""),
        )
        record.validate()
        return record


class TokenStorage:
    """File-backed cache for a single :class:`TokenRecord`.

    The storage is stateless: every call takes the path explicitly, since the
    path itself can be reconfigured at runtime by the editor.

    Usage:
        storage = TokenStorage()
        storage.save(record, Path("~/.spotify_nvim_tokens").expanduser())

        try:
            record = storage.load(path)
        except TokenNotFoundError:
            ...
    """

    def save(self, record: TokenRecord, path: Path | str) -> None:
        """Serialize ``record`` to ``path``, overwriting any existing content.

        Raises:
            TokenPersistError: On any write failure (permissions, missing
                parent directory, disk full)
        """
        path = Path(path)
        content = json.dumps(record.to_dict(), indent=2)

        try:
            with open(path, "w") as f:
                f.write(content)
            # Set restrictive permissions
            os.chmod(path, 0o600)
        except OSError as e:
            raise TokenPersistError(f"Could not write token file {path}: {e}", path) from e

        logger.debug("Saved token to %s", path)

    def load(self, path: Path | str) -> TokenRecord:
        """Read and deserialize the token stored at ``path``.

        Raises:
            TokenNotFoundError: If the file is absent
            TokenDeserializeError: If the content is corrupt or incomplete
        """
        path = Path(path)

        try:
            with open(path) as f:
                content = f.read()
        except FileNotFoundError as e:
            raise TokenNotFoundError(f"No token file at {path}", path) from e
        except OSError as e:
            raise TokenLoadError(f"Could not read token file {path}: {e}", path) from e

        try:
            data = json.loads(content)
            if not isinstance(data, dict):
                raise TypeError(f"expected an object, got {type(data).__name__}")
            record = TokenRecord.from_dict(data)
            record.validate()
        except (json.JSONDecodeError, TypeError) as e:
            raise TokenDeserializeError(f"Corrupt token file {path}: {e}", path) from e

        return record

    def clear(self, path: Path | str) -> bool:
        """Remove the token file. Returns False if there was nothing to remove."""
        path = Path(path)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def status(self, path: Path | str) -> dict[str, Any]:
        """Get token cache status summary."""
        path = Path(path)
        status: dict[str, Any] = {
            "token_file": str(path),
            "exists": path.exists(),
            "token": None,
            "error": None,
        }

        if not status["exists"]:
            return status

        try:
            record = self.load(path)
        except TokenLoadError as e:
            status["error"] = str(e)
            return status

        status["token"] = {
            "expired": record.is_expired,
            "expires_in_seconds": record.expires_in_seconds,
            "scope": record.scope,
            "has_refresh_token": bool(record.refresh_token),
        }
        return status
