"""Authentication module for spotify-nvim.

Holds the client credentials set by the editor and the lazily created
Spotify session.

Usage:
    from spotify_nvim.auth import CredentialHolder, SessionManager

    holder = CredentialHolder(token_file_path="~/.spotify_nvim_tokens")
    await holder.configure(client_id, client_secret)

    manager = SessionManager(holder)
    result = await manager.ensure_ready(prompt=ask_user)
"""

from .credentials import CredentialHolder, Credentials, CredentialSnapshot, MissingCredentialsError
from .manager import SessionManager, InitResult, NotConfiguredError

__all__ = [
    "CredentialHolder",
    "Credentials",
    "CredentialSnapshot",
    "MissingCredentialsError",
    "SessionManager",
    "InitResult",
    "NotConfiguredError",
]
