"""Session manager for Spotify API access.

Owns the single authenticated session. The session is created lazily on the
first command that needs it, either from the cached token file or through
the interactive OAuth flow, and is then reused for the rest of the process.

There is no refresh: once a session exists it is kept even after its access
token expires.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from ..api.client import SpotifyClient
from ..config import BridgeSettings, settings as default_settings
from ..oauth.client import SpotifyOAuth
from ..oauth.storage import (
    TokenStorage,
    TokenRecord,
    TokenLoadError,
    TokenNotFoundError,
    TokenPersistError,
)
from .credentials import CredentialHolder, Credentials

logger = logging.getLogger(__name__)

PromptCallback = Callable[[str], Awaitable[str]]
NotifyCallback = Callable[[str], Awaitable[None]]

AUTH_PROMPT = "Go to {url} and then paste the one you're redirected to: "


class NotConfiguredError(Exception):
    """Raised when a session is needed but no client credentials are set."""

    def __init__(self, message: str | None = None):
        default_msg = (
            "Trying to initialize spotify without client credentials! Failing.\n"
            "Call the `config` function with your client_id and client_secret first."
        )
        super().__init__(message or default_msg)


@dataclass
class InitResult:
    """Outcome of :meth:`SessionManager.ensure_ready`."""

    session: SpotifyClient
    source: str  # "memory", "cache" or "oauth"
    notices: list[str] = field(default_factory=list)

    @property
    def is_fresh(self) -> bool:
        """True when this call created the session."""
        return self.source != "memory"


class SessionManager:
    """Lazily creates and then holds the one Spotify session.

    Concurrent ``ensure_ready`` calls made before the session exists share a
    single initialization: the first caller loads the token or runs the OAuth
    exchange while holding the init lock, the others wait and then observe
    the session it stored.

    Usage:
        manager = SessionManager(CredentialHolder(settings.token_path))
        result = await manager.ensure_ready(prompt=host.prompt)
        await result.session.next_track()
    """

    def __init__(
        self,
        credentials: CredentialHolder,
        storage: TokenStorage | None = None,
        oauth_factory: Callable[[Credentials], SpotifyOAuth] | None = None,
        session_factory: Callable[[TokenRecord], SpotifyClient] | None = None,
        settings: BridgeSettings | None = None,
    ):
        self.credentials = credentials
        self.storage = storage or TokenStorage()
        self.settings = settings or default_settings
        self.oauth_factory = oauth_factory or self._default_oauth
        self.session_factory = session_factory or self._default_session

        self._session: SpotifyClient | None = None
        self._init_lock = asyncio.Lock()

    def _default_oauth(self, credentials: Credentials) -> SpotifyOAuth:
        return SpotifyOAuth(
            client_id=credentials.client_id,
            client_secret=credentials.client_secret,
            redirect_uri=self.settings.redirect_uri,
            scopes=self.settings.scopes,
            timeout=self.settings.http_timeout,
        )

    def _default_session(self, token: TokenRecord) -> SpotifyClient:
        return SpotifyClient.from_token(token, timeout=self.settings.http_timeout)

    @property
    def session(self) -> SpotifyClient | None:
        return self._session

    @property
    def is_ready(self) -> bool:
        return self._session is not None

    async def ensure_ready(
        self,
        prompt: PromptCallback,
        notify: NotifyCallback | None = None,
    ) -> InitResult:
        """Return the session, creating it first if needed.

        Args:
            prompt: Asks the user for the redirect URL during OAuth
            notify: Receives non-fatal notices (corrupt cache, failed save)
                as they happen

        Raises:
            NotConfiguredError: No cached token and no client credentials
            OAuthError: The authorization code exchange failed
        """
        if self._session is not None:
            return InitResult(self._session, "memory")

        async with self._init_lock:
            # Another caller may have finished while we waited.
            if self._session is not None:
                return InitResult(self._session, "memory")

            notices: list[str] = []

            async def _notice(message: str) -> None:
                notices.append(message)
                if notify is not None:
                    await notify(message)

            snapshot = await self.credentials.current()
            path = snapshot.token_file_path

            try:
                token = await asyncio.to_thread(self.storage.load, path)
            except TokenNotFoundError:
                logger.info("No cached token at %s", path)
            except TokenLoadError as e:
                logger.warning("Ignoring unusable token cache: %s", e)
                await _notice(str(e))
            else:
                self._session = self.session_factory(token)
                logger.info("Session initialized from cached token %s", path)
                return InitResult(self._session, "cache", notices)

            if snapshot.credentials is None:
                raise NotConfiguredError()

            token = await self._authorize(snapshot.credentials, prompt)

            try:
                await asyncio.to_thread(self.storage.save, token, path)
            except TokenPersistError as e:
                logger.warning("Session token not cached: %s", e)
                await _notice(f"Could not cache session token: {e}")

            self._session = self.session_factory(token)
            logger.info("Session initialized through OAuth")
            return InitResult(self._session, "oauth", notices)

    async def _authorize(self, credentials: Credentials, prompt: PromptCallback) -> TokenRecord:
        """Run the interactive authorization code exchange."""
        oauth = self.oauth_factory(credentials)
        state = oauth.generate_state()
        auth_url = oauth.get_authorization_url(state=state)

        logger.debug("Prompting for OAuth redirect")
        response = await prompt(AUTH_PROMPT.format(url=auth_url))
        code = oauth.parse_response_code(response)
        return await oauth.exchange_code(code)

    async def aclose(self) -> None:
        """Close the session's HTTP pool."""
        if self._session is not None:
            await self._session.close()
