"""Routes editor notifications and requests to Spotify session actions.

Notifications (no reply):
    config          {client_id, client_secret, token_file_path?}
    play_track      "spotify:track:..."
    init            (no payload) create the session eagerly

Requests (reply expected):
    next_track      -> None, errors go to the editor's error channel
    previous_track  -> None, same contract as next_track
    search_tracks   {artist?, track?} -> [{name, uri}, ...]
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from ..api.client import SpotifyClient, SpotifyError
from ..auth.credentials import CredentialHolder, MissingCredentialsError
from ..auth.manager import SessionManager, NotConfiguredError
from ..oauth.client import OAuthError
from .host import Host

logger = logging.getLogger(__name__)

MESSAGE_PREFIX = "[spotify-nvim]: "
SEARCH_PAGE_SIZE = 50

# Filter keys in the order their terms are appended to the query.
SEARCH_FILTERS = ("artist", "track")

# Failures of session setup that abort only the current command.
INIT_ERRORS = (NotConfiguredError, OAuthError)


class CommandError(Exception):
    """A request failed; the message is returned to the editor as the error value."""


class SessionUnavailableError(CommandError):
    """The session could not be created for this request."""


class UnexpectedResultShapeError(CommandError):
    """The API answered with something other than a page of tracks."""


def build_search_query(filters: dict[str, Any]) -> str:
    """Build a field-filter query such as ``"artist:X track:Y "``.

    Terms follow the order of ``filters``; unknown keys and non-string
    values are ignored.
    """
    query = ""
    for key, value in filters.items():
        if key not in SEARCH_FILTERS:
            continue
        if not isinstance(value, str):
            logger.debug("Ignoring non-string search filter %s=%r", key, value)
            continue
        query += f"{key}:{value} "
    return query


def tracks_from_search(response: Any) -> list[dict[str, str]]:
    """Map a track search response to ``{name, uri}`` records, in API order.

    Raises:
        UnexpectedResultShapeError: If the response has no track page or an
            item lacks a name or URI
    """
    tracks = response.get("tracks") if isinstance(response, dict) else None
    items = tracks.get("items") if isinstance(tracks, dict) else None
    if not isinstance(items, list):
        raise UnexpectedResultShapeError("Couldn't get things! Search did not return tracks")

    records = []
    for item in items:
        # Unavailable tracks come back as nulls
        if item is None:
            continue
        name = item.get("name") if isinstance(item, dict) else None
        uri = item.get("uri") if isinstance(item, dict) else None
        if not name or not uri:
            raise UnexpectedResultShapeError("Couldn't get things! Track without name or uri")
        records.append({"name": name, "uri": uri})
    return records


class CommandDispatcher:
    """Dispatches host commands against the shared session.

    Usage:
        dispatcher = CommandDispatcher(host, holder, SessionManager(holder))
        await dispatcher.handle_notification("config", [{"client_id": ..., ...}])
        tracks = await dispatcher.handle_request("search_tracks", [{"artist": "X"}])
    """

    def __init__(self, host: Host, credentials: CredentialHolder, manager: SessionManager):
        self.host = host
        self.credentials = credentials
        self.manager = manager

        self._notifications: dict[str, Callable[[list], Awaitable[None]]] = {
            "config": self._config,
            "play_track": self._play_track,
            "init": self._init,
        }
        self._requests: dict[str, Callable[[list], Awaitable[Any]]] = {
            "next_track": self._next_track,
            "previous_track": self._previous_track,
            "search_tracks": self._search_tracks,
        }

    async def handle_notification(self, name: str, args: list) -> None:
        handler = self._notifications.get(name)
        if handler is None:
            logger.debug("Ignoring unknown notification %r", name)
            return
        logger.debug("notification %s", name)
        await handler(args)

    async def handle_request(self, name: str, args: list) -> Any:
        handler = self._requests.get(name)
        if handler is None:
            logger.debug("Unknown request %r, replying with nil", name)
            return None
        logger.debug("request %s", name)
        return await handler(args)

    async def aclose(self) -> None:
        """Release the session, if one was created."""
        await self.manager.aclose()

    async def report(self, message: str) -> None:
        """Write a message to the editor's error channel."""
        await self.host.err_write(MESSAGE_PREFIX + message)

    async def _session(self) -> SpotifyClient:
        result = await self.manager.ensure_ready(self.host.prompt, notify=self.report)
        if result.is_fresh:
            await self.host.out_write(MESSAGE_PREFIX + "Initialized spotify!")
        return result.session

    # Notifications

    async def _config(self, args: list) -> None:
        fields = _first_map(args)
        try:
            await self.credentials.configure(
                fields.get("client_id"),
                fields.get("client_secret"),
                token_file_path=_str_or_none(fields.get("token_file_path")),
            )
        except MissingCredentialsError as e:
            await self.report(str(e))
            return
        logger.info("Client credentials configured")

    async def _play_track(self, args: list) -> None:
        uri = args[0] if args else None
        if not isinstance(uri, str) or not uri:
            await self.report("play_track expects a track URI")
            return

        try:
            session = await self._session()
            await session.start_playback(uris=[uri])
        except INIT_ERRORS as e:
            logger.warning("play_track: session unavailable: %s", e)
            await self.report(str(e))
        except SpotifyError as e:
            logger.warning("play_track %s failed: %s", uri, e)
            await self.report(f"Error playing {uri}: {e}")

    async def _init(self, args: list) -> None:
        try:
            await self._session()
        except INIT_ERRORS as e:
            logger.warning("init failed: %s", e)
            await self.report(str(e))

    # Requests

    async def _next_track(self, args: list) -> None:
        await self._skip("next")

    async def _previous_track(self, args: list) -> None:
        await self._skip("previous")

    async def _skip(self, direction: str) -> None:
        # Skip failures never fail the RPC exchange itself.
        try:
            session = await self._session()
        except INIT_ERRORS as e:
            logger.warning("%s_track: session unavailable: %s", direction, e)
            await self.report(f"Spotify not initialized, can't go to {direction} track! {e}")
            return None

        try:
            if direction == "next":
                await session.next_track()
            else:
                await session.previous_track()
        except SpotifyError as e:
            logger.warning("%s_track failed: %s", direction, e)
            await self.report(f"Error going to {direction} track: {e}")
        return None

    async def _search_tracks(self, args: list) -> list[dict[str, str]]:
        try:
            session = await self._session()
        except INIT_ERRORS as e:
            raise SessionUnavailableError(str(e)) from e

        query = build_search_query(_first_map(args))
        try:
            response = await session.search(query, type="track", limit=SEARCH_PAGE_SIZE, offset=0)
        except SpotifyError as e:
            raise CommandError(f"Error searching for {query!r}: {e}") from e

        return tracks_from_search(response)


def _first_map(args: list) -> dict[str, Any]:
    if args and isinstance(args[0], dict):
        return args[0]
    return {}


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None
