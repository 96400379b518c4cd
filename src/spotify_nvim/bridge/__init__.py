"""Editor bridge: command routing and the Neovim host adapter.

Usage:
    from spotify_nvim.bridge import CommandDispatcher
    from spotify_nvim.bridge.nvim import NvimHost

    host = NvimHost.attach_stdio()
    host.run(CommandDispatcher(host, holder, manager))
"""

from .dispatcher import (
    CommandDispatcher,
    CommandError,
    SessionUnavailableError,
    UnexpectedResultShapeError,
    build_search_query,
    tracks_from_search,
    MESSAGE_PREFIX,
    SEARCH_PAGE_SIZE,
)
from .host import Host

__all__ = [
    "CommandDispatcher",
    "CommandError",
    "SessionUnavailableError",
    "UnexpectedResultShapeError",
    "build_search_query",
    "tracks_from_search",
    "MESSAGE_PREFIX",
    "SEARCH_PAGE_SIZE",
    "Host",
]
