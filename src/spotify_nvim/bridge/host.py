"""Capabilities the dispatcher needs from the editor host."""

from __future__ import annotations

from typing import Protocol


class Host(Protocol):
    """The editor side of the bridge.

    ``out_write`` and ``err_write`` take one message line each; ``prompt``
    asks the user for a line of input and waits as long as it takes.
    """

    async def out_write(self, message: str) -> None: ...

    async def err_write(self, message: str) -> None: ...

    async def prompt(self, text: str) -> str: ...
