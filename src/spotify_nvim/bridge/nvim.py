"""Neovim host adapter built on pynvim.

pynvim drives an asyncio event loop and runs every incoming message in its
own greenlet. The dispatcher is plain asyncio, so:

- notifications are scheduled as tasks on pynvim's loop and not awaited
- requests are scheduled as tasks; the handler greenlet yields back to the
  loop until the task is done and then returns its result as the reply
- ``prompt`` performs the blocking ``input()`` call from a helper greenlet
  and resolves an asyncio future when Neovim answers
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import greenlet
import pynvim
from pynvim.msgpack_rpc import ErrorResponse

from .dispatcher import CommandDispatcher, CommandError, MESSAGE_PREFIX

logger = logging.getLogger(__name__)


class NvimHost:
    """Host implementation talking to a parent Neovim over msgpack-RPC.

    Usage:
        host = NvimHost.attach_stdio()
        host.run(dispatcher)
    """

    def __init__(self, nvim: pynvim.Nvim):
        self.nvim = nvim
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    def attach_stdio(cls) -> "NvimHost":
        """Attach to the Neovim that started this process as an RPC job."""
        return cls(pynvim.attach("stdio"))

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self.nvim.loop

    # Host protocol

    async def out_write(self, message: str) -> None:
        self.nvim.out_write(message + "\n", async_=True)

    async def err_write(self, message: str) -> None:
        self.nvim.err_write(message + "\n", async_=True)

    async def prompt(self, text: str) -> str:
        future = self.loop.create_future()

        def _call_input() -> None:
            try:
                value = self.nvim.call("input", text)
            except Exception as e:
                self.loop.call_soon(_settle, future, None, e)
            else:
                self.loop.call_soon(_settle, future, value, None)

        # The helper greenlet yields back here while Neovim waits on the user.
        greenlet.greenlet(_call_input).switch()
        value = await future
        return value if isinstance(value, str) else str(value or "")

    # RPC loop

    def run(self, dispatcher: CommandDispatcher) -> None:
        """Serve until Neovim closes the channel, then close the session.

        Returns normally when the channel is closed; other transport
        failures propagate to the caller.
        """

        def on_request(name: str, args: list) -> Any:
            task = self.loop.create_task(dispatcher.handle_request(name, args))
            self._wait(task)
            try:
                return task.result()
            except CommandError as e:
                raise ErrorResponse(MESSAGE_PREFIX + str(e))

        def on_notification(name: str, args: list) -> None:
            task = self.loop.create_task(dispatcher.handle_notification(name, args))
            self._tasks.add(task)
            task.add_done_callback(self._notification_done)

        def on_error(message: str) -> None:
            logger.error("RPC error: %s", message)

        logger.info("Serving Neovim RPC")
        try:
            self.nvim.run_loop(on_request, on_notification, err_cb=on_error)
        except EOFError:
            # pynvim reports a closed channel as EOFError("connection_lost")
            logger.info("Neovim closed the channel")
        finally:
            self._shutdown(dispatcher)

    def _shutdown(self, dispatcher: CommandDispatcher) -> None:
        """Close the session's HTTP pool on the loop that opened it."""
        if self.loop.is_closed() or self.loop.is_running():
            return
        self.loop.run_until_complete(dispatcher.aclose())

    def _wait(self, task: asyncio.Task) -> None:
        """Suspend the current handler greenlet until ``task`` is done."""
        current = greenlet.getcurrent()
        task.add_done_callback(lambda _: current.switch())
        current.parent.switch()

    def _notification_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Notification handler failed", exc_info=error)
            self.nvim.err_write(f"{MESSAGE_PREFIX}{error}\n", async_=True)


def _settle(future: asyncio.Future, value: Any, error: BaseException | None) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(value)
