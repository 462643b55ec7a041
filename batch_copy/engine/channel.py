"""
Bounded message channel between handles and the engine.

Wraps an `asyncio.Queue` with a sender count so the engine can tell when the
last handle went away. A full queue suspends senders, which is the only
backpressure producers ever see.
"""

from __future__ import annotations

import asyncio
from typing import List

from batch_copy.engine.messages import FlushRequest, InsertRow, Message, Shutdown, reject
from batch_copy.errors import ChannelClosedError
from batch_copy.utils.logging import get_logger

log = get_logger(__name__)


class Channel:
    """
    Multi-producer, single-consumer FIFO of engine messages.

    Parameters
    ----------
    capacity : int
        Maximum number of queued messages before `send` suspends.
    """

    def __init__(self, capacity: int) -> None:
        self._queue: asyncio.Queue[Message] = asyncio.Queue(maxsize=capacity)
        self._senders = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def senders(self) -> int:
        return self._senders

    def qsize(self) -> int:
        return self._queue.qsize()

    def attach(self) -> None:
        """Register a new sending handle."""
        if self._closed:
            raise ChannelClosedError("channel is closed")
        self._senders += 1

    async def detach(self) -> bool:
        """
        Unregister a sending handle.

        Returns True when this was the last sender; the channel is then closed
        and a `Shutdown` is queued behind every message already sent.
        """
        if self._senders <= 0:
            return False
        self._senders -= 1
        if self._senders > 0 or self._closed:
            return False
        self._closed = True
        await self._queue.put(Shutdown())
        return True

    async def send(self, msg: Message) -> None:
        if self._closed:
            raise ChannelClosedError("sending on a closed channel, the engine is gone")
        await self._queue.put(msg)

    async def recv(self) -> Message:
        return await self._queue.get()

    def drain_closed(self) -> int:
        """
        Fail the completion signal of every message still queued.

        Called once the engine has stopped reading. Returns the number of
        messages rejected.
        """
        self._closed = True
        rejected: List[Message] = []
        while True:
            try:
                rejected.append(self._queue.get_nowait())
            except asyncio.QueueEmpty:
                break
        count = 0
        for msg in rejected:
            if isinstance(msg, (InsertRow, FlushRequest)):
                reject(msg.done, ChannelClosedError("engine stopped before serving this message"))
                count += 1
        if count:
            log.warning(
                f"[CHANNEL] rejected {count} message(s) queued after shutdown",
                extra={"rejected": count},
            )
        return count


__all__ = ["Channel"]
