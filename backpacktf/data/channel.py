"""Bounded single-producer channel between the feed reader and its consumer.

The channel applies backpressure: :meth:`Sender.send` waits while the buffer is
full. The receiver is the only handle a consumer holds; once it is closed or
garbage collected the next send raises :class:`ChannelClosed`, which is how the
reader learns that nobody is listening any more.
"""

from __future__ import annotations

import asyncio
import weakref
from typing import Any, Optional, Tuple


class ChannelClosed(Exception):
    """The receiving side of the channel has gone away."""


class _ChannelState:
    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("channel capacity must be at least 1")
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=capacity)
        self.receiver_closed = asyncio.Event()
        self.sender_closed = asyncio.Event()


async def _first(primary: "asyncio.Future[Any]", secondary: "asyncio.Future[Any]") -> bool:
    """Wait for either future; return True if ``primary`` completed."""

    try:
        await asyncio.wait({primary, secondary}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for future in (primary, secondary):
            if not future.done():
                future.cancel()
    return primary.done() and not primary.cancelled()


class Sender:
    """Producer end, owned by the reader task."""

    def __init__(self, state: _ChannelState) -> None:
        self._state = state

    @property
    def closed(self) -> bool:
        return self._state.receiver_closed.is_set()

    async def send(self, item: Any) -> None:
        state = self._state
        if state.receiver_closed.is_set():
            raise ChannelClosed("receiver closed")
        try:
            state.queue.put_nowait(item)
            return
        except asyncio.QueueFull:
            pass

        put = asyncio.ensure_future(state.queue.put(item))
        closed = asyncio.ensure_future(state.receiver_closed.wait())
        if not await _first(put, closed):
            raise ChannelClosed("receiver closed")

    def close(self) -> None:
        """Signal the end of the stream; buffered items stay readable."""

        self._state.sender_closed.set()


class Receiver:
    """Consumer end of the event feed.

    Yields ``(event_id, message)`` tuples::

        async for event_id, message in receiver:
            ...

    Iteration ends once the feed is closed and the buffer is drained.
    """

    def __init__(self, state: _ChannelState) -> None:
        self._state = state
        self._finalizer = weakref.finalize(self, state.receiver_closed.set)

    @property
    def closed(self) -> bool:
        return self._state.receiver_closed.is_set()

    async def recv(self) -> Optional[Tuple[str, Any]]:
        """Return the next item, or None once the stream has ended."""

        state = self._state
        while not state.receiver_closed.is_set():
            if not state.queue.empty():
                return state.queue.get_nowait()
            if state.sender_closed.is_set():
                return None
            get = asyncio.ensure_future(state.queue.get())
            ended = asyncio.ensure_future(state.sender_closed.wait())
            if await _first(get, ended):
                return get.result()
        return None

    def close(self) -> None:
        """Stop receiving; the reader shuts down on its next send."""

        self._finalizer()

    def __aiter__(self) -> "Receiver":
        return self

    async def __anext__(self) -> Tuple[str, Any]:
        item = await self.recv()
        if item is None:
            raise StopAsyncIteration
        return item

    async def __aenter__(self) -> "Receiver":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()


def open_channel(capacity: int) -> Tuple[Sender, Receiver]:
    state = _ChannelState(capacity)
    return Sender(state), Receiver(state)


__all__ = ["ChannelClosed", "Receiver", "Sender", "open_channel"]
