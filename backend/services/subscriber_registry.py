"""
Guardian Realtime - Subscriber Registry

Set of connected output channels, in registration order.
A channel is anything with send(str) and close(); its liveness is only
discovered when send() raises ChannelClosedError.
"""

import asyncio
import uuid
from typing import Callable, Iterator, Optional

from config import SSE_CHANNEL_BACKLOG


class ChannelClosedError(Exception):
    """Raised when a frame cannot be written to a channel"""
    pass


class SSEChannel:
    """
    Output channel of one SSE client.

    Frames are queued here by the broadcaster and drained by the streaming
    response. A full backlog means the client stopped reading: the write
    fails and the channel closes itself.
    """

    def __init__(self, backlog: int = SSE_CHANNEL_BACKLOG):
        self.id = str(uuid.uuid4())
        self.closed = False
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=backlog)

    def send(self, frame: str) -> None:
        if self.closed:
            raise ChannelClosedError(f"Channel {self.id[:8]} is closed")
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            self.close()
            raise ChannelClosedError(f"Channel {self.id[:8]} backlog full")

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        # Wake up a reader blocked on an empty queue
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            pass

    def pending(self) -> int:
        return self._queue.qsize()

    async def frames(self):
        """Yield queued frames until the channel is closed and drained"""
        while True:
            if self.closed and self._queue.empty():
                return
            frame = await self._queue.get()
            if frame is None:
                return
            yield frame


class SubscriberRegistry:
    """Pure set with add / remove / size, plus lifecycle hooks"""

    def __init__(self):
        # dict keeps insertion order
        self._channels = {}
        self._on_added: Optional[Callable[[], None]] = None
        self._on_removed: Optional[Callable[[], None]] = None

    def bind(self, on_added: Callable[[], None], on_removed: Callable[[], None]) -> None:
        """Wire the lifecycle controller (called once by RealtimeService)"""
        self._on_added = on_added
        self._on_removed = on_removed

    def add(self, channel) -> None:
        self._channels[channel] = None
        if self._on_added:
            self._on_added()

    def remove(self, channel) -> None:
        if channel not in self._channels:
            return
        del self._channels[channel]
        if self._on_removed:
            self._on_removed()

    def size(self) -> int:
        return len(self._channels)

    def __len__(self) -> int:
        return len(self._channels)

    def __contains__(self, channel) -> bool:
        return channel in self._channels

    def __iter__(self) -> Iterator:
        return iter(list(self._channels))
