"""WebSocket observers for the broadcaster."""

from __future__ import annotations

import asyncio
import logging

from aiohttp import web

from aquasense.models.messages import ChannelMessage

_logger = logging.getLogger(__name__)


class WebSocketObserver:
    """Queues messages for one WebSocket and writes them from a pump task.

    ``deliver`` never awaits, so broadcaster triggers stay atomic. When the
    queue is full the message is dropped (at-most-once delivery).
    """

    def __init__(self, ws: web.WebSocketResponse, *, queue_size: int = 100, peer: str = "") -> None:
        self._ws = ws
        self._queue: asyncio.Queue[ChannelMessage] = asyncio.Queue(maxsize=queue_size)
        self._closed = False
        self.peer = peer

    @property
    def closed(self) -> bool:
        return self._closed or self._ws.closed

    def deliver(self, message: ChannelMessage) -> None:
        if self.closed:
            raise ConnectionResetError(f"observer {self.peer} is closed")
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            _logger.debug("Observer %s queue full; dropped %s", self.peer, message.event)

    async def pump(self) -> None:
        """Write queued messages until the socket fails or the task is cancelled."""
        try:
            while True:
                message = await self._queue.get()
                await self._ws.send_str(message.to_json())
        except (ConnectionResetError, RuntimeError) as exc:
            _logger.debug("Observer %s write failed: %s", self.peer, exc)
        finally:
            self._closed = True
