"""Member handles for admitted WebSocket connections.

The room engine never awaits. Each connection therefore gets its own bounded
outbound queue, drained by a writer task, so a slow or dead client cannot
stall the room it belongs to.
"""

import asyncio
import logging
import uuid
from typing import Optional

from websockets.asyncio.server import ServerConnection
from websockets.exceptions import ConnectionClosed


logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 64


class ClientConnection:
    """A connected WebSocket client as seen by a room."""

    def __init__(
        self,
        websocket: ServerConnection,
        authenticated: bool,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ):
        self.websocket = websocket
        self.authenticated = authenticated
        self.connection_id = str(uuid.uuid4())[:8]

        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._writer: Optional[asyncio.Task] = None
        self._closed = False

    def __repr__(self) -> str:
        role = "controller" if self.authenticated else "viewer"
        return f"ClientConnection({self.connection_id}, {role})"

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of messages waiting to be written."""
        return self._queue.qsize()

    def start(self) -> None:
        """Start the writer task."""
        if self._writer is None:
            self._writer = asyncio.create_task(self._write_loop())

    def send(self, message: str) -> None:
        """Queue a message for delivery. Never blocks."""
        if self._closed:
            return
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(f"Outbound queue full for {self.connection_id}, dropping {message!r}")

    async def close(self) -> None:
        """Stop the writer task and discard anything still queued."""
        self._closed = True
        if self._writer is None:
            return
        if not self._writer.done():
            self._writer.cancel()
        try:
            await self._writer
        except asyncio.CancelledError:
            pass
        self._writer = None

    async def _write_loop(self) -> None:
        """Write queued messages to the socket in order."""
        try:
            while True:
                message = await self._queue.get()
                await self.websocket.send(message)
        except ConnectionClosed:
            logger.debug(f"Connection {self.connection_id} closed while writing")
            self._closed = True
