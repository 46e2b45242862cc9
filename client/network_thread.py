"""Background WebSocket connection to one shot clock room.

Text frames go through two thread-safe queues so the terminal UI can stay
synchronous.
"""

import asyncio
import queue
import threading
from typing import Optional

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed


class NetworkThread:
    """Owns the room connection on a daemon thread with its own event loop.

    Queue message formats:

    Incoming (server -> main thread):
        {"type": "CONNECTED"}
        {"type": "SERVER_MESSAGE", "text": "..."}
        {"type": "CONNECTION_LOST", "error": "..."}

    Outgoing (main thread -> server):
        {"type": "SEND", "text": "..."}
        {"type": "DISCONNECT"}
    """

    # Seconds
    QUEUE_POLL_INTERVAL = 0.05
    STOP_TIMEOUT = 5.0

    def __init__(self):
        self.incoming_queue: queue.Queue = queue.Queue()
        self.outgoing_queue: queue.Queue = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: threading.Event = threading.Event()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._url: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return not self._stop_event.is_set() and self._thread is not None and self._thread.is_alive()

    def start(self, url: str) -> bool:
        """Connect to a room URL such as "ws://localhost:8080/court1?pin=1234".

        Returns False if a connection is already running.
        """
        if self.is_running:
            return False

        self._url = url
        self._stop_event.clear()

        self._thread = threading.Thread(
            target=self._thread_main,
            name="NetworkThread",
            daemon=True
        )
        self._thread.start()
        return True

    def stop(self):
        """Close the connection and join the thread."""
        if not self.is_running:
            return

        self._stop_event.set()
        self.outgoing_queue.put({"type": "DISCONNECT"})

        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=self.STOP_TIMEOUT)

        self._thread = None
        self._loop = None

    def send(self, text: str):
        """Queue a command frame to send to the server."""
        self.outgoing_queue.put({"type": "SEND", "text": text})

    def poll(self, timeout: float = 0.1) -> Optional[dict]:
        """Next incoming message, or None after `timeout` seconds."""
        try:
            return self.incoming_queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def _thread_main(self):
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)

        try:
            self._loop.run_until_complete(self._async_main())
        except Exception as e:
            self.incoming_queue.put({"type": "CONNECTION_LOST", "error": str(e)})
        finally:
            self._loop.close()
            self._loop = None

    async def _async_main(self):
        """Connect, then pump frames both ways until either side stops."""
        websocket = None

        try:
            websocket = await connect(self._url)
            self.incoming_queue.put({"type": "CONNECTED"})

            receive_task = asyncio.create_task(self._receive_loop(websocket))
            send_task = asyncio.create_task(self._send_loop(websocket))

            done, pending = await asyncio.wait(
                [receive_task, send_task],
                return_when=asyncio.FIRST_COMPLETED
            )

            for task in pending:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        except ConnectionRefusedError:
            self.incoming_queue.put({"type": "CONNECTION_LOST", "error": "Connection refused"})
        except Exception as e:
            self.incoming_queue.put({"type": "CONNECTION_LOST", "error": str(e)})
        finally:
            if websocket is not None:
                await websocket.close()

    async def _receive_loop(self, websocket: ClientConnection):
        """Forward server frames; always ends with CONNECTION_LOST."""
        try:
            async for frame in websocket:
                if self._stop_event.is_set():
                    break
                if isinstance(frame, bytes):
                    frame = frame.decode("utf-8", errors="replace")
                self.incoming_queue.put({"type": "SERVER_MESSAGE", "text": frame})
        except ConnectionClosed:
            pass
        self.incoming_queue.put({"type": "CONNECTION_LOST", "error": "Connection closed"})

    async def _send_loop(self, websocket: ClientConnection):
        """Send queued command frames until DISCONNECT or stop."""
        while not self._stop_event.is_set():
            try:
                msg = self.outgoing_queue.get_nowait()
            except queue.Empty:
                await asyncio.sleep(self.QUEUE_POLL_INTERVAL)
                continue

            if msg["type"] == "DISCONNECT":
                break

            if msg["type"] == "SEND":
                try:
                    await websocket.send(msg["text"])
                except ConnectionClosed:
                    self.incoming_queue.put({"type": "CONNECTION_LOST", "error": "Connection closed"})
                    break
