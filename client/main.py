"""
Terminal client for the shot clock server.

Architecture:
    - NetworkThread runs the WebSocket connection in a background thread
    - Main thread stays synchronous, rendering with rich and prompting with questionary

Modes:
    --watch   live-updating clock display, no input
    default   controller: pick commands from a menu, clock printed between picks
"""

import argparse
import time
from typing import Optional, Sequence
from urllib.parse import urlsplit

from rich.live import Live

from client import ui
from client.handler import MessageHandler
from client.network_thread import NetworkThread
from client.state import ClockState


# Poll timeouts (seconds)
POLL_TIMEOUT = 0.1
CONNECTION_TIMEOUT = 5.0


class ShotClockClient:
    """Keeps a ClockState in sync with one room."""

    def __init__(self, url: str, network: Optional[NetworkThread] = None):
        self.url = url
        self.room = urlsplit(url).path.lstrip("/")
        self.state = ClockState()
        self.handler = MessageHandler(self.state)
        self.network = network or NetworkThread()
        self.error: Optional[str] = None

    def connect(self, timeout: float = CONNECTION_TIMEOUT) -> bool:
        """Connect and wait for the first time update.

        Returns:
            True once synced, False if refused, disconnected or timed out.
        """
        if not self.network.start(self.url):
            return False

        deadline = time.time() + timeout
        while time.time() < deadline:
            self.drain(POLL_TIMEOUT)
            if self.state.rejected or self.error:
                return False
            if self.state.synced:
                return True
        return False

    def drain(self, timeout: float = 0.0) -> int:
        """Process every queued network message.

        Args:
            timeout: How long to wait for the first message.

        Returns:
            Number of messages processed.
        """
        count = 0
        msg = self.network.poll(timeout=timeout)
        while msg is not None:
            self._dispatch(msg)
            count += 1
            msg = self.network.poll(timeout=0)
        return count

    def send(self, command: str):
        self.network.send(command)

    def close(self):
        self.network.stop()

    def _dispatch(self, msg: dict):
        if msg["type"] == "CONNECTED":
            self.state.connected = True
        elif msg["type"] == "SERVER_MESSAGE":
            self.handler.handle(msg["text"])
        elif msg["type"] == "CONNECTION_LOST":
            self.state.connected = False
            self.error = msg.get("error", "Connection lost")


def run_watch(client: ShotClockClient):
    """Render the clock until the connection drops or Ctrl+C."""
    with Live(ui.render_clock(client.state, client.room), console=ui.console, refresh_per_second=10) as live:
        while client.state.connected:
            if client.drain(POLL_TIMEOUT):
                live.update(ui.render_clock(client.state, client.room))


def run_controller(client: ShotClockClient, extended: bool = False):
    """Prompt for commands until the user quits or the connection drops."""
    if not client.state.authenticated:
        ui.print_error("Joined without a PIN: commands will be ignored by the server.")

    while client.state.connected:
        client.drain()
        ui.print_clock(client.state, client.room)

        command = ui.select_command(extended=extended)
        if command is None:
            break
        if command != ui.REFRESH:
            client.send(command)
            # Give the server a moment to answer before redrawing
            client.drain(POLL_TIMEOUT * 3)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Shot clock terminal client")
    parser.add_argument("url", help="Room URL, e.g. ws://localhost:8080/court1?pin=1234")
    parser.add_argument("--watch", action="store_true", help="Only display the clock")
    parser.add_argument("--extended", action="store_true", help="Offer horn, rewind and adjust commands")
    args = parser.parse_args(argv)

    client = ShotClockClient(args.url)
    ui.console.print(f"[dim]Connecting to {args.url}...[/dim]")

    try:
        if not client.connect():
            if client.state.rejected:
                ui.print_error(f"Refused by server: {client.state.rejected}")
            else:
                ui.print_error("Could not connect to server.")
            return 1

        if args.watch:
            run_watch(client)
        else:
            run_controller(client, extended=args.extended)
    except KeyboardInterrupt:
        pass
    finally:
        client.close()

    return 0


if __name__ == "__main__":
    exit(main())
