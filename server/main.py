"""
WebSocket server entry point for the shot clock.

This module provides:
- WebSocket server using the websockets library
- Connection admission (room lookup/creation, PIN check)
- Routing of command frames to room engines
- Logging setup and the command line interface
"""

import argparse
import asyncio
import logging
from typing import Optional, Sequence, Union

from websockets.asyncio.server import ServerConnection, serve
from websockets.exceptions import ConnectionClosed
from rich.logging import RichHandler

from server.config import ConfigLoader, ServerSettings
from server.member import ClientConnection
from server.protocol import HandshakeToken, decode_frame, parse_command, parse_connection_path
from server.registry import AdmissionError, RoomRegistry
from server.room import ShotClockRoom

# Suppress websockets library errors from bare TCP health checks that never
# complete the WebSocket handshake.
logging.getLogger("websockets").setLevel(logging.CRITICAL)

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Send log records through rich to the console."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


class ShotClockServer:
    """
    WebSocket server hosting any number of shot clock rooms.

    Handles:
    - Client connections and disconnections
    - Admission through the injected room registry
    - Command routing to room engines
    """

    def __init__(self, registry: RoomRegistry, settings: Optional[ServerSettings] = None):
        self.registry = registry
        self.settings = settings or ServerSettings()

    async def start(self):
        """Start the WebSocket server and run until cancelled."""
        logger.info(f"Starting shot clock server on ws://{self.settings.host}:{self.settings.port}")
        # reuse_address allows binding to ports in TIME_WAIT state
        async with serve(
            self.handle_connection, self.settings.host, self.settings.port,
            reuse_address=True
        ):
            try:
                await asyncio.Future()  # Run forever
            finally:
                logger.info("Closing all rooms")
                self.registry.close()

    async def handle_connection(self, websocket: ServerConnection):
        """Admit a new connection and serve it until it closes."""
        room_id, pin = parse_connection_path(websocket.request.path)

        try:
            admission = self.registry.admit(room_id, pin)
        except AdmissionError as e:
            await self.reject(websocket, e.token)
            return

        member = ClientConnection(
            websocket,
            authenticated=admission.authenticated,
            queue_size=self.settings.outbound_queue_size,
        )

        try:
            if pin is not None:
                await websocket.send(HandshakeToken.AUTHENTICATED.value)
        except ConnectionClosed:
            return

        room = admission.room
        member.start()
        room.join_client(member)
        logger.info(f"{member!r} joined room {room_id!r}")

        try:
            async for frame in websocket:
                self.handle_message(room, member, frame)
        except ConnectionClosed:
            logger.info(f"Connection closed: {member!r}")
        finally:
            room.disconnect_client(member)
            await member.close()
            logger.info(f"{member!r} left room {room_id!r}")

    def handle_message(self, room: ShotClockRoom, member: ClientConnection, frame: Union[str, bytes]):
        """Handle an incoming frame from a member."""
        if not member.authenticated:
            logger.debug(f"Ignoring frame from viewer {member!r}")
            return

        text = decode_frame(frame)
        event = parse_command(text, extended=self.settings.extended_commands)
        if event is None:
            logger.debug(f"Ignoring unknown command {text!r} from {member!r}")
            return

        room.handle_event(event)

    async def reject(self, websocket: ServerConnection, token: HandshakeToken):
        """Tell the client why it was refused and close the connection."""
        try:
            await websocket.send(token.value)
            await websocket.close()
        except ConnectionClosed:
            pass


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Shot clock synchronization server")
    parser.add_argument("--host", default=None, help="Host to bind to")
    parser.add_argument("--port", type=int, default=None, help="Port to bind to")
    parser.add_argument("--config-dir", default=None, help="Directory containing server_settings.json")
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, ...)")
    parser.add_argument(
        "--extended-commands", action="store_const", const=True, default=None,
        help="Accept horn, rewind and adjust commands"
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    # Config warnings are emitted while loading, before the final level is known
    configure_logging(args.log_level or "INFO")
    if args.config_dir:
        ConfigLoader.reload(args.config_dir)
    settings = ServerSettings.load(
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        extended_commands=args.extended_commands,
    )
    configure_logging(settings.log_level)

    registry = RoomRegistry.from_settings(settings)
    server = ShotClockServer(registry, settings)
    try:
        asyncio.run(server.start())
    except KeyboardInterrupt:
        logger.info("Server stopped")
    return 0


if __name__ == "__main__":
    exit(main())
