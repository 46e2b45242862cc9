"""WebSocket text protocol for the shot clock server.

Outbound frames:
    ``r;1`` / ``r;0``             running state
    ``t;<game_time>;<seconds>``   remaining time
    ``HORN``                      attention signal

Handshake frames:
    ``AUTHENTICATED``, ``ROOM_NOT_FOUND``, ``WRONG_PIN``
"""
import math
from enum import Enum
from typing import Optional, Tuple, Union
from urllib.parse import parse_qs, unquote

from server.events import RoomEvent, RoomEventType


HORN = "HORN"

# Separator used by every multi-field frame
FIELD_SEPARATOR = ";"


class HandshakeToken(Enum):
    """Frames sent once while a connection is being admitted."""
    AUTHENTICATED = "AUTHENTICATED"
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    WRONG_PIN = "WRONG_PIN"


class Command(Enum):
    """Command tokens accepted from authenticated members."""
    START = "start"
    PAUSE = "pause"
    RESET = "reset"

    # Extended command set, only honoured when enabled in settings
    HORN = "horn"
    REWIND = "rewind"
    ADJUST = "adjust"


BASIC_COMMANDS = {
    Command.START: RoomEventType.START,
    Command.PAUSE: RoomEventType.PAUSE,
    Command.RESET: RoomEventType.RESET,
}

EXTENDED_COMMANDS = {
    Command.HORN: RoomEventType.HORN,
    Command.REWIND: RoomEventType.REWIND,
    Command.ADJUST: RoomEventType.ADJUST,
}


def round_seconds(milliseconds: int) -> int:
    """Round milliseconds to whole seconds, halves rounded up."""
    return (milliseconds + 500) // 1000


# Server -> Client message builders
def running_message(running: bool) -> str:
    """Build running state message."""
    return "r" + FIELD_SEPARATOR + ("1" if running else "0")


def time_message(game_time: int, remaining_ms: int) -> str:
    """Build remaining time message."""
    return FIELD_SEPARATOR.join(["t", str(game_time), str(round_seconds(remaining_ms))])


def horn_message() -> str:
    """Build horn message."""
    return HORN


# Client -> Server parsing
def decode_frame(frame: Union[str, bytes]) -> str:
    """Turn a text or binary frame into a stripped string."""
    if isinstance(frame, bytes):
        frame = frame.decode("utf-8", errors="replace")
    return frame.strip()


def parse_command(frame: str, extended: bool = False) -> Optional[RoomEvent]:
    """Parse a command frame into a room event.

    Args:
        frame: Decoded inbound frame, e.g. ``"start"`` or ``"adjust;-5"``.
        extended: Whether the extended command set is accepted.

    Returns:
        The event to hand to the room, or None for unknown or malformed input.
    """
    name, _, argument = frame.partition(FIELD_SEPARATOR)
    try:
        command = Command(name)
    except ValueError:
        return None

    if command in BASIC_COMMANDS:
        return RoomEvent(type=BASIC_COMMANDS[command])

    if not extended:
        return None

    if command == Command.ADJUST:
        try:
            seconds = float(argument)
        except ValueError:
            return None
        if not math.isfinite(seconds):
            return None
        return RoomEvent(type=RoomEventType.ADJUST, data={"seconds": seconds})

    return RoomEvent(type=EXTENDED_COMMANDS[command])


def parse_connection_path(path: str) -> Tuple[str, Optional[str]]:
    """Split a request path into room identifier and PIN.

    All leading slashes are removed from the room identifier. A ``pin``
    parameter that is present but empty still counts as supplied.

    Returns:
        Tuple of (room_id, pin or None).
    """
    raw_path, _, query = path.partition("?")
    room_id = unquote(raw_path).lstrip("/")
    params = parse_qs(query, keep_blank_values=True)
    pins = params.get("pin")
    return room_id, (pins[0] if pins else None)
