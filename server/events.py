# server/events.py
"""Event types for the event-driven room engine."""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict


class RoomEventType(Enum):
    """All events a room engine reacts to."""

    # Commands from members
    START = auto()
    PAUSE = auto()
    RESET = auto()
    REWIND = auto()
    ADJUST = auto()
    HORN = auto()

    # Timer events
    TICK = auto()
    KEEPALIVE = auto()


@dataclass
class RoomEvent:
    """An event that triggers a state transition."""

    type: RoomEventType
    data: Dict[str, Any] = field(default_factory=dict)
