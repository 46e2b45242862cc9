"""Room registry: maps room identifiers to room engines and admits connections."""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from server.config import ServerSettings
from server.protocol import HandshakeToken
from server.room import ShotClockRoom


logger = logging.getLogger(__name__)

RoomFactory = Callable[[str, str], ShotClockRoom]


class AdmissionError(Exception):
    """A connection was refused before reaching a room."""

    token = HandshakeToken.ROOM_NOT_FOUND

    def __init__(self, room_id: str):
        super().__init__(f"{self.token.value}: {room_id}")
        self.room_id = room_id


class RoomNotFound(AdmissionError):
    """Unknown room and no PIN to create it with."""
    token = HandshakeToken.ROOM_NOT_FOUND


class WrongPin(AdmissionError):
    """PIN does not match the room's PIN."""
    token = HandshakeToken.WRONG_PIN


@dataclass
class Admission:
    """Outcome of a successful admission."""
    room: ShotClockRoom
    authenticated: bool
    created: bool = False


class RoomRegistry:
    """Owns every room of the process.

    Created by the entry point and handed to the server; close() cancels the
    timers of all rooms on shutdown.
    """

    def __init__(self, room_factory: Optional[RoomFactory] = None):
        self._rooms: Dict[str, ShotClockRoom] = {}
        self._room_factory = room_factory or ShotClockRoom

    @classmethod
    def from_settings(cls, settings: ServerSettings) -> "RoomRegistry":
        """Registry whose rooms use the configured clock settings."""
        def factory(room_id: str, pin: str) -> ShotClockRoom:
            return ShotClockRoom(
                room_id,
                pin,
                initial_seconds=settings.initial_shot_clock_seconds,
                keepalive_seconds=settings.keepalive_interval_seconds,
            )
        return cls(room_factory=factory)

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

    @property
    def room_ids(self) -> List[str]:
        return list(self._rooms.keys())

    def get(self, room_id: str) -> Optional[ShotClockRoom]:
        return self._rooms.get(room_id)

    def admit(self, room_id: str, pin: Optional[str]) -> Admission:
        """Find or create the room for a new connection.

        Args:
            room_id: Room identifier from the connection path.
            pin: PIN from the connection, or None if none was given.

        Returns:
            The admission; without a PIN an existing room admits a viewer.

        Raises:
            RoomNotFound: The room does not exist and no PIN was given.
            WrongPin: The room exists and the PIN does not match.
        """
        room = self._rooms.get(room_id)

        if room is None:
            if pin is None:
                logger.info(f"Connection refused: room {room_id!r} not found")
                raise RoomNotFound(room_id)
            room = self._room_factory(room_id, pin)
            self._rooms[room_id] = room
            logger.info(f"Room {room_id!r} created")
            return Admission(room=room, authenticated=True, created=True)

        if pin is None:
            return Admission(room=room, authenticated=False)

        if not room.check_secret(pin):
            logger.warning(f"Unsuccessful authentication for room {room_id!r}")
            raise WrongPin(room_id)

        return Admission(room=room, authenticated=True)

    def close(self) -> None:
        """Shut down every room."""
        for room in self._rooms.values():
            room.close()
        self._rooms.clear()
