# client/handler.py
"""Message handler for processing server frames."""

from typing import Callable, Optional

from client.state import ClockState
from server.protocol import FIELD_SEPARATOR, HORN, HandshakeToken


class MessageHandler:
    """Handles incoming server frames and updates clock state."""

    def __init__(self, state: ClockState):
        self.state = state
        self._on_horn: Optional[Callable[[], None]] = None
        self._on_expired: Optional[Callable[[], None]] = None

    def set_callbacks(
        self,
        on_horn: Optional[Callable[[], None]] = None,
        on_expired: Optional[Callable[[], None]] = None,
    ):
        """Set callback functions for clock events."""
        self._on_horn = on_horn
        self._on_expired = on_expired

    def handle(self, frame: str) -> bool:
        """Handle an incoming frame.

        Returns:
            True if the frame was understood, False if it was ignored.
        """
        if frame == HORN:
            self.state.horn_count += 1
            if self._on_horn:
                self._on_horn()
            return True

        if frame == HandshakeToken.AUTHENTICATED.value:
            self.state.authenticated = True
            return True

        if frame in (HandshakeToken.ROOM_NOT_FOUND.value, HandshakeToken.WRONG_PIN.value):
            self.state.rejected = frame
            return True

        fields = frame.split(FIELD_SEPARATOR)
        if fields[0] == "r" and len(fields) == 2 and fields[1] in ("0", "1"):
            self.state.running = fields[1] == "1"
            return True

        if fields[0] == "t" and len(fields) == 3:
            return self._handle_time(fields[1], fields[2])

        return False

    def _handle_time(self, game_time: str, seconds: str) -> bool:
        try:
            game_time_value = int(game_time)
            remaining = int(seconds)
        except ValueError:
            return False

        self.state.game_time = game_time_value
        self.state.remaining_seconds = remaining
        if remaining == 0 and not self.state.running and self._on_expired:
            self._on_expired()
        return True
