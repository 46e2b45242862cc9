"""Client-side clock state."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ClockState:
    """What the client currently knows about its room."""

    # Connection state
    connected: bool = False
    authenticated: bool = False
    rejected: Optional[str] = None

    # Clock
    running: bool = False
    remaining_seconds: Optional[int] = None
    game_time: int = 0
    horn_count: int = 0

    @property
    def synced(self) -> bool:
        """Whether a time update has been received yet."""
        return self.remaining_seconds is not None

    @property
    def display_time(self) -> str:
        """Remaining time as shown on screen."""
        if self.remaining_seconds is None:
            return "--"
        return str(self.remaining_seconds)

    @property
    def role(self) -> str:
        return "controller" if self.authenticated else "viewer"
