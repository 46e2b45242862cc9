# server/timers.py
"""Timer manager for the event-driven room engine."""

import asyncio
from typing import Any, Callable, Dict, Optional

from server.events import RoomEvent, RoomEventType


class TimerManager:
    """Manages room timers that fire events when they expire.

    Each timer id has at most one outstanding timer. Starting a timer with an
    id that is already scheduled cancels the old one first.
    """

    def __init__(self, event_callback: Callable[[RoomEvent], None]):
        """Initialize timer manager.

        Args:
            event_callback: Function to call with the event when a timer expires.
        """
        self._event_callback = event_callback
        self._timers: Dict[str, asyncio.Task] = {}

    def start_timer(
        self,
        timer_id: str,
        duration_seconds: float,
        event_type: RoomEventType,
        data: Optional[Dict[str, Any]] = None
    ) -> None:
        """Start a timer that fires an event when it expires.

        Args:
            timer_id: Unique identifier for this timer.
            duration_seconds: How long until the timer fires.
            event_type: The event type to fire.
            data: Optional data to include in the event.
        """
        self.cancel_timer(timer_id)

        async def timer_task():
            await asyncio.sleep(duration_seconds)
            # Unregister before firing so the callback can schedule a successor
            if self._timers.get(timer_id) is task:
                del self._timers[timer_id]
            self._event_callback(RoomEvent(type=event_type, data=data or {}))

        task = asyncio.create_task(timer_task())
        self._timers[timer_id] = task

    def cancel_timer(self, timer_id: str) -> bool:
        """Cancel a timer if it exists.

        Args:
            timer_id: The timer to cancel.

        Returns:
            True if a timer was cancelled, False if no such timer.
        """
        task = self._timers.pop(timer_id, None)
        if task:
            task.cancel()
            return True
        return False

    def cancel_all(self) -> None:
        """Cancel all active timers."""
        for task in self._timers.values():
            task.cancel()
        self._timers.clear()

    def is_active(self, timer_id: str) -> bool:
        """Check if a timer is currently active."""
        return timer_id in self._timers
