# server/room.py
"""Shot clock room engine.

One ShotClockRoom owns a single countdown and the members watching it.

This engine:
- Never blocks - every operation runs to completion without awaiting
- Re-derives remaining time from elapsed clock time on every step, so a late
  tick changes only the cadence of updates, never the displayed value
- Keeps at most one pending tick, fired as an event by the TimerManager
- Publishes to members through their non-blocking send()
"""

import logging
import time
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Optional, Set

from server.events import RoomEvent, RoomEventType
from server.protocol import horn_message, round_seconds, running_message, time_message
from server.timers import TimerManager


logger = logging.getLogger(__name__)

# Anything hashable with a non-blocking send(str) method
Member = Any

# The horn is suppressed this close to expiry so it cannot be mistaken for it
HORN_THRESHOLD_MS = 2000

DEFAULT_INITIAL_SECONDS = 30
DEFAULT_KEEPALIVE_SECONDS = 60


def monotonic_ms() -> int:
    """Current monotonic clock reading in whole milliseconds."""
    return time.monotonic_ns() // 1_000_000


class RoomState(Enum):
    """Countdown states."""
    STOPPED = "stopped"
    RUNNING = "running"


class ShotClockRoom:
    """Timer state machine and member fan-out for one room."""

    # Timer IDs
    TIMER_TICK = "tick"
    TIMER_KEEPALIVE = "keepalive"

    def __init__(
        self,
        room_id: str,
        secret: str,
        initial_seconds: float = DEFAULT_INITIAL_SECONDS,
        keepalive_seconds: float = DEFAULT_KEEPALIVE_SECONDS,
        clock: Callable[[], int] = monotonic_ms,
        timers: Optional[TimerManager] = None,
    ):
        self.room_id = room_id
        self._secret = secret

        # Settings
        self.initial_duration_ms = max(0, int(round(initial_seconds * 1000)))
        self.keepalive_seconds = keepalive_seconds

        # Reserved wire field, always sent as 0
        self.game_time = 0

        # Countdown state
        self._clock = clock
        self._running = False
        self._remaining_ms = self.initial_duration_ms
        self._last_event_ms = clock()
        self.remaining_at_last_reset: Optional[int] = None

        self._members: Set[Member] = set()

        self.timers = timers if timers is not None else TimerManager(self.handle_event)

        self._handlers: Dict[RoomEventType, Callable[[RoomEvent], None]] = {
            RoomEventType.START: lambda event: self.start(),
            RoomEventType.PAUSE: lambda event: self.pause(),
            RoomEventType.RESET: lambda event: self.reset(),
            RoomEventType.REWIND: lambda event: self.rewind_to_last_reset(),
            RoomEventType.ADJUST: self._handle_adjust,
            RoomEventType.HORN: lambda event: self.horn(),
            RoomEventType.TICK: self._handle_tick,
            RoomEventType.KEEPALIVE: self._handle_keepalive,
        }

    def __repr__(self) -> str:
        return (
            f"ShotClockRoom({self.room_id!r}, state={self.state.value}, "
            f"remaining_ms={self._remaining_ms}, members={len(self._members)})"
        )

    @property
    def running(self) -> bool:
        return self._running

    @property
    def state(self) -> RoomState:
        """Current countdown state."""
        return RoomState.RUNNING if self._running else RoomState.STOPPED

    @property
    def remaining_ms(self) -> int:
        """Remaining time as of the last state change."""
        return self._remaining_ms

    @property
    def remaining_seconds(self) -> int:
        """Remaining time as sent to members."""
        return round_seconds(self._remaining_ms)

    @property
    def last_event_ms(self) -> int:
        return self._last_event_ms

    @property
    def members(self) -> FrozenSet[Member]:
        return frozenset(self._members)

    def check_secret(self, candidate: Optional[str]) -> bool:
        """Exact comparison against the room PIN."""
        return candidate is not None and candidate == self._secret

    def handle_event(self, event: RoomEvent) -> None:
        """Handle an incoming event. Never blocks."""
        handler = self._handlers.get(event.type)
        if handler:
            handler(event)

    # --- Membership ---

    def join_client(self, member: Member) -> None:
        """Add a member and send it the current state."""
        self._members.add(member)
        current_ms = self._current_ms(self._clock())
        self._send(member, running_message(self._running))
        self._send(member, time_message(self.game_time, current_ms))

        if not self._running and not self.timers.is_active(self.TIMER_KEEPALIVE):
            self._arm_keepalive()
        logger.debug(f"Room {self.room_id}: member joined ({len(self._members)} connected)")

    def disconnect_client(self, member: Member) -> None:
        """Remove a member; the clock stops once nobody is watching."""
        self._members.discard(member)
        logger.debug(f"Room {self.room_id}: member left ({len(self._members)} connected)")

        if not self._members:
            self.pause()
            self.timers.cancel_timer(self.TIMER_KEEPALIVE)

    # --- Clock operations ---

    def start(self) -> None:
        """Start the countdown. No-op while running."""
        self._start(self._clock())

    def pause(self) -> None:
        """Stop the countdown at its drift-corrected value. No-op while stopped."""
        if not self._running:
            return

        now = self._clock()
        self._settle(now)
        self.timers.cancel_timer(self.TIMER_TICK)
        self._running = False
        self._publish(running_message(False))
        self._publish(time_message(self.game_time, self._remaining_ms))
        self._arm_keepalive()
        logger.debug(f"Room {self.room_id}: paused at {self._remaining_ms} ms")

    def reset(self) -> None:
        """Restore the initial duration, remembering the value it replaced.

        A reset after the clock ran out starts it again.
        """
        now = self._clock()
        was_running = self._running
        self._settle(now)

        expired = self._remaining_ms == 0
        self.remaining_at_last_reset = self._remaining_ms
        self._remaining_ms = self.initial_duration_ms
        self._publish(time_message(self.game_time, self._remaining_ms))

        if expired:
            self._start(now)
        if was_running:
            self._schedule_tick()
        logger.debug(
            f"Room {self.room_id}: reset from {self.remaining_at_last_reset} ms"
        )

    def rewind_to_last_reset(self) -> None:
        """Restore the value captured by the most recent reset, if any.

        A snapshot of 0 (reset after expiry) is a real snapshot and is restored;
        only a room that has never been reset ignores rewind.
        """
        if self.remaining_at_last_reset is None:
            return

        now = self._clock()
        self._settle(now)
        self._remaining_ms = self.remaining_at_last_reset
        self._publish(time_message(self.game_time, self._remaining_ms))

        if self._running:
            self._schedule_tick()
        logger.debug(f"Room {self.room_id}: rewound to {self._remaining_ms} ms")

    def adjust_time(self, delta_seconds: float) -> None:
        """Add (or with a negative delta, remove) time, never going below zero."""
        now = self._clock()
        self._settle(now)
        self._remaining_ms = max(0, self._remaining_ms + int(round(delta_seconds * 1000)))
        self._publish(time_message(self.game_time, self._remaining_ms))

        if self._running:
            self._schedule_tick()
        logger.debug(f"Room {self.room_id}: adjusted by {delta_seconds}s to {self._remaining_ms} ms")

    def horn(self) -> None:
        """Signal all members, unless the clock is about to run out."""
        if self._current_ms(self._clock()) > HORN_THRESHOLD_MS:
            self._publish(horn_message())

    def next_tick_delay_ms(self) -> int:
        """Delay until the displayed whole-second value next changes."""
        if self._remaining_ms == 0:
            return 0
        return self._remaining_ms % 1000 or 1000

    def close(self) -> None:
        """Cancel all pending timers. Called when the registry shuts down."""
        self.timers.cancel_all()
        self._members.clear()

    # --- Timer events ---

    def _handle_adjust(self, event: RoomEvent) -> None:
        self.adjust_time(event.data.get("seconds", 0))

    def _handle_tick(self, event: RoomEvent) -> None:
        """Re-derive remaining time and schedule the next tick."""
        if not self._running:
            return

        now = self._clock()
        self._settle(now)

        if self._remaining_ms == 0:
            self._running = False
            self._publish(running_message(False))
            self._arm_keepalive()
            logger.info(f"Room {self.room_id}: shot clock expired")

        self._publish(time_message(self.game_time, self._remaining_ms))

        if self._running:
            self._schedule_tick()

    def _handle_keepalive(self, event: RoomEvent) -> None:
        """Re-send the time to members of a stopped room."""
        if self._running or not self._members:
            return
        self._publish(time_message(self.game_time, self._remaining_ms))
        self._arm_keepalive()

    # --- Internals ---

    def _start(self, now: int) -> None:
        if self._running:
            return

        self.timers.cancel_timer(self.TIMER_KEEPALIVE)
        self._running = True
        self._last_event_ms = now
        self._schedule_tick()
        self._publish(running_message(True))
        logger.debug(f"Room {self.room_id}: started at {self._remaining_ms} ms")

    def _current_ms(self, now: int) -> int:
        """Remaining time at `now` without recording it."""
        if not self._running:
            return self._remaining_ms
        return max(0, self._remaining_ms - (now - self._last_event_ms))

    def _settle(self, now: int) -> None:
        """Apply elapsed time and mark `now` as the last accurate instant."""
        self._remaining_ms = self._current_ms(now)
        self._last_event_ms = now

    def _schedule_tick(self) -> None:
        self.timers.start_timer(
            self.TIMER_TICK,
            self.next_tick_delay_ms() / 1000,
            RoomEventType.TICK,
        )

    def _arm_keepalive(self) -> None:
        if self._running or not self._members:
            return
        self.timers.start_timer(
            self.TIMER_KEEPALIVE,
            self.keepalive_seconds,
            RoomEventType.KEEPALIVE,
        )

    def _publish(self, message: str) -> None:
        """Send a message to every member; iterates over a snapshot."""
        for member in list(self._members):
            self._send(member, message)

    def _send(self, member: Member, message: str) -> None:
        try:
            member.send(message)
        except Exception as e:
            logger.warning(f"Room {self.room_id}: could not deliver {message!r} to {member!r}: {e}")
