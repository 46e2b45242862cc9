# tests/unit/test_server_events.py
"""Unit tests for server event types."""

from server.events import RoomEvent, RoomEventType


class TestRoomEventType:
    """Test RoomEventType enum."""

    def test_has_command_events(self):
        """Test command event types exist."""
        assert RoomEventType.START
        assert RoomEventType.PAUSE
        assert RoomEventType.RESET
        assert RoomEventType.REWIND
        assert RoomEventType.ADJUST
        assert RoomEventType.HORN

    def test_has_timer_events(self):
        """Test timer event types exist."""
        assert RoomEventType.TICK
        assert RoomEventType.KEEPALIVE


class TestRoomEvent:
    """Test RoomEvent dataclass."""

    def test_create_event_with_data(self):
        """Test creating an event with data."""
        event = RoomEvent(type=RoomEventType.ADJUST, data={"seconds": -5.0})

        assert event.type == RoomEventType.ADJUST
        assert event.data["seconds"] == -5.0

    def test_create_event_defaults(self):
        """Test event data defaults to an empty dict."""
        event = RoomEvent(type=RoomEventType.TICK)

        assert event.data == {}

    def test_events_do_not_share_data(self):
        """Test each event gets its own data dict."""
        first = RoomEvent(type=RoomEventType.TICK)
        second = RoomEvent(type=RoomEventType.TICK)
        first.data["x"] = 1

        assert second.data == {}
