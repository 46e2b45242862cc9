"""Shared test fixtures for shot clock tests."""
import json
import random

import pytest

from server.config import ConfigLoader
from server.room import ShotClockRoom
from tests.fakes import FakeClock, FakeTimerManager, RecordingMember


@pytest.fixture(autouse=True)
def deterministic_random():
    """Seed random for reproducible tests."""
    random.seed(42)
    yield
    random.seed()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timers():
    return FakeTimerManager()


@pytest.fixture
def make_room(clock, timers):
    """Factory for rooms driven by the fake clock and fake timers."""
    def _make_room(room_id: str = "court1", pin: str = "1234", initial_seconds: float = 30,
                   keepalive_seconds: float = 60) -> ShotClockRoom:
        room = ShotClockRoom(
            room_id,
            pin,
            initial_seconds=initial_seconds,
            keepalive_seconds=keepalive_seconds,
            clock=clock,
            timers=timers,
        )
        timers.bind(room.handle_event)
        return room

    return _make_room


@pytest.fixture
def room(make_room):
    """Room with the default 30 second shot clock."""
    return make_room()


@pytest.fixture
def member():
    return RecordingMember("a")


@pytest.fixture
def temp_config_dir(tmp_path, monkeypatch):
    """Create temporary config directory with a test settings file."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    server_settings = {
        "server": {
            "host": "127.0.0.1",
            "port": 9000,
            "log_level": "DEBUG",
            "outbound_queue_size": 8,
            "extended_commands": True
        },
        "clock": {
            "initial_seconds": 24,
            "keepalive_interval_seconds": 30
        }
    }
    (config_dir / "server_settings.json").write_text(json.dumps(server_settings, indent=2))

    # Reset the singleton instance FIRST
    ConfigLoader._instance = None
    monkeypatch.setattr(ConfigLoader, '_config_dir', str(config_dir))

    yield config_dir

    ConfigLoader._instance = None
