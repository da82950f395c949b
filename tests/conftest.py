"""
Shared fixtures for the Mochi relay tests.
"""

import asyncio

import pytest

from mochi_relay.authority import MoodAuthority
from mochi_relay.errors import DeviceConnectionError


class RecordingTransport:
    """In-memory transport that records every command it is asked to send."""

    def __init__(self, connected: bool = True) -> None:
        self.sent: list[str] = []
        self.connected = connected
        self.fail_on: str | None = None
        self.connect_calls: list[tuple[str, int]] = []
        self.disconnect_calls = 0
        self.send_delay = 0.0
        self._on_data = None

    @property
    def is_connected(self) -> bool:
        return self.connected

    def on_data_received(self, callback) -> None:
        self._on_data = callback

    async def connect(self, address: str, rate_or_port: int) -> None:
        self.connect_calls.append((address, rate_or_port))
        self.connected = True

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.connected = False

    async def send_command(self, command: str) -> None:
        if not self.connected:
            raise DeviceConnectionError("Not connected")
        if self.fail_on is not None and command.startswith(self.fail_on):
            raise DeviceConnectionError(f"Failed to send command: {command}")
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        self.sent.append(command)

    def simulate_response(self, data: str) -> None:
        if self._on_data is not None:
            self._on_data(data)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def authority(transport: RecordingTransport) -> MoodAuthority:
    return MoodAuthority(transport)
