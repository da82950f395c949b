"""
Error types for the Mochi relay.

Validation failures come from pydantic when a value object or mood state is
constructed, so they are re-exported here rather than redefined.
"""

from pydantic import ValidationError

__all__ = [
    "DeviceConnectionError",
    "MochiError",
    "MonitorFaultError",
    "ValidationError",
]


class MochiError(Exception):
    """Base class for errors raised by the relay."""


class DeviceConnectionError(MochiError, ConnectionError):
    """The device transport is unreachable, not connected, or a send failed."""

    def __init__(self, message: str, address: str | None = None) -> None:
        super().__init__(message)
        self.address = address


class MonitorFaultError(MochiError):
    """A monitor's check (or forwarding its suggestion) raised an error."""

    def __init__(self, monitor_name: str, cause: BaseException) -> None:
        super().__init__(f"monitor {monitor_name!r} failed: {cause!r}")
        self.monitor_name = monitor_name
        self.cause = cause
