"""
Device transports for the Mochi relay.

A transport carries protocol command lines to the device. The authority only
ever sends through it; connecting and disconnecting belong to the hosting
service. Data received from the device is passed to an optional hook for
observability and is never used for control decisions.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol, runtime_checkable

import httpx
import serial

from .config import DeviceConfig
from .errors import DeviceConnectionError
from .protocol import Command, frame, parse_command

log = logging.getLogger(__name__)

DataCallback = Callable[[str], None]

_MAX_LINE_BYTES = 512


@runtime_checkable
class Transport(Protocol):
    """Contract every device transport satisfies."""

    @property
    def is_connected(self) -> bool: ...

    async def connect(self, address: str, rate_or_port: int) -> None: ...

    async def disconnect(self) -> None: ...

    async def send_command(self, command: str) -> None: ...

    def on_data_received(self, callback: DataCallback | None) -> None: ...


def _notify(callback: DataCallback | None, label: str, data: str) -> None:
    log.debug("%s: received %r", label, data)
    if callback is None:
        return
    try:
        callback(data)
    except Exception:
        log.exception("%s: data callback failed", label)


# MARK: - Serial


class SerialTransport:
    """Newline-framed command stream over a pyserial port."""

    def __init__(self, settle_delay: float = 2.0, label: str = "serial") -> None:
        self.label = label
        self.port: str | None = None
        self._settle_delay = settle_delay
        self._ser: serial.Serial | None = None
        self._buf = bytearray()
        self._reader_task: asyncio.Task | None = None
        self._on_data: DataCallback | None = None

    @property
    def is_connected(self) -> bool:
        return self._ser is not None and self._ser.is_open

    def on_data_received(self, callback: DataCallback | None) -> None:
        self._on_data = callback

    async def connect(self, address: str, rate_or_port: int = 115200) -> None:
        try:
            self._ser = serial.Serial(address, rate_or_port, timeout=0.05)
        except (serial.SerialException, OSError) as e:
            log.error("%s: failed to open %s: %s", self.label, address, e)
            self._ser = None
            raise DeviceConnectionError(
                f"Failed to connect to {address}", address
            ) from e

        self.port = address
        self._buf.clear()
        log.info("%s: connected to %s at %d baud", self.label, address, rate_or_port)
        self._reader_task = asyncio.create_task(
            self._read_loop(), name=f"{self.label}-reader"
        )

        # ESP32 boards reset when the port opens
        if self._settle_delay > 0:
            await asyncio.sleep(self._settle_delay)

    async def disconnect(self) -> None:
        if self._reader_task is not None:
            self._reader_task.cancel()
            self._reader_task = None

        if self._ser is not None:
            try:
                self._ser.close()
            except (serial.SerialException, OSError) as e:
                log.debug("%s: close error: %s", self.label, e)
            self._ser = None
            log.info("%s: disconnected from %s", self.label, self.port)

    async def send_command(self, command: str) -> None:
        ser = self._ser
        if ser is None or not ser.is_open:
            log.warning("%s: cannot send %r, not connected", self.label, command)
            raise DeviceConnectionError("Not connected to Mochi device", self.port)

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, ser.write, frame(command))
        except (serial.SerialException, OSError) as e:
            log.error("%s: failed to send %r: %s", self.label, command, e)
            raise DeviceConnectionError(
                f"Failed to send command: {command}", self.port
            ) from e

        log.debug("%s: sent %s", self.label, command)

    # -- internals -----------------------------------------------------------

    async def _read_loop(self) -> None:
        loop = asyncio.get_running_loop()
        while self.is_connected:
            try:
                data = await loop.run_in_executor(None, self._blocking_read)
            except (serial.SerialException, OSError) as e:
                log.warning("%s: read error: %s", self.label, e)
                return
            if data:
                self._feed(data)

    def _blocking_read(self) -> bytes:
        """Called in executor thread. Reads available bytes."""
        ser = self._ser
        if ser is None:
            return b""
        return ser.read(256)

    def _feed(self, data: bytes) -> None:
        for b in data:
            if b == 0x0A:
                line = self._buf.decode("ascii", errors="replace").strip()
                self._buf.clear()
                if line:
                    _notify(self._on_data, self.label, line)
            else:
                self._buf.append(b)
                if len(self._buf) > _MAX_LINE_BYTES:
                    log.warning("%s: line too long, discarding", self.label)
                    self._buf.clear()


# MARK: - HTTP


class HttpTransport:
    """Maps protocol commands onto the device's HTTP endpoints over WiFi."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = 5.0,
        label: str = "http",
    ) -> None:
        self.label = label
        self.base_url = ""
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._connected = False
        self._on_data: DataCallback | None = None

    @property
    def is_connected(self) -> bool:
        return self._connected

    def on_data_received(self, callback: DataCallback | None) -> None:
        self._on_data = callback

    async def connect(self, address: str, rate_or_port: int = 80) -> None:
        self.base_url = f"http://{address}:{rate_or_port}"
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)

        # Bad ports fail below httpx, so every error maps to a connection error
        try:
            response = await self._client.get(f"{self.base_url}/status")
            response.raise_for_status()
        except Exception as e:
            self._connected = False
            log.error("%s: failed to connect to %s: %s", self.label, self.base_url, e)
            raise DeviceConnectionError(
                f"Failed to connect to {self.base_url}", address
            ) from e

        self._connected = True
        log.info("%s: connected to %s", self.label, self.base_url)
        if response.text:
            _notify(self._on_data, self.label, response.text)

    async def disconnect(self) -> None:
        self._connected = False
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
        log.info("%s: disconnected from %s", self.label, self.base_url)

    async def send_command(self, command: str) -> None:
        if not self._connected or self._client is None:
            log.warning("%s: cannot send %r, not connected", self.label, command)
            raise DeviceConnectionError("Not connected to Mochi device", self.base_url)

        try:
            path, params = command_to_request(parse_command(command))
            response = await self._client.post(
                f"{self.base_url}{path}", params=params
            )
            response.raise_for_status()
        except (httpx.HTTPError, ValueError) as e:
            log.error("%s: failed to send %r: %s", self.label, command, e)
            raise DeviceConnectionError(
                f"Failed to send command: {command}", self.base_url
            ) from e

        log.debug("%s: sent %s", self.label, command)
        if response.text:
            _notify(self._on_data, self.label, response.text)


def command_to_request(command: Command) -> tuple[str, dict[str, str]]:
    """
    Translate a parsed command into an HTTP path and query parameters.

    Raises:
        ValueError: If the command is missing required arguments
    """
    args = command.args
    try:
        if command.name == "MOOD":
            params = {"mood": args[0], "priority": args[1]}
            if len(args) > 2:
                params["duration"] = args[2]
            return "/mood", params
        if command.name == "POS":
            return "/position", {"position": args[0], "priority": args[1]}
        if command.name == "ANIM":
            return "/animation", {"animation": args[0]}
        if command.name == "IDLE":
            return "/idle", {"enabled": args[0]}
        if command.name == "BLINK":
            return "/blink", {"enabled": args[0]}
    except IndexError as e:
        raise ValueError(f"Missing arguments for {command.name}") from e
    return "/reset", {}


def create_transport(config: DeviceConfig) -> Transport:
    """Build the transport selected by the device configuration."""
    if config.connection_type == "http":
        return HttpTransport(timeout=config.timeout)
    return SerialTransport(settle_delay=config.settle_delay)
