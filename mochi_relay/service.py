"""
Hosting service for the Mochi relay.

Wires one transport, one MoodAuthority and one MonitorScheduler together and
runs the periodic expiry check that returns the device to its baseline mood
once a timed mood has elapsed.
"""

import asyncio
import logging
from collections.abc import Iterable
from types import TracebackType

from .authority import MoodAuthority
from .config import RelayConfig
from .errors import DeviceConnectionError
from .models import MonitorState, MoodState
from .scheduler import Monitor, MonitorScheduler
from .transport import Transport, create_transport

log = logging.getLogger(__name__)


class CompanionService:
    """
    Owns the device connection and the components that drive it.

    The service connects the transport on start and disconnects it on stop;
    the authority and scheduler never manage the connection themselves.
    """

    def __init__(
        self,
        config: RelayConfig | None = None,
        transport: Transport | None = None,
        monitors: Iterable[Monitor] = (),
    ) -> None:
        self.config = config or RelayConfig()
        self.transport = transport or create_transport(self.config.device)
        self.transport.on_data_received(self._on_device_data)
        self.authority = MoodAuthority(self.transport)
        self.scheduler = MonitorScheduler(
            self.authority,
            error_cooldown=self.config.scheduler.error_cooldown,
        )
        for monitor in monitors:
            self.scheduler.register(monitor)

        self._stop_event = asyncio.Event()
        self._expiry_task: asyncio.Task | None = None

    @property
    def current_mood(self) -> MoodState | None:
        return self.authority.current_mood

    @property
    def is_connected(self) -> bool:
        return self.transport.is_connected

    def monitor_states(self) -> list[MonitorState]:
        return self.scheduler.states()

    async def start(self) -> None:
        """
        Connect to the device, then start the monitors and the expiry tick.

        Raises:
            DeviceConnectionError: If the device cannot be reached
        """
        device = self.config.device
        log.info(
            "Connecting to Mochi - type: %s, address: %s, port: %d",
            device.connection_type,
            device.address,
            device.port,
        )
        await self.transport.connect(device.address, device.port)
        log.info("Connected to Mochi device")

        self._stop_event = asyncio.Event()
        await self.scheduler.start(self._stop_event)
        self._expiry_task = asyncio.create_task(
            self._expiry_loop(), name="mood-expiry"
        )
        log.info("Mochi relay started with %d monitors", len(self.scheduler.monitors))

    async def stop(self) -> None:
        log.info("Mochi relay stopping...")
        self._stop_event.set()
        await self.scheduler.stop(self.config.scheduler.stop_timeout)

        if self._expiry_task is not None:
            self._expiry_task.cancel()
            try:
                await self._expiry_task
            except asyncio.CancelledError:
                pass
            self._expiry_task = None

        await self.transport.disconnect()
        log.info("Mochi relay stopped")

    async def __aenter__(self) -> "CompanionService":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()

    # -- internals -----------------------------------------------------------

    async def _expiry_loop(self) -> None:
        interval = self.config.scheduler.expiry_interval
        while not self._stop_event.is_set():
            try:
                await self.authority.check_expiry()
            except DeviceConnectionError as e:
                log.warning("Expiry reset failed: %s", e)

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
            except TimeoutError:
                pass

    def _on_device_data(self, data: str) -> None:
        log.debug("Device: %s", data)
