"""
Monitor scheduling for the Mochi relay.

Each registered monitor runs in its own asyncio task: check, forward any
suggestion to the MoodAuthority, sleep for the monitor's interval, repeat.
A failing monitor is logged and retried after a cooldown without affecting
the other loops.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from .authority import MoodAuthority
from .errors import MonitorFaultError
from .models import LoopState, MonitorResult, MonitorState

log = logging.getLogger(__name__)

ERROR_COOLDOWN_S = 5.0
STOP_TIMEOUT_S = 5.0


@runtime_checkable
class Monitor(Protocol):
    """A periodic source of mood suggestions."""

    @property
    def name(self) -> str: ...

    @property
    def interval(self) -> float: ...

    async def check(self, stop_event: asyncio.Event) -> MonitorResult: ...


@dataclass(slots=True)
class MonitorLoop:
    """Runtime state for one monitor's polling loop."""

    monitor: Monitor
    stop_event: asyncio.Event = field(default_factory=asyncio.Event)
    task: asyncio.Task | None = None
    state: LoopState = LoopState.CREATED
    last_check_time: float | None = None
    last_result: str | None = None
    error_count: int = 0

    def snapshot(self) -> MonitorState:
        return MonitorState(
            monitor_name=self.monitor.name,
            state=self.state,
            is_running=self.state is LoopState.RUNNING,
            interval=self.monitor.interval,
            last_check_time=self.last_check_time,
            last_result=self.last_result,
            error_count=self.error_count,
        )


class MonitorScheduler:
    """Run every registered monitor as an independent polling loop."""

    def __init__(
        self,
        authority: MoodAuthority,
        error_cooldown: float = ERROR_COOLDOWN_S,
    ) -> None:
        self._authority = authority
        self._error_cooldown = error_cooldown
        self._loops: list[MonitorLoop] = []
        self._link_task: asyncio.Task | None = None
        self._running = False

    @property
    def monitors(self) -> tuple[Monitor, ...]:
        return tuple(loop.monitor for loop in self._loops)

    @property
    def is_running(self) -> bool:
        return self._running

    def states(self) -> list[MonitorState]:
        return [loop.snapshot() for loop in self._loops]

    def register(self, monitor: Monitor) -> None:
        """Register a monitor. Registering the same object twice is a no-op."""
        if any(loop.monitor is monitor for loop in self._loops):
            return
        self._loops.append(MonitorLoop(monitor=monitor))
        log.info("Registered monitor: %s", monitor.name)

    async def start(self, stop_event: asyncio.Event | None = None) -> None:
        """
        Launch one polling loop per registered monitor.

        Args:
            stop_event: Optional external signal; setting it stops every loop
        """
        if self._running:
            log.warning("Monitor scheduler already running")
            return

        self._running = True
        for loop in self._loops:
            self._launch(loop)

        if stop_event is not None:
            self._link_task = asyncio.create_task(
                self._follow(stop_event), name="monitor-stop-link"
            )

    async def stop(self, timeout: float = STOP_TIMEOUT_S) -> None:
        """
        Signal every loop to stop and wait up to ``timeout`` seconds.

        Loops that have not finished by then are cancelled and abandoned;
        this method returns either way.
        """
        if self._link_task is not None:
            self._link_task.cancel()
            self._link_task = None
        await self._shutdown(timeout)

    # -- internals -----------------------------------------------------------

    def _launch(self, loop: MonitorLoop) -> None:
        name = loop.monitor.name
        loop.stop_event = asyncio.Event()
        try:
            loop.task = asyncio.create_task(
                self._run(loop, loop.stop_event), name=f"monitor:{name}"
            )
        except RuntimeError:
            log.exception("Failed to start monitor: %s", name)
            loop.state = LoopState.STOPPED
            return

        loop.state = LoopState.RUNNING
        log.info("Started monitor: %s", name)

    def _signal_all(self) -> None:
        for loop in self._loops:
            if loop.state is LoopState.RUNNING:
                loop.state = LoopState.STOPPING
            loop.stop_event.set()

    async def _shutdown(self, timeout: float) -> None:
        self._signal_all()

        tasks = [
            loop.task
            for loop in self._loops
            if loop.task is not None and not loop.task.done()
        ]
        if tasks:
            _, pending = await asyncio.wait(tasks, timeout=timeout)
            if pending:
                names = sorted(task.get_name() for task in pending)
                log.warning("Monitor shutdown timed out: %s", ", ".join(names))
                for task in pending:
                    task.cancel()

        for loop in self._loops:
            loop.task = None
        self._running = False
        log.info("All monitors stopped")

    async def _follow(self, stop_event: asyncio.Event) -> None:
        await stop_event.wait()
        self._link_task = None
        await self._shutdown(STOP_TIMEOUT_S)

    async def _run(self, loop: MonitorLoop, stop_event: asyncio.Event) -> None:
        monitor = loop.monitor
        log.info("Monitor loop started: %s", monitor.name)

        try:
            while not stop_event.is_set():
                try:
                    await self._poll(loop, stop_event)
                except Exception as e:
                    fault = MonitorFaultError(monitor.name, e)
                    loop.error_count += 1
                    loop.last_result = f"error: {e!r}"
                    log.error(
                        "%s, retrying in %.1fs",
                        fault,
                        self._error_cooldown,
                        exc_info=e,
                    )
                    await _sleep(stop_event, self._error_cooldown)
                    continue

                await _sleep(stop_event, monitor.interval)
        finally:
            # A cancelled straggler must not overwrite a relaunched loop
            if loop.task is None or loop.task is asyncio.current_task():
                loop.state = LoopState.STOPPED
            log.info("Monitor loop stopped: %s", monitor.name)

    async def _poll(self, loop: MonitorLoop, stop_event: asyncio.Event) -> None:
        result = await loop.monitor.check(stop_event)
        loop.last_check_time = result.checked_at

        if result.suggested_mood is None:
            loop.last_result = "no change"
            return

        suggestion = result.suggested_mood
        accepted = await self._authority.apply(suggestion)
        verdict = "accepted" if accepted else "rejected"
        loop.last_result = f"{suggestion.describe()} {verdict}"


async def _sleep(stop_event: asyncio.Event, seconds: float) -> None:
    """Sleep for ``seconds`` or until ``stop_event`` is set."""
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=seconds)
    except TimeoutError:
        pass
