"""
Built-in monitors.

Each monitor keeps its own "last seen" value and only suggests a mood when
that value changes meaningfully, so the authority is not flooded with
repeats of the same suggestion.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

import psutil

from .models import MonitorResult, MoodType, PositionType, Priority

log = logging.getLogger(__name__)


class TimeMonitor:
    """
    Suggests moods from the time of day.

    Runs in the time-based priority band (1-3) and only reacts when the
    hour changes.
    """

    name = "time"
    interval = 60.0

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self._clock = clock
        self._last_hour = -1

    async def check(self, stop_event: asyncio.Event) -> MonitorResult:
        hour = self._clock().hour
        if hour == self._last_hour:
            return MonitorResult.no_change(self.name)
        self._last_hour = hour

        if 6 <= hour < 9:
            result = MonitorResult.suggest(
                self.name,
                MoodType.TIRED,
                Priority.time_based(2),
                position=PositionType.SOUTH,
            )
        elif 9 <= hour < 18:
            result = MonitorResult.suggest(
                self.name, MoodType.DEFAULT, Priority.time_based(1)
            )
        elif 18 <= hour < 22:
            result = MonitorResult.suggest(
                self.name, MoodType.HAPPY, Priority.time_based(1)
            )
        else:
            # Very sleepy at night
            result = MonitorResult.suggest(
                self.name,
                MoodType.TIRED,
                Priority.time_based(3),
                position=PositionType.SOUTH,
            )

        log.debug("Time check: %02d:00 -> %s", hour, result.suggested_mood.mood.value)
        return result.with_metadata("hour", hour)


class CpuMonitor:
    """
    Suggests moods from system CPU load.

    Runs in the system-state priority band (4-6). Changes of less than
    ``threshold`` percentage points since the last reaction are ignored.
    """

    name = "cpu"
    interval = 5.0

    def __init__(
        self,
        sampler: Callable[[], float] | None = None,
        threshold: float = 10.0,
    ) -> None:
        if sampler is None:
            sampler = _sample_cpu_percent
            # Prime psutil CPU measurement (first call always returns 0.0)
            psutil.cpu_percent(interval=None)
        self._sampler = sampler
        self._threshold = threshold
        self._last_usage = 0.0

    async def check(self, stop_event: asyncio.Event) -> MonitorResult:
        usage = self._sampler()
        if abs(usage - self._last_usage) < self._threshold:
            return MonitorResult.no_change(self.name)
        self._last_usage = usage

        if usage > 80:
            log.info("High CPU usage: %.0f%%", usage)
            result = MonitorResult.suggest(
                self.name,
                MoodType.TIRED,
                Priority.system_state(5),
                position=PositionType.SOUTH,
            )
        elif usage < 20:
            result = MonitorResult.suggest(
                self.name, MoodType.DEFAULT, Priority.system_state(4)
            )
        else:
            result = MonitorResult.no_change(self.name)

        return result.with_metadata("cpu_percent", usage)


def _sample_cpu_percent() -> float:
    return psutil.cpu_percent(interval=None)
