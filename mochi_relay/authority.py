"""
Mood arbitration for the Mochi relay.

This module owns the single "current mood" slot. Suggestions from every
monitor, the API and the expiry tick all pass through one MoodAuthority,
which decides whether a suggestion may replace the active mood and pushes
accepted transitions to the device.
"""

import asyncio
import logging

from .errors import DeviceConnectionError
from .models import MoodState
from .protocol import build_reset_command, build_transition
from .transport import Transport

log = logging.getLogger(__name__)


class MoodAuthority:
    """
    Priority-gated owner of the current mood.

    Apply, reset and expiry checks hold one asyncio lock for their whole
    duration, including the transport sends, so the commands for one
    transition are never interleaved with another's and every decision sees
    the latest committed state. asyncio wakes lock waiters in FIFO order.

    The transport's connection lifecycle belongs to the caller; the authority
    only sends through it.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport
        self._lock = asyncio.Lock()
        self._current_mood: MoodState | None = None

    @property
    def current_mood(self) -> MoodState | None:
        """
        The last committed mood state, or None before the first transition.

        Safe to read without the lock because states are immutable.
        """
        return self._current_mood

    async def apply(self, candidate: MoodState) -> bool:
        """
        Apply a mood suggestion if it may override the current mood.

        Args:
            candidate: The suggested mood state

        Returns:
            True if the suggestion was sent and committed, False if rejected

        Raises:
            DeviceConnectionError: If the device is not connected or a send
                fails. The candidate is not committed, even when some of its
                commands already reached the device.
        """
        async with self._lock:
            current = self._current_mood
            if not candidate.can_override(current):
                log.debug(
                    "Ignoring mood %s - current mood %s takes precedence",
                    candidate.describe(),
                    current.describe() if current else None,
                )
                return False

            await self._send(build_transition(candidate))
            self._current_mood = candidate

            log.info("Applied mood: %s", candidate.describe())
            return True

    async def reset(self) -> MoodState:
        """
        Reset the device to the baseline mood, regardless of priority.

        Returns:
            The committed baseline state

        Raises:
            DeviceConnectionError: If the device is not connected or the send
                fails
        """
        async with self._lock:
            return await self._reset_locked()

    async def check_expiry(self) -> bool:
        """
        Revert to baseline if the current mood has expired.

        Returns:
            True if a reset was performed

        Raises:
            DeviceConnectionError: If the reset could not be sent
        """
        async with self._lock:
            current = self._current_mood
            if current is None or not current.is_expired:
                return False

            log.info("Mood %s expired, resetting to baseline", current.describe())
            await self._reset_locked()
            return True

    # -- internals -----------------------------------------------------------

    async def _reset_locked(self) -> MoodState:
        await self._send([build_reset_command()])
        baseline = MoodState.baseline()
        self._current_mood = baseline
        log.info("Reset to baseline mood")
        return baseline

    async def _send(self, commands: list[str]) -> None:
        if not self._transport.is_connected:
            raise DeviceConnectionError("Not connected to Mochi device")

        for command in commands:
            try:
                await self._transport.send_command(command)
            except DeviceConnectionError:
                raise
            except Exception as e:
                raise DeviceConnectionError(
                    f"Failed to send command: {command}"
                ) from e
