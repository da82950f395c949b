"""
Shared data models for the Mochi relay.

This module defines the value objects and immutable snapshots used across the
authority, the monitor scheduler, the CLI and the API. Invariants are checked
by pydantic at construction time, so an invalid priority or duration never
reaches the override decision.
"""

import math
import time
from enum import Enum
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    RootModel,
    field_serializer,
    field_validator,
)


class MoodType(str, Enum):
    """Expressions the device can render."""

    DEFAULT = "default"
    HAPPY = "happy"
    TIRED = "tired"
    ANGRY = "angry"


class PositionType(str, Enum):
    """Gaze directions, clockwise from north."""

    CENTER = "center"
    NORTH = "north"
    NORTH_EAST = "north_east"
    EAST = "east"
    SOUTH_EAST = "south_east"
    SOUTH = "south"
    SOUTH_WEST = "south_west"
    WEST = "west"
    NORTH_WEST = "north_west"


class AnimationType(str, Enum):
    """One-shot animations the device can play."""

    BLINK = "blink"
    CONFUSED = "confused"
    LAUGH = "laugh"


class LoopState(str, Enum):
    """Lifecycle of a single monitor loop."""

    CREATED = "created"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


# MARK: - Value Objects

INDEFINITE = "indefinite"


class Priority(RootModel[int]):
    """
    Priority of a mood suggestion, an integer between 0 and 10.

    The bands are advisory labels for callers choosing a value:

    - 0: baseline (autonomous behaviour)
    - 1-3: time based
    - 4-6: system state
    - 7-10: events

    The override rule only ever compares the raw numbers.
    """

    model_config = ConfigDict(frozen=True)

    root: Annotated[int, Field(ge=0, le=10, strict=True)]

    @classmethod
    def baseline(cls) -> "Priority":
        return cls(0)

    @classmethod
    def time_based(cls, level: int = 2) -> "Priority":
        return cls(min(max(level, 1), 3))

    @classmethod
    def system_state(cls, level: int = 5) -> "Priority":
        return cls(min(max(level, 4), 6))

    @classmethod
    def event(cls, level: int = 8) -> "Priority":
        return cls(min(max(level, 7), 10))

    @property
    def value(self) -> int:
        return self.root

    @property
    def band(self) -> str:
        if self.root == 0:
            return "baseline"
        if self.root <= 3:
            return "time"
        if self.root <= 6:
            return "system"
        return "event"

    def is_higher_than(self, other: "Priority") -> bool:
        return self.root > other.root

    def __int__(self) -> int:
        return self.root

    def __str__(self) -> str:
        return str(self.root)


class Duration(RootModel[float]):
    """
    Non-negative time extent in seconds.

    ``math.inf`` is the indefinite sentinel: an indefinite duration never
    expires and is not encoded in device commands. In JSON it is written as
    the string ``"indefinite"``, which is also accepted on input.
    """

    model_config = ConfigDict(frozen=True)

    root: Annotated[float, Field(ge=0)]

    @field_validator("root", mode="before")
    @classmethod
    def _parse_indefinite(cls, value: Any) -> Any:
        if value == INDEFINITE:
            return math.inf
        return value

    @field_serializer("root", when_used="json")
    def _serialize_indefinite(self, value: float) -> float | str:
        return INDEFINITE if math.isinf(value) else value

    @classmethod
    def from_seconds(cls, seconds: float) -> "Duration":
        return cls(seconds)

    @classmethod
    def from_minutes(cls, minutes: float) -> "Duration":
        return cls(minutes * 60)

    @classmethod
    def indefinite(cls) -> "Duration":
        return cls(math.inf)

    @property
    def seconds(self) -> float:
        return self.root

    @property
    def is_indefinite(self) -> bool:
        return math.isinf(self.root)

    @property
    def total_seconds(self) -> int | None:
        """Whole seconds, or None for an indefinite duration."""
        if self.is_indefinite:
            return None
        return int(self.root)

    def is_expired(self, start: float, now: float | None = None) -> bool:
        """Return True once ``now`` has reached ``start`` plus this duration."""
        if self.is_indefinite:
            return False
        if now is None:
            now = time.time()
        return now >= start + self.root


# MARK: - Mood State


class MoodState(BaseModel):
    """
    Immutable snapshot of one mood transition.

    A new state is created for every accepted suggestion and for every reset
    to baseline; states are never modified after creation.
    """

    model_config = ConfigDict(frozen=True)

    mood: MoodType = Field(..., description="Expression to display")
    priority: Priority = Field(..., description="Priority between 0 and 10")
    position: PositionType | None = Field(None, description="Optional gaze")
    animation: AnimationType | None = Field(
        None, description="Optional one-shot animation"
    )
    duration: Duration | None = Field(
        None, description="How long the mood holds before it may expire"
    )
    timestamp: float = Field(
        default_factory=time.time, description="Unix timestamp of creation"
    )

    @classmethod
    def baseline(cls) -> "MoodState":
        """The default mood at priority 0, with no expiry."""
        return cls(mood=MoodType.DEFAULT, priority=Priority.baseline())

    @property
    def expires_at(self) -> float | None:
        if self.duration is None or self.duration.is_indefinite:
            return None
        return self.timestamp + self.duration.seconds

    @property
    def is_expired(self) -> bool:
        return self.duration is not None and self.duration.is_expired(
            self.timestamp
        )

    def can_override(self, current: "MoodState | None") -> bool:
        """
        Decide whether this state may replace ``current``.

        An empty or expired slot is always open. Otherwise the priority must
        be strictly higher; equal priority never displaces the active mood.
        """
        if current is None:
            return True
        if current.is_expired:
            return True
        return self.priority.is_higher_than(current.priority)

    def with_mood(self, mood: MoodType) -> "MoodState":
        return MoodState(
            mood=mood,
            priority=self.priority,
            position=self.position,
            animation=self.animation,
            duration=self.duration,
        )

    def with_priority(self, priority: Priority | int) -> "MoodState":
        return MoodState(
            mood=self.mood,
            priority=priority,
            position=self.position,
            animation=self.animation,
            duration=self.duration,
        )

    def describe(self) -> str:
        return f"{self.mood.value} (priority {self.priority})"


# MARK: - Monitor Results


class MonitorResult(BaseModel):
    """Outcome of a single monitor check, with at most one suggestion."""

    model_config = ConfigDict(frozen=True)

    monitor_name: str = Field(..., description="Name of the reporting monitor")
    suggested_mood: MoodState | None = Field(
        None, description="Mood suggestion, if the monitor has one"
    )
    checked_at: float = Field(
        default_factory=time.time, description="Unix timestamp of the check"
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Free-form diagnostics"
    )

    @property
    def has_suggestion(self) -> bool:
        return self.suggested_mood is not None

    def with_metadata(self, key: str, value: Any) -> "MonitorResult":
        return self.model_copy(update={"metadata": {**self.metadata, key: value}})

    @classmethod
    def no_change(cls, monitor_name: str) -> "MonitorResult":
        return cls(monitor_name=monitor_name)

    @classmethod
    def suggest(
        cls,
        monitor_name: str,
        mood: MoodType,
        priority: Priority | int,
        position: PositionType | None = None,
        animation: AnimationType | None = None,
        duration: Duration | float | None = None,
    ) -> "MonitorResult":
        state = MoodState(
            mood=mood,
            priority=priority,
            position=position,
            animation=animation,
            duration=duration,
        )
        return cls(monitor_name=monitor_name, suggested_mood=state)


class MonitorState(BaseModel):
    """Diagnostics snapshot of one monitor loop."""

    monitor_name: str
    state: LoopState
    is_running: bool
    interval: float
    last_check_time: float | None = None
    last_result: str | None = None
    error_count: int = 0
