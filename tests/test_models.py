"""
Tests for the value objects and mood state models.
"""

import math
import time

import pytest

from mochi_relay.errors import ValidationError
from mochi_relay.models import (
    AnimationType,
    Duration,
    MonitorResult,
    MoodState,
    MoodType,
    PositionType,
    Priority,
)


class TestPriority:
    """Test suite for Priority."""

    @pytest.mark.parametrize("value", [-1, 11, 100])
    def test_out_of_range_is_rejected(self, value):
        with pytest.raises(ValidationError):
            Priority(value)

    @pytest.mark.parametrize("value", ["7", True, 7.0])
    def test_non_integers_are_rejected(self, value):
        with pytest.raises(ValidationError):
            Priority(value)

    def test_bounds_are_accepted(self):
        assert int(Priority(0)) == 0
        assert int(Priority(10)) == 10

    def test_band_helpers_clamp(self):
        assert Priority.time_based(7).value == 3
        assert Priority.time_based(0).value == 1
        assert Priority.system_state(1).value == 4
        assert Priority.system_state(9).value == 6
        assert Priority.event(2).value == 7
        assert Priority.event().value == 8
        assert Priority.baseline().value == 0

    def test_band_labels(self):
        assert Priority(0).band == "baseline"
        assert Priority(2).band == "time"
        assert Priority(5).band == "system"
        assert Priority(9).band == "event"

    def test_is_higher_than_is_strict(self):
        assert Priority(6).is_higher_than(Priority(5))
        assert not Priority(5).is_higher_than(Priority(5))
        assert not Priority(4).is_higher_than(Priority(5))


class TestDuration:
    """Test suite for Duration."""

    def test_negative_is_rejected(self):
        with pytest.raises(ValidationError):
            Duration(-1)

    def test_from_minutes(self):
        assert Duration.from_minutes(2).seconds == 120
        assert Duration.from_minutes(2).total_seconds == 120

    def test_is_expired(self):
        duration = Duration.from_seconds(10)
        assert not duration.is_expired(start=100.0, now=109.9)
        assert duration.is_expired(start=100.0, now=110.0)

    def test_indefinite_never_expires(self):
        duration = Duration.indefinite()
        assert duration.is_indefinite
        assert duration.total_seconds is None
        assert not duration.is_expired(start=0.0, now=math.inf)

    def test_indefinite_json_is_distinct_from_absent(self):
        timed = MoodState(mood=MoodType.HAPPY, priority=8, duration=30)
        held = MoodState(
            mood=MoodType.HAPPY, priority=8, duration=Duration.indefinite()
        )
        untimed = MoodState(mood=MoodType.HAPPY, priority=8)

        assert timed.model_dump(mode="json")["duration"] == 30
        assert held.model_dump(mode="json")["duration"] == "indefinite"
        assert untimed.model_dump(mode="json")["duration"] is None

    def test_indefinite_json_round_trips(self):
        held = MoodState(
            mood=MoodType.HAPPY, priority=8, duration=Duration.indefinite()
        )

        restored = MoodState.model_validate_json(held.model_dump_json())

        assert restored.duration.is_indefinite
        assert restored.expires_at is None


class TestMoodState:
    """Test suite for MoodState."""

    def test_accepts_raw_values(self):
        state = MoodState(mood=MoodType.HAPPY, priority=8, duration=5)
        assert state.priority == Priority(8)
        assert state.duration == Duration(5)
        assert state.timestamp <= time.time()

    def test_invalid_priority_is_rejected_at_construction(self):
        with pytest.raises(ValidationError):
            MoodState(mood=MoodType.HAPPY, priority=11)

    def test_invalid_duration_is_rejected_at_construction(self):
        with pytest.raises(ValidationError):
            MoodState(mood=MoodType.HAPPY, priority=1, duration=-5)

    def test_is_immutable(self):
        state = MoodState(mood=MoodType.HAPPY, priority=8)
        with pytest.raises(ValidationError):
            state.mood = MoodType.ANGRY

    def test_expiry(self):
        fresh = MoodState(mood=MoodType.HAPPY, priority=8, duration=60)
        stale = MoodState(
            mood=MoodType.HAPPY, priority=8, duration=1, timestamp=time.time() - 2
        )
        untimed = MoodState(mood=MoodType.HAPPY, priority=8, timestamp=0.0)

        assert not fresh.is_expired
        assert stale.is_expired
        assert not untimed.is_expired
        assert untimed.expires_at is None
        assert fresh.expires_at == fresh.timestamp + 60

    def test_can_override(self):
        current = MoodState(mood=MoodType.HAPPY, priority=5)

        assert MoodState(mood=MoodType.TIRED, priority=0).can_override(None)
        assert MoodState(mood=MoodType.TIRED, priority=6).can_override(current)
        assert not MoodState(mood=MoodType.TIRED, priority=5).can_override(current)
        assert not MoodState(mood=MoodType.TIRED, priority=4).can_override(current)

    def test_expired_current_can_always_be_overridden(self):
        current = MoodState(
            mood=MoodType.HAPPY, priority=10, duration=1, timestamp=time.time() - 5
        )
        assert MoodState(mood=MoodType.DEFAULT, priority=0).can_override(current)

    def test_with_helpers_return_new_states(self):
        state = MoodState(
            mood=MoodType.HAPPY,
            priority=8,
            position=PositionType.NORTH,
            animation=AnimationType.LAUGH,
        )
        angry = state.with_mood(MoodType.ANGRY)
        lower = state.with_priority(3)

        assert angry.mood is MoodType.ANGRY
        assert angry.position is PositionType.NORTH
        assert lower.priority.value == 3
        assert lower.animation is AnimationType.LAUGH
        assert state.mood is MoodType.HAPPY

    def test_baseline(self):
        baseline = MoodState.baseline()
        assert baseline.mood is MoodType.DEFAULT
        assert baseline.priority.value == 0
        assert baseline.duration is None


class TestMonitorResult:
    """Test suite for MonitorResult."""

    def test_no_change(self):
        result = MonitorResult.no_change("time")
        assert result.monitor_name == "time"
        assert not result.has_suggestion

    def test_suggest(self):
        result = MonitorResult.suggest(
            "audio",
            MoodType.HAPPY,
            Priority.event(8),
            animation=AnimationType.LAUGH,
            duration=Duration.from_seconds(5),
        )
        assert result.has_suggestion
        assert result.suggested_mood.mood is MoodType.HAPPY
        assert result.suggested_mood.duration.total_seconds == 5

    def test_with_metadata_copies(self):
        result = MonitorResult.no_change("cpu")
        annotated = result.with_metadata("cpu_percent", 42.0)

        assert annotated.metadata == {"cpu_percent": 42.0}
        assert result.metadata == {}
        assert annotated.checked_at == result.checked_at
