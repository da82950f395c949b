"""
Text command protocol for the Mochi device.

Commands are ASCII, colon-delimited and newline-terminated::

    MOOD:MOOD_<NAME>:<priority>[:<seconds>]
    POS:<code>:<priority>
    ANIM:<NAME>
    IDLE:<ON|OFF>
    BLINK:<ON|OFF>
    RESET

Encoding is total over the model enums. A position without a known code is
sent as ``0`` (center) so a transition is never blocked by an encoding gap.
"""

from typing import NamedTuple

from .models import AnimationType, MoodState, PositionType, Priority

CENTER_CODE = "0"

POSITION_CODES: dict[PositionType, str] = {
    PositionType.CENTER: CENTER_CODE,
    PositionType.NORTH: "N",
    PositionType.NORTH_EAST: "NE",
    PositionType.EAST: "E",
    PositionType.SOUTH_EAST: "SE",
    PositionType.SOUTH: "S",
    PositionType.SOUTH_WEST: "SW",
    PositionType.WEST: "W",
    PositionType.NORTH_WEST: "NW",
}

COMMAND_NAMES = frozenset({"MOOD", "POS", "ANIM", "IDLE", "BLINK", "RESET"})


class Command(NamedTuple):
    """A command line split into its name and arguments."""

    name: str
    args: tuple[str, ...]


# MARK: - Builders


def build_mood_command(state: MoodState) -> str:
    command = f"MOOD:MOOD_{state.mood.name}:{int(state.priority)}"

    seconds = state.duration.total_seconds if state.duration else None
    if seconds:
        command += f":{seconds}"

    return command


def build_position_command(position: PositionType, priority: Priority | int) -> str:
    code = POSITION_CODES.get(position, CENTER_CODE)
    return f"POS:{code}:{int(priority)}"


def build_animation_command(animation: AnimationType) -> str:
    return f"ANIM:{animation.name}"


def build_idle_command(enabled: bool) -> str:
    return f"IDLE:{_on_off(enabled)}"


def build_blink_command(enabled: bool) -> str:
    return f"BLINK:{_on_off(enabled)}"


def build_reset_command() -> str:
    return "RESET"


def build_transition(state: MoodState) -> list[str]:
    """
    Build every command for a mood transition, in send order.

    The mood command always comes first, followed by the position and then
    the animation when the state carries them.
    """
    commands = [build_mood_command(state)]
    if state.position is not None:
        commands.append(build_position_command(state.position, state.priority))
    if state.animation is not None:
        commands.append(build_animation_command(state.animation))
    return commands


# MARK: - Framing


def frame(command: str) -> bytes:
    """Encode a command for a byte stream transport."""
    return (command + "\n").encode("ascii")


def parse_command(line: str) -> Command:
    """
    Split a command line into name and arguments.

    Raises:
        ValueError: If the line is empty or names an unknown command
    """
    parts = line.strip().split(":")
    name = parts[0].upper()
    if not name:
        raise ValueError("Empty command")
    if name not in COMMAND_NAMES:
        raise ValueError(f"Unknown command: {parts[0]}")
    return Command(name=name, args=tuple(parts[1:]))


def _on_off(enabled: bool) -> str:
    return "ON" if enabled else "OFF"
