"""
Command-line interface tools for the Mochi relay.
"""

import asyncio
import json
import logging
from collections.abc import Coroutine
from datetime import datetime
from pathlib import Path
from typing import Any

import httpx
import typer

from .models import (
    AnimationType,
    MonitorState,
    MoodState,
    MoodType,
    PositionType,
)

DEFAULT_BASE_URL = "http://localhost:8000"
LOG_FORMAT = "%(asctime)s %(name)-20s %(levelname)-5s %(message)s"

app = typer.Typer(help="Mochi relay CLI tools")


# MARK: - Commands


@app.command()
def run(
    config_path: Path | None = typer.Option(
        None, "--config", "-c", help="YAML configuration file"
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", "-l", help="Override the configured log level"
    ),
) -> None:
    """Connect to the device, start the monitors and serve the control API."""
    import uvicorn

    from .config import load_config
    from .monitors import CpuMonitor, TimeMonitor
    from .server import create_app
    from .service import CompanionService

    config = load_config(config_path)
    level = (log_level or config.log_level).upper()
    configure_logging(level)

    service = CompanionService(config, monitors=[TimeMonitor(), CpuMonitor()])
    uvicorn.run(
        create_app(service),
        host=config.api.host,
        port=config.api.port,
        log_level=level.lower(),
    )


@app.command()
def set_mood(
    mood: MoodType = typer.Argument(..., help="The mood to display"),
    priority: int = typer.Option(5, "--priority", "-p", help="Priority 0-10"),
    position: PositionType | None = typer.Option(
        None, "--position", help="Gaze direction"
    ),
    animation: AnimationType | None = typer.Option(
        None, "--animation", help="One-shot animation"
    ),
    duration: float | None = typer.Option(
        None, "--duration", "-d", help="Seconds before the mood may expire"
    ),
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the Mochi relay"
    ),
) -> None:
    """Suggest a mood to the relay."""
    payload: dict[str, Any] = {"mood": mood.value, "priority": priority}
    if position is not None:
        payload["position"] = position.value
    if animation is not None:
        payload["animation"] = animation.value
    if duration is not None:
        payload["duration"] = duration

    async def _set_mood() -> None:
        async with httpx.AsyncClient() as client:
            response = await client.put(f"{base_url}/mood", json=payload)
            response.raise_for_status()
            result = response.json()
            if result["accepted"]:
                print(f"Mood set to: {_format_mood(result['mood'])}")
            else:
                print(f"Rejected, current mood: {_format_mood(result['mood'])}")

    _run_with_error_handling(_set_mood(), base_url)


@app.command()
def get_mood(
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the Mochi relay"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """Get the current mood from the relay."""

    async def _get_mood() -> None:
        async with httpx.AsyncClient() as client:
            response = await client.get(f"{base_url}/mood")
            response.raise_for_status()
            result = response.json()

            if json_output:
                print(json.dumps(result, indent=2))
                return

            print(_format_mood(result["mood"]))

    _run_with_error_handling(_get_mood(), base_url)


@app.command()
def reset(
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the Mochi relay"
    ),
) -> None:
    """Reset the device to its baseline mood."""

    async def _reset() -> None:
        async with httpx.AsyncClient() as client:
            response = await client.post(f"{base_url}/mood/reset")
            response.raise_for_status()
            print(f"Reset to: {_format_mood(response.json()['mood'])}")

    _run_with_error_handling(_reset(), base_url)


@app.command()
def monitors(
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the Mochi relay"
    ),
) -> None:
    """List the relay's monitor loops."""

    async def _monitors() -> None:
        async with httpx.AsyncClient() as client:
            response = await client.get(f"{base_url}/monitors")
            response.raise_for_status()
            for raw in response.json():
                print(_format_monitor(MonitorState.model_validate(raw)))

    _run_with_error_handling(_monitors(), base_url)


# MARK: - Private Helpers


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )


def _format_mood(raw: dict[str, Any] | None) -> str:
    """Format a serialized mood state for display."""
    if raw is None:
        return "No mood set"

    mood = MoodState.model_validate(raw)
    text = mood.describe()
    if mood.position is not None:
        text += f", looking {mood.position.value}"
    if mood.animation is not None:
        text += f", {mood.animation.value}"
    if mood.expires_at is not None:
        until = datetime.fromtimestamp(mood.expires_at).strftime("%H:%M:%S")
        text += f", until {until}"
    return text


def _format_monitor(state: MonitorState) -> str:
    last = state.last_result or "-"
    return (
        f"{state.monitor_name:<10} {state.state.value:<9} "
        f"errors={state.error_count} {last}"
    )


def _run_with_error_handling(coro: Coroutine[Any, Any, Any], base_url: str) -> None:
    """Run an async coroutine with standardized error handling."""
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        print("\nStopped")
        raise typer.Exit(0)
    except httpx.ConnectError:
        print(f"Error: Could not connect to {base_url}")
        raise typer.Exit(1)
    except httpx.HTTPStatusError as e:
        print(f"Error: HTTP {e.response.status_code}")
        raise typer.Exit(1)
    except Exception as e:
        error_msg = str(e) if str(e) else f"Unknown error of type {type(e).__name__}"
        print(f"Error: {error_msg}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
