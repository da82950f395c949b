"""
FastAPI server for the Mochi relay.

This module implements a small HTTP control surface over a running
CompanionService: inspect the current mood and the monitor loops, submit a
manual mood suggestion, or reset the device to its baseline.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .errors import DeviceConnectionError
from .models import (
    AnimationType,
    Duration,
    MonitorState,
    MoodState,
    MoodType,
    PositionType,
    Priority,
)
from .service import CompanionService


# API Request/Response Schemas
class MoodRequest(BaseModel):
    """Payload for manual mood suggestions."""

    mood: MoodType = Field(..., description="The mood to display")
    priority: Priority = Field(..., description="Priority between 0 and 10")
    position: PositionType | None = Field(None, description="Optional gaze")
    animation: AnimationType | None = Field(None, description="Optional animation")
    duration: Duration | None = Field(
        None, description="Seconds before the mood may expire"
    )

    def to_state(self) -> MoodState:
        return MoodState(
            mood=self.mood,
            priority=self.priority,
            position=self.position,
            animation=self.animation,
            duration=self.duration,
        )


class MoodResponse(BaseModel):
    """Response model for mood endpoints."""

    mood: MoodState | None = Field(..., description="The current mood state")


class ApplyResponse(MoodResponse):
    """Response model for mood suggestions."""

    accepted: bool = Field(..., description="Whether the suggestion won")


def create_app(service: CompanionService, manage_service: bool = True) -> FastAPI:
    """
    Create a FastAPI application around the given service.

    Args:
        service: The CompanionService instance to expose
        manage_service: Start and stop the service with the application

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Lifespan context manager for FastAPI application."""
        if manage_service:
            await service.start()
        try:
            yield
        finally:
            if manage_service:
                await service.stop()

    app = FastAPI(
        title="Mochi Relay",
        description="Mood arbitration relay for the Mochi companion device",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.get("/")
    async def root() -> dict[str, str | bool]:
        """Health check endpoint."""
        return {
            "status": "ok",
            "service": "mochi-relay",
            "connected": service.is_connected,
        }

    @app.get("/mood")
    async def get_mood() -> MoodResponse:
        """
        Get the current mood state.

        Returns:
            The current mood, or null before the first transition
        """
        return MoodResponse(mood=service.current_mood)

    @app.put("/mood")
    async def apply_mood(request: MoodRequest) -> ApplyResponse:
        """
        Submit a mood suggestion to the authority.

        The suggestion only takes effect if it outranks the current mood or
        the current mood has expired.

        Returns:
            Whether it was accepted, and the resulting current mood
        """
        try:
            accepted = await service.authority.apply(request.to_state())
        except DeviceConnectionError as e:
            raise HTTPException(status_code=503, detail=f"Device unavailable: {e}")
        return ApplyResponse(accepted=accepted, mood=service.current_mood)

    @app.post("/mood/reset")
    async def reset_mood() -> MoodResponse:
        """Reset the device to the baseline mood regardless of priority."""
        try:
            baseline = await service.authority.reset()
        except DeviceConnectionError as e:
            raise HTTPException(status_code=503, detail=f"Device unavailable: {e}")
        return MoodResponse(mood=baseline)

    @app.get("/monitors")
    async def get_monitors() -> list[MonitorState]:
        """List every registered monitor loop and its last outcome."""
        return service.monitor_states()

    return app
