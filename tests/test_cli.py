"""
Tests for the CLI client commands.

Requests are served by httpx.MockTransport instead of a live relay.
"""

import json

import httpx
import pytest
from typer.testing import CliRunner

from mochi_relay import cli

runner = CliRunner()

HAPPY = {
    "mood": "happy",
    "priority": 8,
    "position": "north",
    "animation": None,
    "duration": None,
    "timestamp": 1700000000.0,
}


@pytest.fixture
def relay(monkeypatch):
    """Route the CLI's httpx clients to an in-process handler."""
    calls: list[httpx.Request] = []
    responses: dict[tuple[str, str], httpx.Response] = {}
    real_client = httpx.AsyncClient

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return responses[(request.method, request.url.path)]

    def client_factory(**kwargs) -> httpx.AsyncClient:
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(cli.httpx, "AsyncClient", client_factory)
    return calls, responses


def test_set_mood(relay):
    calls, responses = relay
    responses[("PUT", "/mood")] = httpx.Response(
        200, json={"accepted": True, "mood": HAPPY}
    )

    result = runner.invoke(
        cli.app, ["set-mood", "happy", "--priority", "8", "--position", "north"]
    )

    assert result.exit_code == 0, result.output
    assert "Mood set to: happy (priority 8), looking north" in result.output
    assert json.loads(calls[0].content) == {
        "mood": "happy",
        "priority": 8,
        "position": "north",
    }


def test_set_mood_rejected(relay):
    _, responses = relay
    responses[("PUT", "/mood")] = httpx.Response(
        200, json={"accepted": False, "mood": HAPPY}
    )

    result = runner.invoke(cli.app, ["set-mood", "tired", "--priority", "2"])

    assert result.exit_code == 0, result.output
    assert "Rejected, current mood: happy (priority 8)" in result.output


def test_get_mood_without_mood(relay):
    _, responses = relay
    responses[("GET", "/mood")] = httpx.Response(200, json={"mood": None})

    result = runner.invoke(cli.app, ["get-mood"])

    assert result.exit_code == 0
    assert "No mood set" in result.output


def test_reset_http_error(relay):
    _, responses = relay
    responses[("POST", "/mood/reset")] = httpx.Response(503, json={"detail": "x"})

    result = runner.invoke(cli.app, ["reset"])

    assert result.exit_code == 1
    assert "Error: HTTP 503" in result.output


def test_monitors(relay):
    _, responses = relay
    responses[("GET", "/monitors")] = httpx.Response(
        200,
        json=[
            {
                "monitor_name": "time",
                "state": "running",
                "is_running": True,
                "interval": 60.0,
                "last_check_time": None,
                "last_result": "no change",
                "error_count": 0,
            }
        ],
    )

    result = runner.invoke(cli.app, ["monitors"])

    assert result.exit_code == 0
    assert "time" in result.output
    assert "running" in result.output
    assert "no change" in result.output
