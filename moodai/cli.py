"""
Command-line interface tools for the MoodAI service.
"""

import asyncio
import json
from collections.abc import Coroutine
from datetime import datetime
from typing import Any

import httpx
import typer
from httpx_sse import ServerSentEvent, aconnect_sse

from .auth import TOKEN_COOKIE
from .classifier import classify as classify_text
from .classifier import color_for, score_for
from .errors import ClassificationUnavailable, InvalidInput
from .models import MoodPoint

DEFAULT_BASE_URL = "http://localhost:8000"

app = typer.Typer(help="MoodAI CLI tools")

URL_OPTION = typer.Option(
    DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the MoodAI service"
)
TOKEN_OPTION = typer.Option(
    ..., "--token", "-t", envvar="MOODAI_TOKEN", help="Session token from login"
)


# MARK: - Commands


@app.command()
def classify(
    text: str = typer.Argument(..., help="The message to classify"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """Classify a message locally, without a server."""
    try:
        mood = classify_text(text)
    except (InvalidInput, ClassificationUnavailable) as e:
        print(f"Error: {e}")
        raise typer.Exit(1)

    if json_output:
        result = {"mood": mood.value, "color": color_for(mood), "score": score_for(mood)}
        print(json.dumps(result, indent=2))
        return

    print(mood.value)


@app.command()
def login(
    email: str = typer.Argument(..., help="Account email"),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
    base_url: str = URL_OPTION,
) -> None:
    """Sign in and print a session token for --token / MOODAI_TOKEN."""

    async def _login() -> None:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{base_url}/api/auth/login", json={"email": email, "password": password}
            )
            response.raise_for_status()

        token = response.cookies.get(TOKEN_COOKIE)
        if not token:
            raise ValueError("Server did not return a session token")
        print(token)

    _run_with_error_handling(_login(), base_url)


@app.command()
def chat(
    message: str = typer.Argument(..., help="The message to send"),
    base_url: str = URL_OPTION,
    token: str = TOKEN_OPTION,
    json_output: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """Send a chat message to the MoodAI service."""

    async def _chat() -> None:
        async with httpx.AsyncClient(cookies={TOKEN_COOKIE: token}) as client:
            response = await client.post(f"{base_url}/api/chat", json={"message": message})
            response.raise_for_status()
            result = response.json()

        if json_output:
            print(json.dumps(result, indent=2))
            return

        print(f"[{result['mood']}] {result['response']}")
        for action in result["suggested_actions"]:
            print(f"  - {action['content']} ({action['duration']})")

    _run_with_error_handling(_chat(), base_url)


@app.command()
def stream(
    base_url: str = URL_OPTION,
    token: str = TOKEN_OPTION,
) -> None:
    """Stream mood history updates in real-time."""

    async def _stream() -> None:
        print(f"Streaming from {base_url}/api/mood-history/stream... (Ctrl+C to stop)")

        async with httpx.AsyncClient(timeout=None, cookies={TOKEN_COOKIE: token}) as client:
            async with aconnect_sse(
                client, "GET", f"{base_url}/api/mood-history/stream"
            ) as event_source:
                async for sse in event_source.aiter_sse():
                    _handle_sse_event(sse)

    _run_with_error_handling(_stream(), base_url)


# MARK: - Private Helpers


def _format_point(point: MoodPoint) -> str:
    """Format a mood history point with its timestamp."""
    timestamp = datetime.fromtimestamp(point.timestamp).strftime("%H:%M:%S")
    return f"{timestamp} > {point.mood.value} ({point.score})"


def _handle_sse_event(sse: ServerSentEvent) -> None:
    """Handle a single SSE event."""
    try:
        if sse.event == "error":
            error_data = json.loads(sse.data)
            print(f"Server error: {error_data.get('error', 'Unknown error')}")
            return

        point = MoodPoint.model_validate_json(sse.data)
        print(_format_point(point))

    except ValueError as e:
        print(f"Warning: Could not parse SSE data: {sse.data} - {e}")


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
