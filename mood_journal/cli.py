"""
Command-line interface tools for the Mood Journal service.
"""

import asyncio
import json
from collections.abc import Coroutine
from typing import Any

import httpx
import typer

from .config import get_settings
from .models import MoodEntry, StreakData, utc_now

DEFAULT_BASE_URL = "http://localhost:8000"

app = typer.Typer(help="Mood Journal CLI tools")


# MARK: - Commands


@app.command()
def serve() -> None:
    """Run the Mood Journal web server."""
    from .server import main

    main()


@app.command("init-db")
def init_db() -> None:
    """Create the database schema and seed default settings."""
    from .database import Database
    from .settings_store import SettingsStore

    database = Database(get_settings().database_path)
    database.initialize()
    seeded = SettingsStore(database).initialize()
    print(f"Database ready at {database.path} ({seeded} default settings added)")


@app.command("log")
def log_mood(
    emotion: str = typer.Argument(..., help="The emotion to record"),
    notes: str | None = typer.Option(None, "--notes", "-n", help="Optional notes"),
    date: str | None = typer.Option(
        None, "--date", "-d", help="ISO-8601 timestamp (defaults to now)"
    ),
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the Mood Journal service"
    ),
) -> None:
    """Record a mood entry."""
    payload: dict[str, Any] = {"emotion": emotion, "date": date or utc_now()}
    if notes:
        payload["notes"] = notes

    async def _log() -> None:
        async with httpx.AsyncClient(base_url=base_url) as client:
            result = await request_json(client, "POST", "/api/entries", json=payload)
            entry = MoodEntry.model_validate(result["data"])
            print(f"Logged {entry.emotion.value} ({entry.id})")

    _run_with_error_handling(_log(), base_url)


@app.command()
def entries(
    limit: int = typer.Option(20, "--limit", "-l", help="Number of entries to show"),
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the Mood Journal service"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """List the most recent entries."""

    async def _entries() -> None:
        async with httpx.AsyncClient(base_url=base_url) as client:
            result = await request_json(
                client, "GET", "/api/entries", params={"limit": limit}
            )

            if json_output:
                print(json.dumps(result, indent=2))
                return

            if not result["data"]:
                print("No entries yet")
                return
            for raw in result["data"]:
                print(format_entry(MoodEntry.model_validate(raw)))

    _run_with_error_handling(_entries(), base_url)


@app.command()
def stats(
    period: str | None = typer.Option(
        None, "--period", "-p", help="week, month or year (default: last 30 days)"
    ),
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the Mood Journal service"
    ),
) -> None:
    """Show streaks and the emotion breakdown."""
    params = {"period": period} if period else {}

    async def _stats() -> None:
        async with httpx.AsyncClient(base_url=base_url) as client:
            result = await request_json(
                client, "GET", "/api/analytics/trends", params=params
            )
            for line in format_stats(result["data"]):
                print(line)

    _run_with_error_handling(_stats(), base_url)


# MARK: - Helpers


async def request_json(
    client: httpx.AsyncClient, method: str, url: str, **kwargs: Any
) -> dict[str, Any]:
    """Send a request and return the decoded JSON body, raising on HTTP errors."""
    response = await client.request(method, url, **kwargs)
    response.raise_for_status()
    return response.json()


def format_entry(entry: MoodEntry) -> str:
    """One-line rendering of an entry."""
    line = f"{entry.date[:10]}  {entry.emotion.value:<12}"
    if entry.notes:
        line += f" {entry.notes}"
    return line.rstrip()


def format_stats(data: dict[str, Any]) -> list[str]:
    streak = StreakData.model_validate(data["streakData"])
    lines = [
        f"Current streak: {streak.current_streak} day(s)",
        f"Longest streak: {streak.longest_streak} day(s)",
        f"Total entries: {streak.total_entries}",
    ]
    for share in data["emotionBreakdown"]:
        lines.append(f"  {share['emotion']:<12} {share['count']:>4}  {share['percentage']}%")
    return lines


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
        message = _error_message(e.response)
        suffix = f" - {message}" if message else ""
        print(f"Error: HTTP {e.response.status_code}{suffix}")
        raise typer.Exit(1)
    except Exception as e:
        error_msg = str(e) if str(e) else f"Unknown error of type {type(e).__name__}"
        print(f"Error: {error_msg}")
        raise typer.Exit(1)


def _error_message(response: httpx.Response) -> str:
    try:
        return str(response.json().get("error", ""))
    except (ValueError, AttributeError):
        return ""


if __name__ == "__main__":
    app()
