"""
Command-line interface tools for the Archive Heart timeline.

Offline commands work directly on files and links; the remaining commands talk
to a running Archive Heart server.
"""

import asyncio
import json
import logging
from collections.abc import Coroutine
from datetime import datetime
from pathlib import Path
from typing import Any, NoReturn

import httpx
import typer
from httpx_sse import ServerSentEvent, aconnect_sse

from . import aggregator, codec
from .config import get_settings
from .errors import TimelineError
from .models import TimelineDataset
from .pipeline import build_timeline, distribution
from .themes import resolve_theme

DEFAULT_BASE_URL = "http://localhost:8000"

app = typer.Typer(help="Archive Heart timeline CLI tools")


@app.callback()
def configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Archive Heart timeline CLI tools."""
    level = "DEBUG" if verbose else get_settings().log_level.upper()
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


# MARK: - Offline Commands


@app.command()
def inspect(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV export to analyze"),
    skin: str = typer.Option(None, "--skin", "-s", help="Theme id to embed in the share link"),
    share: bool = typer.Option(False, "--share", help="Print a share link for the timeline"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """Build a timeline from a CSV export without a server."""
    settings = get_settings()
    try:
        dataset = build_timeline(file.read_bytes())
    except TimelineError as e:
        _fail(e)

    if json_output:
        print(dataset.model_dump_json(by_alias=True, exclude={"tracks"}, indent=2))
    else:
        _print_dataset(dataset)

    if share:
        try:
            compressed = codec.encode(dataset.tracks, resolve_theme(skin or settings.default_skin).id)
        except TimelineError as e:
            _fail(e)
        print(codec.share_url(settings.app_url, compressed))


@app.command()
def decode(
    link: str = typer.Argument(..., help="Share link or compressed payload"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """Open a share link without a server."""
    try:
        payload = codec.decode(codec.extract_data(link), get_settings().max_upload_bytes)
        dataset = aggregator.build_dataset(payload.tracks)
    except TimelineError as e:
        _fail(e)

    if json_output:
        print(payload.model_dump_json(by_alias=True, exclude_none=True, indent=2))
        return

    theme = resolve_theme(payload.skin_id)
    print(f"Theme: {theme.name} | created {payload.metadata.created_at}")
    _print_dataset(dataset)


# MARK: - Server Commands


@app.command()
def upload(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV export to upload"),
    skin: str = typer.Option(None, "--skin", "-s", help="Theme id for the timeline"),
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the Archive Heart service"
    ),
) -> None:
    """Upload a CSV export to the Archive Heart service."""

    async def _upload() -> None:
        params = {"skin": skin} if skin else None
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{base_url}/timeline",
                content=file.read_bytes(),
                params=params,
                headers={"Content-Type": "text/csv"},
            )
            _raise_for_status(response)
            result = response.json()
            stats = result["dataset"]["stats"]
            print(
                f"Timeline ready: {stats['totalSongs']} songs, "
                f"{stats['uniqueArtists']} artists, theme {result['theme']['name']}"
            )

    _run_with_error_handling(_upload(), base_url)


@app.command()
def stats(
    year: int = typer.Option(None, "--year", "-y", help="Only show statistics for this year"),
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the Archive Heart service"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """Show statistics for the timeline held by the service."""

    async def _stats() -> None:
        path = f"/timeline/years/{year}" if year is not None else "/timeline"
        async with httpx.AsyncClient() as client:
            response = await client.get(f"{base_url}{path}")
            _raise_for_status(response)
            result = response.json()

        if json_output:
            print(json.dumps(result, indent=2))
            return

        if year is not None:
            print(
                f"{year}: {result['totalSongs']} songs, {result['totalMinutes']} minutes, "
                f"{result['uniqueArtists']} artists, top artist {result['mostPlayedArtist']}"
            )
        elif result["stats"] is None:
            print("No timeline loaded")
        else:
            print(
                f"{result['stats']['totalSongs']} songs, {result['totalMinutes']} minutes, "
                f"top artist {result['stats']['mostPlayedArtist']}"
            )

    _run_with_error_handling(_stats(), base_url)


@app.command()
def share(
    skin: str = typer.Option(None, "--skin", "-s", help="Theme id to embed in the link"),
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the Archive Heart service"
    ),
) -> None:
    """Generate a share link for the timeline held by the service."""

    async def _share() -> None:
        async with httpx.AsyncClient() as client:
            response = await client.post(f"{base_url}/timeline/share", json={"skinId": skin})
            _raise_for_status(response)
            print(response.json()["url"])

    _run_with_error_handling(_share(), base_url)


@app.command()
def stream(
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the Archive Heart service"
    ),
) -> None:
    """Stream timeline session changes in real-time."""

    async def _stream() -> None:
        print(f"Streaming from {base_url}/timeline/stream... (Ctrl+C to stop)")

        async with httpx.AsyncClient(timeout=None) as client:
            async with aconnect_sse(
                client, "GET", f"{base_url}/timeline/stream"
            ) as event_source:
                async for sse in event_source.aiter_sse():
                    _handle_sse_event(sse)

    _run_with_error_handling(_stream(), base_url)


# MARK: - Private Helpers


def _print_dataset(dataset: TimelineDataset) -> None:
    stats = dataset.stats
    print(f"Years: {dataset.year_range.start}-{dataset.year_range.end}")
    print(f"Songs: {stats.total_songs} | Artists: {stats.unique_artists} | Minutes: {dataset.total_minutes}")
    print(f"Most played: {stats.most_played_artist}")
    counts = distribution(dataset.tracks)
    print("Moods: " + ", ".join(f"{emotion.value} {count}" for emotion, count in counts.items()))


def _format_session_event(data: dict[str, Any]) -> str:
    """Format a session summary with its update time."""
    line = data["status"]
    if data.get("stats"):
        line += f" ({data['stats']['totalSongs']} songs, theme {data['skinId']})"
    if not data.get("updatedAt"):
        return line

    timestamp = datetime.fromisoformat(data["updatedAt"]).strftime("%H:%M:%S")
    return f"{timestamp} > {line}"


def _handle_sse_event(sse: ServerSentEvent) -> None:
    """Handle a single SSE event."""
    try:
        if sse.event == "error":
            error_data = json.loads(sse.data)
            print(f"Server error: {error_data.get('error', 'Unknown error')}")
            return

        print(_format_session_event(json.loads(sse.data)))

    except json.JSONDecodeError as e:
        print(f"Warning: Could not parse SSE data: {sse.data} - {e}")
    except (KeyError, ValueError) as e:
        print(f"Warning: Error processing session data: {e}")


def _raise_for_status(response: httpx.Response) -> None:
    """Surface the service's user-facing error message before failing."""
    if response.is_error:
        try:
            body = response.json()
        except ValueError:
            body = {}
        message = body.get("error") or body.get("detail")
        if message:
            print(f"Error: {message}")
    response.raise_for_status()


def _fail(error: TimelineError) -> NoReturn:
    print(f"Error: {error.user_message} ({error.detail})")
    raise typer.Exit(1)


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
