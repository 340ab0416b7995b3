"""
FastAPI server for the Archive Heart timeline.

This module exposes the pipeline over HTTP: uploading an export, querying the
current timeline, generating share links, opening them, and streaming session
changes via Server-Sent Events.
"""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import Field

from . import __version__, aggregator
from .config import Settings, get_settings
from .errors import CompressionError, DecodeError, EmptyDatasetError, ParseError, TimelineError
from .models import (
    DatasetStats,
    MonthSummary,
    SessionStatus,
    Theme,
    TimelineDataset,
    TimelineSession,
    WireModel,
    YearRange,
    YearStats,
)
from .pipeline import TimelinePipeline, distribution
from .store import TimelineStore
from .themes import all_themes, resolve_theme

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[TimelineError], int] = {
    ParseError: 400,
    EmptyDatasetError: 422,
    CompressionError: 500,
    DecodeError: 400,
}


# API Request/Response Schemas
class TimelineResponse(WireModel):
    """A timeline together with the theme it should be shown in."""

    dataset: TimelineDataset = Field(..., description="The aggregated timeline")
    theme: Theme = Field(..., description="Resolved theme for the timeline")


class SessionSummary(WireModel):
    """Session state without the track list."""

    status: SessionStatus
    skin_id: str
    selected_year: int | None = None
    updated_at: datetime | None = None
    year_range: YearRange | None = None
    total_minutes: int | None = None
    stats: DatasetStats | None = None


class ShareRequest(WireModel):
    """Payload for share link requests."""

    skin_id: str | None = Field(None, description="Theme to embed, defaults to the session's")


class ShareResponse(WireModel):
    url: str = Field(..., description="Shareable view link")


class YearSelection(WireModel):
    """Payload for year selection requests."""

    year: int | None = Field(..., description="Year to focus on, null to clear")


async def read_capped_body(request: Request, max_bytes: int) -> bytes:
    """
    Read a request body, refusing it as soon as it exceeds max_bytes.

    The declared Content-Length is checked before anything is read.
    """
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > max_bytes:
        raise HTTPException(status_code=413, detail="File is too large")

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_bytes:
            raise HTTPException(status_code=413, detail="File is too large")
    return bytes(body)


def summarize(session: TimelineSession) -> SessionSummary:
    dataset = session.dataset
    return SessionSummary(
        status=session.status,
        skin_id=session.skin_id,
        selected_year=session.selected_year,
        updated_at=session.updated_at,
        year_range=dataset.year_range if dataset else None,
        total_minutes=dataset.total_minutes if dataset else None,
        stats=dataset.stats if dataset else None,
    )


def create_app(pipeline: TimelinePipeline, settings: Settings | None = None) -> FastAPI:
    """
    Create a FastAPI application around the given pipeline.

    Args:
        pipeline: The TimelinePipeline (and its store) backing the application
        settings: Settings to apply, loaded from the environment when omitted

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    store = pipeline.store

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Lifespan context manager for FastAPI application."""
        yield

    app = FastAPI(
        title="Archive Heart Timeline",
        description="Turns a listening export into a shareable emotional timeline",
        version=__version__,
        lifespan=lifespan,
    )

    @app.exception_handler(TimelineError)
    async def timeline_error_handler(request: Request, exc: TimelineError) -> JSONResponse:
        status_code = ERROR_STATUS.get(type(exc), 500)
        logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.detail)
        return JSONResponse(
            status_code=status_code,
            content={"error": exc.user_message, "detail": exc.detail},
        )

    async def current_dataset() -> TimelineDataset:
        session = await store.read()
        if session.dataset is None:
            raise HTTPException(status_code=404, detail="No timeline loaded")
        return session.dataset

    @app.get("/")
    async def root() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "archive-heart"}

    @app.get("/themes")
    async def list_themes() -> list[Theme]:
        return all_themes()

    @app.post("/timeline")
    async def upload_timeline(request: Request, skin: str | None = None) -> TimelineResponse:
        """
        Ingest a CSV export sent as the request body.

        Returns:
            The new timeline and its resolved theme
        """
        body = await read_capped_body(request, settings.max_upload_bytes)
        dataset = await pipeline.ingest(body, skin_id=skin)
        session = await store.read()
        return TimelineResponse(dataset=dataset, theme=resolve_theme(session.skin_id))

    @app.get("/timeline")
    async def get_timeline() -> SessionSummary:
        """Get a summary of the current session."""
        return summarize(await store.read())

    @app.delete("/timeline")
    async def reset_timeline() -> SessionSummary:
        return summarize(await pipeline.reset())

    @app.get("/timeline/years/{year}")
    async def get_year_stats(year: int) -> YearStats:
        """Statistics for one year of the current timeline."""
        dataset = await current_dataset()
        return pipeline.stats_for(dataset, year)

    @app.put("/timeline/year")
    async def select_year(selection: YearSelection) -> SessionSummary:
        """Select the year the timeline is focused on, or clear it with null."""
        await current_dataset()
        return summarize(await pipeline.select_year(selection.year))

    @app.get("/timeline/months")
    async def get_months() -> list[MonthSummary]:
        dataset = await current_dataset()
        return aggregator.monthly_summaries(dataset.tracks)

    @app.get("/timeline/distribution")
    async def get_distribution() -> dict[str, int]:
        """Emotion counts for the current timeline."""
        dataset = await current_dataset()
        return {emotion.value: count for emotion, count in distribution(dataset.tracks).items()}

    @app.post("/timeline/share")
    async def share_timeline(share_request: ShareRequest) -> ShareResponse:
        """Generate a share link for the current timeline."""
        dataset = await current_dataset()
        session = await store.read()
        skin_id = share_request.skin_id or session.skin_id
        return ShareResponse(url=pipeline.share(dataset, skin_id))

    @app.get("/view")
    async def view_timeline(request: Request) -> TimelineResponse:
        """Open a share link and make it the current timeline."""
        dataset = await pipeline.load(str(request.url))
        session = await store.read()
        return TimelineResponse(dataset=dataset, theme=resolve_theme(session.skin_id))

    @app.get("/timeline/stream")
    async def stream_timeline() -> StreamingResponse:
        """
        Stream session changes via Server-Sent Events.

        The current session summary is sent immediately upon connection, then
        one event per transition.

        Returns:
            StreamingResponse with text/event-stream content type
        """

        async def event_generator() -> AsyncGenerator[str, None]:
            try:
                async with store.stream() as session_stream:
                    async for session in session_stream:
                        data = summarize(session).model_dump_json(by_alias=True)
                        yield f"data: {data}\n\n"
            except asyncio.CancelledError:
                # Client disconnected
                pass
            except Exception as e:
                error_data = json.dumps({"error": str(e)})
                yield f"event: error\ndata: {error_data}\n\n"

        return StreamingResponse(
            event_generator(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Headers": "*",
            },
        )

    return app


def build_default_app() -> FastAPI:
    settings = get_settings()
    pipeline = TimelinePipeline(
        TimelineStore(settings.default_skin),
        settings.app_url,
        max_payload_bytes=settings.max_upload_bytes,
    )
    return create_app(pipeline, settings)


app = build_default_app()


def main() -> None:
    """Main entry point for the server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "archive_heart.server:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
