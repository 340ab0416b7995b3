"""
Pipeline orchestration for the Archive Heart timeline.

TimelinePipeline composes parsing, classification and aggregation on ingest,
drives the share codec on share/load, and is the only writer of the session
held in a TimelineStore.
"""

import logging
import random
from collections.abc import Sequence
from datetime import datetime, timezone

from . import aggregator, classifier, codec, parser
from .errors import EmptyDatasetError
from .models import (
    Emotion,
    SessionStatus,
    TimelineDataset,
    TimelineSession,
    TrackRecord,
    YearStats,
)
from .store import TimelineStore
from .themes import resolve_theme

logger = logging.getLogger(__name__)


def distribution(tracks: Sequence[TrackRecord]) -> dict[Emotion, int]:
    """Emotion counts for the given tracks."""
    return classifier.distribution(tracks)


def year_stats(tracks: Sequence[TrackRecord]) -> YearStats:
    """Statistics for an arbitrary subset of tracks."""
    return aggregator.year_stats(tracks)


def stats_for(dataset: TimelineDataset, year: int) -> YearStats:
    """Statistics for the tracks of one year of a dataset."""
    return aggregator.year_stats(aggregator.filter_by_year(dataset.tracks, year))


def build_timeline(data: bytes | str, rng: random.Random | None = None) -> TimelineDataset:
    """
    Run parse, classify and aggregate over an export, in that order.

    Raises:
        ParseError: If the export cannot be decoded
        EmptyDatasetError: If no row survives filtering
    """
    tracks = parser.parse_csv(data)
    if not tracks:
        raise EmptyDatasetError("No valid tracks found in file")
    return aggregator.build_dataset(classifier.classify_all(tracks, rng))


class TimelinePipeline:
    """
    Orchestrates ingest, share and load for one session.

    Every transition builds a complete new session before it is stored, and a
    failed operation leaves the previously stored session in place.
    """

    def __init__(
        self,
        store: TimelineStore,
        base_url: str,
        rng: random.Random | None = None,
        max_payload_bytes: int = codec.MAX_PAYLOAD_BYTES,
    ) -> None:
        self.store = store
        self.base_url = base_url
        self.max_payload_bytes = max_payload_bytes
        self._rng = rng

    async def _transition(self, current: TimelineSession, **changes) -> TimelineSession:
        changes["updated_at"] = datetime.now(timezone.utc)
        return await self.store.replace(current.model_copy(update=changes))

    async def ingest(self, data: bytes | str, skin_id: str | None = None) -> TimelineDataset:
        """
        Build a new timeline from an uploaded export.

        Args:
            data: Raw CSV contents
            skin_id: Theme to select along with the new timeline

        Returns:
            The new dataset, which is also stored as the current session
        """
        previous = await self.store.read()
        await self._transition(previous, status=SessionStatus.INGESTING)

        try:
            dataset = build_timeline(data, self._rng)
        except Exception:
            await self.store.replace(previous)
            raise

        await self._transition(
            previous,
            status=SessionStatus.READY,
            dataset=dataset,
            skin_id=resolve_theme(skin_id or previous.skin_id).id,
            selected_year=None,
        )
        logger.info(
            "Ingested %d track(s) spanning %d-%d",
            dataset.stats.total_songs,
            dataset.year_range.start,
            dataset.year_range.end,
        )
        return dataset

    def share(self, dataset: TimelineDataset, skin_id: str) -> str:
        """
        Build a share link for a dataset.

        Raises:
            CompressionError: If the payload cannot be compressed
        """
        compressed = codec.encode(dataset.tracks, skin_id)
        return codec.share_url(self.base_url, compressed)

    async def load(self, url: str) -> TimelineDataset:
        """
        Open a share link and make it the current session.

        The statistics are recomputed from the decoded tracks, and tracks that
        arrive without a classification are classified locally.

        Raises:
            DecodeError: If the link is missing data, truncated or tampered with
            EmptyDatasetError: If the link carries no tracks
        """
        payload = codec.decode(codec.extract_data(url), self.max_payload_bytes)
        tracks = [
            track if track.is_classified else classifier.classify_all([track], self._rng)[0]
            for track in payload.tracks
        ]
        dataset = aggregator.build_dataset(tracks)

        previous = await self.store.read()
        await self._transition(
            previous,
            status=SessionStatus.VIEWING,
            dataset=dataset,
            skin_id=resolve_theme(payload.skin_id).id,
            selected_year=None,
        )
        logger.info("Loaded shared timeline with %d track(s)", dataset.stats.total_songs)
        return dataset

    def stats_for(self, dataset: TimelineDataset, year: int) -> YearStats:
        return stats_for(dataset, year)

    async def select_year(self, year: int | None) -> TimelineSession:
        current = await self.store.read()
        return await self._transition(current, selected_year=year)

    async def select_theme(self, skin_id: str) -> TimelineSession:
        current = await self.store.read()
        return await self._transition(current, skin_id=resolve_theme(skin_id).id)

    async def reset(self) -> TimelineSession:
        """Drop the current timeline and return to an empty session."""
        current = await self.store.read()
        return await self._transition(
            current,
            status=SessionStatus.EMPTY,
            dataset=None,
            skin_id=resolve_theme(self.store.default_skin).id,
            selected_year=None,
        )
