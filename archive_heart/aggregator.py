"""
Timeline aggregation.

Pure functions that compute summary statistics and time buckets over a track
collection and assemble them into a TimelineDataset.
"""

import math
from collections import Counter
from collections.abc import Sequence
from datetime import date

from .errors import EmptyDatasetError
from .classifier import distribution, dominant_emotion
from .models import (
    DatasetStats,
    MonthSummary,
    TimelineDataset,
    TrackRecord,
    YearRange,
    YearStats,
)
from .parser import chronological_key, parse_timestamp

MS_PER_MINUTE = 60_000


def track_year(track: TrackRecord) -> int | None:
    """Year of a track, from the cached value or by parsing its end time."""
    if track.year is not None:
        return track.year
    played_at = parse_timestamp(track.end_time)
    return played_at.year if played_at else None


def track_month(track: TrackRecord) -> int | None:
    if track.month is not None:
        return track.month
    played_at = parse_timestamp(track.end_time)
    return played_at.month if played_at else None


def total_minutes(tracks: Sequence[TrackRecord]) -> int:
    """Total listening time in minutes, rounded half up."""
    total_ms = sum(track.ms_played for track in tracks)
    return math.floor(total_ms / MS_PER_MINUTE + 0.5)


def year_range(tracks: Sequence[TrackRecord]) -> YearRange:
    """Inclusive span of valid years; the current year when there are none."""
    years = [year for year in map(track_year, tracks) if year is not None]
    if not years:
        current = date.today().year
        return YearRange(start=current, end=current)
    return YearRange(start=min(years), end=max(years))


def unique_artists(tracks: Sequence[TrackRecord]) -> int:
    return len({track.artist_name for track in tracks})


def most_played_artist(tracks: Sequence[TrackRecord]) -> str:
    """
    Artist with the most plays.

    Ties go to the artist that appears first in the input, since the leader
    only changes on a strictly greater count. Empty input yields "".
    """
    counts = Counter(track.artist_name for track in tracks)
    top_artist = ""
    max_count = 0
    # Counter preserves first-insertion order
    for artist, count in counts.items():
        if count > max_count:
            top_artist = artist
            max_count = count
    return top_artist


def filter_by_year(tracks: Sequence[TrackRecord], year: int) -> list[TrackRecord]:
    return [track for track in tracks if track_year(track) == year]


def group_by_year(tracks: Sequence[TrackRecord]) -> dict[int, list[TrackRecord]]:
    """Bucket tracks by year, keeping input order inside each bucket."""
    grouped: dict[int, list[TrackRecord]] = {}
    for track in tracks:
        year = track_year(track)
        if year is None:
            continue
        grouped.setdefault(year, []).append(track)
    return grouped


def group_by_month(tracks: Sequence[TrackRecord]) -> dict[tuple[int, int], list[TrackRecord]]:
    """Bucket tracks by (year, month), keeping input order inside each bucket."""
    grouped: dict[tuple[int, int], list[TrackRecord]] = {}
    for track in tracks:
        year, month = track_year(track), track_month(track)
        if year is None or month is None:
            continue
        grouped.setdefault((year, month), []).append(track)
    return grouped


def monthly_summaries(tracks: Sequence[TrackRecord]) -> list[MonthSummary]:
    """One summary per month with plays, in chronological order of months."""
    return [
        MonthSummary(
            year=year,
            month=month,
            total_songs=len(month_tracks),
            total_minutes=total_minutes(month_tracks),
            dominant_emotion=dominant_emotion(distribution(month_tracks)),
        )
        for (year, month), month_tracks in sorted(group_by_month(tracks).items())
    ]


def year_stats(year_tracks: Sequence[TrackRecord]) -> YearStats:
    """Statistics for a subset of tracks, using the dataset-wide rules."""
    return YearStats(
        total_songs=len(year_tracks),
        total_minutes=total_minutes(year_tracks),
        unique_artists=unique_artists(year_tracks),
        most_played_artist=most_played_artist(year_tracks),
    )


def build_dataset(tracks: Sequence[TrackRecord]) -> TimelineDataset:
    """
    Assemble a TimelineDataset from classified tracks.

    Tracks are ordered chronologically (stable, unparseable timestamps last)
    before the statistics are computed.

    Raises:
        EmptyDatasetError: If no tracks are given
    """
    if not tracks:
        raise EmptyDatasetError("No tracks to process")

    ordered = sorted(tracks, key=chronological_key)
    return TimelineDataset(
        tracks=tuple(ordered),
        year_range=year_range(ordered),
        total_minutes=total_minutes(ordered),
        stats=DatasetStats(
            total_songs=len(ordered),
            unique_artists=unique_artists(ordered),
            most_played_artist=most_played_artist(ordered),
        ),
    )
