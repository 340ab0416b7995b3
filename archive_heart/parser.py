"""
Record parsing for streaming-history exports.

Converts the rows of an untrusted CSV export into TrackRecord objects. Row-level
problems are normalized or dropped silently; only a file that cannot be decoded
at all raises ParseError.
"""

import csv
import io
import logging
import re
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone

from .errors import ParseError
from .models import TrackRecord

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("endTime", "artistName", "trackName", "msPlayed")

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


# MARK: - Field Helpers


def parse_timestamp(value: str) -> datetime | None:
    """Parse an export timestamp, returning None when it is not a valid date.

    Aware timestamps are converted to naive UTC so that every parsed value
    can be compared with every other one.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_ms_played(value: str | None) -> int:
    """Read the leading integer of a value, falling back to 0."""
    if value is None:
        return 0
    match = _LEADING_INT.match(value)
    if not match:
        return 0
    return max(int(match.group(1)), 0)


def _field(row: Mapping[str, str | None], name: str) -> str:
    value = row.get(name)
    if not isinstance(value, str):
        return ""
    return value.strip()


def validate_headers(headers: Iterable[str] | None) -> bool:
    """Return True when every required column is present."""
    present = set(headers or ())
    return all(column in present for column in REQUIRED_COLUMNS)


# MARK: - Parsing


def parse_row(row: Mapping[str, str | None]) -> TrackRecord | None:
    """Turn one CSV row into a raw TrackRecord, or None if it must be dropped."""
    end_time = _field(row, "endTime")
    artist_name = _field(row, "artistName")
    track_name = _field(row, "trackName")
    if not (end_time and artist_name and track_name):
        return None

    played_at = parse_timestamp(end_time)
    return TrackRecord(
        end_time=end_time,
        artist_name=artist_name,
        track_name=track_name,
        ms_played=parse_ms_played(row.get("msPlayed")),
        year=played_at.year if played_at else None,
        month=played_at.month if played_at else None,
    )


def parse_rows(rows: Iterable[Mapping[str, str | None]]) -> list[TrackRecord]:
    """Parse string-keyed rows into TrackRecords, preserving input order."""
    tracks: list[TrackRecord] = []
    dropped = 0
    for row in rows:
        track = parse_row(row)
        if track is None:
            dropped += 1
            continue
        tracks.append(track)

    if dropped:
        logger.warning("Dropped %d row(s) missing endTime, artistName or trackName", dropped)
    return tracks


def parse_csv(data: bytes | str) -> list[TrackRecord]:
    """
    Decode a CSV export and parse its rows.

    Args:
        data: Raw file contents, as bytes (UTF-8, optional BOM) or text

    Returns:
        Raw track records in file order

    Raises:
        ParseError: If the contents cannot be decoded as CSV text
    """
    if isinstance(data, bytes):
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ParseError(f"File is not valid UTF-8 text: {e}") from e
    else:
        text = data.removeprefix("\ufeff")

    if "\x00" in text:
        raise ParseError("File contains binary data")

    try:
        reader = csv.DictReader(io.StringIO(text, newline=""))
        if reader.fieldnames is not None and not validate_headers(reader.fieldnames):
            logger.warning(
                "CSV header is missing required columns: expected %s, got %s",
                ", ".join(REQUIRED_COLUMNS),
                ", ".join(reader.fieldnames),
            )
        return parse_rows(reader)
    except csv.Error as e:
        raise ParseError(f"Malformed CSV: {e}") from e


# MARK: - Merging


def merge(*collections: Iterable[TrackRecord]) -> list[TrackRecord]:
    """
    Combine several parsed exports into one chronological list.

    Plays sharing artist, track and end time are kept once (first occurrence
    wins). Records whose timestamp does not parse are placed last, in input
    order.
    """
    unique: dict[tuple[str, str, str], TrackRecord] = {}
    for collection in collections:
        for track in collection:
            unique.setdefault(track.key, track)

    return sorted(unique.values(), key=chronological_key)


def chronological_key(track: TrackRecord) -> tuple[bool, datetime]:
    """Sort key ordering tracks by end time, unparseable timestamps last."""
    played_at = parse_timestamp(track.end_time)
    if played_at is None:
        return (True, datetime.min)
    return (False, played_at)
