"""
Tests for record parsing.

These tests verify row filtering, field normalization, CSV decoding and the
merging of several exports.
"""

import pytest

from archive_heart.errors import ParseError
from archive_heart.parser import (
    merge,
    parse_csv,
    parse_ms_played,
    parse_rows,
    parse_timestamp,
    validate_headers,
)


class TestParseRows:
    """Test suite for row-level parsing rules."""

    def test_keeps_valid_row_and_drops_row_missing_track(self):
        """A complete row is parsed; a row without trackName is dropped."""
        rows = [
            {
                "endTime": "2023-01-01T10:00:00",
                "artistName": "Test Artist",
                "trackName": "Happy Song",
                "msPlayed": "180000",
            },
            {"endTime": "2023-01-01T10:05:00", "artistName": "Test Artist", "msPlayed": "1000"},
        ]

        tracks = parse_rows(rows)

        assert len(tracks) == 1
        track = tracks[0]
        assert track.artist_name == "Test Artist"
        assert track.track_name == "Happy Song"
        assert track.ms_played == 180000
        assert track.year == 2023
        assert track.month == 1
        assert not track.is_classified

    def test_drops_row_missing_artist(self):
        rows = [{"endTime": "2023-01-01T10:00:00", "artistName": "", "trackName": "Song"}]
        assert parse_rows(rows) == []

    def test_whitespace_only_fields_are_missing(self):
        rows = [{"endTime": "2023-01-01", "artistName": "   ", "trackName": "Song"}]
        assert parse_rows(rows) == []

    def test_non_numeric_ms_played_becomes_zero(self):
        """A row with all required fields but a bad msPlayed is kept with 0."""
        rows = [
            {"endTime": "2023-01-01", "artistName": "A", "trackName": "T", "msPlayed": "abc"},
            {"endTime": "2023-01-02", "artistName": "A", "trackName": "T"},
        ]

        tracks = parse_rows(rows)

        assert [track.ms_played for track in tracks] == [0, 0]

    def test_trims_names(self):
        rows = [{"endTime": "2023-01-01", "artistName": "  Artist ", "trackName": "\tTitle  "}]

        track = parse_rows(rows)[0]

        assert track.artist_name == "Artist"
        assert track.track_name == "Title"

    def test_invalid_date_is_accepted_without_year(self):
        rows = [{"endTime": "not a date", "artistName": "A", "trackName": "T", "msPlayed": "5"}]

        tracks = parse_rows(rows)

        assert len(tracks) == 1
        assert tracks[0].year is None
        assert tracks[0].month is None

    def test_preserves_input_order(self):
        rows = [
            {"endTime": "2023-05-01", "artistName": "Late", "trackName": "T"},
            {"endTime": "2021-05-01", "artistName": "Early", "trackName": "T"},
        ]

        assert [track.artist_name for track in parse_rows(rows)] == ["Late", "Early"]


class TestFieldHelpers:
    """Test suite for timestamp and duration helpers."""

    def test_parse_ms_played_reads_leading_integer(self):
        assert parse_ms_played("180000") == 180000
        assert parse_ms_played(" 42ms") == 42
        assert parse_ms_played("1500.7") == 1500
        assert parse_ms_played("-20") == 0
        assert parse_ms_played("") == 0
        assert parse_ms_played(None) == 0

    def test_parse_timestamp_formats(self):
        assert parse_timestamp("2023-01-01 10:00").year == 2023
        assert parse_timestamp("2023-06-15T10:00:00Z").month == 6
        assert parse_timestamp("2023-02-30") is None
        assert parse_timestamp("") is None

    def test_parse_timestamp_normalizes_offsets_to_utc(self):
        parsed = parse_timestamp("2023-01-01T00:30:00+01:00")
        assert parsed.tzinfo is None
        assert (parsed.year, parsed.month, parsed.day, parsed.hour) == (2022, 12, 31, 23)

    def test_validate_headers(self):
        assert validate_headers(["endTime", "artistName", "trackName", "msPlayed", "extra"])
        assert not validate_headers(["endTime", "artistName"])
        assert not validate_headers(None)


class TestParseCSV:
    """Test suite for decoding whole CSV exports."""

    def test_parses_csv_bytes_and_ignores_extra_columns(self):
        data = (
            "endTime,artistName,trackName,msPlayed,platform\n"
            "2023-01-01 10:00,Test Artist,Happy Song,180000,ios\n"
            "\n"
            "2023-01-02 11:00,Other Artist,,1000,ios\n"
        ).encode("utf-8")

        tracks = parse_csv(data)

        assert len(tracks) == 1
        assert tracks[0].end_time == "2023-01-01 10:00"

    def test_tolerates_byte_order_mark(self):
        data = "\ufeffendTime,artistName,trackName,msPlayed\n2023-01-01,A,T,1\n".encode("utf-8")
        assert len(parse_csv(data)) == 1

    def test_header_only_yields_no_tracks(self):
        assert parse_csv("endTime,artistName,trackName,msPlayed\n") == []

    def test_empty_file_yields_no_tracks(self):
        assert parse_csv(b"") == []

    def test_quoted_fields_with_commas(self):
        data = 'endTime,artistName,trackName,msPlayed\n2023-01-01,"Earth, Wind & Fire",September,1\n'
        assert parse_csv(data)[0].artist_name == "Earth, Wind & Fire"

    def test_binary_garbage_raises_parse_error(self):
        with pytest.raises(ParseError):
            parse_csv(b"\x89PNG\r\n\x1a\n\xff\xd8\xff\x00")

    def test_nul_bytes_raise_parse_error(self):
        with pytest.raises(ParseError):
            parse_csv(b"endTime,artistName\x00,trackName\n")


class TestMerge:
    """Test suite for combining several exports."""

    def test_deduplicates_and_sorts_by_end_time(self):
        first = parse_rows(
            [
                {"endTime": "2023-03-01 10:00", "artistName": "A", "trackName": "One", "msPlayed": "1"},
                {"endTime": "2023-01-01 10:00", "artistName": "B", "trackName": "Two", "msPlayed": "2"},
            ]
        )
        second = parse_rows(
            [
                {"endTime": "2023-03-01 10:00", "artistName": "A", "trackName": "One", "msPlayed": "99"},
                {"endTime": "2022-12-31 10:00", "artistName": "C", "trackName": "Three"},
            ]
        )

        merged = merge(first, second)

        assert [track.artist_name for track in merged] == ["C", "B", "A"]
        # First occurrence wins
        assert merged[-1].ms_played == 1

    def test_unparseable_timestamps_sort_last(self):
        tracks = parse_rows(
            [
                {"endTime": "garbage", "artistName": "X", "trackName": "T"},
                {"endTime": "2023-01-01", "artistName": "Y", "trackName": "T"},
            ]
        )

        assert [track.artist_name for track in merge(tracks)] == ["Y", "X"]
