"""
Tests for timeline aggregation.

These tests verify the statistics, time buckets and dataset assembly rules.
"""

from datetime import date

import pytest
from pydantic import ValidationError

from archive_heart.aggregator import (
    build_dataset,
    filter_by_year,
    group_by_month,
    group_by_year,
    monthly_summaries,
    most_played_artist,
    total_minutes,
    unique_artists,
    year_range,
    year_stats,
)
from archive_heart.errors import EmptyDatasetError
from archive_heart.models import Emotion, TrackRecord


def make_track(
    artist: str,
    end_time: str = "2023-01-01T10:00:00",
    ms_played: int = 60000,
    emotion: Emotion = Emotion.CALM,
) -> TrackRecord:
    year, month = int(end_time[:4]), int(end_time[5:7])
    return TrackRecord(
        end_time=end_time,
        artist_name=artist,
        track_name="Song",
        ms_played=ms_played,
        year=year,
        month=month,
        emotion=emotion,
        energy_level=0.4,
    )


class TestStatistics:
    """Test suite for the individual statistics."""

    def test_total_minutes_rounds_half_up(self):
        assert total_minutes([make_track("A", ms_played=90000)]) == 2
        assert total_minutes([make_track("A", ms_played=89999)]) == 1
        assert total_minutes([make_track("A", ms_played=150000)]) == 3
        assert total_minutes([]) == 0

    def test_year_range(self):
        tracks = [
            make_track("A", "2021-05-01T00:00:00"),
            make_track("B", "2019-02-01T00:00:00"),
            make_track("C", "2020-02-01T00:00:00"),
        ]

        span = year_range(tracks)

        assert (span.start, span.end) == (2019, 2021)

    def test_year_range_of_empty_input_is_current_year(self):
        span = year_range([])
        assert span.start == span.end == date.today().year

    def test_year_range_ignores_invalid_dates(self):
        undated = TrackRecord(end_time="unknown", artist_name="X", track_name="T")
        span = year_range([undated, make_track("A", "2018-01-01T00:00:00")])
        assert (span.start, span.end) == (2018, 2018)

    def test_unique_artists_is_case_sensitive(self):
        tracks = [make_track("Artist"), make_track("artist"), make_track("Artist")]
        assert unique_artists(tracks) == 2

    def test_most_played_tie_goes_to_first_seen(self):
        """A and B both have two plays and A was seen first."""
        tracks = [make_track(name) for name in ["A", "B", "A", "B", "C"]]
        assert most_played_artist(tracks) == "A"

    def test_most_played_prefers_strictly_greater_count(self):
        tracks = [make_track(name) for name in ["B", "A", "A", "B", "A"]]
        assert most_played_artist(tracks) == "A"

    def test_most_played_of_empty_input(self):
        assert most_played_artist([]) == ""


class TestGrouping:
    """Test suite for year and month buckets."""

    def setup_method(self):
        self.tracks = [
            make_track("A", "2023-03-01T00:00:00"),
            make_track("B", "2022-07-01T00:00:00", emotion=Emotion.SAD),
            make_track("C", "2023-01-15T00:00:00", emotion=Emotion.HAPPY),
            make_track("D", "2023-03-20T00:00:00", emotion=Emotion.HAPPY),
        ]

    def test_group_by_year_preserves_order(self):
        grouped = group_by_year(self.tracks)

        assert set(grouped) == {2022, 2023}
        assert [track.artist_name for track in grouped[2023]] == ["A", "C", "D"]
        assert [track.artist_name for track in grouped[2022]] == ["B"]

    def test_group_by_year_skips_undated_tracks(self):
        undated = TrackRecord(end_time="??", artist_name="X", track_name="T")
        assert group_by_year([undated]) == {}

    def test_group_by_month(self):
        grouped = group_by_month(self.tracks)

        assert [track.artist_name for track in grouped[(2023, 3)]] == ["A", "D"]
        assert set(grouped) == {(2023, 3), (2022, 7), (2023, 1)}

    def test_filter_by_year(self):
        assert [track.artist_name for track in filter_by_year(self.tracks, 2022)] == ["B"]
        assert filter_by_year(self.tracks, 1999) == []

    def test_monthly_summaries_are_chronological(self):
        summaries = monthly_summaries(self.tracks)

        assert [(s.year, s.month) for s in summaries] == [(2022, 7), (2023, 1), (2023, 3)]
        assert summaries[0].dominant_emotion == Emotion.SAD
        # One calm and one happy play tie, which resolves to calm
        assert summaries[2].dominant_emotion == Emotion.CALM
        assert summaries[2].total_songs == 2
        assert summaries[2].total_minutes == 2

    def test_year_stats(self):
        stats = year_stats(group_by_year(self.tracks)[2023])

        assert stats.total_songs == 3
        assert stats.total_minutes == 3
        assert stats.unique_artists == 3
        assert stats.most_played_artist == "A"


class TestBuildDataset:
    """Test suite for dataset assembly."""

    def test_empty_input_raises(self):
        with pytest.raises(EmptyDatasetError):
            build_dataset([])

    def test_single_track_scenario(self):
        track = make_track("Test Artist", ms_played=180000, emotion=Emotion.HAPPY)

        dataset = build_dataset([track])

        assert dataset.total_minutes == 3
        assert dataset.stats.total_songs == 1
        assert dataset.stats.unique_artists == 1
        assert dataset.stats.most_played_artist == "Test Artist"
        assert (dataset.year_range.start, dataset.year_range.end) == (2023, 2023)

    def test_tracks_are_ordered_chronologically(self):
        tracks = [
            make_track("Late", "2023-05-01T00:00:00"),
            make_track("Early", "2021-05-01T00:00:00"),
            make_track("Middle", "2022-05-01T00:00:00"),
        ]

        dataset = build_dataset(tracks)

        assert [track.artist_name for track in dataset.tracks] == ["Early", "Middle", "Late"]
        assert dataset.stats.total_songs == len(dataset.tracks)

    def test_dataset_is_immutable(self):
        dataset = build_dataset([make_track("A")])
        with pytest.raises(ValidationError):
            dataset.total_minutes = 99
